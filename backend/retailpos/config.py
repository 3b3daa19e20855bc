# backend/retailpos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retailpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retailpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sale-level tax rate used when a sale does not send one (fraction, 0.19 = 19%)
    DEFAULT_TAX_RATE = os.environ.get("DEFAULT_TAX_RATE", "0.19")

    # IANA zone used for "today" / "this month" boundaries in sales stats
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")

    # Activity log writes run on a background worker unless disabled
    AUDIT_ASYNC = _env_flag("AUDIT_ASYNC", True)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Generated SKUs look like FEM-2024-05-000001
    SKU_PREFIX = os.environ.get("SKU_PREFIX", "FEM")

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    )
