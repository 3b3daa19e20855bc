"""
The shipped Alembic revision builds the same schema as the models.
"""

from pathlib import Path

from flask_migrate import downgrade, upgrade
from sqlalchemy import inspect

from retailpos import create_app
from retailpos.extensions import db

from conftest import TEST_CONFIG

MIGRATIONS_DIR = str(Path(__file__).resolve().parents[1] / "migrations")


def test_upgrade_matches_models_and_downgrades_cleanly(tmp_path):
    app = create_app({
        **TEST_CONFIG,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'migrated.sqlite3'}",
    })

    with app.app_context():
        upgrade(directory=MIGRATIONS_DIR)

        inspector = inspect(db.engine)
        assert set(inspector.get_table_names()) == set(db.metadata.tables) | {"alembic_version"}

        for name, table in db.metadata.tables.items():
            migrated = {col["name"]: col for col in inspector.get_columns(name)}
            assert set(migrated) == set(table.columns.keys()), name
            for column in table.columns:
                assert migrated[column.name]["nullable"] == column.nullable, f"{name}.{column.name}"

            indexes = {ix["name"] for ix in inspector.get_indexes(name)}
            assert {ix.name for ix in table.indexes} <= indexes, name

        downgrade(directory=MIGRATIONS_DIR, revision="base")
        assert set(inspect(db.engine).get_table_names()) == {"alembic_version"}
        db.engine.dispose()
