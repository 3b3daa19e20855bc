# Overview: Fixed role to permission mapping.

from ..models.auth import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_MANAGER

# WHY these mappings:
# - EMPLOYEE: POS only (ring up sales, look up products and stock, own sales)
# - MANAGER: catalog and stock management, every user's sales and stats
# - ADMIN: everything, including users and the activity log

_EMPLOYEE = [
    "VIEW_PRODUCTS",
    "VIEW_INVENTORY",
    "CREATE_SALE",
    "VIEW_OWN_SALES",
]

_MANAGER = _EMPLOYEE + [
    "MANAGE_PRODUCTS",
    "MANAGE_CATALOG",
    "MANAGE_STOCK",
    "VIEW_ALL_SALES",
    "VIEW_SALES_REPORTS",
]

_ADMIN = _MANAGER + [
    "VIEW_USERS",
    "MANAGE_USERS",
    "VIEW_AUDIT_LOG",
]

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: _ADMIN,
    ROLE_MANAGER: _MANAGER,
    ROLE_EMPLOYEE: _EMPLOYEE,
}

# Roles allowed to see every user's sales and the sales statistics
ELEVATED_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER})
