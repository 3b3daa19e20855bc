# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, ELEVATED_ROLES
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    permissions_by_category,
    unknown_role_permissions,
    get_role_permissions,
    role_has_permission,
    is_elevated_role,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ELEVATED_ROLES",
    "get_all_permission_codes",
    "get_permission_definition",
    "permissions_by_category",
    "unknown_role_permissions",
    "get_role_permissions",
    "role_has_permission",
    "is_elevated_role",
]
