# Overview: Utility functions for permission lookups and validation.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, ELEVATED_ROLES


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def permissions_by_category(codes=None) -> list[dict]:
    """
    Definitions grouped per category, in PermissionCategory.ORDER.

    codes limits the output to those permission codes (e.g. a role's grant).
    """
    wanted = set(get_all_permission_codes() if codes is None else codes)
    groups = []
    for category in PermissionCategory.ORDER:
        perms = [
            get_permission_definition(code)
            for code, _, _, cat in PERMISSION_DEFINITIONS
            if cat == category and code in wanted
        ]
        if perms:
            groups.append({"category": category, "permissions": perms})
    return groups


def unknown_role_permissions() -> dict[str, list[str]]:
    """Role grants that reference codes missing from PERMISSION_DEFINITIONS."""
    known = set(get_all_permission_codes())
    return {
        role: sorted(set(codes) - known)
        for role, codes in DEFAULT_ROLE_PERMISSIONS.items()
        if set(codes) - known
    }


def get_role_permissions(role: str | None) -> set[str]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role or "", ()))


def role_has_permission(role: str | None, code: str) -> bool:
    return code in get_role_permissions(role)


def is_elevated_role(role: str | None) -> bool:
    return role in ELEVATED_ROLES
