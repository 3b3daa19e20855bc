# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "View products, brands, categories and suppliers",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit, deactivate and delete products",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit and delete brands, categories and suppliers",
        PermissionCategory.INVENTORY,
    ),
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels and stock movements",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_STOCK",
        "Manage Stock",
        "Receive and adjust stock",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Ring up sales at the point of sale",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_OWN_SALES",
        "View Own Sales",
        "View sales created by the current user",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_ALL_SALES",
        "View All Sales",
        "View and filter sales of every user",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES_REPORTS",
        "View Sales Reports",
        "View sales statistics",
        PermissionCategory.SALES,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "View user list",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create users, change roles, deactivate or delete accounts",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "View the activity log, its statistics and active sessions",
        PermissionCategory.SYSTEM,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
