# Overview: Permission categories, in the order they are listed to clients.


class PermissionCategory:
    """Groups permission codes for the role matrix shown to admins."""
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    USERS = "USERS"
    SYSTEM = "SYSTEM"

    ORDER = (INVENTORY, SALES, USERS, SYSTEM)
