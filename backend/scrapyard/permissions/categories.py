# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and UI display."""
    DASHBOARD = "DASHBOARD"
    ORDERS = "ORDERS"
    CASHIER = "CASHIER"
    INVENTORY = "INVENTORY"
    PARTNERS = "PARTNERS"
    REPORTS = "REPORTS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
