# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    (
        "view_dashboard",
        "View Dashboard",
        "See the company overview",
        PermissionCategory.DASHBOARD,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "register_buy",
        "Register Purchases",
        "Create buy orders for material brought in",
        PermissionCategory.ORDERS,
    ),
    (
        "register_sell",
        "Register Sales",
        "Create sell orders for material shipped out",
        PermissionCategory.ORDERS,
    ),
    (
        "edit_order",
        "Edit Orders",
        "Change pending orders",
        PermissionCategory.ORDERS,
    ),
    (
        "delete_order",
        "Delete Orders",
        "Hard-delete orders of any status",
        PermissionCategory.ORDERS,
    ),
]


# -- CASHIER --

CASHIER_PERMISSIONS = [
    (
        "manage_cashier",
        "Operate Cash Register",
        "Open and close the register, settle orders",
        PermissionCategory.CASHIER,
    ),
    (
        "approve_manual_transaction",
        "Approve Manual Movements",
        "Authorize manual cash entries and withdrawals",
        PermissionCategory.CASHIER,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "view_inventory",
        "View Inventory",
        "View products and stock levels",
        PermissionCategory.INVENTORY,
    ),
    (
        "manage_inventory",
        "Manage Inventory",
        "Create products",
        PermissionCategory.INVENTORY,
    ),
    (
        "edit_product",
        "Edit Products",
        "Change product prices and limits",
        PermissionCategory.INVENTORY,
    ),
    (
        "delete_product",
        "Delete Products",
        "Remove products",
        PermissionCategory.INVENTORY,
    ),
    (
        "adjust_stock",
        "Adjust Stock",
        "Manual stock corrections and batch counts",
        PermissionCategory.INVENTORY,
    ),
]


# -- PARTNERS --

PARTNER_PERMISSIONS = [
    (
        "manage_partners",
        "Manage Partners",
        "Create and edit suppliers and customers",
        PermissionCategory.PARTNERS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "view_reports",
        "View Reports",
        "Order and inventory reports",
        PermissionCategory.REPORTS,
    ),
    (
        "view_financial_reports",
        "View Financial Reports",
        "Cash flow and register reports",
        PermissionCategory.REPORTS,
    ),
    (
        "view_audit",
        "View Audit Trail",
        "Read the action history of company users",
        PermissionCategory.REPORTS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "manage_users",
        "Manage Users",
        "Create users",
        PermissionCategory.USERS,
    ),
    (
        "edit_user",
        "Edit Users",
        "Change user details, roles and overrides",
        PermissionCategory.USERS,
    ),
    (
        "delete_user",
        "Delete Users",
        "Remove users",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "manage_settings",
        "Manage Settings",
        "Company settings and backups",
        PermissionCategory.SYSTEM,
    ),
    (
        "manage_subscription",
        "Manage Subscription",
        "Plan and billing of the company",
        PermissionCategory.SYSTEM,
    ),
    (
        "support_override",
        "Support Override",
        "Bypass trial and plan restrictions on backup and restore (audited)",
        PermissionCategory.SYSTEM,
    ),
]


# Combined list of all capabilities
PERMISSION_DEFINITIONS = (
    DASHBOARD_PERMISSIONS
    + ORDER_PERMISSIONS
    + CASHIER_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + PARTNER_PERMISSIONS
    + REPORT_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
