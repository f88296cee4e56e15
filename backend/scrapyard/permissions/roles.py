# Overview: Immutable default capability set for every role.

from scrapyard.domain.auth import Role

from .definitions import PERMISSION_DEFINITIONS


ALL_CAPABILITIES = frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)

# Only ever granted per user, never by a role default
OVERRIDE_ONLY_CAPABILITIES = frozenset({"support_override"})

_OWNER = ALL_CAPABILITIES - OVERRIDE_ONLY_CAPABILITIES

DEFAULT_ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    # super_admin resolves every capability at check time; listed for completeness
    Role.SUPER_ADMIN: _OWNER,
    Role.MASTER: _OWNER,
    Role.MANAGER: _OWNER - {
        "delete_product",
        "delete_user",
        "manage_settings",
        "manage_subscription",
    },
    Role.CASHIER: frozenset({
        "view_dashboard",
        "register_buy",
        "register_sell",
        "manage_cashier",
        "view_inventory",
        "manage_partners",
        "view_reports",
    }),
    Role.BUYER: frozenset({
        "view_dashboard",
        "register_buy",
        "view_inventory",
        "manage_partners",
    }),
    Role.SELLER: frozenset({
        "view_dashboard",
        "register_sell",
        "view_inventory",
        "manage_partners",
    }),
    Role.FINANCIAL: frozenset({
        "view_dashboard",
        "manage_cashier",
        "approve_manual_transaction",
        "view_inventory",
        "view_reports",
        "view_financial_reports",
    }),
}
