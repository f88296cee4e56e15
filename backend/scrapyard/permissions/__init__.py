# Overview: Capability system package.
# Re-exports the public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    DASHBOARD_PERMISSIONS,
    ORDER_PERMISSIONS,
    CASHIER_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    PARTNER_PERMISSIONS,
    REPORT_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, ALL_CAPABILITIES, OVERRIDE_ONLY_CAPABILITIES
from .helpers import (
    get_permissions_by_category,
    validate_permission_code,
    clean_overrides,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DASHBOARD_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "CASHIER_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "PARTNER_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ALL_CAPABILITIES",
    "OVERRIDE_ONLY_CAPABILITIES",
    "get_permissions_by_category",
    "validate_permission_code",
    "clean_overrides",
]
