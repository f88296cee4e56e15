# Overview: Service-layer operations for capabilities and step-up authorization.

"""
Capability Checking and Step-up Authorization

WHY: Every sensitive operation is gated by a named capability. A role gives
a default set; a user may carry sparse overrides on top of it.

DESIGN PRINCIPLES:
- Fail closed: unknown capability or no identity resolves to False
- Override wins over role default, in both directions
- super_admin resolves every capability to True
- The acting identity's effective set is materialized once and reused
  until the identity or its overrides change
"""

from __future__ import annotations

import logging
from typing import Optional

from ..domain import HIGH_TRUST_ROLES, Role, User
from ..permissions import ALL_CAPABILITIES, DEFAULT_ROLE_PERMISSIONS
from ..store import USERS, ScrapyardStore

logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when the acting identity lacks a required capability."""
    pass


def has_permission(user: Optional[User], capability: str) -> bool:
    """Resolve one capability for a user: override, else role default, else False."""
    if user is None:
        return False
    if user.role is Role.SUPER_ADMIN:
        return True
    if capability in user.permissions:
        return bool(user.permissions[capability])
    return capability in DEFAULT_ROLE_PERMISSIONS.get(user.role, frozenset())


def resolve_permissions(user: User) -> frozenset[str]:
    """Full effective capability set of a user."""
    if user.role is Role.SUPER_ADMIN:
        return ALL_CAPABILITIES

    effective = set(DEFAULT_ROLE_PERMISSIONS.get(user.role, frozenset()))
    for code, granted in user.permissions.items():
        if granted:
            effective.add(code)
        else:
            effective.discard(code)
    return frozenset(effective & ALL_CAPABILITIES)


def current_permissions(store: ScrapyardStore) -> frozenset[str]:
    user = store.current_user
    if user is None:
        return frozenset()

    key = (user.id, user.role, tuple(sorted(user.permissions.items())))
    cached = store.permission_cache
    if cached is None or cached[0] != key:
        store.permission_cache = (key, resolve_permissions(user))
    return store.permission_cache[1]


def check_permission(store: ScrapyardStore, capability: str) -> bool:
    """True if the acting identity holds the capability."""
    user = store.current_user
    if user is None:
        return False
    if user.role is Role.SUPER_ADMIN:
        return True
    return capability in current_permissions(store)


def require_permission(store: ScrapyardStore, capability: str) -> User:
    """Return the acting identity or raise PermissionDeniedError."""
    user = store.require_user()
    if not check_permission(store, capability):
        raise PermissionDeniedError(f"Missing capability: {capability}")
    return user


def has_support_override(store: ScrapyardStore) -> bool:
    """
    Support staff may bypass plan and trial restrictions on backups.

    Granted only through an explicit per-user override, never by a role
    default (super_admin aside).
    """
    user = store.current_user
    if user is None:
        return False
    if user.role is Role.SUPER_ADMIN:
        return True
    return bool(user.permissions.get("support_override"))


# =============================================================================
# STEP-UP AUTHORIZATION
# =============================================================================

def verify_authorization(
    store: ScrapyardStore,
    identity_id: str,
    secret: str,
    required_capability: str | None = None,
) -> Optional[User]:
    """
    Re-verify a (possibly different) identity before a sensitive action.

    WHY: A cashier cannot cancel a paid order alone, but a manager standing
    next to them can type their password to approve it.

    Returns the authorizing user, or None. The authorizer must be visible
    in the acting identity's user scope and the secret must match; then
    master/super_admin always pass, other roles need the capability (any
    matching identity passes when no capability is named).
    """
    from . import auth_service, tenant_service

    if not identity_id or not secret:
        return None

    candidate = store.find(USERS, identity_id)
    if candidate is None:
        return None

    if not tenant_service.can_see_user(store, candidate):
        logger.warning(
            "Step-up refused: %s is outside the scope of %s", identity_id, store.current_user_id
        )
        return None

    if not (
        auth_service.verify_password(secret, candidate.password_hash)
        or auth_service.verify_password(secret.strip(), candidate.password_hash)
    ):
        logger.warning("Step-up refused: bad secret for %s", identity_id)
        return None

    if candidate.role in HIGH_TRUST_ROLES:
        return candidate
    if required_capability is None:
        return candidate
    if has_permission(candidate, required_capability):
        return candidate

    logger.warning("Step-up refused: %s lacks %s", identity_id, required_capability)
    return None


def log_master_action(
    store: ScrapyardStore,
    action: str,
    details: str,
    authorizer_id: str | None = None,
) -> None:
    """Record an authorized action on the authorizer's log (default: acting identity)."""
    from . import audit_service

    target = authorizer_id or store.current_user_id
    if not target:
        return
    audit_service.log_user_action(store, target, action, details)
