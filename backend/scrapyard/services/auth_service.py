# Overview: Service-layer operations for auth; identity, sessions and user management.

"""
Authentication and User Management

WHY: Every action must be attributable to one identity. Secrets are stored
as bcrypt hashes only; login is gated by the tenant's subscription state.

DESIGN:
- Emails are globally unique (case-insensitive) and stored lower-case
- One active identity per store; its id is persisted so a restart can
  resume the session unless the tenant has been blocked meanwhile
- Tenant actors are capped by their plan's max_users
- support_override is only ever granted by a platform operator

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS)
- Minimum 6 characters
- Reset tokens are single-use and expire after PASSWORD_RESET_TTL_MINUTES
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Optional

import bcrypt

from ..domain import (
    ENTRY_PLAN_ID,
    CompanyStatus,
    Role,
    User,
    default_plans,
)
from ..permissions import OVERRIDE_ONLY_CAPABILITIES, clean_overrides
from ..store import AUTH_USER, COMPANIES, PLANS, USERS, ScrapyardStore
from ..validation import ValidationError, normalize_email
from .audit_service import log_user_action
from .permission_service import PermissionDeniedError, check_permission
from .results import OperationResult

logger = logging.getLogger(__name__)


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(Exception):
    """Raised when a password doesn't meet requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or not password.strip():
        raise PasswordValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _hash(store: ScrapyardStore, password: str) -> str:
    return hash_password(password, rounds=int(store.config["BCRYPT_ROUNDS"]))


def plan_for(store: ScrapyardStore, plan_id: str):
    """Plan by id, falling back to the built-in definition, then the entry plan."""
    plan = store.find(PLANS, plan_id)
    if plan is not None:
        return plan
    builtin = {p.id: p for p in default_plans(store.now())}
    return builtin.get(plan_id) or builtin[ENTRY_PLAN_ID]


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================

def login(store: ScrapyardStore, email: str, password: str) -> OperationResult:
    """
    Authenticate and make the identity active.

    The tenant's subscription is re-evaluated on every attempt, so an
    expired trial is blocked right here even if no lifecycle pass ran.
    """
    from .subscription_service import check_company

    user = store.find_user_by_email(email or "")
    if user is None or not verify_password(password or "", user.password_hash):
        return OperationResult.fail("Invalid credentials.", "invalid_credentials")

    if user.company_id:
        company = store.find(COMPANIES, user.company_id)
        if company is None:
            return OperationResult.fail("Company not found.", "company_not_found")
        if company.status in (CompanyStatus.BLOCKED, CompanyStatus.SUSPENDED):
            return OperationResult.fail(
                "Access blocked. Subscription expired or suspended.", "blocked", is_blocked=True
            )
        if check_company(store, company):
            return OperationResult.fail(
                "Subscription expired. Access was blocked automatically.", "expired", is_blocked=True
            )

    with store.mutation(USERS, AUTH_USER):
        store.set_current_user(user)
        log_user_action(store, user.id, "Login", "Signed in")

    logger.info("User %s signed in", user.id)
    return OperationResult.ok("Signed in.", data=user)


def logout(store: ScrapyardStore) -> None:
    user = store.current_user
    with store.mutation(USERS, AUTH_USER):
        if user is not None:
            log_user_action(store, user.id, "Logout", "Signed out")
        store.set_current_user(None)


def resume_session(store: ScrapyardStore) -> Optional[User]:
    """
    Restore the identity saved by a previous run.

    The saved id is dropped if the user is gone or its tenant is missing,
    blocked or suspended.
    """
    if not store.current_user_id:
        return None

    user = store.current_user
    resumable = user is not None
    if resumable and user.company_id:
        company = store.find(COMPANIES, user.company_id)
        resumable = company is not None and company.status is CompanyStatus.ACTIVE

    if not resumable:
        logger.info("Dropping saved session for %s", store.current_user_id)
        with store.mutation(AUTH_USER):
            store.set_current_user(None)
        return None

    store.set_current_user(user)
    return user


# =============================================================================
# PASSWORD RESET
# =============================================================================

def request_password_reset(store: ScrapyardStore, email: str) -> OperationResult:
    """Issue a single-use reset token; data holds the token for delivery."""
    user = store.find_user_by_email(email or "")
    if user is None:
        return OperationResult.fail("Email not found.", "email_not_found")

    token = str(uuid.uuid4())
    ttl = timedelta(minutes=int(store.config["PASSWORD_RESET_TTL_MINUTES"]))
    with store.mutation(USERS):
        user.reset_token = token
        user.reset_token_expires = store.now() + ttl

    return OperationResult.ok("Reset instructions sent.", data=token)


def complete_password_reset(store: ScrapyardStore, token: str, new_password: str) -> OperationResult:
    user = None
    if token:
        user = next((u for u in store.users if u.reset_token == token), None)
    if user is None:
        return OperationResult.fail("Invalid or unknown reset token.", "token_invalid")
    if user.reset_token_expires is not None and store.now() > user.reset_token_expires:
        return OperationResult.fail("This reset link expired. Request a new one.", "token_expired")

    try:
        validate_password_strength(new_password)
    except PasswordValidationError as e:
        return OperationResult.fail(str(e), "weak_password")

    with store.mutation(USERS):
        user.password_hash = _hash(store, new_password)
        user.reset_token = None
        user.reset_token_expires = None
        log_user_action(store, user.id, "Password", "Reset password via recovery")

    return OperationResult.ok("Password updated.")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

def _email_taken(store: ScrapyardStore, email: str, exclude_id: str | None = None) -> bool:
    existing = store.find_user_by_email(email)
    return existing is not None and existing.id != exclude_id


def _seat_limit_reached(store: ScrapyardStore, company_id: str) -> Optional[OperationResult]:
    company = store.find(COMPANIES, company_id)
    if company is None:
        return OperationResult.fail("Company not found.", "company_not_found")
    plan = plan_for(store, company.plan)
    seats = sum(1 for user in store.users if user.company_id == company_id)
    if seats >= plan.max_users:
        return OperationResult.fail(
            f"User limit for the {plan.name} plan reached ({plan.max_users} users). "
            "Upgrade to add more.",
            "user_limit_reached",
        )
    return None


def _parse_role(value: Any) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}")


def _check_overrides(actor: User, overrides: Any) -> dict[str, bool]:
    cleaned = clean_overrides(overrides)
    if not actor.is_platform_operator and OVERRIDE_ONLY_CAPABILITIES & set(cleaned):
        raise PermissionDeniedError("Only platform operators can grant support capabilities")
    return cleaned


def add_user(
    store: ScrapyardStore,
    name: str,
    email: str,
    password: str,
    role: str | Role,
    permissions: dict | None = None,
) -> OperationResult:
    """
    Create a user in the actor's company.

    Platform operators create platform-operator users (company '').
    Tenant actors are capped by their plan's max_users.
    """
    actor = store.require_user()
    if not check_permission(store, "manage_users"):
        return OperationResult.fail("Permission denied.", "permission_denied")

    try:
        if not name or not str(name).strip():
            raise ValidationError("name is required")
        email_lower = normalize_email(email)
        validate_password_strength(password)
        parsed_role = _parse_role(role)
        overrides = _check_overrides(actor, permissions)
    except (ValidationError, PasswordValidationError) as e:
        return OperationResult.fail(str(e), "validation_error")
    except PermissionDeniedError as e:
        return OperationResult.fail(str(e), "permission_denied")

    if _email_taken(store, email_lower):
        return OperationResult.fail("This email is already used by another user.", "email_in_use")

    if actor.is_platform_operator:
        if parsed_role is not Role.SUPER_ADMIN:
            return OperationResult.fail(
                "Platform users must have the super_admin role.", "validation_error"
            )
        company_id = ""
    else:
        if parsed_role is Role.SUPER_ADMIN:
            return OperationResult.fail("Permission denied.", "permission_denied")
        if not actor.company_id:
            return OperationResult.fail("Session error.", "company_not_found")
        refused = _seat_limit_reached(store, actor.company_id)
        if refused is not None:
            return refused
        company_id = actor.company_id

    user = User(
        id=str(uuid.uuid4()),
        company_id=company_id,
        name=str(name).strip(),
        email=email_lower,
        role=parsed_role,
        password_hash=_hash(store, password),
        permissions=overrides,
    )

    with store.mutation(USERS):
        store.users.append(user)
        log_user_action(store, actor.id, "Users", f"Added user: {user.name} ({user.role.value})")

    return OperationResult.ok("User created.", data=user)


def update_user(store: ScrapyardStore, user_id: str, updates: dict) -> OperationResult:
    """
    Edit name, email, role, permission overrides, password, or (platform
    operators only) the owning company.
    """
    actor = store.require_user()
    if not check_permission(store, "edit_user"):
        return OperationResult.fail("Permission denied.", "permission_denied")

    target = store.find(USERS, user_id)
    if target is None:
        return OperationResult.fail("User not found.", "not_found")
    if not actor.is_platform_operator and target.company_id != actor.company_id:
        return OperationResult.fail("Permission denied.", "permission_denied")

    changes: dict[str, Any] = {}
    try:
        if "name" in updates:
            if not str(updates["name"] or "").strip():
                raise ValidationError("name is required")
            changes["name"] = str(updates["name"]).strip()
        if "email" in updates:
            changes["email"] = normalize_email(updates["email"])
        if "role" in updates:
            changes["role"] = _parse_role(updates["role"])
        if "permissions" in updates:
            changes["permissions"] = _check_overrides(actor, updates["permissions"])
        if updates.get("password"):
            validate_password_strength(updates["password"])
            changes["password_hash"] = _hash(store, updates["password"])
    except (ValidationError, PasswordValidationError) as e:
        return OperationResult.fail(str(e), "validation_error")
    except PermissionDeniedError as e:
        return OperationResult.fail(str(e), "permission_denied")

    if "email" in changes and _email_taken(store, changes["email"], exclude_id=target.id):
        return OperationResult.fail("This email is already used by another user.", "email_in_use")

    if changes.get("role") is Role.SUPER_ADMIN and not actor.is_platform_operator:
        return OperationResult.fail("Permission denied.", "permission_denied")

    if "company_id" in updates and (updates["company_id"] or "") != target.company_id:
        if not actor.is_platform_operator:
            return OperationResult.fail("Permission denied.", "permission_denied")
        new_company_id = updates["company_id"] or ""
        if new_company_id:
            refused = _seat_limit_reached(store, new_company_id)
            if refused is not None:
                return refused
        changes["company_id"] = new_company_id

    with store.mutation(USERS):
        for attr, value in changes.items():
            setattr(target, attr, value)
        log_user_action(store, actor.id, "Users", f"Edited user: {target.name}")

    return OperationResult.ok("User updated.", data=target)


def delete_user(store: ScrapyardStore, user_id: str) -> OperationResult:
    """Remove a user. Their past transactions keep the recorded actor name."""
    actor = store.require_user()
    if not check_permission(store, "delete_user"):
        return OperationResult.fail("Permission denied.", "permission_denied")

    target = store.find(USERS, user_id)
    if target is None or (not actor.is_platform_operator and target.company_id != actor.company_id):
        return OperationResult.fail("User not found.", "not_found")
    if target.id == actor.id:
        return OperationResult.fail("You cannot delete your own user.", "cannot_delete_self")

    with store.mutation(USERS):
        store.users.remove(target)
        log_user_action(store, actor.id, "Users", f"Deleted user: {target.name}")

    return OperationResult.ok("User deleted.")
