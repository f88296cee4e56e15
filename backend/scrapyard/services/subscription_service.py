"""
Subscription Lifecycle Service

WHY: A tenant's access depends on its billing state. Trials and paid
periods expire on their own; nobody has to flip a switch.

STATE MACHINE:
    active --(now > subscription_ends_at or trial_ends_at)--> blocked
    blocked/suspended --(renew_subscription)--> active
    any --(update_company_status, platform operator)--> any

    "trial" is not a stored state: a company is on trial while
    now < trial_ends_at.

DESIGN PRINCIPLES:
- Expiration only ever moves a company to blocked; it never unblocks
- Blocked and suspended companies are left alone by the automatic check
- Renewal extends from the later of now and the current end date, so
  paying early never shortens a subscription
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from ..domain import (
    BillingCycle,
    Company,
    CompanyStatus,
    Role,
    User,
)
from ..store import (
    BACKUP_HISTORY,
    CASH_SESSIONS,
    COMPANIES,
    ORDERS,
    PARTNERS,
    PLANS,
    PRODUCTS,
    TRANSACTIONS,
    USERS,
    ScrapyardStore,
)
from ..time_utils import add_days, parse_iso_datetime
from ..validation import ValidationError, normalize_email, validate_choice
from .audit_service import log_current_action, log_user_action
from .results import OperationResult

logger = logging.getLogger(__name__)


def is_on_trial(company: Company, now) -> bool:
    return company.trial_ends_at is not None and now < company.trial_ends_at


def expiration_of(company: Company):
    """The date access ends: the paid period if any, else the trial."""
    return company.subscription_ends_at or company.trial_ends_at


def check_company(store: ScrapyardStore, company: Company) -> bool:
    """
    Block the company if its access period has passed.

    Returns True if the status changed. Idempotent: a second call on the
    same instant changes nothing.
    """
    if company.status in (CompanyStatus.BLOCKED, CompanyStatus.SUSPENDED):
        return False

    expiration = expiration_of(company)
    if expiration is None or not store.now() > expiration:
        return False

    with store.mutation(COMPANIES):
        company.status = CompanyStatus.BLOCKED

    logger.info("Company %s blocked: access expired at %s", company.id, expiration)
    return True


def run_lifecycle_checks(store: ScrapyardStore) -> list[str]:
    """Apply check_company to every company. Returns ids that were blocked."""
    blocked = []
    with store.mutation(COMPANIES):
        for company in store.companies:
            if check_company(store, company):
                blocked.append(company.id)
    return blocked


def _require_operator(store: ScrapyardStore) -> Optional[OperationResult]:
    actor = store.require_user()
    if actor.role is not Role.SUPER_ADMIN:
        return OperationResult.fail("Permission denied.", "permission_denied")
    return None


# =============================================================================
# PLATFORM OPERATOR ACTIONS
# =============================================================================

def renew_subscription(store: ScrapyardStore, company_id: str, days: int) -> OperationResult:
    """
    Extend a company's paid period and reactivate it.

    new end = max(now, subscription_ends_at) + days
    """
    refused = _require_operator(store)
    if refused is not None:
        return refused

    try:
        days = int(days)
    except (TypeError, ValueError):
        return OperationResult.fail("days must be a whole number", "validation_error")
    if days <= 0:
        return OperationResult.fail("days must be positive", "validation_error")

    company = store.find(COMPANIES, company_id)
    if company is None:
        return OperationResult.fail("Company not found.", "not_found")

    now = store.now()
    base = company.subscription_ends_at
    if base is None or base < now:
        base = now

    with store.mutation(COMPANIES):
        company.subscription_ends_at = add_days(base, days)
        company.status = CompanyStatus.ACTIVE
        log_current_action(store, "Super Admin", f"Renewed {company.name} by {days} days")

    logger.info("Company %s renewed until %s", company.id, company.subscription_ends_at)
    return OperationResult.ok("Subscription renewed.", data=company)


def update_company_status(
    store: ScrapyardStore,
    company_id: str,
    status: str | CompanyStatus,
    plan: str | None = None,
) -> OperationResult:
    refused = _require_operator(store)
    if refused is not None:
        return refused

    company = store.find(COMPANIES, company_id)
    if company is None:
        return OperationResult.fail("Company not found.", "not_found")

    try:
        new_status = CompanyStatus(status)
    except ValueError:
        return OperationResult.fail(
            f"status must be one of: {', '.join(s.value for s in CompanyStatus)}", "validation_error"
        )
    if plan is not None and store.find(PLANS, plan) is None:
        return OperationResult.fail("Plan not found.", "not_found")

    with store.mutation(COMPANIES):
        company.status = new_status
        if plan is not None:
            company.plan = plan
        log_current_action(
            store, "Super Admin", f"Set {company.name} to {new_status.value} ({company.plan})"
        )

    logger.info("Company %s status -> %s", company.id, new_status.value)
    return OperationResult.ok("Company updated.", data=company)


# Fields a platform operator may edit directly; id is never editable
EDITABLE_COMPANY_FIELDS = (
    "name",
    "document",
    "owner_name",
    "email",
    "phone",
    "plan",
    "billing_cycle",
    "trial_ends_at",
    "subscription_ends_at",
)


def update_company_details(store: ScrapyardStore, company_id: str, updates: dict[str, Any]) -> OperationResult:
    refused = _require_operator(store)
    if refused is not None:
        return refused

    company = store.find(COMPANIES, company_id)
    if company is None:
        return OperationResult.fail("Company not found.", "not_found")

    if updates.get("id", company.id) != company.id:
        return OperationResult.fail("Company id cannot be changed.", "validation_error")
    unknown = sorted(set(updates) - set(EDITABLE_COMPANY_FIELDS) - {"id"})
    if unknown:
        return OperationResult.fail(f"Cannot edit: {', '.join(unknown)}", "validation_error")

    changes: dict[str, Any] = {}
    try:
        for field in EDITABLE_COMPANY_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field in ("trial_ends_at", "subscription_ends_at"):
                value = parse_iso_datetime(value)
            elif field == "billing_cycle":
                value = BillingCycle(value) if value else None
            elif field == "plan" and store.find(PLANS, value) is None:
                raise ValidationError("Plan not found")
            changes[field] = value
    except ValueError as e:
        return OperationResult.fail(str(e), "validation_error")

    with store.mutation(COMPANIES):
        for field, value in changes.items():
            setattr(company, field, value)
        log_current_action(store, "Super Admin", f"Edited company {company.name}")

    return OperationResult.ok("Company updated.", data=company)


def delete_company(store: ScrapyardStore, company_id: str) -> OperationResult:
    """Remove a company and every record it owns."""
    refused = _require_operator(store)
    if refused is not None:
        return refused

    company = store.find(COMPANIES, company_id)
    if company is None:
        return OperationResult.fail("Company not found.", "not_found")

    owned = (USERS, PRODUCTS, PARTNERS, ORDERS, TRANSACTIONS, CASH_SESSIONS, BACKUP_HISTORY)
    with store.mutation(COMPANIES, *owned):
        store.replace_collection(COMPANIES, [c for c in store.companies if c.id != company_id])
        for key in owned:
            store.replace_collection(
                key, [record for record in store.collection(key) if record.company_id != company_id]
            )
        log_current_action(store, "Super Admin", f"Deleted company ID: {company_id}")

    logger.info("Company %s deleted with all its records", company_id)
    return OperationResult.ok("Company deleted.")


# =============================================================================
# SIGNUP
# =============================================================================

def register_company(
    store: ScrapyardStore,
    company_name: str,
    admin_name: str,
    email: str,
    password: str,
    document: str = "",
    phone: str = "",
    plan: str = "professional",
    billing_cycle: str = "monthly",
) -> OperationResult:
    """
    Self-service signup: a new tenant on a trial plus its owning master user.

    The email check runs before anything is created, so a duplicate leaves
    no orphan company behind.
    """
    from .auth_service import PasswordValidationError, hash_password, validate_password_strength

    try:
        if not company_name or not company_name.strip():
            raise ValidationError("company_name is required")
        if not admin_name or not admin_name.strip():
            raise ValidationError("admin_name is required")
        email_lower = normalize_email(email)
        validate_password_strength(password)
        validate_choice(billing_cycle, [c.value for c in BillingCycle], "billing_cycle")
    except (ValidationError, PasswordValidationError) as e:
        return OperationResult.fail(str(e), "validation_error")

    if store.find_user_by_email(email_lower) is not None:
        return OperationResult.fail(
            "This email is already registered. Use another one or sign in.", "email_in_use"
        )
    if store.find(PLANS, plan) is None:
        return OperationResult.fail("Plan not found.", "not_found")

    now = store.now()
    access_ends = add_days(now, int(store.config["TRIAL_DAYS"]))

    company = Company(
        id=str(uuid.uuid4()),
        name=company_name.strip(),
        document=document or "",
        owner_name=admin_name.strip(),
        email=email_lower,
        phone=phone or "",
        plan=plan,
        status=CompanyStatus.ACTIVE,
        created_at=now,
        trial_ends_at=access_ends,
        subscription_ends_at=access_ends,
        billing_cycle=BillingCycle(billing_cycle),
    )
    owner = User(
        id=str(uuid.uuid4()),
        company_id=company.id,
        name=admin_name.strip(),
        email=email_lower,
        role=Role.MASTER,
        password_hash=hash_password(password, rounds=int(store.config["BCRYPT_ROUNDS"])),
    )

    with store.mutation(COMPANIES, USERS):
        store.companies.append(company)
        store.users.append(owner)
        log_user_action(store, owner.id, "Signup", f"Created company {company.name}")

    logger.info("Company %s registered (plan=%s)", company.id, plan)
    return OperationResult.ok("Company registered.", data={"company": company, "user": owner})


def owner_of(store: ScrapyardStore, company_id: str) -> Optional[User]:
    for user in store.users:
        if user.company_id == company_id and user.role is Role.MASTER:
            return user
    return None
