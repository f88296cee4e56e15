"""
Snapshot Service: backup export, history and restore

WHY: Tenants need restore points they can download, and the platform needs
a full dump it can reload. Both are plain JSON documents built from the
store collections.

PAYLOADS:
- Tenant:  {"version": "1.0", "timestamp", "company", "products",
            "partners", "orders", "transactions", "users", "cash_sessions"}
- Global:  {"version": "2.0-GLOBAL", "timestamp", "type": "global_system_dump",
            "companies", "users", "products", "partners", "orders",
            "transactions", "cash_sessions", "plans", "backup_history"}

DESIGN PRINCIPLES:
- Restore parses and validates the whole payload before touching the
  store; a rejected payload leaves every collection unchanged
- A tenant restore only replaces records of the payload's company, and
  every record in it must carry that company id
- The entry tier (essential) has no tenant backups and trials cannot
  restore, unless the actor holds support_override; each use of the
  override is written to the audit log
- Auto backup history keeps the newest N logs per scope; manual logs stay
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from decimal import InvalidOperation
from typing import Any, Optional

from ..domain import (
    ENTRY_PLAN_ID,
    SYSTEM_SCOPE,
    BackupLog,
    BackupType,
    Company,
    Role,
    SessionStatus,
)
from ..permissions import OVERRIDE_ONLY_CAPABILITIES, clean_overrides
from ..store import (
    AUTH_USER,
    BACKUP_HISTORY,
    CASH_SESSIONS,
    COLLECTIONS,
    COMPANIES,
    ORDERS,
    PARTNERS,
    PLANS,
    PRODUCTS,
    TRANSACTIONS,
    USERS,
    ScrapyardStore,
)
from ..time_utils import calendar_day, to_utc_z
from . import tenant_service
from .audit_service import log_current_action
from .permission_service import has_support_override
from .subscription_service import is_on_trial

logger = logging.getLogger(__name__)


TENANT_VERSION = "1.0"
GLOBAL_VERSION = "2.0-GLOBAL"
GLOBAL_TYPE = "global_system_dump"

# Payload key -> store collection, global dump
GLOBAL_SECTIONS = {
    "companies": COMPANIES,
    "users": USERS,
    "products": PRODUCTS,
    "partners": PARTNERS,
    "orders": ORDERS,
    "transactions": TRANSACTIONS,
    "cash_sessions": CASH_SESSIONS,
    "plans": PLANS,
    "backup_history": BACKUP_HISTORY,
}

# Payload key -> store collection, tenant snapshot (company is separate)
TENANT_SECTIONS = {
    "products": PRODUCTS,
    "partners": PARTNERS,
    "orders": ORDERS,
    "transactions": TRANSACTIONS,
    "users": USERS,
    "cash_sessions": CASH_SESSIONS,
}


BILLING_FIELDS = ("plan", "status", "trial_ends_at", "subscription_ends_at", "billing_cycle")


class BackupImportError(Exception):
    """Raised internally when a payload fails validation."""
    pass


@dataclass
class BackupExport:
    """A rendered snapshot, ready to be downloaded."""
    filename: str
    content: str

    @property
    def size_label(self) -> str:
        return f"{len(self.content.encode('utf-8')) / 1024:.2f} KB"


# =============================================================================
# EXPORT
# =============================================================================

def build_payload(store: ScrapyardStore) -> Optional[dict]:
    """Snapshot visible to the acting identity, or None without one."""
    user = store.current_user
    if user is None:
        return None

    timestamp = to_utc_z(store.now())
    if user.role is Role.SUPER_ADMIN:
        payload: dict[str, Any] = {
            "version": GLOBAL_VERSION,
            "timestamp": timestamp,
            "type": GLOBAL_TYPE,
        }
        for section, key in GLOBAL_SECTIONS.items():
            payload[section] = [record.to_dict() for record in store.collection(key)]
        return payload

    company = tenant_service.current_company(store)
    if company is None:
        return None
    payload = {
        "version": TENANT_VERSION,
        "timestamp": timestamp,
        "company": company.to_dict(),
    }
    for section, key in TENANT_SECTIONS.items():
        payload[section] = [record.to_dict() for record in tenant_service.scoped(store, key)]
    return payload


def backup_filename(store: ScrapyardStore) -> str:
    name = "backup_scrapyard_"
    user = store.current_user
    if user is not None and user.role is Role.SUPER_ADMIN:
        name += "GLOBAL_SYSTEM_"
    else:
        company = tenant_service.current_company(store)
        if company is not None:
            name += re.sub(r"\s+", "_", company.name) + "_"
    return f"{name}{calendar_day(store.now()).isoformat()}.json"


def export_backup(store: ScrapyardStore) -> Optional[BackupExport]:
    payload = build_payload(store)
    if payload is None:
        return None
    return BackupExport(
        filename=backup_filename(store),
        content=json.dumps(payload, indent=2),
    )


# =============================================================================
# HISTORY
# =============================================================================

def _retain(history: list[BackupLog], scope: str, backup_type: BackupType, keep: int) -> list[BackupLog]:
    """Keep the newest `keep` logs of one scope and type; everything else untouched."""
    matching = sorted(
        (log for log in history if log.company_id == scope and log.type is backup_type),
        key=lambda log: log.timestamp,
        reverse=True,
    )
    dropped = {log.id for log in matching[keep:]}
    kept = [log for log in history if log.id not in dropped]
    return sorted(kept, key=lambda log: log.timestamp, reverse=True)


def _record_backup(store: ScrapyardStore, scope: str, backup_type: BackupType, export: BackupExport, keep: int | None) -> BackupLog:
    log = BackupLog(
        id=str(uuid.uuid4()),
        company_id=scope,
        timestamp=store.now(),
        type=backup_type,
        size=export.size_label,
        status="success",
    )
    with store.mutation(BACKUP_HISTORY):
        history = [log] + list(store.backup_history)
        if keep is not None:
            history = _retain(history, scope, backup_type, keep)
        store.replace_collection(BACKUP_HISTORY, history)
    return log


def get_backup_history(store: ScrapyardStore) -> list[BackupLog]:
    """Operators see every log; tenants see their own."""
    user = store.current_user
    if user is None:
        return []
    if user.role is Role.SUPER_ADMIN:
        logs = list(store.backup_history)
    else:
        logs = tenant_service.scoped(store, BACKUP_HISTORY)
    return sorted(logs, key=lambda log: log.timestamp, reverse=True)


def _needs_override(store: ScrapyardStore, company: Company) -> Optional[bool]:
    """None: not allowed. True: allowed through support_override. False: allowed."""
    if company.plan != ENTRY_PLAN_ID:
        return False
    if not has_support_override(store):
        return None
    return True


def trigger_manual_backup(store: ScrapyardStore) -> bool:
    """
    Create a manual restore point for the caller's scope.

    Platform operators snapshot the whole system (SYSTEM scope).
    """
    user = store.current_user
    if user is None:
        return False

    if user.role is Role.SUPER_ADMIN:
        export = export_backup(store)
        if export is None:
            return False
        with store.mutation(BACKUP_HISTORY, USERS):
            _record_backup(store, SYSTEM_SCOPE, BackupType.MANUAL, export, keep=None)
            log_current_action(store, "Global Backup", "Created full system backup")
        logger.info("Manual global backup created by %s", user.id)
        return True

    company = tenant_service.current_company(store)
    if company is None:
        return False

    override = _needs_override(store, company)
    if override is None:
        return False
    export = export_backup(store)
    if export is None:
        return False

    with store.mutation(BACKUP_HISTORY, USERS):
        if override:
            log_current_action(store, "Support Override", f"Manual backup on the {ENTRY_PLAN_ID} plan")
        _record_backup(store, company.id, BackupType.MANUAL, export, keep=None)
        log_current_action(store, "Backup", "Created manual restore point")

    logger.info("Manual backup created for company %s", company.id)
    return True


def run_auto_backup(store: ScrapyardStore) -> Optional[BackupLog]:
    """
    Take the daily automatic backup of the caller's scope.

    At most one auto backup per scope per calendar day (UTC). Returns the
    new log, or None when nothing was due or allowed.
    """
    user = store.current_user
    if user is None:
        return None

    override = False
    if user.role is Role.SUPER_ADMIN:
        scope = SYSTEM_SCOPE
    else:
        company = tenant_service.current_company(store)
        if company is None:
            return None
        override = _needs_override(store, company)
        if override is None:
            return None
        scope = company.id

    today = calendar_day(store.now())
    if any(
        log.company_id == scope and log.type is BackupType.AUTO and calendar_day(log.timestamp) == today
        for log in store.backup_history
    ):
        return None

    export = export_backup(store)
    if export is None:
        return None

    with store.mutation(BACKUP_HISTORY, USERS):
        if override:
            log_current_action(store, "Support Override", f"Automatic backup on the {ENTRY_PLAN_ID} plan")
        log = _record_backup(
            store, scope, BackupType.AUTO, export,
            keep=int(store.config["AUTO_BACKUP_RETENTION"]),
        )

    logger.info("Automatic backup taken for scope %s", scope)
    return log


# =============================================================================
# RESTORE
# =============================================================================

def _parse_records(key: str, rows: Any) -> list:
    if not isinstance(rows, list):
        raise BackupImportError(f"{key} must be a list")
    record_cls = COLLECTIONS[key]
    try:
        return [record_cls.from_dict(row) for row in rows]
    except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
        raise BackupImportError(f"Invalid record in {key}: {e}")


def _check_unique_emails(users: list) -> None:
    seen = set()
    for user in users:
        email = user.email.lower()
        if email in seen:
            raise BackupImportError(f"Duplicate email in backup: {email}")
        seen.add(email)


def _check_open_sessions(sessions: list) -> None:
    """At most one open register per company."""
    open_by_company: dict[str, int] = {}
    for session in sessions:
        if session.status is SessionStatus.OPEN:
            open_by_company[session.company_id] = open_by_company.get(session.company_id, 0) + 1
    crowded = sorted(company_id for company_id, count in open_by_company.items() if count > 1)
    if crowded:
        raise BackupImportError(f"More than one open cash session for: {', '.join(crowded)}")


def _check_restored_users(store: ScrapyardStore, actor, users: list) -> None:
    """
    Tenant snapshots cannot carry platform operators, and a tenant actor
    cannot use a restore to grant support capabilities a user does not
    already hold.
    """
    for user in users:
        if user.role is Role.SUPER_ADMIN:
            raise BackupImportError(f"Backup contains a platform operator: {user.email}")
        try:
            overrides = clean_overrides(user.permissions)
        except ValueError as e:
            raise BackupImportError(f"Invalid permissions for {user.email}: {e}")
        if actor.is_platform_operator:
            continue

        live = store.find(USERS, user.id)
        held = live.permissions if live is not None and live.company_id == user.company_id else {}
        granted = sorted(
            code for code in OVERRIDE_ONLY_CAPABILITIES
            if overrides.get(code) and not held.get(code)
        )
        if granted:
            raise BackupImportError(
                f"Backup grants {', '.join(granted)} to {user.email}; only platform operators can grant it"
            )


def _parse_global(payload: dict) -> dict[str, list]:
    parsed = {}
    for section, key in GLOBAL_SECTIONS.items():
        if section in payload and payload[section] is not None:
            parsed[key] = _parse_records(key, payload[section])
    if USERS in parsed:
        _check_unique_emails(parsed[USERS])
    if CASH_SESSIONS in parsed:
        _check_open_sessions(parsed[CASH_SESSIONS])
    return parsed


def _parse_tenant(store: ScrapyardStore, actor, payload: dict) -> tuple[Company, dict[str, list]]:
    company_data = payload.get("company")
    if not isinstance(company_data, dict) or not company_data.get("id"):
        raise BackupImportError("Backup has no company")
    if not isinstance(payload.get("products"), list):
        raise BackupImportError("Backup has no products list")

    try:
        company = Company.from_dict(company_data)
    except (KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise BackupImportError(f"Invalid company: {e}")

    parsed = {}
    for section, key in TENANT_SECTIONS.items():
        if section in payload and payload[section] is not None:
            records = _parse_records(key, payload[section])
            foreign = [r.id for r in records if r.company_id != company.id]
            if foreign:
                raise BackupImportError(f"{section} contains records of another company")
            parsed[key] = records

    if USERS in parsed:
        _check_unique_emails(parsed[USERS])
        others = {u.email.lower() for u in store.users if u.company_id != company.id}
        clashes = sorted(u.email for u in parsed[USERS] if u.email.lower() in others)
        if clashes:
            raise BackupImportError(f"Email already used outside this company: {', '.join(clashes)}")
        _check_restored_users(store, actor, parsed[USERS])

    if CASH_SESSIONS in parsed:
        _check_open_sessions(parsed[CASH_SESSIONS])

    return company, parsed


def _drop_missing_identity(store: ScrapyardStore) -> None:
    if store.current_user_id and store.current_user is None:
        store.set_current_user(None)


def import_backup(store: ScrapyardStore, payload: str | dict) -> bool:
    """
    Restore a snapshot. Returns False and changes nothing if the payload is
    malformed or not allowed for the caller.
    """
    user = store.current_user
    if user is None:
        return False

    try:
        data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
    except ValueError:
        logger.warning("Restore rejected: payload is not valid JSON")
        return False
    if not isinstance(data, dict):
        logger.warning("Restore rejected: payload is not an object")
        return False

    if data.get("type") == GLOBAL_TYPE:
        return _import_global(store, data)
    return _import_tenant(store, data)


def _import_global(store: ScrapyardStore, data: dict) -> bool:
    user = store.require_user()
    if user.role is not Role.SUPER_ADMIN:
        logger.warning("Restore rejected: global dump offered by non-operator %s", user.id)
        return False

    try:
        parsed = _parse_global(data)
    except BackupImportError as e:
        logger.warning("Restore rejected: %s", e)
        return False

    with store.mutation(*parsed.keys(), USERS, AUTH_USER):
        for key, records in parsed.items():
            store.replace_collection(key, records)
        _drop_missing_identity(store)
        log_current_action(store, "Global Restore", f"Restored system dump from {data.get('timestamp')}")

    logger.info("Global restore applied by %s (%d collections)", user.id, len(parsed))
    return True


def _import_tenant(store: ScrapyardStore, data: dict) -> bool:
    user = store.require_user()
    is_operator = user.role is Role.SUPER_ADMIN
    own_company = tenant_service.current_company(store)

    if not is_operator:
        if own_company is None:
            return False
        if is_on_trial(own_company, store.now()) and not has_support_override(store):
            logger.warning("Restore rejected: company %s is on trial", own_company.id)
            return False

    try:
        company, parsed = _parse_tenant(store, user, data)
    except BackupImportError as e:
        logger.warning("Restore rejected: %s", e)
        return False

    if not is_operator and company.id != own_company.id:
        logger.warning(
            "Restore rejected: %s tried to restore company %s", user.id, company.id
        )
        return False

    if not is_operator:
        # Billing state is not the tenant's to restore
        for field in BILLING_FIELDS:
            setattr(company, field, getattr(own_company, field))

    used_override = not is_operator and is_on_trial(own_company, store.now())

    with store.mutation(COMPANIES, USERS, AUTH_USER, *parsed.keys()):
        companies = [c for c in store.companies if c.id != company.id]
        store.replace_collection(COMPANIES, companies + [company])
        for key, records in parsed.items():
            others = [r for r in store.collection(key) if r.company_id != company.id]
            store.replace_collection(key, others + records)

        _drop_missing_identity(store)
        if used_override:
            log_current_action(store, "Support Override", "Restore during trial")
        log_current_action(store, "Restore", f"Restored backup of {company.name} from {data.get('timestamp')}")

    logger.info("Tenant restore applied for company %s by %s", company.id, user.id)
    return True
