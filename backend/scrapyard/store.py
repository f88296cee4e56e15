"""
Tenant-scoped state store

WHY: Every tenant's records live in a handful of in-memory collections that
are persisted as whole lists to a durable key-value table. The store is the
only mutator; services receive it explicitly and never reach for a global.

INVARIANTS:
- One durable record per collection, keyed by the namespace keys below
- A mutation either applies every effect (records, audit entry, durable
  write) or none: on failure the in-memory collections are restored and
  the database transaction is rolled back
- Writes are compared against the version read at load time; a stale
  version means another writer got there first (ConcurrencyConflictError)
"""

from __future__ import annotations

import copy
import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

from sqlalchemy import update

from .config import Config
from .domain import (
    BackupLog,
    CashSession,
    Company,
    Order,
    Partner,
    Plan,
    Product,
    Transaction,
    User,
)
from .extensions import db
from .models import StoreRecord
from .time_utils import utcnow

logger = logging.getLogger(__name__)


COMPANIES = "scrapyard.companies"
USERS = "scrapyard.users"
PRODUCTS = "scrapyard.products"
PARTNERS = "scrapyard.partners"
ORDERS = "scrapyard.orders"
TRANSACTIONS = "scrapyard.transactions"
CASH_SESSIONS = "scrapyard.cash_sessions"
PLANS = "scrapyard.plans"
BACKUP_HISTORY = "scrapyard.backup_history"

# Single value: id of the authenticated identity, for session resumption
AUTH_USER = "scrapyard.auth_user_id"

# Collection key -> record class, in persistence order
COLLECTIONS: dict[str, type] = {
    COMPANIES: Company,
    USERS: User,
    PRODUCTS: Product,
    PARTNERS: Partner,
    ORDERS: Order,
    TRANSACTIONS: Transaction,
    CASH_SESSIONS: CashSession,
    PLANS: Plan,
    BACKUP_HISTORY: BackupLog,
}

# Collections whose records carry company_id
TENANT_COLLECTIONS = (USERS, PRODUCTS, PARTNERS, ORDERS, TRANSACTIONS, CASH_SESSIONS, BACKUP_HISTORY)


class AuthenticationRequired(RuntimeError):
    """Raised when an operation that needs an acting identity is called without one."""
    pass


class ConcurrencyConflictError(RuntimeError):
    """Raised when a collection changed in durable storage since it was loaded."""
    pass


def _config_defaults() -> dict[str, Any]:
    return {key: getattr(Config, key) for key in dir(Config) if key.isupper()}


class ScrapyardStore:
    """
    In-memory collections plus write-through persistence.

    Usage:
        store = ScrapyardStore(app.config)
        store.load_or_seed()
        with store.mutation(ORDERS, USERS):
            ...  # change records; written and committed on exit
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None, clock: Optional[Callable] = None):
        self.config: dict[str, Any] = _config_defaults()
        if config:
            self.config.update({k: v for k, v in dict(config).items() if k.isupper()})
        self.clock = clock or utcnow

        self._collections: dict[str, list] = {key: [] for key in COLLECTIONS}
        self._versions: dict[str, Optional[int]] = {key: None for key in COLLECTIONS}
        self.current_user_id: Optional[str] = None
        self.loaded = False

        # Materialized capability set of the acting identity (see permission_service)
        self.permission_cache: Optional[tuple] = None

        self._in_mutation = False
        self._pending: list[str] = []
        self._snapshot: dict[str, list] = {}
        self._snapshot_versions: dict[str, Optional[int]] = {}
        self._snapshot_user: Optional[str] = None

    def __repr__(self) -> str:
        sizes = " ".join(f"{key.split('.')[-1]}={len(rows)}" for key, rows in self._collections.items())
        return f"<ScrapyardStore loaded={self.loaded} {sizes}>"

    def now(self):
        return self.clock()

    # =========================================================================
    # RAW COLLECTIONS (unscoped; use tenant_service for caller-visible views)
    # =========================================================================

    def collection(self, key: str) -> list:
        return self._collections[key]

    def replace_collection(self, key: str, records: list) -> None:
        self._collections[key] = list(records)

    @property
    def companies(self) -> list[Company]:
        return self._collections[COMPANIES]

    @property
    def users(self) -> list[User]:
        return self._collections[USERS]

    @property
    def products(self) -> list[Product]:
        return self._collections[PRODUCTS]

    @property
    def partners(self) -> list[Partner]:
        return self._collections[PARTNERS]

    @property
    def orders(self) -> list[Order]:
        return self._collections[ORDERS]

    @property
    def transactions(self) -> list[Transaction]:
        return self._collections[TRANSACTIONS]

    @property
    def cash_sessions(self) -> list[CashSession]:
        return self._collections[CASH_SESSIONS]

    @property
    def plans(self) -> list[Plan]:
        return self._collections[PLANS]

    @property
    def backup_history(self) -> list[BackupLog]:
        return self._collections[BACKUP_HISTORY]

    def find(self, key: str, record_id: str):
        for record in self._collections[key]:
            if record.id == record_id:
                return record
        return None

    def find_user_by_email(self, email: str) -> Optional[User]:
        email_lower = (email or "").strip().lower()
        for user in self.users:
            if user.email.lower() == email_lower:
                return user
        return None

    # =========================================================================
    # ACTING IDENTITY
    # =========================================================================

    @property
    def current_user(self) -> Optional[User]:
        if not self.current_user_id:
            return None
        return self.find(USERS, self.current_user_id)

    def require_user(self) -> User:
        user = self.current_user
        if user is None:
            raise AuthenticationRequired("No authenticated identity")
        return user

    def set_current_user(self, user: Optional[User]) -> None:
        """Switch the acting identity. Persisted with the next AUTH_USER write."""
        self.current_user_id = user.id if user else None
        self.permission_cache = None

    # =========================================================================
    # LOAD / FLUSH
    # =========================================================================

    def load_or_seed(self) -> "ScrapyardStore":
        """
        Read every collection from durable storage.

        Keys never written before are seeded (plans, the platform operator,
        optionally a demo tenant) and written immediately. The saved
        identity pointer is restored as-is; callers decide whether the
        session may resume (see bootstrap_service).
        """
        from .services import seed_service

        seeded = []
        for key, record_cls in COLLECTIONS.items():
            record = db.session.get(StoreRecord, key)
            if record is None:
                self._collections[key] = seed_service.seed_collection(self, key)
                self._versions[key] = None
                seeded.append(key)
                continue
            rows = json.loads(record.value)
            self._collections[key] = [record_cls.from_dict(row) for row in rows]
            self._versions[key] = record.version

        for key in seeded:
            self._write(key)

        auth_record = db.session.get(StoreRecord, AUTH_USER)
        self.current_user_id = json.loads(auth_record.value) if auth_record else None
        self.permission_cache = None

        db.session.commit()
        self.loaded = True

        if seeded:
            logger.info("Seeded empty collections: %s", ", ".join(seeded))
        logger.info("Store loaded: %r", self)
        return self

    def flush(self) -> None:
        """Write every collection and the identity pointer back to durable storage."""
        for key in COLLECTIONS:
            self._write(key)
        self._write_auth_pointer()
        db.session.commit()

    def reload(self) -> "ScrapyardStore":
        db.session.expire_all()
        return self.load_or_seed()

    def _write(self, key: str) -> None:
        if key == AUTH_USER:
            self._write_auth_pointer()
            return

        payload = json.dumps([record.to_dict() for record in self._collections[key]])
        expected = self._versions.get(key)

        if expected is None:
            if db.session.get(StoreRecord, key) is not None:
                raise ConcurrencyConflictError(f"{key} was created by another writer")
            db.session.add(StoreRecord(key=key, value=payload, version=1))
            db.session.flush()
            self._versions[key] = 1
            return

        result = db.session.execute(
            update(StoreRecord)
            .where(StoreRecord.key == key, StoreRecord.version == expected)
            .values(value=payload, version=expected + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Stale write rejected for %s (expected version %s)", key, expected)
            raise ConcurrencyConflictError(f"{key} changed since it was loaded")
        self._versions[key] = expected + 1

    def _write_auth_pointer(self) -> None:
        db.session.merge(StoreRecord(key=AUTH_USER, value=json.dumps(self.current_user_id)))
        db.session.flush()

    # =========================================================================
    # ATOMIC MUTATION
    # =========================================================================

    @contextmanager
    def mutation(self, *keys: str) -> Iterator["ScrapyardStore"]:
        """
        Apply changes to the named collections as one unit.

        Nested mutations join the outermost one; only the outermost writes
        and commits.
        """
        outermost = not self._in_mutation
        if outermost:
            self._pending = []
            self._snapshot = {}
            self._snapshot_versions = dict(self._versions)
            self._snapshot_user = self.current_user_id

        for key in keys:
            if key not in self._pending:
                self._pending.append(key)
            if key != AUTH_USER and key not in self._snapshot:
                self._snapshot[key] = copy.deepcopy(self._collections[key])

        if not outermost:
            yield self
            return

        self._in_mutation = True
        try:
            yield self
            for key in self._pending:
                self._write(key)
            db.session.commit()
        except Exception:
            db.session.rollback()
            self._collections.update(self._snapshot)
            self._versions = self._snapshot_versions
            if self.current_user_id != self._snapshot_user:
                self.current_user_id = self._snapshot_user
            self.permission_cache = None
            raise
        finally:
            self._in_mutation = False
            self._pending = []
            self._snapshot = {}
