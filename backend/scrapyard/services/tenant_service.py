"""
Tenant Scoping: caller-visible views of the store collections

WHY: The store holds every company's records side by side. Nothing outside
this module should filter by company_id by hand; every read a caller sees
goes through here.

SECURITY INVARIANTS:
1. A tenant identity sees only records whose company_id equals its own
2. An identity without a company (platform operator) sees no tenant records
3. Platform operators see each other in the users view (peer step-up)
4. Record ids coming from callers are resolved through the scoped view, so
   a foreign id behaves exactly like an unknown one

USAGE:
    from scrapyard.services import tenant_service

    products = tenant_service.visible_products(store)
    order = tenant_service.find_tenant_record(store, ORDERS, order_id)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from ..domain import (
    CashSession,
    Company,
    Order,
    Partner,
    PaymentMethod,
    Product,
    Role,
    Transaction,
    User,
)
from ..store import (
    CASH_SESSIONS,
    COMPANIES,
    ORDERS,
    PARTNERS,
    PRODUCTS,
    TENANT_COLLECTIONS,
    TRANSACTIONS,
    USERS,
    ScrapyardStore,
)

logger = logging.getLogger(__name__)


class TenantAccessError(Exception):
    """Raised when a record outside the caller's tenant is addressed."""
    pass


def current_tenant_id(store: ScrapyardStore) -> Optional[str]:
    """company_id of the acting identity, or None for operators / anonymous."""
    user = store.current_user
    if user is None or not user.company_id:
        return None
    return user.company_id


def current_company(store: ScrapyardStore) -> Optional[Company]:
    company_id = current_tenant_id(store)
    if company_id is None:
        return None
    return store.find(COMPANIES, company_id)


def scoped(store: ScrapyardStore, key: str) -> list:
    """Records of a tenant collection that belong to the acting tenant."""
    if key == USERS:
        return visible_users(store)
    if key not in TENANT_COLLECTIONS:
        raise ValueError(f"{key} is not a tenant collection")

    company_id = current_tenant_id(store)
    if company_id is None:
        return []
    return [record for record in store.collection(key) if record.company_id == company_id]


def visible_products(store: ScrapyardStore) -> list[Product]:
    return scoped(store, PRODUCTS)


def visible_partners(store: ScrapyardStore) -> list[Partner]:
    return scoped(store, PARTNERS)


def visible_orders(store: ScrapyardStore) -> list[Order]:
    return scoped(store, ORDERS)


def visible_transactions(store: ScrapyardStore) -> list[Transaction]:
    return scoped(store, TRANSACTIONS)


def visible_cash_sessions(store: ScrapyardStore) -> list[CashSession]:
    return scoped(store, CASH_SESSIONS)


def visible_users(store: ScrapyardStore) -> list[User]:
    """
    Users view.

    Platform operators see every platform operator (including themselves)
    so that one can authorize another. Tenant users see their company.
    """
    actor = store.current_user
    if actor is None:
        return []
    if actor.role is Role.SUPER_ADMIN:
        return [user for user in store.users if user.role is Role.SUPER_ADMIN]
    if not actor.company_id:
        return []
    return [user for user in store.users if user.company_id == actor.company_id]


def can_see_user(store: ScrapyardStore, user: User) -> bool:
    return any(visible.id == user.id for visible in visible_users(store))


def find_tenant_record(store: ScrapyardStore, key: str, record_id: str):
    """Record by id within the caller's scope, or None (foreign ids included)."""
    for record in scoped(store, key):
        if record.id == record_id:
            return record
    return None


def require_tenant_record(store: ScrapyardStore, key: str, record_id: str):
    """
    Like find_tenant_record but raises.

    SECURITY: A record that exists under another tenant is logged; the
    caller still only learns that it is not accessible.
    """
    record = find_tenant_record(store, key, record_id)
    if record is not None:
        return record

    if store.find(key, record_id) is not None:
        logger.warning(
            "Cross-tenant access denied: %s %s requested by %s",
            key, record_id, store.current_user_id,
        )
    raise TenantAccessError(f"{key.split('.')[-1]} record not found")


# =============================================================================
# REGISTER VIEWS
# =============================================================================

def current_session(store: ScrapyardStore) -> Optional[CashSession]:
    """The open cash session of the acting tenant, if any."""
    for session in visible_cash_sessions(store):
        if session.is_open:
            return session
    return None


def session_transactions(store: ScrapyardStore, session_id: str) -> list[Transaction]:
    return [t for t in visible_transactions(store) if t.session_id == session_id]


def cash_balance(store: ScrapyardStore) -> Decimal:
    """Physical cash expected in the drawer: opening float plus net money movements."""
    session = current_session(store)
    if session is None:
        return Decimal("0")

    balance = session.initial_amount
    for transaction in session_transactions(store, session.id):
        if transaction.payment_method is PaymentMethod.MONEY:
            balance += transaction.signed_amount
    return balance
