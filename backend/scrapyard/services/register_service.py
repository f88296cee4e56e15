"""
Cash Register and Ledger Service

WHY: Track what physically goes in and out of the drawer and reconcile it
against what the cashier counts at closing.

DESIGN PRINCIPLES:
- At most one open session per company
- Every transaction belongs to the session open when it was recorded
- Transactions are immutable; corrections are new entries
- Sessions are immutable once closed
- Variance tracking per payment method (expected vs counted)
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..domain import (
    MANUAL_OUT_CATEGORIES,
    CashClosingDetail,
    CashSession,
    PaymentMethod,
    SessionStatus,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from ..store import CASH_SESSIONS, TRANSACTIONS, ScrapyardStore
from ..validation import ValidationError, parse_money
from . import tenant_service
from .audit_service import log_user_action

logger = logging.getLogger(__name__)


ZERO = Decimal("0")


def _parse_method(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError(
            f"payment method must be one of: {', '.join(m.value for m in PaymentMethod)}"
        )


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

def open_register(store: ScrapyardStore, initial_amount: Any) -> Optional[CashSession]:
    """
    Open the company's register with an opening float.

    Returns None (and changes nothing) if a session is already open or the
    caller has no company.
    """
    user = store.current_user
    if user is None or not user.company_id:
        return None
    if tenant_service.current_session(store) is not None:
        return None

    amount = parse_money(initial_amount, "initial_amount")

    session = CashSession(
        id=str(uuid.uuid4()),
        company_id=user.company_id,
        user_id=user.id,
        user_name=user.name,
        opened_at=store.now(),
        initial_amount=amount,
        status=SessionStatus.OPEN,
    )

    with store.mutation(CASH_SESSIONS):
        store.cash_sessions.insert(0, session)
        log_user_action(store, user.id, "Cash", f"Opened register with {amount:.2f}")

    logger.info("Register opened for company %s (session %s)", user.company_id, session.id)
    return session


def expected_by_method(store: ScrapyardStore, session: CashSession) -> dict[PaymentMethod, Decimal]:
    """
    What the system expects per method: ins minus outs, plus the opening
    float for money.
    """
    expected = {method: ZERO for method in PaymentMethod}
    expected[PaymentMethod.MONEY] += session.initial_amount
    for transaction in tenant_service.session_transactions(store, session.id):
        expected[transaction.payment_method] += transaction.signed_amount
    return expected


def close_register(store: ScrapyardStore, counted_amounts: Mapping[str, Any] | None) -> Optional[CashSession]:
    """
    Close the open session, reconciling counted against expected per method.

    difference = counted - expected. Methods the cashier did not count are
    taken as zero. Returns None if no session is open.
    """
    session = tenant_service.current_session(store)
    if session is None:
        return None
    user = store.require_user()

    counted = {method: ZERO for method in PaymentMethod}
    for key, value in (counted_amounts or {}).items():
        counted[_parse_method(key)] = parse_money(value, f"counted_amounts.{key}", allow_negative=True)

    expected = expected_by_method(store, session)
    details = [
        CashClosingDetail(
            method=method,
            expected_amount=expected[method],
            counted_amount=counted[method],
            difference=counted[method] - expected[method],
        )
        for method in PaymentMethod
    ]
    total_counted = sum((d.counted_amount for d in details), ZERO)
    total_expected = sum((d.expected_amount for d in details), ZERO)

    with store.mutation(CASH_SESSIONS):
        session.closed_at = store.now()
        session.status = SessionStatus.CLOSED
        session.final_amount = total_counted
        session.calculated_amount = total_expected
        session.closing_details = details
        log_user_action(store, user.id, "Cash", f"Closed register. Counted total: {total_counted:.2f}")

    logger.info(
        "Register closed for company %s (session %s, variance %s)",
        session.company_id, session.id, total_counted - total_expected,
    )
    return session


# =============================================================================
# LEDGER ENTRIES
# =============================================================================

def record_transaction(
    store: ScrapyardStore,
    session: CashSession,
    description: str,
    amount: Decimal,
    tx_type: TransactionType,
    category: TransactionCategory,
    payment_method: PaymentMethod,
    order_id: str | None = None,
) -> Transaction:
    """Append one ledger entry to the open session. Callers hold the mutation."""
    user = store.require_user()
    transaction = Transaction(
        id=str(uuid.uuid4()),
        company_id=session.company_id,
        session_id=session.id,
        order_id=order_id,
        description=description,
        amount=amount,
        type=tx_type,
        category=category,
        payment_method=payment_method,
        created_at=store.now(),
        user=user.name,
    )
    with store.mutation(TRANSACTIONS):
        store.transactions.insert(0, transaction)
    return transaction


def add_manual_transaction(
    store: ScrapyardStore,
    tx_type: str | TransactionType,
    amount: Any,
    description: str,
    category: str | TransactionCategory | None = None,
) -> Optional[Transaction]:
    """
    Record a cash entry or withdrawal not tied to an order.

    Always paid in money. Returns None if no session is open.
    """
    session = tenant_service.current_session(store)
    if session is None:
        return None
    user = store.require_user()

    try:
        parsed_type = TransactionType(tx_type)
    except ValueError:
        raise ValidationError("type must be 'in' or 'out'")

    value = parse_money(amount)
    if value <= ZERO:
        raise ValidationError("amount must be positive")

    if category is None:
        parsed_category = (
            TransactionCategory.MANUAL_ENTRY if parsed_type is TransactionType.IN
            else TransactionCategory.EXPENSE
        )
    else:
        try:
            parsed_category = TransactionCategory(category)
        except ValueError:
            raise ValidationError(f"Unknown category: {category}")
        allowed = (
            {TransactionCategory.MANUAL_ENTRY} if parsed_type is TransactionType.IN
            else MANUAL_OUT_CATEGORIES
        )
        if parsed_category not in allowed:
            raise ValidationError(
                f"category must be one of: {', '.join(sorted(c.value for c in allowed))}"
            )

    label = "Entry" if parsed_type is TransactionType.IN else "Withdrawal"
    with store.mutation(TRANSACTIONS):
        transaction = record_transaction(
            store,
            session,
            description=description or "",
            amount=value,
            tx_type=parsed_type,
            category=parsed_category,
            payment_method=PaymentMethod.MONEY,
        )
        log_user_action(store, user.id, "Cash", f"Manual {label.lower()}: {value:.2f} - {description}")

    return transaction


# =============================================================================
# SUMMARIES
# =============================================================================

def session_summary(store: ScrapyardStore, session_id: str) -> Optional[dict]:
    """
    Per-method totals of one session of the caller's company.

    For a closed session the frozen closing figures are included as well.
    """
    session = tenant_service.find_tenant_record(store, CASH_SESSIONS, session_id)
    if session is None:
        return None

    transactions = tenant_service.session_transactions(store, session.id)
    by_method = {}
    for method in PaymentMethod:
        ins = sum(
            (t.amount for t in transactions
             if t.payment_method is method and t.type is TransactionType.IN),
            ZERO,
        )
        outs = sum(
            (t.amount for t in transactions
             if t.payment_method is method and t.type is TransactionType.OUT),
            ZERO,
        )
        by_method[method.value] = {
            "in": str(ins),
            "out": str(outs),
            "net": str(ins - outs),
        }

    expected = expected_by_method(store, session)
    return {
        "session": session.to_dict(),
        "transaction_count": len(transactions),
        "by_method": by_method,
        "expected": {method.value: str(amount) for method, amount in expected.items()},
    }
