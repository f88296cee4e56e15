from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .serialization import (
    datetime_in,
    datetime_out,
    decimal_in,
    decimal_out,
    enum_in,
    enum_out,
)


class PaymentMethod(str, Enum):
    # Declaration order is the order closing details are reported in
    MONEY = "money"
    PIX = "pix"
    DEBIT = "debit"
    CREDIT = "credit"
    TICKET = "ticket"
    TRANSFER = "transfer"


class TransactionType(str, Enum):
    IN = "in"
    OUT = "out"


class TransactionCategory(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    EXPENSE = "expense"
    OPENING = "opening"
    CLOSING = "closing"
    MANUAL_ENTRY = "manual_entry"
    BLEED = "bleed"
    PAYMENT_OUT = "payment_out"


# Categories a caller may pick for a manual cash withdrawal
MANUAL_OUT_CATEGORIES = frozenset({
    TransactionCategory.EXPENSE,
    TransactionCategory.BLEED,
    TransactionCategory.PAYMENT_OUT,
})


class SessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Transaction:
    """
    Ledger entry. Immutable once created; always tied to the cash session
    that was open when it was recorded.
    """
    id: str
    company_id: str
    session_id: str
    description: str
    amount: Decimal
    type: TransactionType
    category: TransactionCategory
    payment_method: PaymentMethod
    created_at: datetime
    user: str
    order_id: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type is TransactionType.IN else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "session_id": self.session_id,
            "order_id": self.order_id,
            "description": self.description,
            "amount": decimal_out(self.amount),
            "type": enum_out(self.type),
            "category": enum_out(self.category),
            "payment_method": enum_out(self.payment_method),
            "created_at": datetime_out(self.created_at),
            "user": self.user,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            session_id=data.get("session_id") or "",
            order_id=data.get("order_id"),
            description=data.get("description", ""),
            amount=decimal_in(data.get("amount"), Decimal("0")),
            type=enum_in(TransactionType, data.get("type")),
            category=enum_in(TransactionCategory, data.get("category"), TransactionCategory.MANUAL_ENTRY),
            # Entries recorded without a method were cash
            payment_method=enum_in(PaymentMethod, data.get("payment_method"), PaymentMethod.MONEY),
            created_at=datetime_in(data.get("created_at")),
            user=data.get("user", ""),
        )


@dataclass(frozen=True)
class CashClosingDetail:
    method: PaymentMethod
    expected_amount: Decimal
    counted_amount: Decimal
    difference: Decimal

    def to_dict(self) -> dict:
        return {
            "method": enum_out(self.method),
            "expected_amount": decimal_out(self.expected_amount),
            "counted_amount": decimal_out(self.counted_amount),
            "difference": decimal_out(self.difference),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CashClosingDetail":
        return cls(
            method=PaymentMethod(data["method"]),
            expected_amount=decimal_in(data.get("expected_amount"), Decimal("0")),
            counted_amount=decimal_in(data.get("counted_amount"), Decimal("0")),
            difference=decimal_in(data.get("difference"), Decimal("0")),
        )


@dataclass
class CashSession:
    """
    Cash register session.

    LIFECYCLE:
    - OPEN: transactions can be recorded against it
    - CLOSED: counted vs expected totals frozen; never reopened
    """
    id: str
    company_id: str
    user_id: str
    user_name: str
    opened_at: datetime
    initial_amount: Decimal
    status: SessionStatus = SessionStatus.OPEN
    closed_at: Optional[datetime] = None
    final_amount: Optional[Decimal] = None
    calculated_amount: Optional[Decimal] = None
    closing_details: list[CashClosingDetail] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"<CashSession id={self.id} company_id={self.company_id} status={self.status.value}>"

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "opened_at": datetime_out(self.opened_at),
            "closed_at": datetime_out(self.closed_at),
            "initial_amount": decimal_out(self.initial_amount),
            "final_amount": decimal_out(self.final_amount),
            "calculated_amount": decimal_out(self.calculated_amount),
            "closing_details": [detail.to_dict() for detail in self.closing_details],
            "status": enum_out(self.status),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CashSession":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            user_id=data.get("user_id", ""),
            user_name=data.get("user_name", ""),
            opened_at=datetime_in(data.get("opened_at")),
            closed_at=datetime_in(data.get("closed_at")),
            initial_amount=decimal_in(data.get("initial_amount"), Decimal("0")),
            final_amount=decimal_in(data.get("final_amount")),
            calculated_amount=decimal_in(data.get("calculated_amount")),
            closing_details=[CashClosingDetail.from_dict(d) for d in data.get("closing_details") or []],
            status=enum_in(SessionStatus, data.get("status"), SessionStatus.OPEN),
        )
