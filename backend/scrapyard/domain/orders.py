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


class OrderType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderStatus(str, Enum):
    """
    PENDING -> PAID       (one-way, posts ledger entry and stock movement)
    PENDING -> CANCELLED  (one-way, no side effects)
    PAID and CANCELLED are terminal.
    """
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


@dataclass
class OrderItem:
    product_id: str
    quantity: Decimal
    price_at_moment: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.price_at_moment

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": decimal_out(self.quantity),
            "price_at_moment": decimal_out(self.price_at_moment),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrderItem":
        return cls(
            product_id=data["product_id"],
            quantity=decimal_in(data.get("quantity"), Decimal("0")),
            price_at_moment=decimal_in(data.get("price_at_moment"), Decimal("0")),
        )


@dataclass
class Order:
    id: str
    company_id: str
    type: OrderType
    partner_id: str
    total_value: Decimal
    created_at: datetime
    items: list[OrderItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    paid_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<Order id={self.id} type={self.type.value} status={self.status.value}>"

    @property
    def short_id(self) -> str:
        return self.id[:8]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "type": enum_out(self.type),
            "partner_id": self.partner_id,
            "items": [item.to_dict() for item in self.items],
            "total_value": decimal_out(self.total_value),
            "status": enum_out(self.status),
            "created_at": datetime_out(self.created_at),
            "paid_at": datetime_out(self.paid_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            type=enum_in(OrderType, data.get("type")),
            partner_id=data.get("partner_id", ""),
            items=[OrderItem.from_dict(item) for item in data.get("items") or []],
            total_value=decimal_in(data.get("total_value"), Decimal("0")),
            status=enum_in(OrderStatus, data.get("status"), OrderStatus.PENDING),
            created_at=datetime_in(data.get("created_at")),
            paid_at=datetime_in(data.get("paid_at")),
        )
