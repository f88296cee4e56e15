from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from .serialization import decimal_in, decimal_out, enum_in, enum_out


class Unit(str, Enum):
    KG = "kg"
    UNIT = "un"


class PartnerType(str, Enum):
    SUPPLIER = "supplier"
    CUSTOMER = "customer"

    @classmethod
    def _missing_(cls, value):
        # Older payloads call customers "client"
        if value == "client":
            return cls.CUSTOMER
        return None


@dataclass
class Product:
    id: str
    company_id: str
    name: str
    buy_price: Decimal
    sell_price: Decimal
    unit: Unit = Unit.KG
    stock: Decimal = Decimal("0")
    min_stock: Decimal = Decimal("0")
    max_stock: Decimal = Decimal("0")

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "buy_price": decimal_out(self.buy_price),
            "sell_price": decimal_out(self.sell_price),
            "unit": enum_out(self.unit),
            "stock": decimal_out(self.stock),
            "min_stock": decimal_out(self.min_stock),
            "max_stock": decimal_out(self.max_stock),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            name=data.get("name", ""),
            buy_price=decimal_in(data.get("buy_price"), Decimal("0")),
            sell_price=decimal_in(data.get("sell_price"), Decimal("0")),
            unit=enum_in(Unit, data.get("unit"), Unit.KG),
            stock=decimal_in(data.get("stock"), Decimal("0")),
            min_stock=decimal_in(data.get("min_stock"), Decimal("0")),
            max_stock=decimal_in(data.get("max_stock"), Decimal("0")),
        )


@dataclass
class Partner:
    """Supplier or customer of a company."""
    id: str
    company_id: str
    name: str
    type: PartnerType
    document: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "type": enum_out(self.type),
            "document": self.document,
            "phone": self.phone,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Partner":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            name=data.get("name", ""),
            type=enum_in(PartnerType, data.get("type"), PartnerType.SUPPLIER),
            document=data.get("document", ""),
            phone=data.get("phone"),
            address=data.get("address"),
        )
