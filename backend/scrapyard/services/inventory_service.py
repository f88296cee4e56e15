# Overview: Service-layer operations for products, stock and partners of a company.

"""
Inventory and Partner Service

WHY: Products and partners are the master data orders refer to. All of
them belong to exactly one company.

DESIGN:
- New records always take the acting tenant's company_id; callers cannot
  choose it
- Updates and deletes resolve ids through the tenant scope; a foreign id
  is treated as not found
- Manual stock corrections set the absolute quantity and record the
  reason in the audit log
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from ..domain import Partner, PartnerType, Product, Unit
from ..store import PARTNERS, PRODUCTS, ScrapyardStore
from ..validation import ValidationError, parse_money, parse_quantity, require_fields
from . import tenant_service
from .audit_service import log_user_action


PRODUCT_FIELDS = ("name", "buy_price", "sell_price", "unit", "stock", "min_stock", "max_stock")
PARTNER_FIELDS = ("name", "type", "document", "phone", "address")


def _tenant_actor(store: ScrapyardStore):
    user = store.current_user
    if user is None or not user.company_id:
        return None
    return user


def _product_values(data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if "name" in data:
        if not str(data["name"] or "").strip():
            raise ValidationError("name is required")
        values["name"] = str(data["name"]).strip()
    for field in ("buy_price", "sell_price"):
        if field in data:
            values[field] = parse_money(data[field], field)
    if "unit" in data:
        try:
            values["unit"] = Unit(data["unit"])
        except ValueError:
            raise ValidationError("unit must be 'kg' or 'un'")
    if "stock" in data:
        values["stock"] = parse_quantity(data["stock"], "stock", allow_negative=True)
    for field in ("min_stock", "max_stock"):
        if field in data:
            values[field] = parse_quantity(data[field], field)
    return values


def _partner_values(data: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if "name" in data:
        if not str(data["name"] or "").strip():
            raise ValidationError("name is required")
        values["name"] = str(data["name"]).strip()
    if "type" in data:
        try:
            values["type"] = PartnerType(data["type"])
        except ValueError:
            raise ValidationError("type must be 'supplier' or 'customer'")
    if "document" in data:
        values["document"] = str(data["document"] or "")
    for field in ("phone", "address"):
        if field in data:
            values[field] = data[field] or None
    return values


# =============================================================================
# PRODUCTS
# =============================================================================

def add_product(store: ScrapyardStore, data: Mapping[str, Any]) -> Optional[Product]:
    """Create a product in the acting tenant. Returns None without a tenant."""
    user = _tenant_actor(store)
    if user is None:
        return None

    require_fields(data, ["name", "buy_price", "sell_price"])
    values = _product_values(data)
    product = Product(id=str(uuid.uuid4()), company_id=user.company_id, **values)

    with store.mutation(PRODUCTS):
        store.products.append(product)
        log_user_action(store, user.id, "Inventory", f"Added product: {product.name}")
    return product


def update_product(store: ScrapyardStore, product_id: str, data: Mapping[str, Any]) -> Optional[Product]:
    user = _tenant_actor(store)
    if user is None:
        return None
    product = tenant_service.find_tenant_record(store, PRODUCTS, product_id)
    if product is None:
        return None

    values = _product_values({k: v for k, v in data.items() if k in PRODUCT_FIELDS})
    with store.mutation(PRODUCTS):
        for field, value in values.items():
            setattr(product, field, value)
        log_user_action(store, user.id, "Inventory", f"Updated product: {product.name}")
    return product


def delete_product(store: ScrapyardStore, product_id: str) -> bool:
    user = _tenant_actor(store)
    if user is None:
        return False
    product = tenant_service.find_tenant_record(store, PRODUCTS, product_id)
    if product is None:
        return False

    with store.mutation(PRODUCTS):
        store.products.remove(product)
        log_user_action(store, user.id, "Inventory", f"Deleted product: {product.name}")
    return True


def adjust_stock(store: ScrapyardStore, product_id: str, new_quantity: Any, reason: str) -> Optional[Product]:
    """Set a product's stock to a counted quantity."""
    user = _tenant_actor(store)
    if user is None:
        return None
    product = tenant_service.find_tenant_record(store, PRODUCTS, product_id)
    if product is None:
        return None

    quantity = parse_quantity(new_quantity, "new_quantity", allow_negative=True)
    previous = product.stock
    with store.mutation(PRODUCTS):
        product.stock = quantity
        log_user_action(
            store, user.id, "Inventory",
            f"Manual adjustment: {product.name} ({previous} -> {quantity}). Reason: {reason}",
        )
    return product


def batch_adjust_stock(store: ScrapyardStore, adjustments: Iterable[Mapping[str, Any]]) -> int:
    """
    Apply a stock count to several products at once.

    Each adjustment is {"id", "new_quantity", "reason"}. Ids outside the
    tenant are skipped. Returns how many products changed.
    """
    user = _tenant_actor(store)
    if user is None:
        return 0

    parsed: list[tuple[Product, Decimal]] = []
    for adjustment in adjustments:
        product = tenant_service.find_tenant_record(store, PRODUCTS, adjustment.get("id"))
        if product is None:
            continue
        parsed.append(
            (product, parse_quantity(adjustment.get("new_quantity"), "new_quantity", allow_negative=True))
        )

    if not parsed:
        return 0

    with store.mutation(PRODUCTS):
        for product, quantity in parsed:
            product.stock = quantity
        log_user_action(store, user.id, "Inventory", f"Batch count: {len(parsed)} products adjusted.")
    return len(parsed)


def low_stock_products(store: ScrapyardStore) -> list[Product]:
    return [p for p in tenant_service.visible_products(store) if p.stock <= p.min_stock]


# =============================================================================
# PARTNERS
# =============================================================================

def add_partner(store: ScrapyardStore, data: Mapping[str, Any]) -> Optional[Partner]:
    user = _tenant_actor(store)
    if user is None:
        return None

    require_fields(data, ["name", "type"])
    values = _partner_values(data)
    partner = Partner(id=str(uuid.uuid4()), company_id=user.company_id, **values)

    with store.mutation(PARTNERS):
        store.partners.append(partner)
        log_user_action(store, user.id, "Partners", f"Added {partner.type.value}: {partner.name}")
    return partner


def update_partner(store: ScrapyardStore, partner_id: str, data: Mapping[str, Any]) -> Optional[Partner]:
    user = _tenant_actor(store)
    if user is None:
        return None
    partner = tenant_service.find_tenant_record(store, PARTNERS, partner_id)
    if partner is None:
        return None

    values = _partner_values({k: v for k, v in data.items() if k in PARTNER_FIELDS})
    with store.mutation(PARTNERS):
        for field, value in values.items():
            setattr(partner, field, value)
        log_user_action(store, user.id, "Partners", f"Updated {partner.type.value}: {partner.name}")
    return partner


def delete_partner(store: ScrapyardStore, partner_id: str) -> bool:
    user = _tenant_actor(store)
    if user is None:
        return False
    partner = tenant_service.find_tenant_record(store, PARTNERS, partner_id)
    if partner is None:
        return False

    with store.mutation(PARTNERS):
        store.partners.remove(partner)
        log_user_action(store, user.id, "Partners", f"Deleted {partner.type.value}: {partner.name}")
    return True
