# Overview: Service-layer read models for dashboards and reports of the acting tenant.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..domain import OrderStatus, OrderType, PaymentMethod, TransactionType
from ..time_utils import parse_iso_datetime, to_utc_z
from . import inventory_service, tenant_service
from ..store import ScrapyardStore


ZERO = Decimal("0")


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must be before end")
    return start_dt, end_dt


def _in_range(moment: datetime | None, start_dt: datetime | None, end_dt: datetime | None) -> bool:
    if moment is None:
        return False
    if start_dt is not None and moment < start_dt:
        return False
    if end_dt is not None and moment > end_dt:
        return False
    return True


def order_totals(store: ScrapyardStore, start: str | None = None, end: str | None = None) -> dict:
    """Paid buy/sell sums and counts by status, by creation time."""
    start_dt, end_dt = _parse_range(start, end)
    orders = [o for o in tenant_service.visible_orders(store) if _in_range(o.created_at, start_dt, end_dt)]

    paid_buy = [o for o in orders if o.status is OrderStatus.PAID and o.type is OrderType.BUY]
    paid_sell = [o for o in orders if o.status is OrderStatus.PAID and o.type is OrderType.SELL]
    bought = sum((o.total_value for o in paid_buy), ZERO)
    sold = sum((o.total_value for o in paid_sell), ZERO)

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "counts": {status.value: sum(1 for o in orders if o.status is status) for status in OrderStatus},
        "paid_buy_count": len(paid_buy),
        "paid_sell_count": len(paid_sell),
        "paid_buy_total": str(bought),
        "paid_sell_total": str(sold),
        "gross_margin": str(sold - bought),
    }


def inventory_valuation(store: ScrapyardStore) -> dict:
    """Stock at cost and at sell price; products at or below min_stock."""
    products = tenant_service.visible_products(store)
    cost = sum((p.stock * p.buy_price for p in products), ZERO).quantize(Decimal("0.01"))
    revenue = sum((p.stock * p.sell_price for p in products), ZERO).quantize(Decimal("0.01"))
    low = inventory_service.low_stock_products(store)

    return {
        "product_count": len(products),
        "cost_value": str(cost),
        "potential_revenue": str(revenue),
        "low_stock_count": len(low),
        "low_stock": [{"id": p.id, "name": p.name, "stock": str(p.stock), "min_stock": str(p.min_stock)} for p in low],
    }


def cash_flow(
    store: ScrapyardStore,
    start: str | None = None,
    end: str | None = None,
    session_id: str | None = None,
) -> dict:
    """In/out totals per payment method for a period or a single session."""
    start_dt, end_dt = _parse_range(start, end)
    transactions = tenant_service.visible_transactions(store)
    if session_id:
        transactions = [t for t in transactions if t.session_id == session_id]
    transactions = [t for t in transactions if _in_range(t.created_at, start_dt, end_dt)]

    by_method = {}
    total_in = total_out = ZERO
    for method in PaymentMethod:
        ins = sum((t.amount for t in transactions if t.payment_method is method and t.type is TransactionType.IN), ZERO)
        outs = sum((t.amount for t in transactions if t.payment_method is method and t.type is TransactionType.OUT), ZERO)
        by_method[method.value] = {"in": str(ins), "out": str(outs), "net": str(ins - outs)}
        total_in += ins
        total_out += outs

    by_category: dict[str, Decimal] = {}
    for t in transactions:
        by_category[t.category.value] = by_category.get(t.category.value, ZERO) + t.signed_amount

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "session_id": session_id,
        "transaction_count": len(transactions),
        "by_method": by_method,
        "by_category": {k: str(v) for k, v in sorted(by_category.items())},
        "total_in": str(total_in),
        "total_out": str(total_out),
        "net": str(total_in - total_out),
    }


def dashboard(store: ScrapyardStore) -> dict:
    """Headline figures for the tenant overview."""
    session = tenant_service.current_session(store)
    orders = tenant_service.visible_orders(store)
    return {
        "register_open": session is not None,
        "cash_balance": str(tenant_service.cash_balance(store)),
        "pending_orders": sum(1 for o in orders if o.status is OrderStatus.PENDING),
        "low_stock_count": inventory_valuation(store)["low_stock_count"],
    }
