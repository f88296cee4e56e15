"""
Order Processing Service

WHY: Buy and sell orders drive both the ledger and the stock. An order is
priced when it is created and only touches money and stock when paid.

LIFECYCLE:
    pending --(process_order_payment)--> paid       ledger entry + stock movement
    pending --(cancel_order)-----------> cancelled  no side effects
    any     --(delete_order)-----------> (removed)  no reversal

DESIGN PRINCIPLES:
- Payment is one atomic unit: transaction, order status and every stock
  change are applied together or not at all
- Buy payments are cash out (purchase) and add stock; sell payments are
  cash in (sale) and remove stock
- Whether a sale may drive stock negative is a configuration choice
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from ..domain import (
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentMethod,
    TransactionCategory,
    TransactionType,
)
from ..store import ORDERS, PARTNERS, PRODUCTS, TRANSACTIONS, ScrapyardStore
from ..validation import ValidationError, parse_money, parse_quantity
from . import tenant_service
from .audit_service import log_user_action
from .register_service import record_transaction
from .results import OperationResult

logger = logging.getLogger(__name__)


NEGATIVE_STOCK_ALLOW = "allow"
NEGATIVE_STOCK_REJECT = "reject"


def _parse_items(store: ScrapyardStore, items: Iterable[Mapping[str, Any]]) -> list[OrderItem]:
    parsed = []
    for index, item in enumerate(items or []):
        product_id = item.get("product_id")
        if tenant_service.find_tenant_record(store, PRODUCTS, product_id) is None:
            raise ValidationError(f"items[{index}]: product not found")
        quantity = parse_quantity(item.get("quantity"), f"items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be positive")
        price = parse_money(item.get("price_at_moment"), f"items[{index}].price_at_moment")
        parsed.append(OrderItem(product_id=product_id, quantity=quantity, price_at_moment=price))
    if not parsed:
        raise ValidationError("An order needs at least one item")
    return parsed


def _require_partner(store: ScrapyardStore, partner_id: str) -> None:
    if tenant_service.find_tenant_record(store, PARTNERS, partner_id) is None:
        raise ValidationError("partner not found")


def items_total(items: Iterable[OrderItem]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0")).quantize(Decimal("0.01"))


def create_order(
    store: ScrapyardStore,
    order_type: str | OrderType,
    partner_id: str,
    items: Iterable[Mapping[str, Any]],
    total_value: Any = None,
) -> Optional[Order]:
    """
    Register a pending order for the acting tenant.

    total_value defaults to the sum of quantity x price_at_moment. Returns
    None if the caller has no company.
    """
    user = store.current_user
    if user is None or not user.company_id:
        return None

    try:
        parsed_type = OrderType(order_type)
    except ValueError:
        raise ValidationError("type must be 'buy' or 'sell'")
    _require_partner(store, partner_id)
    parsed_items = _parse_items(store, items)
    total = items_total(parsed_items) if total_value is None else parse_money(total_value, "total_value")

    order = Order(
        id=str(uuid.uuid4()),
        company_id=user.company_id,
        type=parsed_type,
        partner_id=partner_id,
        items=parsed_items,
        total_value=total,
        status=OrderStatus.PENDING,
        created_at=store.now(),
    )

    with store.mutation(ORDERS):
        store.orders.insert(0, order)
        log_user_action(
            store, user.id, "Orders",
            f"Created {order.type.value} order #{order.short_id} worth {order.total_value:.2f}",
        )
    return order


def update_order(store: ScrapyardStore, order_id: str, updates: Mapping[str, Any]) -> OperationResult:
    """Edit partner, items or total of a pending order."""
    user = store.require_user()
    order = tenant_service.find_tenant_record(store, ORDERS, order_id)
    if order is None:
        return OperationResult.fail("Order not found.", "not_found")
    if order.status is not OrderStatus.PENDING:
        return OperationResult.fail("Only pending orders can be edited.", "not_pending")

    changes: dict[str, Any] = {}
    if "partner_id" in updates:
        _require_partner(store, updates["partner_id"])
        changes["partner_id"] = updates["partner_id"]
    if "items" in updates:
        changes["items"] = _parse_items(store, updates["items"])
        changes["total_value"] = items_total(changes["items"])
    if updates.get("total_value") is not None:
        changes["total_value"] = parse_money(updates["total_value"], "total_value")

    with store.mutation(ORDERS):
        for field, value in changes.items():
            setattr(order, field, value)
        log_user_action(store, user.id, "Orders", f"Updated order #{order.short_id}")

    return OperationResult.ok("Order updated.", data=order)


def _stock_deltas(store: ScrapyardStore, order: Order) -> list[tuple[Any, Decimal]]:
    """Net stock change per product; repeated lines of one product are summed."""
    sign = Decimal("1") if order.type is OrderType.BUY else Decimal("-1")
    deltas: dict[str, tuple[Any, Decimal]] = {}
    for item in order.items:
        product = tenant_service.find_tenant_record(store, PRODUCTS, item.product_id)
        # Products deleted after the order was taken no longer carry stock
        if product is None:
            continue
        _, total = deltas.get(product.id, (product, Decimal("0")))
        deltas[product.id] = (product, total + sign * item.quantity)
    return list(deltas.values())


def process_order_payment(store: ScrapyardStore, order_id: str, method: str | PaymentMethod) -> OperationResult:
    """
    Settle a pending order through the open register.

    Posts one transaction for the order total, marks the order paid and
    moves stock, all in one mutation.
    """
    user = store.current_user
    if user is None or not user.company_id:
        return OperationResult.fail("No company in session.", "no_company")

    session = tenant_service.current_session(store)
    if session is None:
        return OperationResult.fail("Open the register first.", "no_open_session")

    order = tenant_service.find_tenant_record(store, ORDERS, order_id)
    if order is None:
        return OperationResult.fail("Order not found.", "not_found")
    if order.status is not OrderStatus.PENDING:
        return OperationResult.fail("Only pending orders can be paid.", "not_pending")

    try:
        payment_method = PaymentMethod(method)
    except ValueError:
        raise ValidationError(
            f"payment method must be one of: {', '.join(m.value for m in PaymentMethod)}"
        )

    deltas = _stock_deltas(store, order)
    if store.config.get("NEGATIVE_STOCK_POLICY") == NEGATIVE_STOCK_REJECT:
        short = [product.name for product, delta in deltas if product.stock + delta < 0]
        if short:
            return OperationResult.fail(
                f"Not enough stock for: {', '.join(short)}", "insufficient_stock"
            )

    is_buy = order.type is OrderType.BUY
    with store.mutation(TRANSACTIONS, ORDERS, PRODUCTS):
        transaction = record_transaction(
            store,
            session,
            description=f"{'Purchase payment' if is_buy else 'Sale receipt'} #{order.id[:4]}",
            amount=order.total_value,
            tx_type=TransactionType.OUT if is_buy else TransactionType.IN,
            category=TransactionCategory.PURCHASE if is_buy else TransactionCategory.SALE,
            payment_method=payment_method,
            order_id=order.id,
        )
        order.status = OrderStatus.PAID
        order.paid_at = store.now()
        for product, delta in deltas:
            product.stock += delta
        log_user_action(
            store, user.id, "Cash",
            f"Processed {'payment' if is_buy else 'receipt'} of order #{order.short_id}. "
            f"Amount: {order.total_value:.2f}",
        )

    logger.info("Order %s paid via %s", order.id, payment_method.value)
    return OperationResult.ok("Order paid.", data={"order": order, "transaction": transaction})


def cancel_order(store: ScrapyardStore, order_id: str) -> bool:
    """pending -> cancelled. Paid and cancelled orders are left unchanged."""
    user = store.current_user
    order = tenant_service.find_tenant_record(store, ORDERS, order_id)
    if user is None or order is None or order.status is not OrderStatus.PENDING:
        return False

    with store.mutation(ORDERS):
        order.status = OrderStatus.CANCELLED
        log_user_action(store, user.id, "Orders", f"Cancelled order #{order.short_id}")
    return True


def delete_order(store: ScrapyardStore, order_id: str) -> bool:
    """Remove an order of any status. Stock and ledger are not reversed."""
    user = store.current_user
    order = tenant_service.find_tenant_record(store, ORDERS, order_id)
    if user is None or order is None:
        return False

    with store.mutation(ORDERS):
        store.orders.remove(order)
        log_user_action(store, user.id, "Orders", f"Deleted order #{order.short_id}")
    return True
