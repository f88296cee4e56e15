"""
Inventory, plan catalogue and report tests.

Verifies:
- Product and partner validation and stock corrections
- Plan administration is operator-only and refuses plans still in use
- Report figures for orders, inventory value and cash flow
"""

from decimal import Decimal

import pytest

from scrapyard.domain import PartnerType
from scrapyard.services import (
    inventory_service,
    order_service,
    plan_service,
    register_service,
    reporting_service,
)
from scrapyard.services.reporting_service import ReportError
from scrapyard.validation import ValidationError


class TestProducts:

    def test_add_requires_prices(self, store, stocked_a):
        with pytest.raises(ValidationError):
            inventory_service.add_product(store, {"name": "Lead", "buy_price": "1"})

    def test_negative_price_rejected(self, store, stocked_a):
        with pytest.raises(ValidationError):
            inventory_service.add_product(store, {"name": "Lead", "buy_price": "-1", "sell_price": "2"})

    def test_unknown_unit_rejected(self, store, stocked_a):
        with pytest.raises(ValidationError):
            inventory_service.update_product(store, stocked_a["product"].id, {"unit": "ton"})

    def test_adjust_stock_logs_reason(self, store, stocked_a):
        product = inventory_service.adjust_stock(store, stocked_a["product"].id, "42.5", "Monthly count")
        assert product.stock == Decimal("42.5")
        assert "Reason: Monthly count" in stocked_a["owner"].logs[0].details

    def test_batch_adjust(self, store, stocked_a):
        brass = inventory_service.add_product(store, {"name": "Brass", "buy_price": "1", "sell_price": "2"})
        changed = inventory_service.batch_adjust_stock(store, [
            {"id": stocked_a["product"].id, "new_quantity": "5"},
            {"id": brass.id, "new_quantity": "7"},
            {"id": "missing", "new_quantity": "1"},
        ])
        assert changed == 2
        assert brass.stock == Decimal("7")

    def test_low_stock(self, store, stocked_a):
        inventory_service.update_product(store, stocked_a["product"].id, {"min_stock": "10", "stock": "3"})
        assert [p.id for p in inventory_service.low_stock_products(store)] == [stocked_a["product"].id]

    def test_operator_cannot_add(self, store, login_operator):
        login_operator()
        assert inventory_service.add_product(store, {"name": "X", "buy_price": "1", "sell_price": "1"}) is None


class TestPartners:

    def test_legacy_client_type(self, store, stocked_a):
        partner = inventory_service.add_partner(store, {"name": "Old", "type": "client"})
        assert partner.type is PartnerType.CUSTOMER

    def test_type_required(self, store, stocked_a):
        with pytest.raises(ValidationError):
            inventory_service.add_partner(store, {"name": "No type"})

    def test_update_and_delete(self, store, stocked_a):
        supplier = stocked_a["supplier"]
        inventory_service.update_partner(store, supplier.id, {"phone": "555-0100"})
        assert supplier.phone == "555-0100"
        assert inventory_service.delete_partner(store, supplier.id)


class TestPlans:

    def test_anyone_can_list(self, store):
        assert [p.id for p in plan_service.list_plans(store)] == ["essential", "professional", "premium"]

    def test_operator_adds_plan(self, store, login_operator):
        login_operator()
        result = plan_service.add_plan(store, {
            "id": "enterprise", "name": "Enterprise",
            "price_monthly": "499", "price_annual": "4999", "max_users": 50,
        })
        assert result.success
        assert result.data.price_monthly == Decimal("499.00")

    def test_duplicate_id(self, store, login_operator):
        login_operator()
        result = plan_service.add_plan(store, {
            "id": "premium", "name": "Again",
            "price_monthly": "1", "price_annual": "1", "max_users": 1,
        })
        assert result.reason == "plan_exists"

    def test_tenant_refused(self, store, company_a, login):
        login("alice@yard-a.test")
        assert plan_service.update_plan(store, "premium", {"name": "Cheap"}).reason == "permission_denied"

    def test_in_use_plan_not_deleted(self, store, company_a, login_operator):
        login_operator()
        assert plan_service.delete_plan(store, "professional").reason == "plan_in_use"
        assert plan_service.delete_plan(store, "premium").success

    def test_invalid_max_users(self, store, login_operator):
        login_operator()
        assert plan_service.update_plan(store, "premium", {"max_users": 0}).reason == "validation_error"


class TestReports:

    @pytest.fixture
    def trading_day(self, store, stocked_a):
        register_service.open_register(store, "100")
        product = stocked_a["product"]
        buy = order_service.create_order(
            store, "buy", stocked_a["supplier"].id,
            [{"product_id": product.id, "quantity": "10", "price_at_moment": "5"}],
        )
        sell = order_service.create_order(
            store, "sell", stocked_a["customer"].id,
            [{"product_id": product.id, "quantity": "4", "price_at_moment": "7"}],
        )
        order_service.create_order(
            store, "sell", stocked_a["customer"].id,
            [{"product_id": product.id, "quantity": "1", "price_at_moment": "7"}],
        )
        order_service.process_order_payment(store, buy.id, "money")
        order_service.process_order_payment(store, sell.id, "pix")
        return stocked_a

    def test_order_totals(self, store, trading_day):
        report = reporting_service.order_totals(store)
        assert report["counts"] == {"pending": 1, "paid": 2, "cancelled": 0}
        assert report["paid_buy_total"] == "50.00"
        assert report["paid_sell_total"] == "28.00"
        assert report["gross_margin"] == "-22.00"

    def test_inventory_valuation(self, store, trading_day):
        report = reporting_service.inventory_valuation(store)
        assert report["cost_value"] == "30.00"
        assert report["potential_revenue"] == "42.00"

    def test_cash_flow(self, store, trading_day):
        report = reporting_service.cash_flow(store)
        assert report["by_method"]["money"]["out"] == "50.00"
        assert report["by_method"]["pix"]["in"] == "28.00"
        assert report["net"] == "-22.00"

    def test_bad_range(self, store, trading_day):
        with pytest.raises(ReportError):
            reporting_service.cash_flow(store, start="2026-03-05T00:00:00Z", end="2026-03-01T00:00:00Z")

    def test_dashboard(self, store, trading_day):
        board = reporting_service.dashboard(store)
        assert board["register_open"] is True
        assert board["cash_balance"] == "50.00"
        assert board["pending_orders"] == 1
