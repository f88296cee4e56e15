"""
Store persistence tests.

Verifies:
- First load seeds plans and the platform operator
- Mutations write through to the store_records table
- A failed mutation restores memory and leaves durable state untouched
- Stale writers are rejected (ConcurrencyConflictError) and can retry
"""

from decimal import Decimal

import pytest

from scrapyard.domain import Product, Role
from scrapyard.services import auth_service, inventory_service
from scrapyard.services.audit_service import log_current_action
from scrapyard.services.bootstrap_service import run_with_retry, start_store
from scrapyard.store import (
    AUTH_USER,
    COLLECTIONS,
    PLANS,
    PRODUCTS,
    ConcurrencyConflictError,
    ScrapyardStore,
)
from scrapyard.extensions import db
from scrapyard.models import StoreRecord


def _fresh(app, clock):
    """A second store instance reading the same database."""
    return ScrapyardStore(app.config, clock=clock).load_or_seed()


class TestSeeding:
    """An empty database is seeded on first load."""

    def test_plans_seeded(self, store):
        assert {plan.id for plan in store.plans} == {"essential", "professional", "premium"}

    def test_platform_operator_seeded(self, store):
        operator = store.find_user_by_email(store.config["PLATFORM_ADMIN_EMAIL"])
        assert operator is not None
        assert operator.role is Role.SUPER_ADMIN
        assert operator.company_id == ""

    def test_no_tenants_by_default(self, store):
        assert store.companies == []

    def test_every_collection_has_a_record(self, store):
        for key in COLLECTIONS:
            assert db.session.get(StoreRecord, key) is not None

    def test_second_load_does_not_reseed(self, app, clock, store):
        operator_id = store.find_user_by_email(store.config["PLATFORM_ADMIN_EMAIL"]).id
        other = _fresh(app, clock)
        assert [u.id for u in other.users] == [operator_id]


class TestWriteThrough:
    """Committed mutations are visible to any later load."""

    def test_signup_visible_to_new_instance(self, app, clock, company_a):
        other = _fresh(app, clock)
        assert [c.id for c in other.companies] == [company_a["company"].id]
        assert other.find_user_by_email("alice@yard-a.test") is not None

    def test_login_persists_identity_pointer(self, app, clock, store, company_a, login):
        login("alice@yard-a.test")
        other = _fresh(app, clock)
        assert other.current_user_id == company_a["user"].id

    def test_flush_rewrites_everything(self, app, clock, store, company_a):
        store.flush()
        other = _fresh(app, clock)
        assert len(other.companies) == 1
        assert db.session.get(StoreRecord, AUTH_USER) is not None


class TestAtomicMutation:
    """A mutation applies all of its effects or none of them."""

    def test_failure_restores_memory(self, store, stocked_a):
        before = [p.id for p in store.products]

        with pytest.raises(RuntimeError):
            with store.mutation(PRODUCTS):
                store.products.append(Product(
                    id="ghost",
                    company_id=stocked_a["company"].id,
                    name="Ghost",
                    buy_price=Decimal("1"),
                    sell_price=Decimal("2"),
                ))
                raise RuntimeError("boom")

        assert [p.id for p in store.products] == before

    def test_failure_leaves_durable_state(self, app, clock, store, stocked_a):
        with pytest.raises(RuntimeError):
            with store.mutation(PRODUCTS):
                store.products.clear()
                raise RuntimeError("boom")

        other = _fresh(app, clock)
        assert len(other.products) == 1

    def test_failure_discards_audit_entry(self, store, stocked_a):
        count = len(store.current_user.logs)

        with pytest.raises(RuntimeError):
            with store.mutation(PRODUCTS):
                log_current_action(store, "Inventory", "Never happened")
                raise RuntimeError("boom")

        assert len(store.current_user.logs) == count
        assert all(log.details != "Never happened" for log in store.current_user.logs)

    def test_nested_mutation_joins_outer(self, store, stocked_a):
        with pytest.raises(RuntimeError):
            with store.mutation(PRODUCTS):
                with store.mutation(PLANS):
                    store.plans[0].name = "Renamed"
                raise RuntimeError("boom")

        assert store.find(PLANS, "essential").name == "Essential"


class TestConcurrency:
    """Version-checked writes between two store instances."""

    def test_stale_write_rejected(self, app, clock, store):
        stale = _fresh(app, clock)

        with store.mutation(PLANS):
            store.find(PLANS, "premium").name = "Premium Plus"

        with pytest.raises(ConcurrencyConflictError):
            with stale.mutation(PLANS):
                stale.find(PLANS, "premium").name = "Premium Max"

        # The loser's memory is rolled back and durable state keeps the winner
        assert stale.find(PLANS, "premium").name == "Premium"
        assert _fresh(app, clock).find(PLANS, "premium").name == "Premium Plus"

    def test_reload_picks_up_other_writer(self, app, clock, store):
        stale = _fresh(app, clock)
        with store.mutation(PLANS):
            store.find(PLANS, "premium").name = "Premium Plus"

        stale.reload()
        assert stale.find(PLANS, "premium").name == "Premium Plus"

        with stale.mutation(PLANS):
            stale.find(PLANS, "premium").name = "Premium Max"
        assert _fresh(app, clock).find(PLANS, "premium").name == "Premium Max"

    def test_retry_applies_on_top_of_winner(self, app, clock, store, stocked_a):
        stale = _fresh(app, clock)
        assert stale.current_user_id == stocked_a["owner"].id

        inventory_service.add_product(store, {"name": "Brass", "buy_price": "3", "sell_price": "4"})

        product = run_with_retry(
            stale,
            lambda: inventory_service.add_product(
                stale, {"name": "Aluminum", "buy_price": "1", "sell_price": "2"}
            ),
            backoff_base=0,
        )

        assert product.name == "Aluminum"
        names = {p.name for p in _fresh(app, clock).products}
        assert names == {"Copper wire", "Brass", "Aluminum"}

    def test_retry_gives_up(self, store):
        calls = []

        def always_conflicts():
            calls.append(1)
            raise ConcurrencyConflictError("busy")

        with pytest.raises(ConcurrencyConflictError):
            run_with_retry(store, always_conflicts, attempts=2, backoff_base=0)
        assert len(calls) == 2


class TestStartup:
    """start_store runs lifecycle checks and resumes the saved session."""

    def test_resumes_saved_identity(self, app, clock, company_a, login):
        login("alice@yard-a.test")
        restarted = start_store(app.config, clock=clock)
        assert restarted.current_user is not None
        assert restarted.current_user.id == company_a["user"].id

    def test_expired_tenant_not_resumed(self, app, clock, company_a, login):
        login("alice@yard-a.test")
        clock.advance(days=16)

        restarted = start_store(app.config, clock=clock)

        assert restarted.current_user is None
        assert restarted.companies[0].status.value == "blocked"
        assert _fresh(app, clock).current_user_id is None

    def test_logout_clears_pointer(self, app, clock, store, company_a, login):
        login("alice@yard-a.test")
        auth_service.logout(store)
        assert start_store(app.config, clock=clock).current_user is None
