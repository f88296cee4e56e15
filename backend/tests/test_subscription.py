"""
Subscription lifecycle tests.

Verifies:
- Signup creates a trial company plus its master user atomically
- Expired trials and subscriptions are blocked, by the lifecycle pass or
  at login, and blocking never reverses on its own
- Renewal extends from the later of now and the current end date
- Only platform operators manage companies
"""

from datetime import timedelta

import pytest

from scrapyard.domain import CompanyStatus, Role
from scrapyard.services import auth_service, inventory_service, subscription_service
from scrapyard.store import COMPANIES, TENANT_COLLECTIONS


class TestSignup:
    """register_company"""

    def test_creates_trial_company_and_owner(self, store, clock, company_a):
        company, owner = company_a["company"], company_a["user"]
        assert company.status is CompanyStatus.ACTIVE
        assert company.trial_ends_at == clock.now + timedelta(days=15)
        assert company.subscription_ends_at == company.trial_ends_at
        assert subscription_service.is_on_trial(company, clock.now)
        assert owner.role is Role.MASTER
        assert owner.company_id == company.id
        assert subscription_service.owner_of(store, company.id).id == owner.id

    def test_signup_logged_on_owner(self, company_a):
        assert company_a["user"].logs[0].action == "Signup"

    def test_duplicate_email_creates_nothing(self, store, company_a):
        result = subscription_service.register_company(
            store, "Copycat Yard", "Mallory", "ALICE@yard-a.test", "secret1"
        )
        assert not result.success
        assert result.reason == "email_in_use"
        assert len(store.companies) == 1
        assert len(store.users) == 2  # operator + Alice

    def test_unknown_plan(self, store):
        result = subscription_service.register_company(
            store, "Yard", "Owner", "owner@yard.test", "secret1", plan="platinum"
        )
        assert result.reason == "not_found"
        assert store.companies == []

    @pytest.mark.parametrize("kwargs", [
        {"company_name": "", "admin_name": "O", "email": "o@y.test", "password": "secret1"},
        {"company_name": "Y", "admin_name": "", "email": "o@y.test", "password": "secret1"},
        {"company_name": "Y", "admin_name": "O", "email": "not-an-email", "password": "secret1"},
        {"company_name": "Y", "admin_name": "O", "email": "o@y.test", "password": "123"},
        {"company_name": "Y", "admin_name": "O", "email": "o@y.test", "password": "secret1",
         "billing_cycle": "weekly"},
    ])
    def test_invalid_input(self, store, kwargs):
        result = subscription_service.register_company(store, **kwargs)
        assert result.reason == "validation_error"
        assert store.companies == []


class TestLifecycle:
    """Automatic expiry to blocked."""

    def test_trial_expiry_blocks_company(self, store, clock, company_a):
        clock.advance(days=16)

        blocked = subscription_service.run_lifecycle_checks(store)

        assert blocked == [company_a["company"].id]
        assert company_a["company"].status is CompanyStatus.BLOCKED

        result = auth_service.login(store, "alice@yard-a.test", "secret1")
        assert not result.success
        assert result.is_blocked
        assert result.reason == "blocked"

    def test_not_blocked_before_expiry(self, store, clock, company_a):
        clock.advance(days=14)
        assert subscription_service.run_lifecycle_checks(store) == []
        assert company_a["company"].status is CompanyStatus.ACTIVE

    def test_expiry_exactly_at_end_is_not_blocked(self, store, clock, company_a):
        clock.now = company_a["company"].trial_ends_at
        assert subscription_service.run_lifecycle_checks(store) == []

    def test_login_blocks_expired_company(self, store, clock, company_a):
        clock.advance(days=16)

        result = auth_service.login(store, "alice@yard-a.test", "secret1")

        assert result.reason == "expired"
        assert result.is_blocked
        assert store.find(COMPANIES, company_a["company"].id).status is CompanyStatus.BLOCKED
        assert store.current_user is None

    def test_check_is_idempotent(self, store, clock, company_a):
        clock.advance(days=16)
        assert subscription_service.run_lifecycle_checks(store) == [company_a["company"].id]
        assert subscription_service.run_lifecycle_checks(store) == []

    def test_blocked_stays_blocked(self, store, clock, company_a):
        clock.advance(days=16)
        subscription_service.run_lifecycle_checks(store)

        # Even if the end date moves out of the past, only renewal unblocks
        with store.mutation(COMPANIES):
            company_a["company"].subscription_ends_at = clock.now + timedelta(days=10)
        subscription_service.run_lifecycle_checks(store)
        assert company_a["company"].status is CompanyStatus.BLOCKED

    def test_suspended_left_alone(self, store, clock, company_a, login_operator):
        login_operator()
        subscription_service.update_company_status(store, company_a["company"].id, "suspended")
        clock.advance(days=30)

        assert subscription_service.run_lifecycle_checks(store) == []
        assert company_a["company"].status is CompanyStatus.SUSPENDED

    def test_paid_period_counts_over_trial(self, store, clock, company_a, end_trial):
        end_trial(company_a["company"])
        clock.advance(days=20)
        assert subscription_service.run_lifecycle_checks(store) == []
        clock.advance(days=11)
        assert subscription_service.run_lifecycle_checks(store) == [company_a["company"].id]


class TestRenewal:
    """renew_subscription (platform operator only)"""

    def test_renew_blocked_company_from_now(self, store, clock, company_a, login_operator):
        clock.advance(days=16)
        subscription_service.run_lifecycle_checks(store)
        login_operator()

        result = subscription_service.renew_subscription(store, company_a["company"].id, 30)

        assert result.success
        company = result.data
        assert company.status is CompanyStatus.ACTIVE
        assert company.subscription_ends_at == clock.now + timedelta(days=30)
        assert auth_service.login(store, "alice@yard-a.test", "secret1").success

    def test_early_renewal_never_shortens(self, store, clock, company_a, login_operator):
        login_operator()
        end = company_a["company"].subscription_ends_at

        subscription_service.renew_subscription(store, company_a["company"].id, 10)

        assert company_a["company"].subscription_ends_at == end + timedelta(days=10)

    def test_tenant_cannot_renew(self, store, company_a, login):
        login("alice@yard-a.test")
        result = subscription_service.renew_subscription(store, company_a["company"].id, 30)
        assert result.reason == "permission_denied"

    @pytest.mark.parametrize("days", [0, -5, "abc"])
    def test_invalid_days(self, store, company_a, login_operator, days):
        login_operator()
        result = subscription_service.renew_subscription(store, company_a["company"].id, days)
        assert result.reason == "validation_error"

    def test_unknown_company(self, store, login_operator):
        login_operator()
        assert subscription_service.renew_subscription(store, "nope", 30).reason == "not_found"

    def test_renewal_logged_on_operator(self, store, company_a, login_operator):
        operator = login_operator()
        subscription_service.renew_subscription(store, company_a["company"].id, 30)
        assert operator.logs[0].action == "Super Admin"


class TestCompanyAdministration:
    """Operator edits, status changes and deletion."""

    def test_status_and_plan_change(self, store, company_a, login_operator):
        login_operator()
        result = subscription_service.update_company_status(
            store, company_a["company"].id, "active", plan="premium"
        )
        assert result.success
        assert company_a["company"].plan == "premium"

    def test_status_rejects_unknown_plan(self, store, company_a, login_operator):
        login_operator()
        result = subscription_service.update_company_status(
            store, company_a["company"].id, "active", plan="platinum"
        )
        assert result.reason == "not_found"
        assert company_a["company"].plan == "professional"

    def test_details_edit(self, store, company_a, login_operator):
        login_operator()
        result = subscription_service.update_company_details(
            store, company_a["company"].id, {"name": "Yard A Ltd", "phone": "555"}
        )
        assert result.success
        assert company_a["company"].name == "Yard A Ltd"

    def test_details_cannot_change_id(self, store, company_a, login_operator):
        login_operator()
        result = subscription_service.update_company_details(
            store, company_a["company"].id, {"id": "other"}
        )
        assert result.reason == "validation_error"

    def test_details_rejects_unknown_field(self, store, company_a, login_operator):
        login_operator()
        result = subscription_service.update_company_details(
            store, company_a["company"].id, {"status": "active"}
        )
        assert result.reason == "validation_error"

    def test_tenant_cannot_edit_company(self, store, company_a, login):
        login("alice@yard-a.test")
        result = subscription_service.update_company_details(
            store, company_a["company"].id, {"name": "Mine"}
        )
        assert result.reason == "permission_denied"

    def test_delete_cascades(self, store, stocked_a, company_b, login, login_operator):
        login(company_b["user"].email)
        inventory_service.add_product(store, {"name": "Steel", "buy_price": "1", "sell_price": "2"})
        a_id = stocked_a["company"].id

        login_operator()
        assert subscription_service.delete_company(store, a_id).success

        assert store.find(COMPANIES, a_id) is None
        for key in TENANT_COLLECTIONS:
            assert all(record.company_id != a_id for record in store.collection(key))
        assert [p.name for p in store.products] == ["Steel"]
        assert store.find_user_by_email("bob@yard-b.test") is not None
