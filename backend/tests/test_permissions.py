"""
Capability and user management tests.

Verifies:
- Role defaults, per-user overrides in both directions, super_admin bypass
- The materialized capability set follows override changes
- Step-up verification (verify_authorization) rules
- Seat limits, email uniqueness and role restrictions on add_user
"""

import pytest

from scrapyard.domain import Role, User
from scrapyard.permissions import ALL_CAPABILITIES, DEFAULT_ROLE_PERMISSIONS
from scrapyard.services import auth_service, permission_service, subscription_service
from scrapyard.services.permission_service import PermissionDeniedError


def _user(role, permissions=None):
    return User(
        id="u1",
        company_id="c1",
        name="Test",
        email="t@test.test",
        role=role,
        password_hash="",
        permissions=permissions or {},
    )


class TestCapabilityResolution:
    """has_permission / resolve_permissions"""

    def test_role_default(self):
        cashier = _user(Role.CASHIER)
        assert permission_service.has_permission(cashier, "manage_cashier")
        assert not permission_service.has_permission(cashier, "delete_order")

    def test_override_grants(self):
        cashier = _user(Role.CASHIER, {"delete_order": True})
        assert permission_service.has_permission(cashier, "delete_order")

    def test_override_revokes(self):
        cashier = _user(Role.CASHIER, {"view_reports": False})
        assert not permission_service.has_permission(cashier, "view_reports")
        assert "view_reports" not in permission_service.resolve_permissions(cashier)

    def test_super_admin_has_everything(self):
        operator = _user(Role.SUPER_ADMIN, {"view_reports": False})
        assert permission_service.has_permission(operator, "view_reports")
        assert permission_service.has_permission(operator, "support_override")
        assert permission_service.resolve_permissions(operator) == ALL_CAPABILITIES

    def test_unknown_capability_fails_closed(self):
        assert not permission_service.has_permission(_user(Role.MASTER), "launch_rockets")
        assert not permission_service.has_permission(None, "view_dashboard")

    def test_master_never_gets_support_override_by_default(self):
        assert "support_override" not in DEFAULT_ROLE_PERMISSIONS[Role.MASTER]

    def test_manager_defaults(self):
        manager = _user(Role.MANAGER)
        assert permission_service.has_permission(manager, "edit_order")
        assert not permission_service.has_permission(manager, "delete_user")
        assert not permission_service.has_permission(manager, "manage_settings")


class TestActingIdentity:
    """check_permission / current_permissions against the store identity."""

    def test_anonymous_has_nothing(self, store):
        assert not permission_service.check_permission(store, "view_dashboard")
        assert permission_service.current_permissions(store) == frozenset()

    def test_require_permission_raises(self, store, company_a, login):
        login("alice@yard-a.test")
        auth_service.add_user(store, "Carl", "carl@yard-a.test", "secret1", "cashier")
        login("carl@yard-a.test")
        with pytest.raises(PermissionDeniedError):
            permission_service.require_permission(store, "delete_order")

    def test_cached_set_follows_override_change(self, store, company_a, login):
        login("alice@yard-a.test")
        carl = auth_service.add_user(store, "Carl", "carl@yard-a.test", "secret1", "cashier").data

        login("carl@yard-a.test")
        assert "view_reports" in permission_service.current_permissions(store)

        login("alice@yard-a.test")
        auth_service.update_user(store, carl.id, {"permissions": {"view_reports": False}})

        login("carl@yard-a.test")
        assert "view_reports" not in permission_service.current_permissions(store)
        assert not permission_service.check_permission(store, "view_reports")


@pytest.fixture
def staff(store, company_a, login):
    """Owner, a cashier and a financial user of tenant A (3 of 3 seats)."""
    owner = login("alice@yard-a.test")
    cashier = auth_service.add_user(store, "Carl", "carl@yard-a.test", "secret1", "cashier").data
    financial = auth_service.add_user(store, "Fran", "fran@yard-a.test", "secret1", "financial").data
    return {"owner": owner, "cashier": cashier, "financial": financial}


class TestStepUp:
    """verify_authorization"""

    def test_master_always_authorizes(self, store, staff):
        authorizer = permission_service.verify_authorization(
            store, staff["owner"].id, "secret1", "approve_manual_transaction"
        )
        assert authorizer.id == staff["owner"].id

    def test_capability_holder_authorizes(self, store, staff):
        authorizer = permission_service.verify_authorization(
            store, staff["financial"].id, "secret1", "approve_manual_transaction"
        )
        assert authorizer.id == staff["financial"].id

    def test_missing_capability_refused(self, store, staff):
        assert permission_service.verify_authorization(
            store, staff["cashier"].id, "secret1", "approve_manual_transaction"
        ) is None

    def test_no_capability_named_accepts_any_valid_identity(self, store, staff):
        authorizer = permission_service.verify_authorization(store, staff["cashier"].id, "secret1")
        assert authorizer.id == staff["cashier"].id

    def test_wrong_secret_refused(self, store, staff):
        assert permission_service.verify_authorization(store, staff["owner"].id, "wrong!") is None
        assert permission_service.verify_authorization(store, staff["owner"].id, "") is None

    def test_surrounding_whitespace_tolerated(self, store, staff):
        assert permission_service.verify_authorization(store, staff["owner"].id, " secret1 ") is not None

    def test_foreign_identity_refused(self, store, staff, company_b):
        assert permission_service.verify_authorization(
            store, company_b["user"].id, "secret1"
        ) is None

    def test_operator_peer(self, store, login_operator):
        login_operator()
        peer = auth_service.add_user(store, "Peer", "peer@platform.test", "secret1", "super_admin").data
        assert permission_service.verify_authorization(store, peer.id, "secret1", "delete_order").id == peer.id

    def test_log_master_action_targets_authorizer(self, store, staff):
        store.set_current_user(staff["cashier"])
        permission_service.log_master_action(store, "Orders", "Approved delete", staff["owner"].id)
        assert staff["owner"].logs[0].details == "Approved delete"


class TestUserManagement:
    """add_user / update_user / delete_user"""

    def test_seat_limit_on_essential_plan(self, store, login):
        subscription_service.register_company(
            store, "Tiny Yard", "Tina", "tina@tiny.test", "secret1", plan="essential"
        )
        login("tina@tiny.test")

        result = auth_service.add_user(store, "Sam", "sam@tiny.test", "secret1", "cashier")

        assert result.reason == "user_limit_reached"
        assert store.find_user_by_email("sam@tiny.test") is None

    def test_seat_limit_on_professional_plan(self, store, staff):
        result = auth_service.add_user(store, "Dan", "dan@yard-a.test", "secret1", "cashier")
        assert result.reason == "user_limit_reached"

    def test_email_unique_across_tenants(self, store, company_a, company_b, login):
        login("alice@yard-a.test")
        result = auth_service.add_user(store, "Bob 2", "BOB@yard-b.test", "secret1", "cashier")
        assert result.reason == "email_in_use"

    def test_cashier_cannot_add_users(self, store, staff, login):
        login("carl@yard-a.test")
        result = auth_service.add_user(store, "X", "x@yard-a.test", "secret1", "cashier")
        assert result.reason == "permission_denied"

    def test_tenant_cannot_create_operator(self, store, company_a, login):
        login("alice@yard-a.test")
        result = auth_service.add_user(store, "Evil", "evil@yard-a.test", "secret1", "super_admin")
        assert result.reason == "permission_denied"

    def test_operator_creates_only_operators(self, store, login_operator):
        login_operator()
        result = auth_service.add_user(store, "Owner", "owner@x.test", "secret1", "master")
        assert result.reason == "validation_error"

    def test_support_override_only_from_operator(self, store, company_a, login, login_operator):
        login("alice@yard-a.test")
        result = auth_service.add_user(
            store, "Sue", "sue@yard-a.test", "secret1", "cashier", {"support_override": True}
        )
        assert result.reason == "permission_denied"

        login_operator()
        result = auth_service.update_user(
            store, company_a["user"].id, {"permissions": {"support_override": True}}
        )
        assert result.success
        assert company_a["user"].permissions == {"support_override": True}

    def test_unknown_capability_rejected(self, store, company_a, login):
        login("alice@yard-a.test")
        result = auth_service.add_user(
            store, "Sue", "sue@yard-a.test", "secret1", "cashier", {"fly": True}
        )
        assert result.reason == "validation_error"

    def test_unknown_role_rejected(self, store, company_a, login):
        login("alice@yard-a.test")
        result = auth_service.add_user(store, "Sue", "sue@yard-a.test", "secret1", "janitor")
        assert result.reason == "validation_error"

    def test_update_foreign_user_refused(self, store, company_a, company_b, login):
        login("alice@yard-a.test")
        result = auth_service.update_user(store, company_b["user"].id, {"name": "Hacked"})
        assert result.reason == "permission_denied"
        assert company_b["user"].name == "Bob"

    def test_update_email_conflict(self, store, staff):
        result = auth_service.update_user(store, staff["cashier"].id, {"email": "fran@yard-a.test"})
        assert result.reason == "email_in_use"

    def test_cannot_delete_self(self, store, staff):
        assert auth_service.delete_user(store, staff["owner"].id).reason == "cannot_delete_self"

    def test_delete_frees_a_seat(self, store, staff):
        assert auth_service.delete_user(store, staff["cashier"].id).success
        assert auth_service.add_user(store, "Dan", "dan@yard-a.test", "secret1", "buyer").success
