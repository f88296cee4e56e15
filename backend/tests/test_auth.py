"""
Authentication tests.

Verifies:
- Login checks the secret and the tenant's subscription state
- Logout clears the active identity
- Password reset tokens are single-use and expire
- Passwords are stored as bcrypt hashes only
"""

from scrapyard.domain import CompanyStatus
from scrapyard.services import auth_service
from scrapyard.store import COMPANIES


class TestLogin:
    """login / logout"""

    def test_success_sets_identity(self, store, company_a):
        result = auth_service.login(store, "alice@yard-a.test", "secret1")
        assert result.success
        assert store.current_user.id == company_a["user"].id

    def test_email_case_insensitive(self, store, company_a):
        assert auth_service.login(store, "  Alice@Yard-A.test ", "secret1").success

    def test_wrong_password(self, store, company_a):
        result = auth_service.login(store, "alice@yard-a.test", "wrong1")
        assert result.reason == "invalid_credentials"
        assert store.current_user is None

    def test_unknown_email(self, store):
        assert auth_service.login(store, "nobody@x.test", "secret1").reason == "invalid_credentials"

    def test_operator_has_no_subscription_gate(self, store, clock, company_a, login_operator):
        clock.advance(days=400)
        assert login_operator().company_id == ""

    def test_suspended_company(self, store, company_a):
        with store.mutation(COMPANIES):
            company_a["company"].status = CompanyStatus.SUSPENDED
        result = auth_service.login(store, "alice@yard-a.test", "secret1")
        assert result.reason == "blocked"
        assert result.is_blocked

    def test_missing_company(self, store, company_a):
        with store.mutation(COMPANIES):
            store.companies.clear()
        result = auth_service.login(store, "alice@yard-a.test", "secret1")
        assert result.reason == "company_not_found"

    def test_logout(self, store, company_a, login):
        user = login("alice@yard-a.test")
        auth_service.logout(store)
        assert store.current_user is None
        assert user.logs[0].action == "Logout"


class TestResumeSession:
    """resume_session"""

    def test_resume_active(self, store, company_a, login):
        login("alice@yard-a.test")
        assert auth_service.resume_session(store).id == company_a["user"].id

    def test_blocked_tenant_dropped(self, store, company_a, login):
        login("alice@yard-a.test")
        with store.mutation(COMPANIES):
            company_a["company"].status = CompanyStatus.BLOCKED

        assert auth_service.resume_session(store) is None
        assert store.current_user_id is None

    def test_nothing_saved(self, store):
        assert auth_service.resume_session(store) is None


class TestPasswordReset:
    """request_password_reset / complete_password_reset"""

    def test_reset_flow(self, store, company_a):
        token = auth_service.request_password_reset(store, "alice@yard-a.test").data

        result = auth_service.complete_password_reset(store, token, "new-secret")

        assert result.success
        assert auth_service.login(store, "alice@yard-a.test", "new-secret").success
        assert auth_service.login(store, "alice@yard-a.test", "secret1").reason == "invalid_credentials"

    def test_token_single_use(self, store, company_a):
        token = auth_service.request_password_reset(store, "alice@yard-a.test").data
        auth_service.complete_password_reset(store, token, "new-secret")
        assert auth_service.complete_password_reset(store, token, "other-secret").reason == "token_invalid"

    def test_token_expires(self, store, clock, company_a):
        token = auth_service.request_password_reset(store, "alice@yard-a.test").data
        clock.advance(minutes=61)
        assert auth_service.complete_password_reset(store, token, "new-secret").reason == "token_expired"

    def test_weak_password(self, store, company_a):
        token = auth_service.request_password_reset(store, "alice@yard-a.test").data
        assert auth_service.complete_password_reset(store, token, "123").reason == "weak_password"
        assert company_a["user"].reset_token == token

    def test_unknown_email(self, store):
        assert auth_service.request_password_reset(store, "nobody@x.test").reason == "email_not_found"

    def test_empty_token(self, store, company_a):
        assert auth_service.complete_password_reset(store, "", "new-secret").reason == "token_invalid"


class TestPasswordHashing:
    """hash_password / verify_password"""

    def test_hash_is_not_plaintext(self, company_a):
        assert "secret1" not in company_a["user"].password_hash
        assert company_a["user"].password_hash.startswith("$2")

    def test_verify(self):
        hashed = auth_service.hash_password("secret1", rounds=4)
        assert auth_service.verify_password("secret1", hashed)
        assert not auth_service.verify_password("secret2", hashed)

    def test_malformed_hash_never_matches(self):
        assert not auth_service.verify_password("secret1", "not-a-hash")
        assert not auth_service.verify_password("", "")
