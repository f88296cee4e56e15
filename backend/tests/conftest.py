"""
Pytest fixtures for scrapyard backend tests.

Provides an in-memory app per test, a controllable clock, two independent
tenants, and helpers to switch the store's acting identity.
"""

from datetime import datetime, timedelta

import pytest

from scrapyard import create_app
from scrapyard.extensions import db
from scrapyard.services import auth_service, inventory_service, subscription_service
from scrapyard.store import COMPANIES


START = datetime(2026, 3, 2, 12, 0, 0)

PASSWORD = "secret1"
OPERATOR_EMAIL = "root@platform.test"
OPERATOR_PASSWORD = "root-secret"


class FakeClock:
    """Callable clock the store reads `now` from; tests move it by hand."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope='function')
def clock():
    return FakeClock(START)


@pytest.fixture(scope='function')
def app(clock):
    """Create application for testing, backed by a private in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'PLATFORM_ADMIN_EMAIL': OPERATOR_EMAIL,
        'PLATFORM_ADMIN_PASSWORD': OPERATOR_PASSWORD,
        'SEED_DEMO_COMPANY': False,
    }, clock=clock)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def store(app):
    return app.extensions["scrapyard"]


@pytest.fixture(scope='function')
def login(store):
    """Sign in through auth_service and return the user."""
    def _login(email, password=PASSWORD):
        result = auth_service.login(store, email, password)
        assert result.success, result.message
        return result.data
    return _login


@pytest.fixture(scope='function')
def login_operator(login):
    def _login_operator():
        return login(OPERATOR_EMAIL, OPERATOR_PASSWORD)
    return _login_operator


def _register(store, name, owner, email, plan="professional"):
    result = subscription_service.register_company(store, name, owner, email, PASSWORD, plan=plan)
    assert result.success, result.message
    return result.data


@pytest.fixture(scope='function')
def company_a(store):
    """Tenant A on the professional plan (3 seats), on trial."""
    return _register(store, "Yard A", "Alice", "alice@yard-a.test")


@pytest.fixture(scope='function')
def company_b(store):
    """Tenant B on the professional plan, on trial."""
    return _register(store, "Yard B", "Bob", "bob@yard-b.test")


@pytest.fixture(scope='function')
def end_trial(store, clock):
    """Turn a trial company into a paying one with 30 days left."""
    def _end_trial(company):
        with store.mutation(COMPANIES):
            company.trial_ends_at = clock.now - timedelta(days=1)
            company.subscription_ends_at = clock.now + timedelta(days=30)
        return company
    return _end_trial


@pytest.fixture(scope='function')
def stocked_a(store, company_a, login):
    """
    Tenant A signed in as its owner, with one product and a partner of
    each type.
    """
    login(company_a["user"].email)
    product = inventory_service.add_product(store, {
        "name": "Copper wire",
        "buy_price": "5.00",
        "sell_price": "7.00",
        "stock": "0",
    })
    supplier = inventory_service.add_partner(store, {"name": "Walk-in", "type": "supplier"})
    customer = inventory_service.add_partner(store, {"name": "Foundry", "type": "customer"})
    return {
        "company": company_a["company"],
        "owner": company_a["user"],
        "product": product,
        "supplier": supplier,
        "customer": customer,
    }
