# Overview: Default records written the first time an empty store is loaded.

from __future__ import annotations

import uuid
from decimal import Decimal

from ..domain import (
    BillingCycle,
    Company,
    CompanyStatus,
    Partner,
    PartnerType,
    Product,
    Role,
    Unit,
    User,
    default_plans,
)
from ..store import COMPANIES, PARTNERS, PLANS, PRODUCTS, USERS, ScrapyardStore
from ..time_utils import add_days
from .auth_service import hash_password


DEMO_COMPANY_ID = "demo-company"


def seed_collection(store: ScrapyardStore, key: str) -> list:
    """Initial contents of a collection that has never been written."""
    demo = bool(store.config.get("SEED_DEMO_COMPANY"))
    now = store.now()

    if key == PLANS:
        return default_plans(now)
    if key == USERS:
        users = [_platform_admin(store)]
        if demo:
            users.append(_demo_owner(store))
        return users
    if not demo:
        return []
    if key == COMPANIES:
        return [_demo_company(store)]
    if key == PRODUCTS:
        return _demo_products()
    if key == PARTNERS:
        return _demo_partners()
    return []


def _hash(store: ScrapyardStore, password: str) -> str:
    return hash_password(password, rounds=int(store.config["BCRYPT_ROUNDS"]))


def _platform_admin(store: ScrapyardStore) -> User:
    return User(
        id=str(uuid.uuid4()),
        company_id="",
        name=store.config["PLATFORM_ADMIN_NAME"],
        email=store.config["PLATFORM_ADMIN_EMAIL"].lower(),
        role=Role.SUPER_ADMIN,
        password_hash=_hash(store, store.config["PLATFORM_ADMIN_PASSWORD"]),
    )


def _demo_company(store: ScrapyardStore) -> Company:
    now = store.now()
    access_ends = add_days(now, int(store.config["TRIAL_DAYS"]))
    return Company(
        id=DEMO_COMPANY_ID,
        name="Demo Scrap Yard",
        owner_name="Demo Owner",
        email=store.config["DEMO_OWNER_EMAIL"].lower(),
        plan="professional",
        status=CompanyStatus.ACTIVE,
        created_at=now,
        trial_ends_at=access_ends,
        subscription_ends_at=access_ends,
        billing_cycle=BillingCycle.MONTHLY,
    )


def _demo_owner(store: ScrapyardStore) -> User:
    return User(
        id=str(uuid.uuid4()),
        company_id=DEMO_COMPANY_ID,
        name="Demo Owner",
        email=store.config["DEMO_OWNER_EMAIL"].lower(),
        role=Role.MASTER,
        password_hash=_hash(store, store.config["DEMO_OWNER_PASSWORD"]),
    )


def _demo_products() -> list[Product]:
    return [
        Product(
            id=str(uuid.uuid4()),
            company_id=DEMO_COMPANY_ID,
            name="Copper wire",
            buy_price=Decimal("32.00"),
            sell_price=Decimal("38.50"),
            unit=Unit.KG,
            min_stock=Decimal("50"),
            max_stock=Decimal("2000"),
        ),
        Product(
            id=str(uuid.uuid4()),
            company_id=DEMO_COMPANY_ID,
            name="Aluminum cans",
            buy_price=Decimal("6.20"),
            sell_price=Decimal("7.80"),
            unit=Unit.KG,
            min_stock=Decimal("100"),
            max_stock=Decimal("5000"),
        ),
    ]


def _demo_partners() -> list[Partner]:
    return [
        Partner(
            id=str(uuid.uuid4()),
            company_id=DEMO_COMPANY_ID,
            name="Walk-in supplier",
            type=PartnerType.SUPPLIER,
        ),
        Partner(
            id=str(uuid.uuid4()),
            company_id=DEMO_COMPANY_ID,
            name="Metal Recycling Co.",
            type=PartnerType.CUSTOMER,
        ),
    ]
