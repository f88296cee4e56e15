from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .serialization import (
    datetime_in,
    datetime_out,
    decimal_in,
    decimal_out,
    enum_in,
    enum_out,
)


# Sentinel company_id for platform-wide records (global backups)
SYSTEM_SCOPE = "SYSTEM"

# Plans with this many seats or more are shown as unlimited
UNLIMITED_USERS = 9999


class CompanyStatus(str, Enum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    SUSPENDED = "suspended"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class BackupMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"
    BOTH = "both"


@dataclass
class Company:
    """
    Multi-tenant root: every tenant is a Company.

    All products, partners, orders, transactions, cash sessions, users and
    backup logs carry the company id that owns them. Nothing is shared by
    reference across companies.
    """
    id: str
    name: str
    plan: str
    created_at: datetime
    trial_ends_at: datetime
    status: CompanyStatus = CompanyStatus.ACTIVE
    document: str = ""
    owner_name: str = ""
    email: str = ""
    phone: str = ""
    subscription_ends_at: Optional[datetime] = None
    billing_cycle: Optional[BillingCycle] = None

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "document": self.document,
            "owner_name": self.owner_name,
            "email": self.email,
            "phone": self.phone,
            "plan": self.plan,
            "status": enum_out(self.status),
            "created_at": datetime_out(self.created_at),
            "trial_ends_at": datetime_out(self.trial_ends_at),
            "subscription_ends_at": datetime_out(self.subscription_ends_at),
            "billing_cycle": enum_out(self.billing_cycle),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Company":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            document=data.get("document", ""),
            owner_name=data.get("owner_name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            plan=data.get("plan", ""),
            status=enum_in(CompanyStatus, data.get("status"), CompanyStatus.ACTIVE),
            created_at=datetime_in(data.get("created_at")),
            trial_ends_at=datetime_in(data.get("trial_ends_at")),
            subscription_ends_at=datetime_in(data.get("subscription_ends_at")),
            billing_cycle=enum_in(BillingCycle, data.get("billing_cycle")),
        )


@dataclass
class Plan:
    """Subscription tier. max_users is a hard ceiling on a company's user count."""
    id: str
    name: str
    price_monthly: Decimal
    price_annual: Decimal
    max_users: int
    created_at: datetime
    description: str = ""
    storage_limit: str = ""
    support_level: str = "basic"
    backup_type: BackupMode = BackupMode.MANUAL
    features: list[str] = field(default_factory=list)
    is_popular: bool = False

    @property
    def is_unlimited(self) -> bool:
        return self.max_users >= UNLIMITED_USERS

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_monthly": decimal_out(self.price_monthly),
            "price_annual": decimal_out(self.price_annual),
            "max_users": self.max_users,
            "storage_limit": self.storage_limit,
            "support_level": self.support_level,
            "backup_type": enum_out(self.backup_type),
            "features": list(self.features),
            "created_at": datetime_out(self.created_at),
            "is_popular": self.is_popular,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            price_monthly=decimal_in(data.get("price_monthly"), Decimal("0")),
            price_annual=decimal_in(data.get("price_annual"), Decimal("0")),
            max_users=int(data.get("max_users", 1)),
            storage_limit=data.get("storage_limit", ""),
            support_level=data.get("support_level", "basic"),
            backup_type=enum_in(BackupMode, data.get("backup_type"), BackupMode.MANUAL),
            features=list(data.get("features") or []),
            created_at=datetime_in(data.get("created_at")),
            is_popular=bool(data.get("is_popular", False)),
        )


# Lowest tier: one seat, manual backups only
ENTRY_PLAN_ID = "essential"


def default_plans(now: datetime) -> list[Plan]:
    """Plans written on first load of an empty store."""
    return [
        Plan(
            id="essential",
            name="Essential",
            description="For small yards getting started.",
            price_monthly=Decimal("49.90"),
            price_annual=Decimal("399.90"),
            max_users=1,
            storage_limit="2 GB",
            support_level="basic",
            backup_type=BackupMode.MANUAL,
            created_at=now,
        ),
        Plan(
            id="professional",
            name="Professional",
            description="For growing operations.",
            price_monthly=Decimal("99.90"),
            price_annual=Decimal("799.90"),
            max_users=3,
            storage_limit="20 GB",
            support_level="priority",
            backup_type=BackupMode.AUTO,
            created_at=now,
            is_popular=True,
        ),
        Plan(
            id="premium",
            name="Premium",
            description="For large operations and networks.",
            price_monthly=Decimal("149.90"),
            price_annual=Decimal("1199.90"),
            max_users=UNLIMITED_USERS,
            storage_limit="100 GB",
            support_level="24/7",
            backup_type=BackupMode.AUTO,
            features=["Early access to new features"],
            created_at=now,
        ),
    ]
