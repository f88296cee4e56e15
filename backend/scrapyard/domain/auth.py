from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .serialization import datetime_in, datetime_out


class Role(str, Enum):
    """
    Closed set of roles. Each maps to an immutable default capability set
    (see scrapyard.permissions.roles).
    """
    SUPER_ADMIN = "super_admin"  # platform operator, owns no company
    MASTER = "master"            # company owner
    MANAGER = "manager"
    BUYER = "buyer"
    SELLER = "seller"
    CASHIER = "cashier"
    FINANCIAL = "financial"

    @property
    def is_platform_operator(self) -> bool:
        return self is Role.SUPER_ADMIN


# Roles allowed to authorize any step-up request regardless of capability
HIGH_TRUST_ROLES = frozenset({Role.SUPER_ADMIN, Role.MASTER})


@dataclass
class ActionLog:
    """One append-only audit entry attached to a user."""
    id: str
    action: str
    details: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "details": self.details,
            "timestamp": datetime_out(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActionLog":
        return cls(
            id=data["id"],
            action=data.get("action", ""),
            details=data.get("details", ""),
            timestamp=datetime_in(data.get("timestamp")),
        )


@dataclass
class User:
    """
    Identity. company_id is "" for platform operators.

    permissions is a sparse overlay: only capabilities explicitly set for
    this user appear; everything else falls back to the role default.
    """
    id: str
    company_id: str
    name: str
    email: str
    role: Role
    password_hash: str
    permissions: dict[str, bool] = field(default_factory=dict)
    logs: list[ActionLog] = field(default_factory=list)
    reset_token: Optional[str] = None
    reset_token_expires: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role.value}>"

    @property
    def is_platform_operator(self) -> bool:
        return self.role.is_platform_operator

    def to_dict(self) -> dict:
        """Full record, including the secret hash, for persistence and backups."""
        data = self.to_public_dict()
        data["password_hash"] = self.password_hash
        data["reset_token"] = self.reset_token
        data["reset_token_expires"] = datetime_out(self.reset_token_expires)
        return data

    def to_public_dict(self, include_logs: bool = True) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "permissions": dict(self.permissions),
        }
        if include_logs:
            data["logs"] = [log.to_dict() for log in self.logs]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            name=data.get("name", ""),
            email=(data.get("email") or "").lower(),
            role=Role(data.get("role", Role.CASHIER.value)),
            password_hash=data.get("password_hash", ""),
            permissions={k: bool(v) for k, v in (data.get("permissions") or {}).items()},
            logs=[ActionLog.from_dict(entry) for entry in data.get("logs") or []],
            reset_token=data.get("reset_token"),
            reset_token_expires=datetime_in(data.get("reset_token_expires")),
        )
