from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .serialization import datetime_in, datetime_out, enum_in, enum_out


class BackupType(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class BackupLog:
    """Record of one snapshot. company_id is SYSTEM_SCOPE for global dumps."""
    id: str
    company_id: str
    timestamp: datetime
    type: BackupType
    size: str
    status: str = "success"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "timestamp": datetime_out(self.timestamp),
            "type": enum_out(self.type),
            "size": self.size,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BackupLog":
        return cls(
            id=data["id"],
            company_id=data.get("company_id") or "",
            timestamp=datetime_in(data.get("timestamp")),
            type=enum_in(BackupType, data.get("type"), BackupType.MANUAL),
            size=data.get("size", ""),
            status=data.get("status", "success"),
        )
