# Overview: Result value returned by public store operations.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class OperationResult:
    """
    Outcome of an operation whose failure is an expected business result
    (bad credentials, blocked tenant, seat limit) rather than a bug.

    reason is a stable machine-readable code; message is for people.
    is_blocked marks a subscription-gate failure.
    """
    success: bool
    message: str = ""
    reason: Optional[str] = None
    is_blocked: bool = False
    data: Any = field(default=None)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "", data: Any = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, reason: str, is_blocked: bool = False) -> "OperationResult":
        return cls(success=False, message=message, reason=reason, is_blocked=is_blocked)

    def to_dict(self) -> dict:
        payload = {
            "success": self.success,
            "message": self.message,
        }
        if self.reason:
            payload["reason"] = self.reason
        if self.is_blocked:
            payload["is_blocked"] = True
        return payload
