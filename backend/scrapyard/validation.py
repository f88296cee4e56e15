from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping


# Maximum monetary value accepted from callers: 999,999,999.99
# This keeps a single ledger entry from overflowing report totals
MAX_AMOUNT = Decimal("999999999.99")

CENTS = Decimal("0.01")
QUANTITY_STEP = Decimal("0.001")


class ValidationError(ValueError):
    """400-level input problem."""


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Raise ValidationError naming every required field that is missing or blank."""
    missing = []
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def parse_money(value: Any, field: str = "amount", *, allow_negative: bool = False) -> Decimal:
    """Coerce a caller-supplied amount to a 2-place Decimal."""
    amount = _to_decimal(value, field).quantize(CENTS, rounding=ROUND_HALF_UP)
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    return amount


def parse_quantity(value: Any, field: str = "quantity", *, allow_negative: bool = False) -> Decimal:
    """Coerce a stock quantity (kg allows fractions) to a 3-place Decimal."""
    quantity = _to_decimal(value, field).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
    if not allow_negative and quantity < 0:
        raise ValidationError(f"{field} cannot be negative")
    return quantity


def normalize_email(value: Any) -> str:
    if not isinstance(value, str) or "@" not in value:
        raise ValidationError("A valid email is required")
    return value.strip().lower()


def validate_choice(value: Any, choices: Iterable[str], field: str) -> str:
    allowed = list(choices)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value
