# Overview: Field codecs shared by the domain records.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from scrapyard.time_utils import parse_iso_datetime, to_utc_z


def decimal_out(value: Optional[Decimal]) -> Optional[str]:
    # Strings keep exact cents in JSON, floats would not
    return None if value is None else str(value)


def decimal_in(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def datetime_out(value: Optional[datetime]) -> Optional[str]:
    return to_utc_z(value)


def datetime_in(value: Any) -> Optional[datetime]:
    return parse_iso_datetime(value)


def enum_in(enum_cls, value: Any, default=None):
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)


def enum_out(value) -> Optional[str]:
    return None if value is None else value.value
