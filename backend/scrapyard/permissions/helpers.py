# Overview: Utility functions for capability lookups and override validation.

from scrapyard.validation import ValidationError

from .definitions import PERMISSION_DEFINITIONS


_BY_CODE = {perm[0]: perm for perm in PERMISSION_DEFINITIONS}


def get_permissions_by_category(category: str) -> list[tuple]:
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def validate_permission_code(code: str) -> bool:
    return code in _BY_CODE


def clean_overrides(overrides: dict | None) -> dict[str, bool]:
    """
    Normalize a caller-supplied sparse override map.

    Unknown codes are rejected rather than silently stored, since a typo
    would otherwise look like a working grant.
    """
    if not overrides:
        return {}
    if not isinstance(overrides, dict):
        raise ValidationError("permissions must be an object of capability -> bool")
    unknown = sorted(code for code in overrides if not validate_permission_code(code))
    if unknown:
        raise ValidationError(f"Unknown capability: {', '.join(unknown)}")
    return {code: bool(value) for code, value in overrides.items()}
