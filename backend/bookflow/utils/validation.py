from __future__ import annotations
"""Reusable request-payload validation helpers.

All helpers raise ``ValidationError`` naming the offending field so the error
handler can return a consistent 400.
"""
import json
from typing import Any, Iterable, Mapping, Optional

from bookflow.exceptions import ValidationError


def validate_choice(value: Any, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that value is inside allowed; returns it to enable inline usage."""
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{field_name} invalid", field=field_name, value=value)
    return value


def require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f'{key} required', field=key)
    return str(value).strip()


def optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def positive_number(data: Mapping[str, Any], key: str) -> float:
    raw = data.get(key)
    if raw is None or isinstance(raw, bool):
        raise ValidationError(f'{key} required', field=key)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number', field=key, value=raw)
    if value <= 0:
        raise ValidationError(f'{key} must be > 0', field=key, value=raw)
    return value


def optional_rate(data: Mapping[str, Any], key: str) -> Optional[float]:
    """Non-negative number or null (null clears an override)."""
    if key not in data:
        raise ValidationError(f'{key} required', field=key)
    raw = data.get(key)
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValidationError(f'{key} must be a number', field=key, value=raw)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number', field=key, value=raw)
    if value < 0:
        raise ValidationError(f'{key} must be >= 0', field=key, value=raw)
    return value


def json_field(raw: Any, key: str) -> Any:
    """Multipart forms carry nested objects as JSON strings."""
    if raw is None or isinstance(raw, (dict, list)):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a JSON object', field=key)


__all__ = ['validate_choice', 'require_str', 'optional_str', 'positive_number', 'optional_rate', 'json_field']
