from __future__ import annotations

from typing import Any

from .errors import ValidationError


# Maximum price: 9,999,999.99 in major units (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_QUANTITY = 1_000_000


def _coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for API input.

    Accepts ints and plain digit strings; rejects bools, floats, scientific
    notation, and anything non-finite.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={"field": field})
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer", details={"field": field})
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("-"):
            digits = stripped[1:]
        else:
            digits = stripped
        if digits and digits.isascii() and digits.isdecimal():
            return int(stripped)
    raise ValidationError(f"{field} must be an integer", details={"field": field})


def positive_int(value: Any, field: str, *, maximum: int | None = None) -> int:
    if value is None:
        raise ValidationError(f"{field} is required", details={"field": field})
    number = _coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be positive", details={"field": field, "value": number})
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} is too large", details={"field": field, "max": maximum})
    return number


def non_negative_int(value: Any, field: str, *, default: int = 0) -> int:
    if value is None:
        return default
    number = _coerce_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must not be negative", details={"field": field, "value": number})
    return number


def quantity(value: Any, field: str = "quantity") -> int:
    return positive_int(value, field, maximum=MAX_QUANTITY)


def price_cents(value: Any, field: str = "price_cents") -> int:
    return positive_int(value, field, maximum=MAX_PRICE_CENTS)


def optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def required_str(value: Any, field: str) -> str:
    text = optional_str(value)
    if text is None:
        raise ValidationError(f"{field} is required", details={"field": field})
    return text


def json_object(data: Any) -> dict:
    """Request bodies must be JSON objects; a missing body counts as empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
