from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from cashledger.errors import ValidationError
from cashledger.time_utils import parse_iso_datetime


CENT = Decimal("0.01")

# Largest value a NUMERIC(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

MAX_NAME_LENGTH = 128
MAX_DESCRIPTION_LENGTH = 255


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up, the way the till rounds."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any, field: str, *, allow_zero: bool = False) -> Decimal:
    """
    Coerce input to a cent-quantized Decimal.

    Floats go through str() so 0.1 stays 0.10 rather than its binary
    expansion. Booleans, NaN and infinities are rejected.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            amount = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount.copy_abs() > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")

    amount = quantize_money(amount)

    if allow_zero:
        if amount < 0:
            raise ValidationError(f"{field} cannot be negative")
    elif amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")

    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")

    return amount


def parse_id(value: Any, field: str) -> int:
    """Positive integer identifier; plain digit strings are accepted."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer id")
    if parsed <= 0:
        raise ValidationError(f"{field} must be a positive id")
    return parsed


def parse_optional_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_id(value, field)


def parse_user_id(value: Any) -> str:
    """Operator identifier; opaque to this core but never blank."""
    if value is None:
        raise ValidationError("user_id is required")
    text = str(value).strip()
    if not text:
        raise ValidationError("user_id is required")
    if len(text) > 64:
        raise ValidationError("user_id exceeds max length 64")
    return text


def parse_name(value: Any) -> str:
    if value is None:
        raise ValidationError("name is required")
    name = str(value).strip()
    if not name:
        raise ValidationError("name cannot be blank")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"name exceeds max length {MAX_NAME_LENGTH}")
    return name


def parse_optional_text(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def parse_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    """Match value against a closed set of string choices (Enum members accepted)."""
    raw = getattr(value, "value", value)
    if not isinstance(raw, str) or raw not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return raw


def parse_date(value: Any, field: str) -> date | None:
    """Accept a date, a datetime or an ISO-8601 string; empty means no bound."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            if len(value.strip()) == 10:
                return date.fromisoformat(value.strip())
            parsed = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        if parsed is None:
            return None
        return parsed.date()
    raise ValidationError(f"{field} must be an ISO-8601 date")


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be a boolean")


def parse_page(limit: Any, offset: Any, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Normalize limit/offset, clamping limit to max_limit."""
    if limit is None or limit == "":
        limit = default_limit
    if offset is None or offset == "":
        offset = 0
    try:
        limit = int(limit)
        offset = int(offset)
    except (TypeError, ValueError):
        raise ValidationError("limit and offset must be integers")
    if limit <= 0:
        raise ValidationError("limit must be greater than 0")
    if offset < 0:
        raise ValidationError("offset cannot be negative")
    return min(limit, max_limit), offset
