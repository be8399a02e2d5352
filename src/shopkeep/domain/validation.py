from __future__ import annotations

import math
from typing import Optional

from .errors import NotFoundError, ValidationError

# SQLite INTEGER is a signed 64-bit value
MAX_INTEGER = 2**63 - 1


def non_negative_number(field: str, value: object) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(f"{field} must be a number.") from e
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number.")
    if number < 0:
        raise ValidationError(f"{field} must be >= 0.")
    return number


def whole_number(field: str, value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        number: float = value
        if value < 0:
            raise ValidationError(f"{field} must be >= 0.")
    else:
        number = non_negative_number(field, value)
        if number != int(number):
            raise ValidationError(f"{field} must be a whole number.")
    if number > MAX_INTEGER:
        raise ValidationError(f"{field} is too large.")
    return int(number)


def positive_quantity(value: object) -> int:
    qty = whole_number("Quantity", value)
    if qty <= 0:
        raise ValidationError("Quantity must be >= 1.")
    return qty


def record_id(value: object, what: str = "Record") -> int:
    """Ids are opaque to callers: anything that is not a stored id is simply not found."""
    if isinstance(value, bool):
        raise NotFoundError(f"{what} not found.")
    try:
        rid = int(str(value).strip())
    except ValueError as e:
        raise NotFoundError(f"{what} not found.") from e
    if rid < 1 or rid > MAX_INTEGER:
        raise NotFoundError(f"{what} not found.")
    return rid


def optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None
