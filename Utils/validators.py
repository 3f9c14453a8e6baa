from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Type

from Utils.appError import ValidationError


def require_number(data: dict, field: str) -> float:
    if data.get(field) is None:
        raise ValidationError(f"{field} is required")
    return parse_number(data[field], field)


def parse_number(value, field: str) -> float:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number")
    return number


def parse_enum(enum_cls: Type[Enum], value, field: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}'. Allowed: {allowed}")


def parse_datetime(value, field: str) -> Optional[datetime]:
    """Parse an ISO-8601 string into a naive UTC datetime (the form Mongo hands back)."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid date format for {field}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
