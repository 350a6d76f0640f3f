import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from app.core.exceptions import ValidationError


def require_fields(values: Dict[str, Any], required: Iterable[str]) -> None:
    """Raise ValidationError listing every required field that is missing or blank."""
    missing = [f for f in required if values.get(f) is None or (isinstance(values.get(f), str) and not values[f].strip())]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_number(value: Any, field: str, positive: bool = False, allow_zero: bool = True) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number")
    if positive and (number < 0 or (number == 0 and not allow_zero)):
        raise ValidationError(f"{field} must be positive")
    return number


def parse_date(value: Any, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format")


def normalize_code(value: Any, field: str) -> str:
    code = str(value or "").strip().upper()
    if not code:
        raise ValidationError(f"{field} is required")
    return code


def paginate(page: int, page_size: int) -> tuple[int, int]:
    """Translate a 1-based page into (offset, limit)."""
    if page < 1:
        raise ValidationError("page must be at least 1")
    if page_size < 1:
        raise ValidationError("pageSize must be at least 1")
    return (page - 1) * page_size, page_size
