"""
Shared validators for request parameters.
Failures raise ValidationError (400).
"""

from datetime import datetime, timezone
from typing import Optional

from shared.config.constants import Limits
from shared.utils.exceptions import ValidationError


def utc_now() -> datetime:
    """
    Current time as naive UTC with second precision.

    Both stores keep naive UTC and the relational DATETIME columns drop
    sub-second digits, so values read back compare equal across stores.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_iso_datetime(value: Optional[str | datetime], field_name: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime string.

    Empty values mean "no bound". Date-only strings mean midnight UTC.

    Raises:
        ValidationError: If the value is not ISO-parseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)

    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO date", field=field_name, value=text)

    return to_naive_utc(parsed)


def clamp_limit(limit: Optional[int]) -> int:
    """Listing limit clamped to 1..200, 50 when not given."""
    if limit is None:
        return Limits.LIST_DEFAULT
    return min(max(limit, Limits.LIST_MIN), Limits.LIST_MAX)
