"""Time helpers. All persisted timestamps are naive UTC."""

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as date_parser


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed to already be UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp or a bare YYYY-MM-DD date; None when unparseable"""
    if not value:
        return None
    try:
        return to_naive_utc(date_parser.isoparse(value))
    except (ValueError, OverflowError):
        return None
