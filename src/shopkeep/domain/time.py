"""
UTC timestamp helpers.

Every timestamp is stored as a fixed-width ISO-8601 UTC string with millisecond
precision, so range filters can compare the strings directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from .errors import ValidationError

DateLike = Union[date, datetime, str, None]


def require_utc_timestamp(name: str, value: datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    require_utc_timestamp("timestamp", value)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_iso(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_of(value: str) -> str:
    """UTC calendar day (YYYY-MM-DD) of a stored timestamp."""
    return parse_iso(value).date().isoformat()


def parse_day(value: DateLike, *, name: str = "date") -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) > 10:
            # full timestamp: bucket by its UTC day, not the local one
            return parse_iso(text).date()
        return date.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {value!r}. Expected YYYY-MM-DD.") from e


@dataclass(frozen=True)
class DateRange:
    """Inclusive day range. A missing bound is open."""

    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValidationError("Start date must be on or before end date.")

    @classmethod
    def of(cls, start: DateLike = None, end: DateLike = None) -> "DateRange":
        return cls(parse_day(start, name="start date"), parse_day(end, name="end date"))

    def start_iso(self) -> Optional[str]:
        if self.start is None:
            return None
        return to_iso(datetime.combine(self.start, time.min, tzinfo=timezone.utc))

    def end_iso(self) -> Optional[str]:
        if self.end is None:
            return None
        return to_iso(datetime.combine(self.end, time(23, 59, 59, 999000), tzinfo=timezone.utc))

    def contains(self, timestamp: str) -> bool:
        start, end = self.start_iso(), self.end_iso()
        if start is not None and timestamp < start:
            return False
        if end is not None and timestamp > end:
            return False
        return True

    def label(self) -> str:
        start = self.start.isoformat() if self.start else "beginning"
        end = self.end.isoformat() if self.end else "now"
        return f"{start}  ->  {end}"
