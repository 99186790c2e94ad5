"""
Time intervals for bookings.

Every instant is normalized once with ``to_utc`` before it is compared or
stored; intervals are half-open, so ``[10:00, 11:00)`` and ``[11:00, 12:00)``
can be booked back-to-back.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from fleetdesk.utils.exceptions import InvalidDateRangeException, ValidationException


def to_utc(value: datetime | str) -> datetime:
    """
    Normalize an instant to an aware UTC datetime.

    ISO-8601 strings are parsed (a trailing ``Z`` means UTC), naive values are
    taken to already be UTC, aware values are converted.
    """
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            raise ValidationException(f"Invalid timestamp: {value!r}")
    if not isinstance(value, datetime):
        raise ValidationException(f"Invalid timestamp: {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """True iff [start_a, end_a) and [start_b, end_b) share at least one instant."""
    return start_a < end_b and end_a > start_b


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end:   datetime

    def __post_init__(self):
        object.__setattr__(self, "start", to_utc(self.start))
        object.__setattr__(self, "end", to_utc(self.end))
        if self.end <= self.start:
            raise InvalidDateRangeException()

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return overlaps(self.start, self.end, to_utc(start), to_utc(end))

    def has_started(self, now: datetime) -> bool:
        return to_utc(now) >= self.start

    def has_elapsed(self, now: datetime) -> bool:
        return to_utc(now) >= self.end


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
