# app/utils/clock.py
"""
Authoritative server clock.
All persisted timestamps are naive wall-clock datetimes in the event timezone,
so they compare directly against rule times authored as "09:00" on a date.
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo


class EventClock:
    """Server-side source of "now" for every state transition."""

    def __init__(self, timezone: str):
        self.timezone = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.timezone).replace(tzinfo=None, microsecond=0)

    def to_local(self, value: datetime) -> datetime:
        """Convert an aware datetime to naive event-local time. Naive values pass through."""
        if value.tzinfo is None:
            return value
        return value.astimezone(self.timezone).replace(tzinfo=None)


class FixedClock(EventClock):
    """Clock pinned to a given instant. Used by scripts and tests to replay scans."""

    def __init__(self, instant: datetime, timezone: str = "UTC"):
        super().__init__(timezone)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, **delta) -> datetime:
        self.instant = self.instant + timedelta(**delta)
        return self.instant
