"""
Time source attributed to the configured time zone
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


class Clock:
    """Produces timezone aware timestamps and day boundaries"""

    def __init__(self, tz_name: str = "Australia/Melbourne"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, value: datetime) -> datetime:
        """Interpret a stored timestamp in the configured zone.

        Naive values come back from stores without time zone support
        and were written as local wall time.
        """
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def today_bounds(self) -> Tuple[datetime, datetime]:
        """Start of today and start of tomorrow"""
        now = self.now()
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
        return start_of_today, start_of_tomorrow

    def next_occurrence(self, hour: int, after: Optional[datetime] = None) -> datetime:
        """Next local time at `hour`:00 strictly after `after`"""
        after = after or self.now()
        candidate = after.replace(hour=hour, minute=0, second=0, microsecond=0)
        if candidate <= after:
            candidate = (after + timedelta(days=1)).replace(hour=hour, minute=0, second=0, microsecond=0)
        return candidate

    @staticmethod
    def epoch() -> datetime:
        return datetime.fromtimestamp(0, tz=timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant, for scripts and tests"""

    def __init__(self, instant: datetime, tz_name: str = "Australia/Melbourne"):
        super().__init__(tz_name)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant.astimezone(self.tz)

    def advance(self, **kwargs) -> None:
        self.instant = self.instant + timedelta(**kwargs)
