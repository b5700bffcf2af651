from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from precalc.config import settings


CAMPUS_TZ = ZoneInfo(settings.app_timezone or 'America/Denver')


class TimeProvider:
    """Single source of "now" for deadline math; tests substitute a frozen subclass."""

    def now(self) -> datetime:
        return datetime.now(CAMPUS_TZ)

    def today(self) -> date:
        return self.now().date()

    def wall_clock(self) -> datetime:
        # DateTime columns store naive campus-local timestamps.
        current = self.now()
        if current.tzinfo is not None:
            current = current.astimezone(CAMPUS_TZ)
        return current.replace(tzinfo=None)


default_time_provider = TimeProvider()
