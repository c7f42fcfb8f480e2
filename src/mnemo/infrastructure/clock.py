"""System implementations of the Clock port."""

from datetime import datetime, timezone

from mnemo.domain.ports import Clock


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
