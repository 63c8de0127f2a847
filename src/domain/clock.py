"""Wall clock implementation of the Clock port."""

from datetime import datetime, timezone


class SystemClock:
    """Implements Clock protocol with the system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
