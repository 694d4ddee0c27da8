"""
EcoTrack Clock - freezable source of "now" and "today"

Streak and period evaluation depend on the current calendar date. Every
component asks this clock instead of calling ``datetime.now`` directly so
that tests and replays can pin time.

Example:
    >>> from datetime import datetime, timezone
    >>> with Clock.frozen(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)):
    ...     Clock.today()
    datetime.date(2025, 3, 10)
"""

import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone, tzinfo
from typing import Iterator, Optional


class Clock:
    """
    Process-wide clock that can be frozen for testing.

    Frozen times without tzinfo are taken to be UTC.
    """

    _lock = threading.Lock()
    _frozen_time: Optional[datetime] = None

    @classmethod
    def now(cls, tz: Optional[tzinfo] = None) -> datetime:
        """
        Get current time, either real or frozen, as an aware datetime.

        Args:
            tz: Timezone to express the result in (defaults to UTC)
        """
        tz = tz or timezone.utc
        frozen = cls._frozen_time
        if frozen is not None:
            return frozen.astimezone(tz)
        return datetime.now(tz).replace(microsecond=0)

    @classmethod
    def today(cls, tz: Optional[tzinfo] = None) -> date:
        """Current calendar date in ``tz`` (defaults to UTC)."""
        return cls.now(tz).date()

    @classmethod
    def freeze(cls, frozen_time: Optional[datetime] = None) -> None:
        """
        Freeze clock at specific time.

        Args:
            frozen_time: Time to freeze at (defaults to current time)
        """
        if frozen_time is None:
            frozen_time = datetime.now(timezone.utc).replace(microsecond=0)
        elif frozen_time.tzinfo is None:
            frozen_time = frozen_time.replace(tzinfo=timezone.utc)
        with cls._lock:
            cls._frozen_time = frozen_time

    @classmethod
    def unfreeze(cls) -> None:
        """Unfreeze the clock."""
        with cls._lock:
            cls._frozen_time = None

    @classmethod
    @contextmanager
    def frozen(cls, frozen_time: Optional[datetime] = None) -> Iterator[None]:
        """
        Context manager for temporarily freezing time.

        Usage:
            with Clock.frozen(datetime(2025, 1, 1)):
                # Clock.today() is 2025-01-01
                pass
        """
        cls.freeze(frozen_time)
        try:
            yield
        finally:
            cls.unfreeze()


def as_aware(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach UTC to naive datetimes and express the result in ``tz``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz or timezone.utc)


__all__ = ["Clock", "as_aware"]
