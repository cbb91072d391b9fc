"""
Midnight rebuild scheduler.

Arms one single-shot timer for the next midnight in the reference
timezone; when it fires the playlist is rebuilt and the timer is armed
again for the midnight after. This is a chain of one-shots on purpose: a
fixed 24 h interval drifts across DST changes (23 h and 25 h days).
"""
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz

from core.constants.timing import MIDNIGHT_GRACE_MS, MIDNIGHT_MIN_DELAY_MS
from core.logging.logger import get_logger
from core.logging.tags import TAG_SCHEDULE
from engine.day_key import utc_now
from engine.slide_timers import QtScheduler, TimerHandle, cancel

logger = get_logger(__name__)


def next_midnight(now: datetime, tz) -> datetime:
    """The next 00:00 wall-clock instant in ``tz`` strictly after ``now``.

    Naive ``now`` is taken as UTC.
    """
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    local = now.astimezone(tz)
    tomorrow = local.date() + timedelta(days=1)
    # is_dst=False picks standard time if midnight itself is ambiguous.
    return tz.normalize(tz.localize(datetime.combine(tomorrow, datetime.min.time()), is_dst=False))


def delay_until_next_midnight(now: datetime, tz,
                              floor_ms: int = MIDNIGHT_MIN_DELAY_MS,
                              grace_ms: int = MIDNIGHT_GRACE_MS) -> int:
    """
    Milliseconds from ``now`` until just past the next midnight in ``tz``.

    Args:
        now: Current instant (aware, or naive UTC)
        tz: pytz timezone
        floor_ms: Lower bound on the result
        grace_ms: Added so the rebuild lands after the day-key rollover

    Returns:
        Delay in ms, never below ``floor_ms``
    """
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    delta = next_midnight(now, tz) - now
    delay = int(delta.total_seconds() * 1000) + int(grace_ms)
    return max(int(floor_ms), delay)


class MidnightScheduler:
    """Calls ``on_midnight`` shortly after every midnight in ``tz``."""

    def __init__(self, on_midnight: Callable[[], None], tz,
                 scheduler=None,
                 clock: Optional[Callable[[], datetime]] = None,
                 floor_ms: int = MIDNIGHT_MIN_DELAY_MS,
                 grace_ms: int = MIDNIGHT_GRACE_MS):
        """
        Args:
            on_midnight: Rebuild callback
            tz: pytz timezone or zone name
            scheduler: Single-shot timer factory (QtScheduler by default)
            clock: Returns the current instant; defaults to aware UTC now
            floor_ms: Minimum delay
            grace_ms: Delay past midnight
        """
        self._on_midnight = on_midnight
        self._tz = pytz.timezone(tz) if isinstance(tz, str) else tz
        self._scheduler = scheduler or QtScheduler()
        self._clock = clock or utc_now
        self._floor_ms = int(floor_ms)
        self._grace_ms = int(grace_ms)
        self._timer: Optional[TimerHandle] = None

    @property
    def is_armed(self) -> bool:
        return self._timer is not None and self._timer.is_active()

    def start(self) -> None:
        """Arm the timer for the next midnight, replacing any pending one."""
        self.stop()
        now = self._clock()
        delay = delay_until_next_midnight(now, self._tz, self._floor_ms, self._grace_ms)
        self._timer = self._scheduler.call_later(delay, self._fire, name="midnight")
        logger.info(f"{TAG_SCHEDULE} Next rebuild in %.1f min (%s)",
                    delay / 60000.0, next_midnight(now, self._tz).isoformat())

    def stop(self) -> None:
        cancel(self._timer)
        self._timer = None

    def _fire(self) -> None:
        self._timer = None
        logger.info(f"{TAG_SCHEDULE} Midnight reached, rebuilding playlist")
        try:
            self._on_midnight()
        except Exception:
            logger.exception(f"{TAG_SCHEDULE} Midnight rebuild raised")
        finally:
            self.start()
