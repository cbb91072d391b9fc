"""
Day-of-week key in a fixed reference timezone.

The key decides which day-specific slides are eligible. It is computed in
the venue's timezone, not the host's, so a player whose OS clock is set to
UTC (common on kiosk images) still switches content at the venue's midnight.
"""
from datetime import datetime
from typing import Callable, Optional

import pytz

from sources.candidates import DAY_KEYS

DEFAULT_TIMEZONE = "America/Toronto"


def utc_now() -> datetime:
    """Aware UTC now."""
    return datetime.now(pytz.utc)


class DayKeySelector:
    """Maps an instant to one of ``DAY_KEYS`` in a fixed timezone."""

    def __init__(self, timezone_name: str = DEFAULT_TIMEZONE,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            timezone_name: pytz zone name for the venue
            clock: Returns the current instant; defaults to aware UTC now

        Raises:
            pytz.UnknownTimeZoneError: If the zone name is not known to pytz
        """
        self._tz = pytz.timezone(timezone_name)
        self._clock = clock or utc_now

    @property
    def timezone(self):
        return self._tz

    def now(self) -> datetime:
        """Current instant in the reference timezone."""
        return self.localize(self._clock())

    def localize(self, instant: datetime) -> datetime:
        # Naive instants are UTC.
        if instant.tzinfo is None:
            instant = pytz.utc.localize(instant)
        return instant.astimezone(self._tz)

    def key_for(self, instant: datetime) -> str:
        """Day key for ``instant`` as seen in the reference timezone."""
        return DAY_KEYS[self.localize(instant).weekday()]

    def current_key(self) -> str:
        """Day key for now. Clock errors propagate to the caller."""
        return self.key_for(self._clock())
