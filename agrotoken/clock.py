"""
clock.py - Time sources for lot operations

Operations never read ambient time; they receive a Clock.

Classes:
- Clock: Protocol defining the time interface
- SystemClock: Wall-clock time (naive UTC)
- FixedClock: Manually advanced time for simulations and tests
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """
    Protocol for time sources.

    Implementations return naive UTC datetimes so that values compare
    cleanly with harvest times and ledger timestamps.
    """

    def now(self) -> datetime:
        """Return the current time."""
        ...


class SystemClock:
    """Clock backed by the host's wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def __repr__(self):
        return "SystemClock()"


class FixedClock:
    """
    Clock that only moves when told to.

    Time can only move forward, never backward.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Args:
            initial_time: Starting time (default: 1970-01-01)
        """
        self._current_time = initial_time or datetime(1970, 1, 1)

    def now(self) -> datetime:
        return self._current_time

    def advance_to(self, new_time: datetime) -> None:
        """
        Move the clock to new_time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by delta."""
        self.advance_to(self._current_time + delta)

    def __repr__(self):
        return f"FixedClock({self._current_time.isoformat()})"
