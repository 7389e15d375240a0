"""
events.py - Notifications for external observers

Events are just data, handlers are just functions. Nothing here is read back
by the lot registry or the distribution engine.

Core concepts:
1. Event dataclasses: LotInitialized, RevenueDistributed, DistributionIncomplete
2. EventNotifier: Protocol for anything that accepts events
3. EventLog: In-memory notifier that records events and fans them out to
   handler functions registered per event name
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Protocol, Tuple, Type, TypeVar, Union, runtime_checkable


# ============================================================================
# EVENT DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class LotInitialized:
    """Emitted once when a lot is registered."""
    name: str
    owner: str
    yield_estimate: int
    harvest_time: datetime


@dataclass(frozen=True, slots=True)
class RevenueDistributed:
    """Emitted once after every holder transfer of a distribution succeeded."""
    lot: str
    total_revenue: int
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class DistributionIncomplete:
    """
    Emitted when a sequential distribution stops at a failed transfer.

    Attributes:
        lot: Address of the lot
        total_revenue: Revenue the distribution was meant to pay out
        paid: Number of holders whose transfer was applied
        remaining: Number of holders not paid (the failed one included)
        error: Message of the ledger error that stopped the run
        timestamp: When the failure was observed
    """
    lot: str
    total_revenue: int
    paid: int
    remaining: int
    error: str
    timestamp: datetime


LotEvent = Union[LotInitialized, RevenueDistributed, DistributionIncomplete]

E = TypeVar("E")

# Handler type: event -> None
EventHandler = Callable[[LotEvent], None]


# ============================================================================
# NOTIFIERS
# ============================================================================

@runtime_checkable
class EventNotifier(Protocol):
    """Anything that accepts lot events."""

    def emit(self, event: LotEvent) -> None:
        ...


class EventLog:
    """
    Minimal in-memory notifier.

    Design:
    - Every emitted event is appended to `events` in emission order
    - Handlers are plain functions registered per event name
      ("LotInitialized", "RevenueDistributed", "DistributionIncomplete")
    - A handler that raises propagates to the emitting operation
    """

    def __init__(self, verbose: bool = False):
        self.events: List[LotEvent] = []
        self.verbose = verbose
        self._handlers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """
        Register a handler for an event name.

        Raises:
            ValueError: If event_name is not a known event
        """
        if event_name not in EVENT_TYPES:
            raise ValueError(f"Unknown event '{event_name}'")
        self._handlers.setdefault(event_name, []).append(handler)

    def emit(self, event: LotEvent) -> None:
        self.events.append(event)
        if self.verbose:
            print(f"📣 {event!r}")
        for handler in self._handlers.get(type(event).__name__, ()):
            handler(event)

    def of_type(self, event_type: Type[E]) -> Tuple[E, ...]:
        """Return recorded events of one type, in emission order."""
        return tuple(e for e in self.events if isinstance(e, event_type))

    def clear(self) -> None:
        """Drop recorded events; handlers stay registered."""
        self.events.clear()

    def __len__(self) -> int:
        return len(self.events)

    def __repr__(self):
        return f"EventLog({len(self.events)} events)"


class NullNotifier:
    """Notifier that discards every event."""

    def emit(self, event: LotEvent) -> None:
        pass


EVENT_TYPES: Dict[str, type] = {
    "LotInitialized": LotInitialized,
    "RevenueDistributed": RevenueDistributed,
    "DistributionIncomplete": DistributionIncomplete,
}
