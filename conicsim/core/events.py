"""
Simulation Events
=================

Events published by the simulation core for UI and editor collaborators.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from ..dynamics.elements import OrbitalElements
    from ..planning.maneuver import ManeuverAction, ManeuverNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CraftCreated:
    craft_id: str
    tick: int


@dataclass(frozen=True)
class CraftRemoved:
    craft_id: str
    tick: int


@dataclass(frozen=True)
class CraftEnteredOrbit:
    craft_id: str
    host: str
    elements: 'OrbitalElements'
    tick: int


@dataclass(frozen=True)
class CraftRevertedToEdit:
    craft_id: str
    former_host: Optional[str]
    tick: int


@dataclass(frozen=True)
class ManeuverScheduled:
    craft_id: str
    tick: int
    action: 'ManeuverAction'
    schedule_id: int


@dataclass(frozen=True)
class ManeuverFired:
    """A scheduled action released by the clock."""
    craft_id: str
    action: 'ManeuverAction'
    scheduled_tick: int
    fired_tick: int
    schedule_id: int = 0


@dataclass(frozen=True)
class ManeuverExecuted:
    """A planned node burned on a craft."""
    craft_id: str
    node: 'ManeuverNode'
    tick: int


SimulationEvent = Union[
    CraftCreated,
    CraftRemoved,
    CraftEnteredOrbit,
    CraftRevertedToEdit,
    ManeuverScheduled,
    ManeuverFired,
    ManeuverExecuted,
]

EVENT_TYPES = (
    CraftCreated,
    CraftRemoved,
    CraftEnteredOrbit,
    CraftRevertedToEdit,
    ManeuverScheduled,
    ManeuverFired,
    ManeuverExecuted,
)


class EventBus:
    """
    Synchronous publish/subscribe dispatch.

    Subscribers run in subscription order on the publishing thread. A failing
    subscriber is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._subscribers: Dict[Type, List[Callable]] = {}
        self._catch_all: List[Callable] = []
        self.published_count = 0

    def subscribe(self, event_type: Type, callback: Callable):
        """Register callback for one event type."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type!r}")
        self._subscribers.setdefault(event_type, []).append(callback)

    def subscribe_all(self, callback: Callable):
        """Register callback for every event."""
        self._catch_all.append(callback)

    def publish(self, event: 'SimulationEvent'):
        if not isinstance(event, EVENT_TYPES):
            raise TypeError(f"Not a simulation event: {event!r}")

        self.published_count += 1
        for cb in self._subscribers.get(type(event), []) + self._catch_all:
            try:
                cb(event)
            except Exception:
                logger.exception("Subscriber %r failed on %s", cb, type(event).__name__)

    def clear(self):
        self._subscribers.clear()
        self._catch_all.clear()
