"""
Maneuver Scheduler
==================

Per-craft queues of maneuver actions released against the simulation clock.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..core.events import ManeuverFired
from ..core.identity import validate_id
from .maneuver import ManeuverAction, describe

logger = logging.getLogger(__name__)


@dataclass
class ScheduledAction:
    """Schedule entry."""
    tick: int
    action: ManeuverAction
    schedule_id: int


class ShipSchedule:
    """
    Pending actions of one craft.

    Entries are kept in insertion order; ticks need not be unique. Appends
    and drains are serialized by the schedule's lock, so an editor appending
    while the clock drains cannot lose or duplicate an entry.
    """

    def __init__(self, craft_id: str):
        self.craft_id = craft_id
        self._entries: List[ScheduledAction] = []
        self._lock = threading.Lock()

    def append(self, entry: ScheduledAction):
        with self._lock:
            self._entries.append(entry)

    def drain(self, current_tick: int) -> List[ScheduledAction]:
        """
        Remove and return every entry due at or before `current_tick`.

        Each entry is returned by exactly one drain.
        """
        due = []
        with self._lock:
            i = 0
            while i < len(self._entries):
                if self._entries[i].tick <= current_tick:
                    # Removal shifts the next entry into slot i
                    due.append(self._entries.pop(i))
                else:
                    i += 1
        return due

    def cancel(self, schedule_id: int) -> bool:
        with self._lock:
            for i, entry in enumerate(self._entries):
                if entry.schedule_id == schedule_id:
                    self._entries.pop(i)
                    return True
        return False

    def pending(self) -> List[ScheduledAction]:
        with self._lock:
            return sorted(self._entries, key=lambda e: (e.tick, e.schedule_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ManeuverScheduler:
    """
    Maneuver scheduler for tick-based action release.

    Supports:
    - Scheduling at any tick, including past ones (released on the next scan)
    - Cancellation by schedule id
    - Fire callbacks

    Emission is fire-and-forget: the scheduler neither retries nor reorders
    when a consumer rejects an action.
    """

    def __init__(self):
        self._schedules: Dict[str, ShipSchedule] = {}
        self._schedule_id_counter = 0
        self._lock = threading.Lock()

        self._fired_count = 0
        self._cancelled_count = 0

        # Callbacks
        self._on_fire: List[Callable[[ManeuverFired], None]] = []

    def schedule(self, craft_id: str, tick: int, action: ManeuverAction) -> int:
        """
        Schedule an action for a craft.

        Args:
            craft_id: Target craft
            tick: Tick at which the action is released
            action: Action payload

        Returns:
            Schedule ID
        """
        validate_id(craft_id)
        if tick < 0:
            raise ValueError(f"Tick must be non-negative, got {tick}")

        entry = ScheduledAction(tick=tick, action=action, schedule_id=self._get_next_id())
        self._schedule_for(craft_id).append(entry)
        logger.debug("Scheduled %s for %r at tick %d (id %d)",
                     describe(action), craft_id, tick, entry.schedule_id)
        return entry.schedule_id

    def _schedule_for(self, craft_id: str) -> ShipSchedule:
        with self._lock:
            schedule = self._schedules.get(craft_id)
            if schedule is None:
                schedule = self._schedules[craft_id] = ShipSchedule(craft_id)
            return schedule

    def _get_next_id(self) -> int:
        with self._lock:
            self._schedule_id_counter += 1
            return self._schedule_id_counter

    def cancel(self, schedule_id: int) -> bool:
        """
        Cancel a scheduled action.

        Returns:
            True if found and cancelled
        """
        with self._lock:
            schedules = list(self._schedules.values())
        for schedule in schedules:
            if schedule.cancel(schedule_id):
                self._cancelled_count += 1
                return True
        return False

    def remove_craft(self, craft_id: str) -> int:
        """
        Drop a craft's schedule.

        Returns:
            Number of pending actions discarded
        """
        with self._lock:
            schedule = self._schedules.pop(craft_id, None)
        return len(schedule) if schedule is not None else 0

    def clear(self):
        with self._lock:
            self._schedules.clear()

    def process_craft(self, craft_id: str, current_tick: int) -> List[ManeuverFired]:
        """Release the due actions of one craft."""
        with self._lock:
            schedule = self._schedules.get(craft_id)
        if schedule is None:
            return []

        fired = [
            ManeuverFired(
                craft_id=craft_id,
                action=entry.action,
                scheduled_tick=entry.tick,
                fired_tick=current_tick,
                schedule_id=entry.schedule_id,
            )
            for entry in schedule.drain(current_tick)
        ]
        for event in fired:
            self._notify(event)
        return fired

    def process(self, current_tick: int) -> List[ManeuverFired]:
        """
        Release every due action of every craft.

        Args:
            current_tick: Tick the clock just reached

        Returns:
            One ManeuverFired per released entry
        """
        with self._lock:
            craft_ids = list(self._schedules)

        results = []
        for craft_id in craft_ids:
            results.extend(self.process_craft(craft_id, current_tick))

        if results:
            logger.debug("Tick %d: released %d maneuver actions", current_tick, len(results))
        return results

    def _notify(self, event: ManeuverFired):
        self._fired_count += 1
        for cb in self._on_fire:
            try:
                cb(event)
            except Exception:
                logger.exception("Fire callback failed for %r (schedule id %d)",
                                 event.craft_id, event.schedule_id)

    def on_fire(self, callback: Callable[[ManeuverFired], None]):
        """Register fire callback."""
        self._on_fire.append(callback)

    def pending(self, craft_id: str) -> List[ScheduledAction]:
        """Pending entries of one craft, by tick."""
        with self._lock:
            schedule = self._schedules.get(craft_id)
        return schedule.pending() if schedule is not None else []

    def next_tick(self, craft_id: str) -> Optional[int]:
        """Earliest pending tick of a craft."""
        entries = self.pending(craft_id)
        return entries[0].tick if entries else None

    def get_statistics(self) -> Dict:
        """Get scheduler statistics."""
        with self._lock:
            schedules = list(self._schedules.values())
        return {
            'crafts': len(schedules),
            'pending_actions': sum(len(s) for s in schedules),
            'fired_actions': self._fired_count,
            'cancelled_actions': self._cancelled_count,
        }
