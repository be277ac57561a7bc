"""
Trajectory Plans
================

Planned maneuver nodes of each craft and the editor that applies fired
maneuver actions to them.
"""

import bisect
import logging
import numpy as np
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..core.config import AutoThrustParameters
from ..core.events import ManeuverFired
from .maneuver import (
    AddAutoThrust,
    AddNode,
    ManeuverAction,
    ManeuverNode,
    RemoveAutoThrust,
    RemoveNode,
)

logger = logging.getLogger(__name__)


class TrajectoryPlan:
    """
    Maneuver nodes of one craft, keyed and ordered by tick.

    At most one node per tick. A selection cursor follows the node being
    edited.
    """

    def __init__(self, craft_id: str):
        self.craft_id = craft_id
        self._nodes: Dict[int, ManeuverNode] = {}
        self._ticks: List[int] = []
        self._selected: Optional[int] = None

    def insert(self, tick: int, node: ManeuverNode):
        """Insert or replace the node at `tick`."""
        if tick not in self._nodes:
            bisect.insort(self._ticks, tick)
        self._nodes[tick] = node

    def select_or_insert(self, tick: int, default: ManeuverNode) -> ManeuverNode:
        """Select the node at `tick`, inserting `default` if there is none."""
        if tick not in self._nodes:
            self.insert(tick, default)
        self._selected = tick
        return self._nodes[tick]

    def select(self, tick: int) -> Optional[int]:
        """
        Select the node at `tick`.

        Returns:
            Index of the node in tick order, None if there is no such node
        """
        index = self.index_of_tick(tick)
        if index is not None:
            self._selected = tick
        return index

    def index_of_tick(self, tick: int) -> Optional[int]:
        i = bisect.bisect_left(self._ticks, tick)
        if i < len(self._ticks) and self._ticks[i] == tick:
            return i
        return None

    @property
    def selected_tick(self) -> Optional[int]:
        return self._selected

    def change_tick(self, tick: int, new_tick: int) -> bool:
        """Move the node at `tick` to `new_tick`, replacing any node there."""
        node = self.remove(tick)
        if node is None:
            return False
        self.insert(new_tick, node)
        if self._selected is None:
            self._selected = new_tick
        return True

    def remove(self, tick: int) -> Optional[ManeuverNode]:
        node = self._nodes.pop(tick, None)
        if node is not None:
            self._ticks.remove(tick)
            if self._selected == tick:
                self._selected = None
        return node

    def get(self, tick: int) -> Optional[ManeuverNode]:
        return self._nodes.get(tick)

    def pop_due(self, current_tick: int) -> List[Tuple[int, ManeuverNode]]:
        """Remove and return the nodes planned at or before `current_tick`, in tick order."""
        cut = bisect.bisect_right(self._ticks, current_tick)
        due_ticks = self._ticks[:cut]
        due = [(tick, self._nodes.pop(tick)) for tick in due_ticks]
        del self._ticks[:cut]
        if self._selected is not None and self._selected <= current_tick:
            self._selected = None
        return due

    def clear(self):
        self._nodes.clear()
        self._ticks.clear()
        self._selected = None

    def items(self) -> List[Tuple[int, ManeuverNode]]:
        return [(tick, self._nodes[tick]) for tick in self._ticks]

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._ticks))

    def __contains__(self, tick: int) -> bool:
        return tick in self._nodes

    def __len__(self) -> int:
        return len(self._ticks)


def auto_thrust_nodes(params: AutoThrustParameters,
                      rng: np.random.Generator = None) -> Tuple[ManeuverNode, ...]:
    """
    Random in-plane burns for the auto-thrust toggle.

    Args:
        params: Node count, thrust range and reference body
        rng: Random generator (default: fresh default_rng())

    Returns:
        Tuple of nodes named "auto_node"
    """
    rng = rng or np.random.default_rng()
    nodes = []
    for _ in range(params.node_count):
        x, y = rng.uniform(params.thrust_min, params.thrust_max, 2)
        nodes.append(ManeuverNode(name="auto_node", thrust=(x, y, 0.0), origin=params.origin))
    return tuple(nodes)


class TrajectoryEditor:
    """
    Applies fired maneuver actions to the trajectory plans of known craft.

    Actions for craft the editor does not know (never opened, or removed in
    the meantime) are dropped.
    """

    def __init__(self, on_change: Callable[[str], None] = None):
        """
        Args:
            on_change: Called with the craft id after its plan changes
        """
        self._plans: Dict[str, TrajectoryPlan] = {}
        self.on_change = on_change
        self.dropped_count = 0

    def open(self, craft_id: str) -> TrajectoryPlan:
        """Plan of a craft, created empty on first use."""
        plan = self._plans.get(craft_id)
        if plan is None:
            plan = self._plans[craft_id] = TrajectoryPlan(craft_id)
        return plan

    def close(self, craft_id: str) -> Optional[TrajectoryPlan]:
        return self._plans.pop(craft_id, None)

    def plan(self, craft_id: str) -> Optional[TrajectoryPlan]:
        return self._plans.get(craft_id)

    def clear(self):
        self._plans.clear()

    def apply(self, fired: ManeuverFired) -> bool:
        """
        Apply a fired action.

        Returns:
            True if a plan was updated
        """
        plan = self._plans.get(fired.craft_id)
        if plan is None:
            self.dropped_count += 1
            logger.debug("Dropping action for unknown craft %r", fired.craft_id)
            return False

        self._apply_action(plan, fired.action, fired.fired_tick)
        if self.on_change is not None:
            self.on_change(fired.craft_id)
        return True

    @staticmethod
    def _apply_action(plan: TrajectoryPlan, action: ManeuverAction, current_tick: int):
        if isinstance(action, AddNode):
            plan.insert(action.node_tick, action.node)
            plan.select(action.node_tick)
        elif isinstance(action, RemoveNode):
            plan.remove(action.node_tick)
        elif isinstance(action, AddAutoThrust):
            # Slots already behind the clock are skipped; existing nodes are kept
            for i, node in enumerate(action.nodes):
                tick = i * action.tick_interval
                if tick >= current_tick:
                    plan.select_or_insert(tick, node)
        elif isinstance(action, RemoveAutoThrust):
            for i in range(action.node_count):
                plan.remove(i * action.tick_interval)
        else:
            raise TypeError(f"Unknown maneuver action: {action!r}")
