"""
Maneuver Actions
================

Maneuver nodes and the closed set of actions that can be scheduled against
a craft's trajectory.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Tuple, Union


@dataclass(frozen=True)
class ManeuverNode:
    """Impulsive burn authored in the editor."""
    name: str
    thrust: Tuple[float, float, float]  # Δv [km/day]
    origin: str  # reference body when the node was authored

    def __post_init__(self):
        thrust = tuple(float(x) for x in np.asarray(self.thrust, dtype=float).ravel())
        if len(thrust) != 3:
            raise ValueError(f"Thrust must be a 3-vector, got {self.thrust!r}")
        object.__setattr__(self, 'thrust', thrust)

    @property
    def delta_v(self) -> np.ndarray:
        return np.array(self.thrust)

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.thrust))


@dataclass(frozen=True)
class AddNode:
    """Commit `node` to the trajectory at `node_tick`."""
    node: ManeuverNode
    node_tick: int


@dataclass(frozen=True)
class RemoveNode:
    """Drop the node planned at `node_tick`."""
    node_tick: int


@dataclass(frozen=True)
class AddAutoThrust:
    """Commit a series of nodes spaced `tick_interval` ticks apart on a grid from tick 0."""
    nodes: Tuple[ManeuverNode, ...] = field(default_factory=tuple)
    tick_interval: int = 25


@dataclass(frozen=True)
class RemoveAutoThrust:
    """Drop the nodes an AddAutoThrust with the same spacing planted."""
    tick_interval: int = 25
    node_count: int = 10


ManeuverAction = Union[AddNode, RemoveNode, AddAutoThrust, RemoveAutoThrust]

ACTION_TYPES = (AddNode, RemoveNode, AddAutoThrust, RemoveAutoThrust)


def describe(action: ManeuverAction) -> str:
    """One-line description for logs and telemetry."""
    if isinstance(action, AddNode):
        return f"add node {action.node.name!r} at tick {action.node_tick}"
    elif isinstance(action, RemoveNode):
        return f"remove node at tick {action.node_tick}"
    elif isinstance(action, AddAutoThrust):
        return f"add {len(action.nodes)} auto-thrust nodes every {action.tick_interval} ticks"
    elif isinstance(action, RemoveAutoThrust):
        return f"remove {action.node_count} auto-thrust nodes every {action.tick_interval} ticks"
    raise TypeError(f"Unknown maneuver action: {action!r}")
