"""
Planning Module
===============

Maneuver actions, their scheduler and per-craft trajectory plans.
"""

from .maneuver import (
    ManeuverNode,
    AddNode,
    RemoveNode,
    AddAutoThrust,
    RemoveAutoThrust,
)
from .scheduler import ManeuverScheduler
from .trajectory import TrajectoryPlan, TrajectoryEditor

__all__ = [
    'ManeuverNode',
    'AddNode',
    'RemoveNode',
    'AddAutoThrust',
    'RemoveAutoThrust',
    'ManeuverScheduler',
    'TrajectoryPlan',
    'TrajectoryEditor',
]
