"""
Simulation Core Module
======================

Core simulation components.
"""

from .config import SimulationConfig, AutoThrustParameters
from .identity import OrbitalObjID, ObjectKind, CraftRegistry
from .craft import Craft, CraftInfo, CraftMode, StateVector
from .events import EventBus
from .time_manager import SimulationTime
from .simulator import Simulator

__all__ = [
    'Simulator',
    'Craft',
    'CraftInfo',
    'CraftMode',
    'StateVector',
    'CraftRegistry',
    'OrbitalObjID',
    'ObjectKind',
    'EventBus',
    'SimulationTime',
    'SimulationConfig',
    'AutoThrustParameters',
]
