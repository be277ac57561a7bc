"""
Conic Simulation Framework
==========================

Patched-conic simulation of craft flying through a hierarchy of
gravitating bodies.

Components:
- Body catalog (bodies moving on Kepler orbits, dominance radii)
- Influence resolution (which bodies attract a craft, which one dominates)
- Orbital elements solver (state vector <-> classical elements)
- Orbit transitions (free propagation <-> analytic orbit)
- Maneuver scheduling and trajectory plans
"""

__version__ = "1.0.0"

from conicsim.core.simulator import Simulator
from conicsim.core.craft import Craft, CraftInfo
from conicsim.core.time_manager import SimulationTime
from conicsim.environment.catalog import BodyCatalog, default_catalog

__all__ = [
    'Simulator',
    'Craft',
    'CraftInfo',
    'SimulationTime',
    'BodyCatalog',
    'default_catalog',
]
