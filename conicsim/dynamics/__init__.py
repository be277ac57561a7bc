"""
Dynamics Module
===============

Orbital elements, free propagation and orbit transitions.
"""

from .elements import (
    OrbitalElements,
    DegenerateGeometryError,
    UnboundOrbitError,
    solve_elements,
    state_from_elements,
)
from .integrators import LeapfrogIntegrator
from .transitions import OrbitTransitions

__all__ = [
    'OrbitalElements',
    'DegenerateGeometryError',
    'UnboundOrbitError',
    'solve_elements',
    'state_from_elements',
    'LeapfrogIntegrator',
    'OrbitTransitions',
]
