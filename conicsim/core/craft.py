"""
Craft State and Model
=====================

Mobile craft: state vectors, mode (propagated or orbiting) and the
fields that come with each mode.
"""

import threading
import numpy as np
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, TYPE_CHECKING

from .identity import OrbitalObjID, validate_id

if TYPE_CHECKING:
    from ..dynamics.elements import OrbitalElements
    from ..environment.influence import InfluenceSet


@dataclass
class StateVector:
    """Position [km] and velocity [km/day] in the inertial frame."""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float).copy()
        self.velocity = np.asarray(self.velocity, dtype=float).copy()

    def relative_to(self, position: np.ndarray, velocity: np.ndarray) -> 'StateVector':
        """State relative to a moving reference point."""
        return StateVector(self.position - position, self.velocity - velocity)


@dataclass
class CraftInfo:
    """Creation request for a craft."""
    id: str
    spawn_position: np.ndarray
    spawn_velocity: np.ndarray
    mass: float = 1000.0  # kg

    def __post_init__(self):
        validate_id(self.id)
        self.spawn_position = np.asarray(self.spawn_position, dtype=float)
        self.spawn_velocity = np.asarray(self.spawn_velocity, dtype=float)
        if self.mass <= 0:
            raise ValueError(f"Craft mass must be positive, got {self.mass}")


class CraftMode(IntEnum):
    """Motion model currently governing a craft."""
    PROPAGATED = 0  # numerically integrated under summed gravity
    ORBITING = 1  # on a closed analytic orbit around a host


class Craft:
    """
    A craft moving under gravity.

    While PROPAGATED the craft carries an influence set and an acceleration;
    while ORBITING it carries orbital elements and a host body. The two groups
    of fields are only ever swapped together through enter_orbit() and
    leave_orbit().
    """

    def __init__(self, info: CraftInfo):
        self.info = info
        self.mass = info.mass
        self.state = StateVector(info.spawn_position, info.spawn_velocity)

        # PROPAGATED fields
        self.influence: Optional['InfluenceSet'] = None
        self.acceleration: Optional[np.ndarray] = None

        # ORBITING fields
        self.elements: Optional['OrbitalElements'] = None
        self.host: Optional[str] = None

        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Held across a mode switch so no reader sees a half-switched craft."""
        return self._lock

    @property
    def craft_id(self) -> str:
        return self.info.id

    @property
    def object_id(self) -> OrbitalObjID:
        return OrbitalObjID.ship(self.info.id)

    @property
    def mode(self) -> CraftMode:
        return CraftMode.ORBITING if self.elements is not None else CraftMode.PROPAGATED

    @property
    def is_orbiting(self) -> bool:
        return self.mode == CraftMode.ORBITING

    def start_propagation(self, influence: 'InfluenceSet', acceleration: np.ndarray):
        """Set the influence set and acceleration of a propagated craft."""
        with self._lock:
            self.influence = influence
            self.acceleration = np.asarray(acceleration, dtype=float)

    def enter_orbit(self, elements: 'OrbitalElements', host: str):
        """Switch to ORBITING: attach elements and host, drop propagation fields."""
        with self._lock:
            self.elements = elements
            self.host = host
            self.influence = None
            self.acceleration = None

    def leave_orbit(self, influence: 'InfluenceSet', acceleration: np.ndarray):
        """Switch to PROPAGATED: drop elements and host, set propagation fields."""
        with self._lock:
            self.elements = None
            self.host = None
            self.influence = influence
            self.acceleration = np.asarray(acceleration, dtype=float)

    def apply_delta_v(self, delta_v: np.ndarray):
        """Impulsive velocity change [km/day]."""
        with self._lock:
            self.state.velocity = self.state.velocity + np.asarray(delta_v, dtype=float)

    def __repr__(self) -> str:
        where = f"host={self.host!r}" if self.is_orbiting else (
            f"main={self.influence.main_influencer!r}" if self.influence else "unresolved")
        return f"Craft({self.craft_id!r}, {self.mode.name}, {where})"
