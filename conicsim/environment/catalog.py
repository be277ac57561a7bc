"""
Body Catalog
============

Gravitating bodies, their dominance (Hill sphere) radii, and their motion
along the orbits listed in the catalog.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.config import G
from ..core.identity import validate_id
from ..dynamics.elements import OrbitalElements, TWO_PI, state_from_elements

logger = logging.getLogger(__name__)


class BodyType(IntEnum):
    """Celestial body classification."""
    STAR = 0
    PLANET = 1
    DWARF_PLANET = 2
    MOON = 3


@dataclass
class BodyRecord:
    """Static catalog entry. Angles in degrees, periods in days (rotation in hours)."""
    id: str
    name: str
    body_type: BodyType
    host: Optional[str]
    semimajor_axis: float  # km
    eccentricity: float
    inclination: float
    long_asc_node: float
    arg_periapsis: float
    initial_mean_anomaly: float
    periapsis: float  # km
    apoapsis: float  # km
    revolution_period: float  # days
    rotation_period: float  # hours
    radius: float  # km
    mass: float  # kg

    def orbital_elements(self) -> OrbitalElements:
        """Analytic orbit of the body around its host."""
        return OrbitalElements(
            eccentricity=self.eccentricity,
            semimajor_axis=self.semimajor_axis,
            inclination=np.radians(self.inclination),
            long_asc_node=np.radians(self.long_asc_node),
            arg_periapsis=np.radians(self.arg_periapsis),
            initial_mean_anomaly=np.radians(self.initial_mean_anomaly) % TWO_PI,
            revolution_period=self.revolution_period,
        )


def dominance_radius(record: BodyRecord, host_mass: Optional[float]) -> float:
    """
    Sphere-of-influence radius of a body.

    Hill radius evaluated at periapsis, never smaller than the body itself:
        r = a (1 - e) (m / (3 (M + m)))^(1/3)

    Args:
        record: Catalog entry of the body
        host_mass: Mass of the body's host, None for the primary

    Returns:
        Radius in km (infinite for the primary body)
    """
    if record.host is None or host_mass is None:
        return float('inf')

    m = record.mass
    hill = (record.semimajor_axis
            * (1.0 - record.eccentricity)
            * (m / (3.0 * (host_mass + m))) ** (1.0 / 3.0))
    return max(hill, record.radius)


@dataclass
class Body:
    """A gravitating body at the current tick."""
    record: BodyRecord
    dominance_radius: float
    elements: Optional[OrbitalElements] = None
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def mass(self) -> float:
        return self.record.mass

    @property
    def mu(self) -> float:
        """Gravitational parameter [km³/day²]."""
        return G * self.record.mass

    @property
    def host(self) -> Optional[str]:
        return self.record.host

    def contains(self, position: np.ndarray) -> bool:
        """True if `position` lies inside the body's dominance sphere."""
        if np.isinf(self.dominance_radius):
            return True
        return np.linalg.norm(np.asarray(position) - self.position) <= self.dominance_radius


class BodyCatalog:
    """
    Body id -> Body lookup table.

    Built once when a scenario loads; dominance radii are fixed from then on.
    Bodies are stored parents first so that a single pass places every body
    after its host.
    """

    def __init__(self, bodies: Iterable[Body], primary: str):
        self._bodies: Dict[str, Body] = {b.id: b for b in bodies}
        self.primary = primary

    @classmethod
    def from_records(cls, records: Iterable[BodyRecord]) -> 'BodyCatalog':
        """
        Build a catalog from static records.

        Raises:
            ValueError: no primary, several primaries, duplicate id or unknown host
        """
        by_id: Dict[str, BodyRecord] = {}
        for record in records:
            validate_id(record.id)
            if record.id in by_id:
                raise ValueError(f"Duplicate body id: {record.id!r}")
            by_id[record.id] = record

        primaries = [r.id for r in by_id.values() if r.host is None]
        if len(primaries) != 1:
            raise ValueError(f"Catalog needs exactly one primary body, got {primaries}")

        for record in by_id.values():
            if record.host is not None and record.host not in by_id:
                raise ValueError(f"Body {record.id!r} orbits unknown host {record.host!r}")

        # Parents first
        ordered: List[BodyRecord] = []
        placed = set()
        pending = list(by_id.values())
        while pending:
            ready = [r for r in pending if r.host is None or r.host in placed]
            if not ready:
                raise ValueError("Cycle in catalog host relations")
            for record in ready:
                ordered.append(record)
                placed.add(record.id)
            pending = [r for r in pending if r.id not in placed]

        bodies = []
        for record in ordered:
            host_mass = by_id[record.host].mass if record.host is not None else None
            bodies.append(Body(
                record=record,
                dominance_radius=dominance_radius(record, host_mass),
                elements=record.orbital_elements() if record.host is not None else None,
            ))

        catalog = cls(bodies, primaries[0])
        catalog.update(0.0)
        logger.debug("Catalog loaded: %d bodies, primary %r", len(catalog), catalog.primary)
        return catalog

    def update(self, elapsed_days: float):
        """
        Move every body along its catalog orbit.

        Args:
            elapsed_days: Simulation time since the catalog epoch
        """
        for body in self._bodies.values():
            if body.host is None:
                body.position = np.zeros(3)
                body.velocity = np.zeros(3)
                continue

            host = self._bodies[body.host]
            mu = G * (host.mass + body.mass)
            body.elements.advance(elapsed_days)
            r, v = state_from_elements(body.elements, mu)
            body.position = host.position + r
            body.velocity = host.velocity + v

    def get(self, body_id: str) -> Optional[Body]:
        body = self._bodies.get(body_id)
        if body is None:
            logger.debug("Unknown body %r", body_id)
        return body

    def __getitem__(self, body_id: str) -> Body:
        return self._bodies[body_id]

    def __contains__(self, body_id: str) -> bool:
        return body_id in self._bodies

    def __iter__(self):
        return iter(self._bodies.values())

    def __len__(self) -> int:
        return len(self._bodies)

    @property
    def primary_body(self) -> Body:
        return self._bodies[self.primary]

    def host_chain(self, body_id: str) -> List[str]:
        """Ids from the body up to the primary, inclusive."""
        chain = []
        current = body_id
        while current is not None:
            chain.append(current)
            current = self._bodies[current].host
        return chain

    def is_ancestor(self, ancestor: str, body_id: str) -> bool:
        """True if `ancestor` is a strict ancestor of `body_id` in the host tree."""
        return ancestor != body_id and ancestor in self.host_chain(body_id)

    def satellites_of(self, body_id: str) -> List[str]:
        """Bodies listed in the catalog as orbiting `body_id`."""
        return [b.id for b in self._bodies.values() if b.host == body_id]

    def influencer_pairs(self, body_ids: Iterable[str]) -> List[Tuple[np.ndarray, float]]:
        """(position, mass) of each body, as consumed by acceleration_of."""
        return [(self._bodies[b].position, self._bodies[b].mass)
                for b in body_ids if b in self._bodies]


def default_records() -> List[BodyRecord]:
    """Sun, Earth, Moon and Mars at the J2000 epoch."""
    return [
        BodyRecord(
            id="soleil", name="Sun", body_type=BodyType.STAR, host=None,
            semimajor_axis=0., eccentricity=0., inclination=0.,
            long_asc_node=0., arg_periapsis=0., initial_mean_anomaly=0.,
            periapsis=0., apoapsis=0., revolution_period=0.,
            rotation_period=609.12, radius=695508., mass=1.989e30,
        ),
        BodyRecord(
            id="terre", name="Earth", body_type=BodyType.PLANET, host="soleil",
            semimajor_axis=149598023., eccentricity=0.01670, inclination=0.,
            long_asc_node=18.272, arg_periapsis=85.901, initial_mean_anomaly=358.617,
            periapsis=147095000., apoapsis=152100000., revolution_period=365.256,
            rotation_period=23.9345, radius=6371.00840, mass=5.97237e24,
        ),
        BodyRecord(
            id="lune", name="Moon", body_type=BodyType.MOON, host="terre",
            semimajor_axis=384399., eccentricity=0.0549, inclination=5.145,
            long_asc_node=125.08, arg_periapsis=318.15, initial_mean_anomaly=135.27,
            periapsis=363300., apoapsis=405500., revolution_period=27.321661,
            rotation_period=655.72, radius=1737.4, mass=7.342e22,
        ),
        BodyRecord(
            id="mars", name="Mars", body_type=BodyType.PLANET, host="soleil",
            semimajor_axis=227939366., eccentricity=0.0934, inclination=1.850,
            long_asc_node=49.57854, arg_periapsis=286.5, initial_mean_anomaly=19.412,
            periapsis=206650000., apoapsis=249261000., revolution_period=686.980,
            rotation_period=24.6229, radius=3389.5, mass=6.4171e23,
        ),
    ]


def default_catalog() -> BodyCatalog:
    """Catalog built from default_records()."""
    return BodyCatalog.from_records(default_records())
