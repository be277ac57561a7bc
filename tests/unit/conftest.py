import numpy as np
import pytest

from conicsim.core.config import G, SECONDS_PER_DAY
from conicsim.core.craft import Craft, CraftInfo
from conicsim.environment.catalog import Body, BodyCatalog, BodyRecord, BodyType, default_catalog
from conicsim.environment.orbiting import OrbitingRegistry


EARTH_MU = G * 5.97237e24


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def registry(catalog):
    return OrbitingRegistry.from_catalog(catalog)


def make_record(body_id, host=None, mass=1e20, radius=1.0):
    return BodyRecord(
        id=body_id, name=body_id.title(), body_type=BodyType.STAR if host is None else BodyType.PLANET,
        host=host, semimajor_axis=1e6, eccentricity=0.0, inclination=0.0,
        long_asc_node=0.0, arg_periapsis=0.0, initial_mean_anomaly=0.0,
        periapsis=1e6, apoapsis=1e6, revolution_period=100.0,
        rotation_period=24.0, radius=radius, mass=mass,
    )


def make_body(body_id, host=None, position=(0.0, 0.0, 0.0), dominance=float('inf')):
    """Body pinned at a position with a given sphere, bypassing catalog motion."""
    return Body(record=make_record(body_id, host), dominance_radius=dominance,
                position=np.array(position, dtype=float))


def craft_around(catalog, body_id, craft_id="probe", offset_km=1e5, speed_km_s=2.0):
    """Craft at `offset_km` along +x from a body, moving along +y relative to it."""
    body = catalog[body_id]
    return Craft(CraftInfo(
        id=craft_id,
        spawn_position=body.position + np.array([offset_km, 0.0, 0.0]),
        spawn_velocity=body.velocity + np.array([0.0, speed_km_s * SECONDS_PER_DAY, 0.0]),
    ))
