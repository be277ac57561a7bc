import numpy as np
import pytest

from conicsim.core.config import SECONDS_PER_DAY
from conicsim.environment.catalog import BodyCatalog, default_records, dominance_radius

from conftest import make_record


def test_primary_sphere_is_infinite(catalog):
    assert catalog.primary == "soleil"
    assert np.isinf(catalog["soleil"].dominance_radius)


def test_earth_dominance_radius_is_hill_radius_at_periapsis(catalog):
    earth = catalog["terre"]
    expected = 149598023. * (1 - 0.0167) * (5.97237e24 / (3 * (1.989e30 + 5.97237e24))) ** (1 / 3)
    assert earth.dominance_radius == pytest.approx(expected)
    assert 1.4e6 < earth.dominance_radius < 1.55e6


def test_dominance_radius_never_below_body_radius():
    host = make_record("star", mass=1e30)
    pebble = make_record("pebble", host="star", mass=1.0, radius=5000.0)
    assert dominance_radius(pebble, host.mass) == 5000.0


def test_moon_sphere_inside_earth_sphere(catalog):
    earth = catalog["terre"]
    moon = catalog["lune"]
    assert moon.dominance_radius < earth.dominance_radius
    assert earth.contains(moon.position)


def test_bodies_stay_on_their_catalog_orbits(catalog):
    for t in (0.0, 50.0, 200.0):
        catalog.update(t)
        earth = catalog["terre"]
        moon = catalog["lune"]

        assert 147.09e6 * 0.999 < np.linalg.norm(earth.position) < 152.1e6 * 1.001
        assert 29.0 < np.linalg.norm(earth.velocity) / SECONDS_PER_DAY < 31.0
        assert 363300 * 0.99 < np.linalg.norm(moon.position - earth.position) < 405500 * 1.01


def test_earth_returns_after_one_revolution(catalog):
    start = catalog["terre"].position.copy()
    catalog.update(365.256)
    np.testing.assert_allclose(catalog["terre"].position, start, atol=1e3)


def test_records_may_list_moons_before_their_planet():
    catalog = BodyCatalog.from_records(list(reversed(default_records())))
    earth = catalog["terre"]
    moon = catalog["lune"]
    assert 363300 * 0.99 < np.linalg.norm(moon.position - earth.position) < 405500 * 1.01


def test_host_tree_queries(catalog):
    assert catalog.host_chain("lune") == ["lune", "terre", "soleil"]
    assert catalog.is_ancestor("soleil", "lune")
    assert catalog.is_ancestor("terre", "lune")
    assert not catalog.is_ancestor("lune", "lune")
    assert not catalog.is_ancestor("mars", "lune")
    assert sorted(catalog.satellites_of("soleil")) == ["mars", "terre"]


def test_influencer_pairs_skip_unknown_bodies(catalog):
    pairs = catalog.influencer_pairs(["soleil", "nowhere"])
    assert len(pairs) == 1
    assert pairs[0][1] == catalog["soleil"].mass
    assert catalog.get("nowhere") is None


def test_invalid_catalogs_are_rejected():
    star = make_record("star")
    with pytest.raises(ValueError):
        BodyCatalog.from_records([star, make_record("star")])
    with pytest.raises(ValueError):
        BodyCatalog.from_records([star, make_record("other")])
    with pytest.raises(ValueError):
        BodyCatalog.from_records([star, make_record("p", host="ghost")])
    with pytest.raises(ValueError):
        BodyCatalog.from_records([star, make_record("a", host="b"), make_record("b", host="a")])
    with pytest.raises(ValueError):
        BodyCatalog.from_records([make_record("x" * 40)])
