import logging

import pytest

from conicsim.core.craft import Craft, CraftInfo
from conicsim.core.events import CraftCreated, CraftRemoved, EventBus
from conicsim.core.identity import CraftRegistry, MAX_ID_LENGTH, ObjectKind, OrbitalObjID, validate_id


def test_subscribers_receive_their_event_type():
    bus = EventBus()
    created, everything = [], []
    bus.subscribe(CraftCreated, created.append)
    bus.subscribe_all(everything.append)

    bus.publish(CraftCreated(craft_id="a", tick=0))
    bus.publish(CraftRemoved(craft_id="a", tick=1))

    assert [e.craft_id for e in created] == ["a"]
    assert len(everything) == 2
    assert bus.published_count == 2


def test_failing_subscriber_is_logged_and_skipped(caplog):
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(CraftCreated, broken)
    bus.subscribe(CraftCreated, received.append)

    with caplog.at_level(logging.ERROR):
        bus.publish(CraftCreated(craft_id="a", tick=0))

    assert len(received) == 1
    assert any("broken" in r.getMessage() for r in caplog.records)


def test_only_simulation_events_are_accepted():
    bus = EventBus()
    with pytest.raises(ValueError):
        bus.subscribe(dict, print)
    with pytest.raises(TypeError):
        bus.publish({"craft_id": "a"})


def test_object_ids_are_tagged_by_kind():
    assert OrbitalObjID.ship("terre") != OrbitalObjID.body("terre")
    assert OrbitalObjID.ship("probe").kind == ObjectKind.SHIP
    assert str(OrbitalObjID.body("lune")) == "body:lune"


def test_id_validation():
    assert validate_id("x" * MAX_ID_LENGTH) == "x" * MAX_ID_LENGTH
    for bad in ("", "x" * (MAX_ID_LENGTH + 1), None, 42):
        with pytest.raises(ValueError):
            validate_id(bad)


def test_craft_registry():
    registry = CraftRegistry()
    craft = Craft(CraftInfo(id="probe", spawn_position=[1.0, 0.0, 0.0], spawn_velocity=[0.0, 1.0, 0.0]))
    registry.add(craft)

    with pytest.raises(ValueError):
        registry.add(craft)
    assert "probe" in registry
    assert registry.get("probe") is craft
    assert registry.get("ghost") is None
    assert registry.ids() == ["probe"]

    assert registry.remove("probe") is craft
    assert registry.remove("probe") is None
    assert len(registry) == 0


def test_craft_info_rejects_bad_mass():
    with pytest.raises(ValueError):
        CraftInfo(id="probe", spawn_position=[0, 0, 1], spawn_velocity=[0, 0, 0], mass=0.0)
