import numpy as np
import pytest

from conicsim.core.config import SECONDS_PER_DAY, AutoThrustParameters, SimulationConfig
from conicsim.core.craft import CraftInfo, CraftMode
from conicsim.core.events import (
    CraftCreated,
    CraftEnteredOrbit,
    CraftRemoved,
    CraftRevertedToEdit,
    ManeuverExecuted,
    ManeuverFired,
)
from conicsim.core.simulator import Simulator
from conicsim.dynamics.elements import state_from_elements
from conicsim.environment.catalog import default_catalog
from conicsim.planning.maneuver import AddNode, ManeuverNode, RemoveNode

from conftest import craft_around


@pytest.fixture
def sim():
    return Simulator(SimulationConfig(duration_ticks=10, verbose=False), default_catalog())


def _spawn(sim, craft_id="probe", speed_km_s=2.0):
    info = craft_around(sim.catalog, "terre", craft_id=craft_id, speed_km_s=speed_km_s).info
    assert sim.create_craft(info)
    return sim.crafts.get(craft_id)


def _collect(sim, event_type):
    seen = []
    sim.events.subscribe(event_type, seen.append)
    return seen


def test_requires_loaded_scenario():
    sim = Simulator()
    with pytest.raises(RuntimeError):
        sim.step()


def test_create_craft_ignores_duplicates(sim):
    created = _collect(sim, CraftCreated)
    craft = _spawn(sim)

    assert not sim.create_craft(craft.info)
    assert len(created) == 1
    assert craft.mode == CraftMode.PROPAGATED
    assert craft.influence.main_influencer == "terre"


def test_bound_craft_is_captured_on_first_tick(sim):
    craft = _spawn(sim)

    state = sim.step()

    assert state.tick == 1
    assert state.crafts["probe"].mode == CraftMode.ORBITING
    assert state.crafts["probe"].host == "terre"
    assert sim.registry.host_of(craft.object_id) == "terre"


def test_position_is_continuous_across_capture(sim):
    earth = sim.catalog["terre"]
    assert sim.create_craft(CraftInfo(
        id="planar",
        spawn_position=earth.position + np.array([0.0, 1e5, 0.0]),
        spawn_velocity=earth.velocity + np.array([-2.3 * SECONDS_PER_DAY, 0.0, 0.0]),
    ))
    craft = sim.crafts.get("planar")

    propagated = {}

    def on_capture(event):
        propagated[event.craft_id] = craft.state.position.copy()

    sim.events.subscribe(CraftEnteredOrbit, on_capture)
    state = sim.step()

    assert state.crafts["planar"].mode == CraftMode.ORBITING
    np.testing.assert_allclose(state.crafts["planar"].position, propagated["planar"], rtol=1e-9, atol=1e-3)


def test_orbiting_craft_follows_its_host(sim):
    craft = _spawn(sim)
    sim.step()
    el = craft.elements

    for _ in range(5):
        sim.step()
        distance = np.linalg.norm(craft.state.position - sim.catalog["terre"].position)
        assert el.periapsis * (1 - 1e-9) <= distance <= el.apoapsis * (1 + 1e-9)


def test_committed_node_burns_and_reverts(sim):
    craft = _spawn(sim)
    reverted = _collect(sim, CraftRevertedToEdit)
    executed = _collect(sim, ManeuverExecuted)

    node = ManeuverNode(name="kick", thrust=(0.0, 5e4, 0.0), origin="terre")
    assert sim.schedule_action("probe", 2, AddNode(node=node, node_tick=3)) is not None

    sim.step()
    sim.step()
    assert craft.is_orbiting
    assert sim.editor.plan("probe").get(3) is node

    el = craft.elements
    state = sim.step()

    assert state.executed_nodes == 1
    assert state.crafts["probe"].mode == CraftMode.PROPAGATED
    assert [e.tick for e in reverted] == [3]
    assert [e.node for e in executed] == [node]
    # Burn applied on top of the orbital velocity at this tick
    earth = sim.catalog["terre"]
    _, v = state_from_elements(el, earth.mu)
    np.testing.assert_allclose(craft.state.velocity, earth.velocity + v + np.array([0.0, 5e4, 0.0]), rtol=1e-9)
    assert len(sim.editor.plan("probe")) == 0


def test_removed_craft_is_forgotten(sim):
    craft = _spawn(sim)
    removed = _collect(sim, CraftRemoved)
    sim.step()
    sim.schedule_action("probe", 5, RemoveNode(node_tick=5))

    assert sim.remove_craft("probe")
    assert not sim.remove_craft("probe")

    assert len(removed) == 1
    assert sim.registry.host_of(craft.object_id) is None
    assert sim.scheduler.pending("probe") == []
    assert sim.editor.plan("probe") is None


def test_actions_for_missing_craft_are_dropped(sim):
    fired = _collect(sim, ManeuverFired)

    assert sim.schedule_action("ghost", 1, RemoveNode(node_tick=1)) is None
    sim.scheduler.schedule("ghost", 1, RemoveNode(node_tick=1))
    state = sim.step()

    assert fired == []
    assert state.fired_actions == 0
    assert sim.scheduler.pending("ghost") == []


def test_revert_to_edit(sim):
    craft = _spawn(sim)
    sim.step()

    assert sim.revert_to_edit("probe")
    assert craft.mode == CraftMode.PROPAGATED
    assert not sim.revert_to_edit("probe")
    assert not sim.revert_to_edit("ghost")


def test_escape_craft_keeps_propagating(sim):
    craft = _spawn(sim, speed_km_s=5.0)
    start = craft.state.position.copy()

    sim.step()

    assert craft.mode == CraftMode.PROPAGATED
    assert not np.allclose(craft.state.position, start)


def test_auto_thrust_toggle(sim):
    _spawn(sim)
    sim.schedule_auto_thrust("probe", 1, rng=np.random.default_rng(1))
    sim.step()

    plan = sim.editor.plan("probe")
    interval = sim.config.auto_thrust.tick_interval
    # The tick-0 slot is already past
    assert list(plan) == [i * interval for i in range(1, sim.config.auto_thrust.node_count)]

    sim.schedule_auto_thrust("probe", 2, enabled=False)
    sim.step()
    assert len(plan) == 0


def test_late_auto_thrust_toggle_burns_nothing_and_keeps_manual_node():
    config = SimulationConfig(duration_ticks=10, verbose=False,
                              auto_thrust=AutoThrustParameters(node_count=5, tick_interval=2))
    sim = Simulator(config, default_catalog())
    _spawn(sim)

    manual = ManeuverNode(name="manual", thrust=(0.0, 1e3, 0.0), origin="terre")
    sim.schedule_action("probe", 1, AddNode(node=manual, node_tick=6))
    sim.schedule_auto_thrust("probe", 5, rng=np.random.default_rng(2))

    states = [sim.step() for _ in range(5)]

    assert [s.executed_nodes for s in states] == [0, 0, 0, 0, 0]
    plan = sim.editor.plan("probe")
    assert list(plan) == [6, 8]
    assert plan.get(6) is manual
    assert plan.get(8).name == "auto_node"


def test_run_records_history_and_calls_back():
    config = SimulationConfig(duration_ticks=6, history_rate_ticks=2, verbose=False)
    sim = Simulator(config, default_catalog())
    _spawn(sim)
    ticks = []
    sim.add_step_callback(lambda s, state: ticks.append(state.tick))

    history = sim.run()

    assert ticks == [1, 2, 3, 4, 5, 6]
    assert [s.tick for s in history] == [2, 4, 6]
    assert sim.time.elapsed_days == 6.0
    assert set(history[0].body_positions) == {"soleil", "terre", "lune", "mars"}


def test_telemetry(sim):
    _spawn(sim)
    sim.step()

    tm = sim.get_telemetry()

    assert tm['tick'] == 1
    assert tm['julian_date'] == pytest.approx(2451545.5)
    assert tm['crafts']['probe']['mode'] == 'ORBITING'
    assert tm['crafts']['probe']['host'] == 'terre'
    assert tm['crafts']['probe']['elements']['eccentricity'] < 0.1
    assert tm['bodies']['terre']['orbiting_objects'] == 2
    assert tm['bodies']['soleil']['orbiting_objects'] == 2
    assert tm['bodies']['soleil']['dominance_radius_km'] == float('inf')


def test_unload_resets_everything(sim):
    _spawn(sim)
    sim.step()

    sim.unload()

    assert not sim.loaded
    assert len(sim.crafts) == 0
    assert sim.time.tick == 0
    with pytest.raises(RuntimeError):
        sim.create_craft(craft_around(default_catalog(), "terre").info)

    sim.load_scenario(default_catalog())
    _spawn(sim)
    assert sim.step().tick == 1


def test_parallel_evaluation_in_simulator():
    config = SimulationConfig(max_workers=4, verbose=False)
    sim = Simulator(config, default_catalog())
    for i in range(5):
        _spawn(sim, craft_id=f"c{i}", speed_km_s=1.9 + 0.05 * i)

    state = sim.step()

    assert all(c.mode == CraftMode.ORBITING for c in state.crafts.values())
    assert sim.registry.count("terre") == 6
