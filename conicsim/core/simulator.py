"""
Main Simulator
==============

Central simulation engine: owns the clock, the loaded scenario's lookup
tables, and runs the per-tick pipeline.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .config import SimulationConfig
from .craft import Craft, CraftInfo, CraftMode, StateVector
from .events import (
    CraftCreated,
    CraftRemoved,
    EventBus,
    ManeuverExecuted,
    ManeuverFired,
    ManeuverScheduled,
)
from .identity import CraftRegistry
from .time_manager import SimulationTime
from ..dynamics.elements import state_from_elements
from ..dynamics.integrators import LeapfrogIntegrator, acceleration_of
from ..dynamics.transitions import OrbitTransitions
from ..environment.catalog import BodyCatalog
from ..environment.orbiting import OrbitingRegistry
from ..planning.maneuver import AddAutoThrust, ManeuverAction, RemoveAutoThrust
from ..planning.scheduler import ManeuverScheduler
from ..planning.trajectory import TrajectoryEditor, auto_thrust_nodes

logger = logging.getLogger(__name__)


@dataclass
class CraftSnapshot:
    """Craft state at the end of a tick."""
    craft_id: str
    mode: CraftMode
    position: np.ndarray
    velocity: np.ndarray
    host: Optional[str] = None
    main_influencer: Optional[str] = None


@dataclass
class SimulationState:
    """Complete simulation state for logging."""
    tick: int = 0
    elapsed_days: float = 0.0
    crafts: Dict[str, CraftSnapshot] = field(default_factory=dict)
    body_positions: Dict[str, np.ndarray] = field(default_factory=dict)
    fired_actions: int = 0
    executed_nodes: int = 0


class Simulator:
    """
    Patched-conic simulation engine.

    Each tick:
    - Propagated craft are integrated under their influencers while the
      bodies move along their catalog orbits
    - Propagated craft on a bound orbit around their main influencer are
      captured onto analytic orbits
    - Orbiting craft are placed on their orbits
    - Due maneuver actions are released to the trajectory editor
    - Planned nodes due this tick are burned
    """

    def __init__(self, config: SimulationConfig = None, catalog: BodyCatalog = None):
        """
        Initialize simulator.

        Args:
            config: Simulation configuration
            catalog: Scenario to load immediately
        """
        self.config = config or SimulationConfig()

        # Initialize time
        self.time = SimulationTime(
            start_time=self.config.start_time,
            tick_length_days=self.config.tick_length_days,
        )

        self.events = EventBus()
        self.scheduler = ManeuverScheduler()
        self.editor = TrajectoryEditor()
        self.events.subscribe(ManeuverFired, self.editor.apply)
        self.integrator = LeapfrogIntegrator()

        # Scenario lookup tables, set by load_scenario()
        self.crafts = CraftRegistry()
        self.catalog: Optional[BodyCatalog] = None
        self.registry: Optional[OrbitingRegistry] = None
        self.transitions: Optional[OrbitTransitions] = None

        # Simulation state
        self.is_running = False
        self.step_count = 0

        # Data logging
        self.history: List[SimulationState] = []

        # Callbacks
        self.step_callbacks: List[Callable] = []

        if catalog is not None:
            self.load_scenario(catalog)

    # === Scenario lifecycle ===

    @property
    def loaded(self) -> bool:
        return self.catalog is not None

    def load_scenario(self, catalog: BodyCatalog):
        """Install a body catalog and fresh lookup tables."""
        if self.loaded:
            self.unload()

        self.catalog = catalog
        self.catalog.update(self.time.elapsed_days)
        self.registry = OrbitingRegistry.from_catalog(catalog)
        self.transitions = OrbitTransitions(
            catalog, self.registry, self.events, max_workers=self.config.max_workers
        )
        logger.info("Scenario %r loaded with %d bodies",
                    self.config.scenario_name, len(catalog))

    def unload(self):
        """Tear down the loaded scenario and reset the clock."""
        self.crafts.clear()
        self.scheduler.clear()
        self.editor.clear()
        if self.registry is not None:
            self.registry.clear()
        self.catalog = None
        self.registry = None
        self.transitions = None
        self.time.reset()
        self.history.clear()
        self.step_count = 0

    def _require_loaded(self):
        if not self.loaded:
            raise RuntimeError("No scenario loaded")

    # === Craft lifecycle ===

    def create_craft(self, info: CraftInfo) -> bool:
        """
        Spawn a propagated craft.

        Returns:
            False if a craft with this id already exists
        """
        self._require_loaded()
        if info.id in self.crafts:
            logger.debug("Craft %r already exists, ignoring create", info.id)
            return False

        craft = Craft(info)
        self.transitions.initialize(craft)
        self.crafts.add(craft)
        self.editor.open(info.id)

        logger.info("Craft %r created under %r", info.id, craft.influence.main_influencer)
        self.events.publish(CraftCreated(craft_id=info.id, tick=self.time.tick))
        return True

    def remove_craft(self, craft_id: str) -> bool:
        """
        Remove a craft with its schedule, plan and registry membership.

        Returns:
            False if no such craft exists
        """
        craft = self.crafts.remove(craft_id)
        if craft is None:
            logger.debug("Ignoring removal of unknown craft %r", craft_id)
            return False

        self.transitions.forget(craft)
        dropped = self.scheduler.remove_craft(craft_id)
        self.editor.close(craft_id)

        logger.info("Craft %r removed (%d pending actions dropped)", craft_id, dropped)
        self.events.publish(CraftRemoved(craft_id=craft_id, tick=self.time.tick))
        return True

    def schedule_action(self, craft_id: str, tick: int, action: ManeuverAction) -> Optional[int]:
        """
        Schedule a maneuver action for a craft.

        Returns:
            Schedule ID, None if the craft does not exist
        """
        if craft_id not in self.crafts:
            logger.debug("Ignoring action for unknown craft %r", craft_id)
            return None

        schedule_id = self.scheduler.schedule(craft_id, tick, action)
        self.events.publish(ManeuverScheduled(
            craft_id=craft_id, tick=tick, action=action, schedule_id=schedule_id,
        ))
        return schedule_id

    def schedule_auto_thrust(self,
                             craft_id: str,
                             tick: int,
                             enabled: bool = True,
                             rng: np.random.Generator = None) -> Optional[int]:
        """
        Toggle the randomized auto-thrust plan of a craft.

        Args:
            craft_id: Target craft
            tick: Tick at which the toggle is released
            enabled: Add the generated nodes if True, remove them if False
            rng: Random generator for the generated thrusts

        Returns:
            Schedule ID, None if the craft does not exist
        """
        params = self.config.auto_thrust
        if enabled:
            action = AddAutoThrust(nodes=auto_thrust_nodes(params, rng),
                                   tick_interval=params.tick_interval)
        else:
            action = RemoveAutoThrust(tick_interval=params.tick_interval,
                                      node_count=params.node_count)
        return self.schedule_action(craft_id, tick, action)

    def revert_to_edit(self, craft_id: str) -> bool:
        """Return an orbiting craft to free propagation."""
        craft = self.crafts.get(craft_id)
        if craft is None:
            return False
        return self.transitions.revert(craft, self.time.tick)

    # === Tick pipeline ===

    def step(self) -> SimulationState:
        """
        Advance simulation by one tick.

        Returns:
            Current simulation state
        """
        self._require_loaded()

        # Integrate free flight over the tick; moves bodies too
        self._propagate_crafts()
        tick = self.time.step()
        now = self.time.elapsed_days
        self.catalog.update(now)

        # Patched-conic transitions
        self.transitions.step(self.crafts, tick, now)
        self._place_orbiting_crafts(now)

        # Maneuver actions
        fired = 0
        for event in self.scheduler.process(tick):
            if event.craft_id not in self.crafts:
                logger.debug("Dropping action fired for removed craft %r", event.craft_id)
                continue
            self.events.publish(event)
            fired += 1
        executed = self._execute_nodes(tick)

        state = SimulationState(
            tick=tick,
            elapsed_days=now,
            crafts={c.craft_id: self._snapshot(c) for c in self.crafts},
            body_positions={b.id: b.position.copy() for b in self.catalog},
            fired_actions=fired,
            executed_nodes=executed,
        )

        # Log state
        if tick % self.config.history_rate_ticks == 0:
            self.history.append(state)

        # Call callbacks
        for callback in self.step_callbacks:
            callback(self, state)

        self.step_count += 1
        return state

    def _propagate_crafts(self):
        """Leapfrog every propagated craft over one tick, moving the bodies per sim tick."""
        propagated = [c for c in self.crafts if not c.is_orbiting and c.influence is not None]
        dt = self.config.simtick_length_days
        t0 = self.time.elapsed_days

        for k in range(self.config.simticks_per_tick):
            for craft in propagated:
                v_half = self.integrator.kick(craft.state.velocity, craft.acceleration, dt)
                craft.state.position = self.integrator.drift(craft.state.position, v_half, dt)
                craft.state.velocity = v_half

            self.catalog.update(t0 + (k + 1) * dt)

            for craft in propagated:
                craft.acceleration = acceleration_of(
                    craft.state.position,
                    self.catalog.influencer_pairs(craft.influence.influencers),
                )
                craft.state.velocity = self.integrator.kick(
                    craft.state.velocity, craft.acceleration, dt)

    def _place_orbiting_crafts(self, now: float):
        """Move orbiting crafts to their analytic position."""
        for craft in self.crafts:
            if not craft.is_orbiting:
                continue
            host = self.catalog.get(craft.host)
            if host is None:
                continue
            craft.elements.advance(now)
            r, v = state_from_elements(craft.elements, host.mu)
            craft.state = StateVector(host.position + r, host.velocity + v)

    def _execute_nodes(self, tick: int) -> int:
        """Burn planned nodes due at or before this tick."""
        executed = 0
        for craft in self.crafts:
            plan = self.editor.plan(craft.craft_id)
            if plan is None:
                continue
            for _, node in plan.pop_due(tick):
                if craft.is_orbiting:
                    self.transitions.revert(craft, tick)
                craft.apply_delta_v(node.delta_v)
                influence, acc = self.transitions.influence_and_acceleration(craft.state.position)
                craft.start_propagation(influence, acc)

                logger.info("%r burned %r: |dv|=%.1f km/day", craft.craft_id, node.name, node.magnitude)
                self.events.publish(ManeuverExecuted(craft_id=craft.craft_id, node=node, tick=tick))
                executed += 1
        return executed

    @staticmethod
    def _snapshot(craft: Craft) -> CraftSnapshot:
        return CraftSnapshot(
            craft_id=craft.craft_id,
            mode=craft.mode,
            position=craft.state.position.copy(),
            velocity=craft.state.velocity.copy(),
            host=craft.host,
            main_influencer=craft.influence.main_influencer if craft.influence else None,
        )

    def run(self,
            duration_ticks: int = None,
            progress_callback: Callable = None) -> List[SimulationState]:
        """
        Run simulation for specified number of ticks.

        Args:
            duration_ticks: Duration (default: config duration)
            progress_callback: Called with progress (0-1)

        Returns:
            List of logged states
        """
        duration = duration_ticks or self.config.duration_ticks

        self.is_running = True

        for i in range(duration):
            self.step()

            if progress_callback and (i + 1) % 10 == 0:
                progress_callback((i + 1) / duration)

        self.is_running = False

        logger.log(logging.INFO if self.config.verbose else logging.DEBUG,
                   "Simulation complete: %d ticks, %d logged states",
                   self.step_count, len(self.history))

        return self.history

    def add_step_callback(self, callback: Callable):
        """Add callback to be called each step."""
        self.step_callbacks.append(callback)

    def get_telemetry(self) -> Dict:
        """
        Get current telemetry data.

        Returns:
            Dictionary of telemetry values
        """
        self._require_loaded()

        crafts = {}
        for craft in self.crafts:
            crafts[craft.craft_id] = {
                'mode': craft.mode.name,
                'host': craft.host,
                'main_influencer': craft.influence.main_influencer if craft.influence else None,
                'position_km': craft.state.position.tolist(),
                'velocity_km_day': craft.state.velocity.tolist(),
                'elements': craft.elements.as_dict() if craft.elements else None,
                'pending_actions': len(self.scheduler.pending(craft.craft_id)),
            }

        bodies = {}
        for body in self.catalog:
            bodies[body.id] = {
                'name': body.record.name,
                'body_type': body.record.body_type.name,
                'dominance_radius_km': body.dominance_radius,
                'orbiting_objects': self.registry.count(body.id),
                'position_km': body.position.tolist(),
            }

        return {
            'tick': self.time.tick,
            'elapsed_days': self.time.elapsed_days,
            'utc': self.time.current_utc.isoformat(),
            'julian_date': self.time.julian_date,
            'crafts': crafts,
            'bodies': bodies,
            'scheduler': self.scheduler.get_statistics(),
        }
