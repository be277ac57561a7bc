"""
Capture Scenario
================

Craft released inside Earth's sphere of influence on a bound trajectory.
"""

import logging
import numpy as np
from typing import Dict, List, Optional
from dataclasses import dataclass
from ..core.config import SECONDS_PER_DAY, SimulationConfig
from ..core.craft import CraftInfo
from ..core.events import CraftEnteredOrbit, CraftRevertedToEdit, ManeuverExecuted
from ..core.simulator import Simulator
from ..environment.catalog import BodyCatalog, default_catalog
from ..planning.maneuver import AddNode, ManeuverNode

logger = logging.getLogger(__name__)


def craft_near(catalog: BodyCatalog,
               body_id: str,
               craft_id: str,
               offset_km: np.ndarray,
               relative_velocity_km_s: np.ndarray,
               mass: float = 1000.0) -> CraftInfo:
    """
    Creation request for a craft placed relative to a catalog body.

    Args:
        catalog: Bodies at the current tick
        body_id: Reference body
        craft_id: Id of the new craft
        offset_km: Position relative to the body [km]
        relative_velocity_km_s: Velocity relative to the body [km/s]
        mass: Craft mass [kg]
    """
    body = catalog[body_id]
    return CraftInfo(
        id=craft_id,
        spawn_position=body.position + np.asarray(offset_km, dtype=float),
        spawn_velocity=body.velocity + np.asarray(relative_velocity_km_s, dtype=float) * SECONDS_PER_DAY,
        mass=mass,
    )


@dataclass
class CaptureScenarioConfig:
    """Configuration for capture scenario."""
    duration_ticks: int = 12
    body_id: str = "terre"
    altitude_km: float = 1e5  # distance from the body's centre
    speed_km_s: float = 2.0  # tangential, relative to the body
    burn_tick: int = 5
    burn_km_s: float = 1.0  # prograde-ish, along +y
    craft_id: str = "probe"


class CaptureScenario:
    """
    Capture and revert scenario.

    Tests:
    - Capture onto an analytic orbit at the first tick
    - Orbit placement relative to a moving host
    - A committed burn reverting the craft to free propagation
    """

    def __init__(self, config: CaptureScenarioConfig = None):
        """
        Initialize capture scenario.

        Args:
            config: Scenario configuration
        """
        self.config = config or CaptureScenarioConfig()

        self.sim_config = SimulationConfig(
            scenario_name="capture",
            duration_ticks=self.config.duration_ticks,
        )

        self.simulator: Optional[Simulator] = None
        self.results: Dict = {}
        self.history = []
        self.events: List = []

    def setup(self):
        """Setup scenario."""
        catalog = default_catalog()
        self.simulator = Simulator(self.sim_config, catalog)
        self.simulator.events.subscribe_all(self.events.append)

        info = craft_near(
            catalog,
            self.config.body_id,
            self.config.craft_id,
            offset_km=[self.config.altitude_km, 0.0, 0.0],
            relative_velocity_km_s=[0.0, self.config.speed_km_s, 0.0],
        )
        self.simulator.create_craft(info)

        # Commit the burn one tick before it is due
        burn = ManeuverNode(
            name="departure",
            thrust=(0.0, self.config.burn_km_s * SECONDS_PER_DAY, 0.0),
            origin=self.config.body_id,
        )
        self.simulator.schedule_action(
            self.config.craft_id,
            max(self.config.burn_tick - 1, 0),
            AddNode(node=burn, node_tick=self.config.burn_tick),
        )

    def run(self, progress_callback=None) -> Dict:
        """
        Run capture scenario.

        Returns:
            Results dictionary
        """
        if self.simulator is None:
            self.setup()

        logger.info("Running Capture Scenario: %d ticks", self.config.duration_ticks)

        history = self.simulator.run(progress_callback=progress_callback)
        self.history = history

        # Analyze results
        self.results = self._analyze_results(history)

        return self.results

    def _analyze_results(self, history) -> Dict:
        """Analyze scenario results."""
        if not history:
            return {}

        craft_id = self.config.craft_id
        captures = [e for e in self.events
                    if isinstance(e, CraftEnteredOrbit) and e.craft_id == craft_id]
        reverts = [e for e in self.events
                   if isinstance(e, CraftRevertedToEdit) and e.craft_id == craft_id]
        burns = [e for e in self.events
                 if isinstance(e, ManeuverExecuted) and e.craft_id == craft_id]

        first = captures[0] if captures else None
        return {
            'duration_ticks': history[-1].tick,
            'num_samples': len(history),
            'first_capture_tick': first.tick if first else None,
            'first_capture_host': first.host if first else None,
            'first_capture_eccentricity': first.elements.eccentricity if first else None,
            'first_capture_semimajor_axis_km': first.elements.semimajor_axis if first else None,
            'captures': len(captures),
            'reverts': len(reverts),
            'burn_ticks': [e.tick for e in burns],
            'final_mode': history[-1].crafts[craft_id].mode.name,
        }

    def get_summary(self) -> str:
        """Get human-readable summary."""
        if not self.results:
            return "Scenario not yet run."

        r = self.results
        orbit = "none"
        if r['first_capture_tick'] is not None:
            orbit = (f"{r['first_capture_host']} at tick {r['first_capture_tick']} "
                     f"(e={r['first_capture_eccentricity']:.4f}, "
                     f"a={r['first_capture_semimajor_axis_km']:.0f} km)")

        return f"""
Capture Scenario Summary
========================
Duration: {r['duration_ticks']} ticks
Samples: {r['num_samples']}

First capture: {orbit}
Captures: {r['captures']}
Reverts: {r['reverts']}
Burns at ticks: {r['burn_ticks']}
Final mode: {r['final_mode']}
"""
