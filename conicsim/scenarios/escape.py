"""
Escape Scenario
===============

Craft released inside Earth's sphere of influence with more than escape
speed.
"""

import logging
import numpy as np
from typing import Dict, Optional
from dataclasses import dataclass
from ..core.config import SimulationConfig, create_fine_config
from ..core.craft import CraftMode
from ..core.simulator import Simulator
from ..environment.catalog import default_catalog
from .capture import craft_near

logger = logging.getLogger(__name__)


@dataclass
class EscapeScenarioConfig:
    """Configuration for escape scenario."""
    duration_ticks: int = 24 * 6
    body_id: str = "terre"
    altitude_km: float = 1e5
    speed_km_s: float = 5.0  # well above escape speed at this distance
    craft_id: str = "escaper"


class EscapeScenario:
    """
    Hyperbolic departure scenario.

    Tests:
    - No capture while the craft is inside the body's sphere
    - Hand-over of the main influencer to the body's host on exit
    """

    def __init__(self, config: EscapeScenarioConfig = None):
        self.config = config or EscapeScenarioConfig()

        # Hourly ticks so the sphere crossing is resolved
        self.sim_config: SimulationConfig = create_fine_config()
        self.sim_config.scenario_name = "escape"
        self.sim_config.duration_ticks = self.config.duration_ticks

        self.simulator: Optional[Simulator] = None
        self.results: Dict = {}
        self.history = []

    def setup(self):
        """Setup scenario."""
        catalog = default_catalog()
        self.simulator = Simulator(self.sim_config, catalog)
        self.simulator.create_craft(craft_near(
            catalog,
            self.config.body_id,
            self.config.craft_id,
            offset_km=[self.config.altitude_km, 0.0, 0.0],
            relative_velocity_km_s=[0.0, self.config.speed_km_s, 0.0],
        ))

    def run(self, progress_callback=None) -> Dict:
        if self.simulator is None:
            self.setup()

        logger.info("Running Escape Scenario: %d ticks", self.config.duration_ticks)

        self.history = self.simulator.run(progress_callback=progress_callback)
        self.results = self._analyze_results(self.history)
        return self.results

    def _analyze_results(self, history) -> Dict:
        """Analyze scenario results."""
        if not history:
            return {}

        body_id = self.config.body_id
        snapshots = [s.crafts[self.config.craft_id] for s in history]

        # Ticks spent with the body as main influencer
        inside = [s for s, c in zip(history, snapshots)
                  if c.mode == CraftMode.PROPAGATED and c.main_influencer == body_id]
        exit_tick = next(
            (s.tick for s, c in zip(history, snapshots)
             if c.host != body_id and c.main_influencer != body_id),
            None,
        )
        captured_inside = any(
            c.mode == CraftMode.ORBITING and c.host == body_id for c in snapshots)

        final = snapshots[-1]
        body = self.simulator.catalog[body_id]
        return {
            'duration_ticks': history[-1].tick,
            'num_samples': len(history),
            'ticks_inside_sphere': len(inside),
            'exit_tick': exit_tick,
            'captured_inside_sphere': captured_inside,
            'final_mode': final.mode.name,
            'final_main_influencer': final.main_influencer,
            'final_host': final.host,
            'final_distance_km': float(np.linalg.norm(final.position - body.position)),
            'sphere_radius_km': body.dominance_radius,
        }

    def get_summary(self) -> str:
        if not self.results:
            return "Scenario not yet run."

        r = self.results
        return f"""
Escape Scenario Summary
=======================
Duration: {r['duration_ticks']} ticks
Samples: {r['num_samples']}

Ticks inside sphere: {r['ticks_inside_sphere']} (captured: {r['captured_inside_sphere']})
Exit tick: {r['exit_tick']}
Final distance: {r['final_distance_km']:.0f} km (sphere {r['sphere_radius_km']:.0f} km)
Final mode: {r['final_mode']} (main influencer {r['final_main_influencer']}, host {r['final_host']})
"""
