"""
Simulation Configuration
========================

Physical constants and simulation parameters for conicsim.

Units used throughout the package: kilometres, days, kilograms, radians.
"""

from dataclasses import dataclass, field
from datetime import datetime


# Time
SECONDS_PER_DAY = 86400.0

# Gravitational constant
GRAVITATIONAL_CONSTANT_SI = 6.67430e-11  # m³/(kg·s²)
G = GRAVITATIONAL_CONSTANT_SI * 1e-9 * SECONDS_PER_DAY**2  # km³/(kg·day²)


@dataclass
class AutoThrustParameters:
    """Randomized maneuver plan generated by the editor's auto-thrust toggle."""
    node_count: int = 10
    tick_interval: int = 25  # ticks between consecutive nodes
    thrust_min: float = 2e5  # km/day
    thrust_max: float = 5e5  # km/day
    origin: str = "terre"  # reference body of the generated nodes

    def __post_init__(self):
        assert self.node_count > 0, "Auto-thrust needs at least one node"
        assert self.tick_interval > 0, "Tick interval must be positive"
        assert self.thrust_max > self.thrust_min, "Empty thrust range"


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""
    scenario_name: str = "default"

    # Epoch of the default body catalog
    start_time: datetime = field(default_factory=lambda: datetime(2000, 1, 1, 0, 0, 0))

    # Clock
    tick_length_days: float = 1.0
    simticks_per_tick: int = 8  # integrator sub-steps per tick
    duration_ticks: int = 365

    # Worker threads for the per-craft evaluation phase of a tick
    max_workers: int = 1

    auto_thrust: AutoThrustParameters = field(default_factory=AutoThrustParameters)

    # Output options
    history_rate_ticks: int = 1
    verbose: bool = True

    def __post_init__(self):
        """Validate configuration."""
        assert self.tick_length_days > 0, "Tick length must be positive"
        assert self.simticks_per_tick >= 1, "Need at least one sim tick per tick"
        assert self.duration_ticks > 0, "Duration must be positive"
        assert self.max_workers >= 1, "Need at least one worker"
        assert self.history_rate_ticks >= 1, "History rate must be at least one tick"

    @property
    def simtick_length_days(self) -> float:
        """Integrator step length."""
        return self.tick_length_days / self.simticks_per_tick


# Pre-defined configurations
def create_default_config() -> SimulationConfig:
    """One-day ticks over one year."""
    return SimulationConfig()


def create_fine_config() -> SimulationConfig:
    """Hour-long ticks for close approaches inside a planet's sphere."""
    return SimulationConfig(
        scenario_name="fine",
        tick_length_days=1.0 / 24.0,
        simticks_per_tick=16,
        duration_ticks=24 * 30,
    )
