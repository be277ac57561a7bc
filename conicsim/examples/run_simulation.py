#!/usr/bin/env python3
"""
Conic Simulation Example
========================

Example script demonstrating the simulation framework.
"""

import argparse
import logging
import time

import numpy as np

from conicsim.core.config import SECONDS_PER_DAY, SimulationConfig
from conicsim.core.craft import CraftInfo
from conicsim.core.simulator import Simulator
from conicsim.environment.catalog import default_catalog
from conicsim.environment.influence import resolve


def run_quick_simulation():
    """Run a 30-day simulation of a craft released on Earth's orbit."""
    print("=" * 60)
    print("Conic Simulation Quick Run")
    print("=" * 60)

    config = SimulationConfig(duration_ticks=30)
    catalog = default_catalog()
    sim = Simulator(config, catalog)

    # Trailing Earth by 3 million km, same heliocentric velocity
    earth = catalog["terre"]
    direction = earth.velocity / np.linalg.norm(earth.velocity)
    sim.create_craft(CraftInfo(
        id="trailer",
        spawn_position=earth.position - 3e6 * direction,
        spawn_velocity=earth.velocity,
    ))

    print(f"\nSimulation Configuration:")
    print(f"  Duration: {config.duration_ticks} ticks")
    print(f"  Tick length: {config.tick_length_days} days ({config.simticks_per_tick} sim ticks)")
    print(f"  Bodies: {', '.join(b.id for b in catalog)}")

    print("\nRunning simulation...")
    start_time = time.time()

    def progress(p):
        if p > 0:
            print(f"  Progress: {p*100:.0f}%", end='\r')

    history = sim.run(progress_callback=progress)

    elapsed = time.time() - start_time
    print(f"\nSimulation complete in {elapsed:.2f}s")
    print(f"  Simulated {len(history)} ticks")

    final = history[-1].crafts["trailer"]
    print(f"\nFinal State:")
    print(f"  Tick: {history[-1].tick}")
    print(f"  Mode: {final.mode.name}")
    print(f"  Host: {final.host}")
    print(f"  Distance to Earth: {np.linalg.norm(final.position - earth.position):.0f} km")


def run_capture_scenario():
    """Run capture scenario."""
    print("\n" + "=" * 60)
    print("Capture Scenario")
    print("=" * 60)

    from conicsim.scenarios.capture import CaptureScenario, CaptureScenarioConfig

    scenario = CaptureScenario(CaptureScenarioConfig(duration_ticks=10))
    scenario.run()

    print(scenario.get_summary())


def run_escape_scenario():
    """Run escape scenario."""
    print("\n" + "=" * 60)
    print("Escape Scenario")
    print("=" * 60)

    from conicsim.scenarios.escape import EscapeScenario

    scenario = EscapeScenario()
    scenario.run()

    print(scenario.get_summary())


def demonstrate_influence():
    """Print the influence set along a line from the Sun out past the Moon."""
    print("\n" + "=" * 60)
    print("Influence Resolution")
    print("=" * 60)

    catalog = default_catalog()
    earth = catalog["terre"]
    moon = catalog["lune"]

    print(f"\n{'Point':>24} {'Main':>8}  Influencers")
    print("-" * 60)
    points = {
        "deep space": earth.position * 0.5,
        "Earth + 1e6 km": earth.position + np.array([1e6, 0.0, 0.0]),
        "Earth + 1e5 km": earth.position + np.array([1e5, 0.0, 0.0]),
        "Moon + 1e4 km": moon.position + np.array([1e4, 0.0, 0.0]),
    }
    for label, point in points.items():
        influence = resolve(point, catalog)
        print(f"{label:>24} {influence.main_influencer:>8}  {', '.join(influence.influencers)}")

    print(f"\nDominance radii:")
    for body in catalog:
        print(f"  {body.id:>8}: {body.dominance_radius:.3e} km")
    print(f"\n1 km/s = {SECONDS_PER_DAY:.0f} km/day")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Conic Simulation Examples")
    parser.add_argument('--all', action='store_true', help='Run all examples')
    parser.add_argument('--quick', action='store_true', help='Run quick simulation')
    parser.add_argument('--capture', action='store_true', help='Run capture scenario')
    parser.add_argument('--escape', action='store_true', help='Run escape scenario')
    parser.add_argument('--influence', action='store_true', help='Demonstrate influence resolution')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Default to quick if no args
    if not any(v for k, v in vars(args).items() if k != 'verbose'):
        args.quick = True

    if args.all or args.quick:
        run_quick_simulation()

    if args.all or args.capture:
        run_capture_scenario()

    if args.all or args.escape:
        run_escape_scenario()

    if args.all or args.influence:
        demonstrate_influence()

    print("\n" + "=" * 60)
    print("Examples complete!")
    print("=" * 60)
