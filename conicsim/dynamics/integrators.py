"""
Numerical Integrators
=====================

Free propagation of craft under the summed gravity of their influencers.
"""

import numpy as np
from typing import Iterable, Tuple

from ..core.config import G


def acceleration_of(position: np.ndarray,
                    influencers: Iterable[Tuple[np.ndarray, float]]) -> np.ndarray:
    """
    Summed point-mass gravitational acceleration.

    Args:
        position: Point at which to evaluate [km]
        influencers: (position [km], mass [kg]) of each attracting body

    Returns:
        Acceleration [km/day²]
    """
    position = np.asarray(position, dtype=float)
    acc = np.zeros(3)
    for body_pos, mass in influencers:
        d = np.asarray(body_pos, dtype=float) - position
        d_mag = np.linalg.norm(d)
        if d_mag < 1e-10:
            # Evaluating at the body's own centre
            continue
        acc += G * mass * d / d_mag**3
    return acc


class LeapfrogIntegrator:
    """
    Kick-drift-kick leapfrog integrator.

    Symplectic, so orbital energy does not drift over long free flights.
    A step is kick, drift, then a closing kick with the acceleration at the
    new position; callers move the attracting bodies between the drift and
    the closing kick.
    """

    @staticmethod
    def kick(v: np.ndarray, a: np.ndarray, dt: float) -> np.ndarray:
        """Half-step velocity update."""
        return v + 0.5 * dt * a

    @staticmethod
    def drift(r: np.ndarray, v: np.ndarray, dt: float) -> np.ndarray:
        """Full-step position update."""
        return r + dt * v
