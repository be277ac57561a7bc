"""
Orbital Elements
================

Conversions between state vectors and classical orbital elements for bound
two-body orbits.

The forward conversion (state vector -> elements) follows the classical
derivation from the specific angular momentum and the eccentricity vector.
The inverse conversion solves Kepler's equation and rotates the perifocal
state into the inertial frame.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple


TWO_PI = 2.0 * np.pi

# Below this eccentricity the direction of periapsis is undefined
CIRCULAR_EPSILON = 1e-11

# Node vector length (relative to |h|) below which the orbit is equatorial
EQUATORIAL_EPSILON = 1e-15


class DegenerateGeometryError(ValueError):
    """No orbit can be derived from the state (radial or zero position)."""


class UnboundOrbitError(ValueError):
    """The state describes a parabolic or hyperbolic trajectory."""


def safe_arccos(x: float) -> float:
    """arccos with its argument clamped to [-1, 1]."""
    return float(np.arccos(np.clip(x, -1.0, 1.0)))


def wrap_angle(angle: float) -> float:
    """Wrap an angle to [0, 2π)."""
    wrapped = float(angle % TWO_PI)
    # -1e-17 % 2π rounds to exactly 2π
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


@dataclass
class OrbitalElements:
    """
    Classical elements of a bound orbit.

    Angles in radians, semimajor axis in km, period in days. The shape of the
    orbit never changes once created; only the mean anomaly advances.
    """
    eccentricity: float
    semimajor_axis: float
    inclination: float
    long_asc_node: float
    arg_periapsis: float
    initial_mean_anomaly: float
    revolution_period: float
    mean_anomaly: Optional[float] = None
    epoch_days: float = 0.0  # simulation time the elements were captured

    def __post_init__(self):
        if self.mean_anomaly is None:
            self.mean_anomaly = self.initial_mean_anomaly

    @property
    def mean_motion(self) -> float:
        """Mean motion in rad/day."""
        return TWO_PI / self.revolution_period

    @property
    def periapsis(self) -> float:
        return self.semimajor_axis * (1.0 - self.eccentricity)

    @property
    def apoapsis(self) -> float:
        return self.semimajor_axis * (1.0 + self.eccentricity)

    def mean_anomaly_at(self, elapsed_days: float) -> float:
        """Mean anomaly at a simulation time, assuming unperturbed motion."""
        return wrap_angle(
            self.initial_mean_anomaly + self.mean_motion * (elapsed_days - self.epoch_days)
        )

    def advance(self, elapsed_days: float) -> float:
        """Move the current mean anomaly to the given simulation time."""
        self.mean_anomaly = self.mean_anomaly_at(elapsed_days)
        return self.mean_anomaly

    def true_anomaly(self, mean_anomaly: float = None) -> float:
        """True anomaly for a mean anomaly (default: the current one)."""
        if mean_anomaly is None:
            mean_anomaly = self.mean_anomaly
        return true_anomaly_from_mean(mean_anomaly, self.eccentricity)

    def as_dict(self) -> dict:
        return {
            'eccentricity': self.eccentricity,
            'semimajor_axis_km': self.semimajor_axis,
            'inclination_deg': np.degrees(self.inclination),
            'long_asc_node_deg': np.degrees(self.long_asc_node),
            'arg_periapsis_deg': np.degrees(self.arg_periapsis),
            'mean_anomaly_deg': np.degrees(self.mean_anomaly),
            'revolution_period_days': self.revolution_period,
        }


def eccentricity_vector(r: np.ndarray, v: np.ndarray, mu: float) -> np.ndarray:
    """
    Eccentricity vector of a relative state.

    Args:
        r: Position relative to the central body [km]
        v: Velocity relative to the central body [km/day]
        mu: Gravitational parameter of the central body [km³/day²]

    Returns:
        e_vec, pointing at periapsis with magnitude e
    """
    r = np.asarray(r, dtype=float)
    v = np.asarray(v, dtype=float)
    r_mag = np.linalg.norm(r)
    if r_mag == 0.0:
        raise DegenerateGeometryError("Zero position vector")
    h = np.cross(r, v)
    return np.cross(v, h) / mu - r / r_mag


def solve_elements(r: np.ndarray,
                   v: np.ndarray,
                   mu: float,
                   epoch_days: float = 0.0) -> OrbitalElements:
    """
    Calculate classical orbital elements from a relative state vector.

    Policies for the angles that are undefined:
    - equatorial orbit (zero node vector): longitude of ascending node is 0
      and the argument of periapsis carries the longitude of periapsis
    - circular orbit: argument of periapsis is 0 and the true anomaly is
      measured from the ascending node (from the x axis when also equatorial)

    Args:
        r: Position relative to the host [km]
        v: Velocity relative to the host [km/day]
        mu: G * host mass [km³/day²]
        epoch_days: Simulation time of the state

    Returns:
        OrbitalElements

    Raises:
        DegenerateGeometryError: zero position or zero angular momentum
        UnboundOrbitError: eccentricity >= 1
    """
    r = np.asarray(r, dtype=float)
    v = np.asarray(v, dtype=float)
    r_mag = np.linalg.norm(r)
    if r_mag == 0.0:
        raise DegenerateGeometryError("Zero position vector")

    # Specific angular momentum
    h = np.cross(r, v)
    h_mag = np.linalg.norm(h)
    if h_mag == 0.0:
        raise DegenerateGeometryError("Zero angular momentum (radial trajectory)")

    # Eccentricity vector
    e_vec = np.cross(v, h) / mu - r / r_mag
    e = float(np.linalg.norm(e_vec))
    if e >= 1.0:
        raise UnboundOrbitError(f"Eccentricity {e:.6f} is not a bound orbit")

    # Semi-major axis
    energy = np.dot(v, v) / 2 - mu / r_mag
    a = -mu / (2 * energy)

    # Inclination
    i = safe_arccos(h[2] / h_mag)

    # Node vector
    n = np.array([-h[1], h[0], 0.0])
    n_mag = np.linalg.norm(n)
    equatorial = n_mag <= EQUATORIAL_EPSILON * h_mag
    circular = e < CIRCULAR_EPSILON

    if equatorial:
        Omega = 0.0
        if circular:
            omega = 0.0
        else:
            # Longitude of periapsis; R1(π) mirrors y for retrograde orbits
            omega = wrap_angle(np.arctan2(e_vec[1], e_vec[0]))
            if h[2] < 0:
                omega = wrap_angle(TWO_PI - omega)
    else:
        Omega = safe_arccos(n[0] / n_mag)
        if n[1] < 0:
            Omega = TWO_PI - Omega
        if circular:
            omega = 0.0
        else:
            omega = safe_arccos(np.dot(n, e_vec) / (n_mag * e))
            if e_vec[2] < 0:
                omega = TWO_PI - omega

    # True anomaly
    if circular:
        ref = np.array([1.0, 0.0, 0.0]) if equatorial else n / n_mag
        h_hat = h / h_mag
        nu = np.arctan2(np.dot(h_hat, np.cross(ref, r)), np.dot(ref, r))
    else:
        nu = safe_arccos(np.dot(e_vec, r) / (e * r_mag))
        if np.dot(r, v) < 0:
            nu = TWO_PI - nu
    nu = wrap_angle(nu)

    # tan(E/2) = sqrt((1-e)/(1+e)) tan(nu/2), kept quadrant-safe
    E = 2.0 * np.arctan2(np.sqrt(1.0 - e) * np.sin(nu / 2),
                         np.sqrt(1.0 + e) * np.cos(nu / 2))
    M = wrap_angle(E - e * np.sin(E))

    period = TWO_PI * np.sqrt(a**3 / mu)

    return OrbitalElements(
        eccentricity=e,
        semimajor_axis=float(a),
        inclination=i,
        long_asc_node=float(Omega),
        arg_periapsis=float(omega),
        initial_mean_anomaly=M,
        revolution_period=float(period),
        epoch_days=epoch_days,
    )


def solve_kepler(mean_anomaly: float,
                 eccentricity: float,
                 tol: float = 1e-12,
                 max_iter: int = 50) -> float:
    """
    Solve Kepler's equation M = E - e sin E by Newton iteration.

    Returns:
        Eccentric anomaly E [rad]
    """
    M = wrap_angle(mean_anomaly)
    e = eccentricity
    E = M if e < 0.8 else np.pi

    for _ in range(max_iter):
        dE = (E - e * np.sin(E) - M) / (1 - e * np.cos(E))
        E -= dE
        if abs(dE) < tol:
            break

    return float(E)


def true_anomaly_from_mean(mean_anomaly: float, eccentricity: float) -> float:
    """True anomaly [rad] in [0, 2π) for a mean anomaly."""
    e = eccentricity
    E = solve_kepler(mean_anomaly, e)
    nu = 2.0 * np.arctan2(np.sqrt(1 + e) * np.sin(E / 2),
                          np.sqrt(1 - e) * np.cos(E / 2))
    return wrap_angle(nu)


def perifocal_to_inertial(inclination: float,
                          long_asc_node: float,
                          arg_periapsis: float) -> np.ndarray:
    """Rotation matrix R3(Ω) R1(i) R3(ω) from the perifocal frame."""
    i, Omega, omega = inclination, long_asc_node, arg_periapsis

    R3_Omega = np.array([
        [np.cos(Omega), -np.sin(Omega), 0],
        [np.sin(Omega), np.cos(Omega), 0],
        [0, 0, 1]
    ])

    R1_i = np.array([
        [1, 0, 0],
        [0, np.cos(i), -np.sin(i)],
        [0, np.sin(i), np.cos(i)]
    ])

    R3_omega = np.array([
        [np.cos(omega), -np.sin(omega), 0],
        [np.sin(omega), np.cos(omega), 0],
        [0, 0, 1]
    ])

    return R3_Omega @ R1_i @ R3_omega


def state_from_elements(elements: OrbitalElements,
                        mu: float,
                        mean_anomaly: float = None,
                        true_anomaly: float = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Position and velocity relative to the host for a point on the orbit.

    Args:
        elements: Orbit shape and orientation
        mu: G * host mass [km³/day²]
        mean_anomaly: Point on the orbit (default: current mean anomaly)
        true_anomaly: Point on the orbit, overrides mean_anomaly

    Returns:
        Tuple of (position [km], velocity [km/day])
    """
    a = elements.semimajor_axis
    e = elements.eccentricity

    if true_anomaly is None:
        true_anomaly = elements.true_anomaly(mean_anomaly)
    nu = true_anomaly

    # Semi-latus rectum
    p = a * (1 - e**2)

    # Position and velocity in perifocal frame
    r_pqw = (p / (1 + e * np.cos(nu))) * np.array([np.cos(nu), np.sin(nu), 0.0])
    v_pqw = np.sqrt(mu / p) * np.array([-np.sin(nu), e + np.cos(nu), 0.0])

    Q = perifocal_to_inertial(elements.inclination,
                              elements.long_asc_node,
                              elements.arg_periapsis)
    return Q @ r_pqw, Q @ v_pqw
