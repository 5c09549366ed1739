"""
===============================================================================
KERBOL TRANSFER PLANNER - Anomaly Conversions
===============================================================================
Pure functions relating mean, eccentric and true anomaly on an elliptic
orbit (0 <= e < 1). Every angle returned here is normalised into [0, 2*pi).

Two forward paths (mean -> true) are provided:

    1. **Equation of the centre** -- second-order series in e,
           nu ~= M + 2 e sin M + 1.25 e^2 sin 2M
       This is what the planner propagates with. Its error grows as O(e^3),
       so a forward-then-inverse round trip is only idempotent for small e.

    2. **Kepler solve** -- Newton iteration on M = E - e sin E followed by
       the exact E -> nu conversion. Used where an exact answer matters and
       to measure the series error.

The inverse path (true -> eccentric -> mean) is exact.

References
----------
    [1] Vallado, "Fundamentals of Astrodynamics and Applications", 4th ed.,
        Sec. 2.2.
    [2] Murray & Dermott, "Solar System Dynamics", Sec. 2.5 (series).
===============================================================================
"""

import logging
from typing import Optional

import numpy as np
from scipy.optimize import newton

from core.constants import PI, TWO_PI

logger = logging.getLogger(__name__)


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [0, 2*pi)."""
    wrapped = float(np.mod(angle, TWO_PI))
    # np.mod can round a tiny negative input up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def mean_motion(mu: Optional[float], semi_major_axis: float) -> Optional[float]:
    """
    Mean motion n = sqrt(mu / a^3) (rad/s).

    Returns None when mu is unknown or the semi-major axis is not positive.
    """
    if mu is None or semi_major_axis <= 0.0:
        return None
    return float(np.sqrt(mu / semi_major_axis ** 3))


# =============================================================================
# FORWARD: MEAN -> TRUE
# =============================================================================

def true_anomaly_from_mean(mean_anomaly: float, eccentricity: float) -> float:
    """
    Second-order equation-of-the-centre approximation of the true anomaly.

    Args:
        mean_anomaly: M (rad).
        eccentricity: e, expected in [0, 1).

    Returns:
        Approximate true anomaly nu in [0, 2*pi).
    """
    M = mean_anomaly
    e = eccentricity
    nu = M + 2.0 * e * np.sin(M) + 1.25 * e * e * np.sin(2.0 * M)
    return normalize_angle(nu)


def eccentric_anomaly_from_mean(mean_anomaly: float, eccentricity: float,
                                tol: float = 1e-12, max_iter: int = 50) -> float:
    """
    Solve Kepler's equation M = E - e sin E for E.

    Uses scipy's Newton iteration with the analytic derivative 1 - e cos E,
    starting from Danby's guess E0 = M + 0.85 e sign(sin M).

    Raises:
        RuntimeError: If the iteration does not converge.
    """
    M = normalize_angle(mean_anomaly)
    e = eccentricity
    if e == 0.0:
        return M
    E0 = M + 0.85 * e * np.sign(np.sin(M))
    E = newton(
        lambda E: E - e * np.sin(E) - M,
        E0,
        fprime=lambda E: 1.0 - e * np.cos(E),
        tol=tol,
        maxiter=max_iter,
    )
    return normalize_angle(E)


def true_anomaly_from_eccentric(eccentric_anomaly: float, eccentricity: float) -> float:
    """Exact nu from E: tan(nu/2) = sqrt((1+e)/(1-e)) tan(E/2)."""
    E = eccentric_anomaly
    e = eccentricity
    nu = 2.0 * np.arctan2(np.sqrt(1.0 + e) * np.sin(E / 2.0),
                          np.sqrt(1.0 - e) * np.cos(E / 2.0))
    return normalize_angle(nu)


def true_anomaly_from_mean_exact(mean_anomaly: float, eccentricity: float) -> float:
    """True anomaly via a full Kepler solve."""
    E = eccentric_anomaly_from_mean(mean_anomaly, eccentricity)
    return true_anomaly_from_eccentric(E, eccentricity)


# =============================================================================
# INVERSE: TRUE -> MEAN
# =============================================================================

def eccentric_anomaly_from_true(true_anomaly: float, eccentricity: float) -> float:
    """
    Eccentric anomaly from true anomaly.

        cos E = (e + cos nu) / (1 + e cos nu)

    acos only covers [0, pi], so the lower half of the orbit (nu >= pi) is
    mapped to 2*pi - E.
    """
    nu = normalize_angle(true_anomaly)
    e = eccentricity
    cos_nu = np.cos(nu)
    cos_E = (e + cos_nu) / (1.0 + e * cos_nu)
    E = float(np.arccos(np.clip(cos_E, -1.0, 1.0)))
    if nu >= PI:
        E = TWO_PI - E
    return normalize_angle(E)


def mean_anomaly_from_eccentric(eccentric_anomaly: float, eccentricity: float) -> float:
    """Kepler's equation M = E - e sin E."""
    E = eccentric_anomaly
    return normalize_angle(E - eccentricity * np.sin(E))


def mean_anomaly_from_true(true_anomaly: float, eccentricity: float) -> float:
    """Exact mean anomaly from true anomaly."""
    E = eccentric_anomaly_from_true(true_anomaly, eccentricity)
    return mean_anomaly_from_eccentric(E, eccentricity)


def angular_difference(a: float, b: float) -> float:
    """Smallest absolute separation between two angles (rad), in [0, pi]."""
    d = normalize_angle(a - b)
    return min(d, TWO_PI - d)
