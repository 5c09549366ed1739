"""
===============================================================================
KERBOL TRANSFER PLANNER - Keplerian Orbit
===============================================================================
Classical-element orbit around a primary Body, with the derived quantities
the maneuver planner needs: anomalies at a time, radius and vis-viva speed,
true longitude and declination, apsis heights and timing.

Conventions:
    - Distances in meters, times in seconds, angles in radians
    - Apsis "heights" (periapsis, apoapsis) are measured above the
      primary's surface, i.e. r - R
    - Every angle output is normalised into [0, 2*pi)
    - Anything that needs mu or the primary radius returns None when that
      input is unavailable; invalid elements and mutations raise

The forward propagation (true anomaly at time) uses the equation-of-the-
centre series from dynamics.anomalies; the exact Kepler path is available
through true_anomaly_at_time_exact.
===============================================================================
"""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional

import numpy as np

from core.constants import HALF_PI, PI, TWO_PI
from core.errors import DegenerateOrbit
from dynamics import anomalies

if TYPE_CHECKING:
    from dynamics.body import Body

logger = logging.getLogger(__name__)


def _shape_from_apsides(R: Optional[float], periapsis: Optional[float],
                        apoapsis: Optional[float]):
    """(a, e) for the given apsis heights above a primary of radius R."""
    if R is None:
        raise DegenerateOrbit("Cannot set apsis heights on an orbit without a primary body")
    if periapsis is None or apoapsis is None:
        raise DegenerateOrbit("Both apsis heights must be defined")
    if min(periapsis, apoapsis) <= -R:
        raise DegenerateOrbit(
            f"Apsis heights ({periapsis:.1f}, {apoapsis:.1f}) m reach the centre "
            f"of the primary (R = {R:.1f} m)")
    eccentricity = abs(apoapsis - periapsis) / (apoapsis + periapsis + 2.0 * R)
    return (apoapsis + periapsis) / 2.0 + R, eccentricity


@dataclass(eq=False)
class Orbit:
    """
    Elliptic orbit described by classical elements.

    Attributes:
        semi_major_axis: a (m), measured from the primary's centre.
        eccentricity: e in [0, 1).
        inclination: i (rad).
        argument_of_periapsis: omega (rad).
        longitude_of_ascending_node: Omega (rad).
        mean_anomaly_at_epoch: M0 (rad).
        epoch: Time at which M0 holds (s).
        primary_body: Body being orbited.
        gravitational_parameter: Explicit mu for synthetic orbits (e.g.
                                 transfer ellipses); overrides the primary.
    """
    semi_major_axis: float
    eccentricity: float = 0.0
    inclination: float = 0.0
    argument_of_periapsis: float = 0.0
    longitude_of_ascending_node: float = 0.0
    mean_anomaly_at_epoch: float = 0.0
    epoch: float = 0.0
    primary_body: Optional['Body'] = None
    gravitational_parameter: Optional[float] = None

    def __post_init__(self):
        if not 0.0 <= self.eccentricity < 1.0:
            raise DegenerateOrbit(
                f"Eccentricity {self.eccentricity} is outside the elliptic range [0, 1)")
        if self.semi_major_axis * (1.0 - self.eccentricity) <= 0.0:
            raise DegenerateOrbit(
                f"Semi-major axis {self.semi_major_axis:.1f} m puts the periapsis at or "
                f"below the primary's centre")

    @classmethod
    def from_apsides(cls, primary_body: 'Body', periapsis: float, apoapsis: float,
                     **elements) -> 'Orbit':
        """
        Build an orbit from periapsis and apoapsis heights above the surface.

        Remaining classical elements are passed through as keyword arguments.

        Raises:
            DegenerateOrbit: If the heights put the orbit inside the primary.
        """
        radius = None if primary_body is None else primary_body.radius
        a, e = _shape_from_apsides(radius, periapsis, apoapsis)
        return cls(semi_major_axis=a, eccentricity=e, primary_body=primary_body, **elements)

    def copy(self) -> 'Orbit':
        """Return an independent copy (the primary Body is shared)."""
        return replace(self)

    # -------------------------------------------------------------------------
    # Primary-derived quantities
    # -------------------------------------------------------------------------

    @property
    def mu(self) -> Optional[float]:
        if self.gravitational_parameter is not None:
            return self.gravitational_parameter
        if self.primary_body is None:
            return None
        return self.primary_body.mu

    @property
    def primary_radius(self) -> Optional[float]:
        if self.primary_body is None:
            return None
        return self.primary_body.radius

    # -------------------------------------------------------------------------
    # Apsides
    # -------------------------------------------------------------------------

    @property
    def periapsis(self) -> Optional[float]:
        """Periapsis height above the surface (m)."""
        R = self.primary_radius
        if R is None:
            return None
        return self.semi_major_axis * (1.0 - self.eccentricity) - R

    @periapsis.setter
    def periapsis(self, value: float):
        self.set_apsides(value, self.apoapsis)

    @property
    def apoapsis(self) -> Optional[float]:
        """Apoapsis height above the surface (m)."""
        R = self.primary_radius
        if R is None:
            return None
        return self.semi_major_axis * (1.0 + self.eccentricity) - R

    @apoapsis.setter
    def apoapsis(self, value: float):
        self.set_apsides(self.periapsis, value)

    def set_apsides(self, periapsis: Optional[float], apoapsis: Optional[float]) -> None:
        """
        Reshape the orbit so that its apsis heights are the two given values.

            e = |apo - peri| / (apo + peri + 2R)
            a = (apo + peri) / 2 + R

        The formula is symmetric, so the smaller of the two values always
        ends up as the periapsis.

        Raises:
            DegenerateOrbit: No primary radius, or either apsis at or below
                             the primary's centre.
        """
        self.semi_major_axis, self.eccentricity = _shape_from_apsides(
            self.primary_radius, periapsis, apoapsis)

    # -------------------------------------------------------------------------
    # Timing
    # -------------------------------------------------------------------------

    @property
    def mean_motion(self) -> Optional[float]:
        """n = sqrt(mu / a^3) (rad/s)."""
        return anomalies.mean_motion(self.mu, self.semi_major_axis)

    @property
    def period(self) -> Optional[float]:
        """Orbital period 2*pi / n (s)."""
        n = self.mean_motion
        if n is None or n == 0.0:
            return None
        return TWO_PI / n

    def mean_anomaly_at_time(self, t: float) -> Optional[float]:
        n = self.mean_motion
        if n is None:
            return None
        return anomalies.normalize_angle(self.mean_anomaly_at_epoch + n * (t - self.epoch))

    def true_anomaly_at_time(self, t: float) -> Optional[float]:
        """True anomaly at time t from the equation-of-the-centre series."""
        M = self.mean_anomaly_at_time(t)
        if M is None:
            return None
        return anomalies.true_anomaly_from_mean(M, self.eccentricity)

    def true_anomaly_at_time_exact(self, t: float) -> Optional[float]:
        """True anomaly at time t from a full Kepler solve."""
        M = self.mean_anomaly_at_time(t)
        if M is None:
            return None
        return anomalies.true_anomaly_from_mean_exact(M, self.eccentricity)

    def eccentric_anomaly_with_true_anomaly(self, true_anomaly: float) -> float:
        return anomalies.eccentric_anomaly_from_true(true_anomaly, self.eccentricity)

    def mean_anomaly_with_true_anomaly(self, true_anomaly: float) -> float:
        return anomalies.mean_anomaly_from_true(true_anomaly, self.eccentricity)

    def time_until_true_anomaly(self, true_anomaly: float, t: float) -> Optional[float]:
        """Time from t until the body next passes the given true anomaly (s)."""
        n = self.mean_motion
        if n is None or n == 0.0:
            return None
        M_target = self.mean_anomaly_with_true_anomaly(true_anomaly)
        return anomalies.normalize_angle(M_target - self.mean_anomaly_at_time(t)) / n

    @property
    def time_of_periapsis_passage(self) -> Optional[float]:
        """Most recent periapsis passage at or before the epoch (s)."""
        n = self.mean_motion
        if n is None or n == 0.0:
            return None
        return self.epoch - anomalies.normalize_angle(self.mean_anomaly_at_epoch) / n

    def time_to_periapsis(self, t: float) -> Optional[float]:
        n = self.mean_motion
        if n is None or n == 0.0:
            return None
        return anomalies.normalize_angle(-self.mean_anomaly_at_time(t)) / n

    def time_to_apoapsis(self, t: float) -> Optional[float]:
        n = self.mean_motion
        if n is None or n == 0.0:
            return None
        return anomalies.normalize_angle(PI - self.mean_anomaly_at_time(t)) / n

    # -------------------------------------------------------------------------
    # Geometry and speed
    # -------------------------------------------------------------------------

    def radius_with_true_anomaly(self, true_anomaly: float) -> float:
        """Conic equation r = a(1 - e^2) / (1 + e cos nu), from the centre (m)."""
        e = self.eccentricity
        return self.semi_major_axis * (1.0 - e * e) / (1.0 + e * np.cos(true_anomaly))

    def radius_at_time(self, t: float) -> Optional[float]:
        nu = self.true_anomaly_at_time(t)
        if nu is None:
            return None
        return self.radius_with_true_anomaly(nu)

    def relative_velocity_with_radius(self, radius: float) -> Optional[float]:
        """
        Vis-viva speed v = sqrt(mu (2/r - 1/a)) relative to the primary (m/s).

        None when mu is unknown, r is not positive, or r lies outside the
        ellipse (negative radicand).
        """
        mu = self.mu
        if mu is None or radius <= 0.0 or self.semi_major_axis <= 0.0:
            return None
        radicand = mu * (2.0 / radius - 1.0 / self.semi_major_axis)
        if radicand < 0.0:
            return None
        return float(np.sqrt(radicand))

    def relative_velocity_at_time(self, t: float) -> Optional[float]:
        r = self.radius_at_time(t)
        if r is None:
            return None
        return self.relative_velocity_with_radius(r)

    # -------------------------------------------------------------------------
    # Orientation
    # -------------------------------------------------------------------------

    def true_longitude_with_true_anomaly(self, true_anomaly: float) -> float:
        """L = nu + omega + Omega, the angle from the reference direction."""
        return anomalies.normalize_angle(
            true_anomaly + self.argument_of_periapsis + self.longitude_of_ascending_node)

    def true_anomaly_with_true_longitude(self, true_longitude: float) -> float:
        return anomalies.normalize_angle(
            true_longitude - self.argument_of_periapsis - self.longitude_of_ascending_node)

    def true_longitude_at_time(self, t: float) -> Optional[float]:
        nu = self.true_anomaly_at_time(t)
        if nu is None:
            return None
        return self.true_longitude_with_true_anomaly(nu)

    def declination_with_true_anomaly(self, true_anomaly: float) -> float:
        """Angle above the reference plane: asin(sin i sin(nu + omega)) (rad, signed)."""
        s = np.sin(self.inclination) * np.sin(true_anomaly + self.argument_of_periapsis)
        return float(np.arcsin(np.clip(s, -1.0, 1.0)))

    def angle_prograde(self, t: float) -> Optional[float]:
        """
        Angle still to travel before reaching the primary's prograde direction.

        The primary's prograde direction is taken as its own true longitude
        plus 90 degrees (near-circular approximation).
        """
        if self.primary_body is None or self.primary_body.orbit is None:
            return None
        primary_longitude = self.primary_body.orbit.true_longitude_at_time(t)
        own_longitude = self.true_longitude_at_time(t)
        if primary_longitude is None or own_longitude is None:
            return None
        return anomalies.normalize_angle(primary_longitude + HALF_PI - own_longitude)

    def time_until_ejection_angle(self, ejection_angle: float, t: float) -> Optional[float]:
        """
        Time from t until the angle to prograde equals ejection_angle (s).
        """
        current = self.angle_prograde(t)
        period = self.period
        if current is None or period is None:
            return None
        return period * anomalies.normalize_angle(current - ejection_angle) / TWO_PI

    # -------------------------------------------------------------------------
    # Stability
    # -------------------------------------------------------------------------

    @property
    def is_stable(self) -> Optional[bool]:
        """
        True if the orbit clears the atmosphere (or surface) and stays
        inside the primary's sphere of influence.
        """
        if self.primary_body is None:
            return None
        body = self.primary_body
        periapsis = self.periapsis
        apoapsis_radius = self.semi_major_axis * (1.0 + self.eccentricity)
        return periapsis > max(body.max_atmosphere, 0.0) and apoapsis_radius < body.sphere_of_influence
