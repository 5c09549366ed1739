"""
===============================================================================
KERBOL TRANSFER PLANNER - Celestial Body Descriptor
===============================================================================
Immutable description of one gravitating body in the catalog tree.

Bodies refer to their parent and children by id; the orbit object (if any)
carries a direct reference to the parent Body so that orbital quantities
can be derived without a catalog lookup. The root star has neither a
primary nor an orbit.
===============================================================================
"""

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Optional

import numpy as np

from core.constants import (
    AIRLESS_PARKING_FRACTION,
    GRAVITATIONAL_CONSTANT,
    PARKING_HEIGHT_ROUNDING,
    PARKING_ORBIT_MARGIN,
    TIDAL_LOCK_TOLERANCE,
    TWO_PI,
)

if TYPE_CHECKING:
    from dynamics.orbit import Orbit

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Body:
    """
    A celestial body.

    Attributes:
        body_id: Unique catalog id.
        name: Display name, unique within a catalog.
        mass: Mass (kg). Zero or negative means "unknown".
        radius: Mean equatorial radius (m).
        rotation_period: Sidereal rotation period (s). Zero if not rotating.
        sphere_of_influence: SOI radius measured from the centre (m).
        max_atmosphere: Height of the top of the atmosphere (m), 0 if airless.
        atmosphere_contains_oxygen: Whether air-breathing engines work.
        gravitational_parameter: Explicit mu (m^3/s^2) overriding G * mass.
        primary_id: Id of the body this one orbits, None for the root.
        secondaries: Ids of the bodies orbiting this one.
        orbit: Orbit around the primary, None for the root.
    """
    body_id: int
    name: str
    mass: float
    radius: float
    rotation_period: float = 0.0
    sphere_of_influence: float = math.inf
    max_atmosphere: float = 0.0
    atmosphere_contains_oxygen: bool = False
    gravitational_parameter: Optional[float] = None
    primary_id: Optional[int] = None
    secondaries: FrozenSet[int] = field(default_factory=frozenset)
    orbit: Optional['Orbit'] = None

    def __repr__(self) -> str:
        return f"Body({self.body_id}, {self.name!r})"

    # -------------------------------------------------------------------------
    # Gravity
    # -------------------------------------------------------------------------

    @property
    def mu(self) -> Optional[float]:
        """Gravitational parameter (m^3/s^2), None when neither mu nor mass is known."""
        if self.gravitational_parameter is not None:
            return self.gravitational_parameter
        if self.mass > 0.0:
            return GRAVITATIONAL_CONSTANT * self.mass
        return None

    @property
    def is_root(self) -> bool:
        return self.primary_id is None

    @property
    def has_atmosphere(self) -> bool:
        return self.max_atmosphere > 0.0

    # -------------------------------------------------------------------------
    # Rotation
    # -------------------------------------------------------------------------

    @property
    def surface_velocity(self) -> Optional[float]:
        """Equatorial rotation speed 2*pi*R / T (m/s); None for non-rotating bodies."""
        if self.rotation_period <= 0.0:
            return None
        return TWO_PI * self.radius / self.rotation_period

    @property
    def orbital_period(self) -> Optional[float]:
        if self.orbit is None:
            return None
        return self.orbit.period

    @property
    def tidally_locked(self) -> Optional[bool]:
        """True if the rotation period matches the orbital period within 0.1 %."""
        period = self.orbital_period
        if period is None or self.rotation_period <= 0.0:
            return None
        return abs(self.rotation_period - period) <= TIDAL_LOCK_TOLERANCE * period

    # -------------------------------------------------------------------------
    # Characteristic orbit heights
    # -------------------------------------------------------------------------

    @property
    def parking_orbit_height(self) -> float:
        """
        Height of a sensible low parking orbit (m).

        Atmospheric bodies park 10 km above the atmosphere. Airless bodies
        park at 10 % of their radius, rounded up to the next 5 km and never
        below 10 km.
        """
        if self.has_atmosphere:
            return self.max_atmosphere + PARKING_ORBIT_MARGIN
        raw = AIRLESS_PARKING_FRACTION * self.radius
        rounded = math.ceil(raw / PARKING_HEIGHT_ROUNDING) * PARKING_HEIGHT_ROUNDING
        return max(PARKING_ORBIT_MARGIN, float(rounded))

    def _circular_height_for_period(self, period: float) -> Optional[float]:
        mu = self.mu
        if mu is None or period <= 0.0:
            return None
        a = float(np.cbrt(mu * period ** 2 / TWO_PI ** 2))
        if a <= self.radius or a > self.sphere_of_influence:
            return None
        return a - self.radius

    @property
    def synchronous_orbit_height(self) -> Optional[float]:
        """Height of the circular orbit whose period equals the rotation period."""
        return self._circular_height_for_period(self.rotation_period)

    @property
    def semi_synchronous_orbit_height(self) -> Optional[float]:
        """Height of the circular orbit with half the rotation period."""
        return self._circular_height_for_period(0.5 * self.rotation_period)
