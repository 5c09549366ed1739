"""
===============================================================================
KERBOL TRANSFER PLANNER - Hohmann Transfer Geometry
===============================================================================
Transfer-orbit geometry between two orbits sharing a primary.

Two families of calculation live here:

    1. **Local burns** around a single body -- two-impulse orbit changes,
       ascent from the surface and descent to it. No timing is involved.

    2. **Interplanetary transfers** -- a half-ellipse from one body's orbit
       to another's, evaluated at a candidate departure time t. The
       transfer-window solver searches t for the departure at which the
       target arrives at the rendezvous point together with the vessel.

Departure geometry at time t:

    nu_s, nu_t      source / target true anomaly at t
    L_s             source true longitude at t
    nu_t2           target true anomaly at longitude L_s + pi (rendezvous)
    r1, r2          source radius at nu_s, target radius at nu_t2
    transfer        e = |r2 - r1| / (r1 + r2),  a = (r1 + r2) / 2
    travel_time     half the transfer period
    meeting_time    time for the target to reach nu_t2 from nu_t, plus any
                    whole target revolutions completed during the transfer
    error           travel_time - meeting_time   (root = launch window)

Sign conventions and units:
    - All distances in meters, velocities in m/s, times in seconds
    - All angles in radians
===============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Tuple

import numpy as np

from core.constants import HALF_PI, PI
from dynamics import anomalies
from dynamics.body import Body
from dynamics.orbit import Orbit

logger = logging.getLogger(__name__)


# =============================================================================
# LOCAL BURNS
# =============================================================================

def orbit_change_delta_v(source: Orbit, target: Orbit) -> Optional[float]:
    """
    Two-impulse change between orbits around the same primary.

    Burn 1 at the source periapsis moves the far apsis to the target
    apoapsis; burn 2 at that apsis matches the target's speed there.

        dv = |v1 - v0| + |v3 - v2|

    where v0/v1 are the source/intermediate speeds at R + peri_source and
    v2/v3 the intermediate/target speeds at R + apo_target.

    Returns:
        Total delta-V (m/s), or None if either orbit lacks a primary or mu.
    """
    R = source.primary_radius
    if R is None or target.primary_radius is None:
        return None

    intermediate = source.copy()
    intermediate.apoapsis = target.apoapsis

    r1 = R + source.periapsis
    r2 = R + target.apoapsis
    v0 = source.relative_velocity_with_radius(r1)
    v1 = intermediate.relative_velocity_with_radius(r1)
    v2 = intermediate.relative_velocity_with_radius(r2)
    v3 = target.relative_velocity_with_radius(r2)
    if None in (v0, v1, v2, v3):
        return None

    dv = abs(v1 - v0) + abs(v3 - v2)
    logger.debug("Orbit change: r1=%.0f m, r2=%.0f m, dv=%.1f m/s", r1, r2, dv)
    return dv


def ascent_delta_v(body: Body, target: Orbit) -> Optional[float]:
    """
    Airless-ascent cost from the surface of body into the target orbit.

    The ascent ellipse has its periapsis on the surface and its apoapsis at
    the target periapsis. The surface rotation is credited at the end.
    """
    if body.mu is None or target.periapsis is None:
        return None
    ascent = Orbit.from_apsides(body, 0.0, target.periapsis)
    v_surface = ascent.relative_velocity_with_radius(body.radius)
    change = orbit_change_delta_v(ascent, target)
    if v_surface is None or change is None:
        return None
    return v_surface + change - (body.surface_velocity or 0.0)


def descent_delta_v(source: Orbit, aerobrake: bool = False) -> Optional[float]:
    """
    Deorbit and touchdown cost from the source orbit to the primary's surface.

    The deorbit ellipse has its apoapsis at the source periapsis and its
    periapsis on the surface. Touchdown costs the descent speed at the
    surface less the surface rotation, and is free when aerobraking into an
    atmosphere.
    """
    body = source.primary_body
    if body is None or body.mu is None:
        return None
    descent = Orbit.from_apsides(body, 0.0, source.periapsis)
    change = orbit_change_delta_v(source, descent)
    if change is None:
        return None

    if aerobrake and body.has_atmosphere:
        touchdown = 0.0
    else:
        v_touchdown = descent.relative_velocity_with_radius(body.radius)
        if v_touchdown is None:
            return None
        touchdown = v_touchdown - (body.surface_velocity or 0.0)
    return change + touchdown


# =============================================================================
# INTERPLANETARY TRANSFER
# =============================================================================

class TransferType(Enum):
    """Relationship between the departure and arrival bodies."""
    TO_PRIMARY = auto()            # Moon -> the planet it orbits
    TO_SECONDARY = auto()          # Planet -> one of its moons
    BETWEEN_SECONDARIES = auto()   # Siblings sharing a primary


@dataclass(frozen=True)
class TransferWindow:
    """
    Transfer geometry evaluated at one departure time.

    Attributes:
        time: Departure time (s).
        transfer_type: Topology of the transfer.
        transfer_orbit: Half-ellipse from r1 to r2 around the shared primary.
        travel_time: Half the transfer period (s).
        meeting_time: Time for the target to reach the rendezvous point,
                      including whole revolutions on long transfers (s).
        error: travel_time - meeting_time (s); zero at the launch window.
        phase_angle: Target longitude minus source longitude at departure (rad).
        source_radius, target_radius: r1, r2 (m).
        source_velocity: Source orbit speed at r1 (m/s).
        departure_velocity: Transfer orbit speed at r1 (m/s).
        arrival_velocity: Transfer orbit speed at r2 (m/s).
        target_velocity: Target orbit speed at r2 (m/s).
        plane_change_delta_v: Mid-course inclination match (m/s).
    """
    time: float
    transfer_type: TransferType
    transfer_orbit: Orbit
    travel_time: float
    meeting_time: float
    error: float
    phase_angle: float
    source_radius: float
    target_radius: float
    source_velocity: float
    departure_velocity: float
    arrival_velocity: float
    target_velocity: float
    plane_change_delta_v: float

    @property
    def arrival_time(self) -> float:
        return self.time + self.travel_time

    @property
    def hyperbolic_excess_escape_velocity(self) -> float:
        """Speed relative to the source body on leaving its SOI (m/s)."""
        return abs(self.departure_velocity - self.source_velocity)

    @property
    def hyperbolic_excess_capture_velocity(self) -> float:
        """Speed relative to the target body on entering its SOI (m/s)."""
        return abs(self.target_velocity - self.arrival_velocity)

    @property
    def is_inward(self) -> bool:
        return self.target_radius < self.source_radius


class HohmannTransfer:
    """
    Hohmann transfer between two orbits around a common primary.

    Typical usage:
        transfer = HohmannTransfer.from_bodies(kerbin, parking, duna, capture)
        window = transfer.transfer_at_time(t)
        window.error   # seconds between vessel arrival and target arrival

    Args:
        source_orbit: Orbit the vessel departs from (around the primary).
        target_orbit: Orbit the vessel arrives on (around the same primary).
        transfer_type: Which topology produced this orbit pair.
    """

    def __init__(self, source_orbit: Orbit, target_orbit: Orbit,
                 transfer_type: TransferType = TransferType.BETWEEN_SECONDARIES):
        self.source_orbit = source_orbit
        self.target_orbit = target_orbit
        self.transfer_type = transfer_type

    def __repr__(self) -> str:
        return f"HohmannTransfer({self.transfer_type.name})"

    @classmethod
    def classify(cls, source_body: Optional[Body],
                 target_body: Optional[Body]) -> Optional[TransferType]:
        """Transfer topology between two bodies, None if they are not adjacent."""
        if source_body is None or target_body is None:
            return None
        if source_body.body_id == target_body.body_id:
            return None
        if source_body.primary_id == target_body.body_id:
            return TransferType.TO_PRIMARY
        if target_body.primary_id == source_body.body_id:
            return TransferType.TO_SECONDARY
        if source_body.primary_id is not None and source_body.primary_id == target_body.primary_id:
            return TransferType.BETWEEN_SECONDARIES
        return None

    @classmethod
    def from_bodies(cls, source_body: Optional[Body], source_orbit: Optional[Orbit],
                    target_body: Optional[Body],
                    target_orbit: Optional[Orbit]) -> Optional['HohmannTransfer']:
        """
        Pick the orbit pair around the shared primary for the given bodies.

            TO_PRIMARY           (source body's orbit, target orbit)
            TO_SECONDARY         (source orbit, target body's orbit)
            BETWEEN_SECONDARIES  (source body's orbit, target body's orbit)

        Returns:
            HohmannTransfer, or None when the bodies are not adjacent in the
            catalog tree or a required orbit / gravitational parameter is
            missing.
        """
        transfer_type = cls.classify(source_body, target_body)
        if transfer_type is None:
            return None

        if transfer_type is TransferType.TO_PRIMARY:
            pair = (source_body.orbit, target_orbit)
        elif transfer_type is TransferType.TO_SECONDARY:
            pair = (source_orbit, target_body.orbit)
        else:
            pair = (source_body.orbit, target_body.orbit)

        source, target = pair
        if source is None or target is None or source.mu is None or target.mu is None:
            return None
        return cls(source, target, transfer_type)

    @property
    def periods(self) -> Tuple[Optional[float], Optional[float]]:
        return self.source_orbit.period, self.target_orbit.period

    def current_phase_angle(self, t: float) -> Optional[float]:
        """Target true longitude minus source true longitude at t (rad)."""
        L_s = self.source_orbit.true_longitude_at_time(t)
        L_t = self.target_orbit.true_longitude_at_time(t)
        if L_s is None or L_t is None:
            return None
        return anomalies.normalize_angle(L_t - L_s)

    def transfer_at_time(self, t: float) -> TransferWindow:
        """
        Evaluate the transfer geometry for a departure at time t.

        Args:
            t: Candidate departure time (s).

        Returns:
            TransferWindow with the timing error and burn velocities.
        """
        src = self.source_orbit
        tgt = self.target_orbit

        nu_s = src.true_anomaly_at_time(t)
        nu_t = tgt.true_anomaly_at_time(t)
        L_s = src.true_longitude_with_true_anomaly(nu_s)
        L_t = tgt.true_longitude_with_true_anomaly(nu_t)

        # Rendezvous happens on the far side of the primary
        nu_t2 = tgt.true_anomaly_with_true_longitude(L_s + PI)

        r1 = src.radius_with_true_anomaly(nu_s)
        r2 = tgt.radius_with_true_anomaly(nu_t2)
        inward = r2 < r1

        # Departure sits at periapsis of an outward ellipse, apoapsis of an inward one
        transfer = Orbit(
            semi_major_axis=(r1 + r2) / 2.0,
            eccentricity=abs(r2 - r1) / (r1 + r2),
            inclination=src.inclination,
            argument_of_periapsis=anomalies.normalize_angle(
                src.argument_of_periapsis + nu_s + (PI if inward else 0.0)),
            longitude_of_ascending_node=src.longitude_of_ascending_node,
            mean_anomaly_at_epoch=PI if inward else 0.0,
            epoch=t,
            primary_body=src.primary_body,
            gravitational_parameter=src.mu,
        )

        travel_time = transfer.period / 2.0
        n_t = tgt.mean_motion
        delta_M = anomalies.normalize_angle(
            tgt.mean_anomaly_with_true_anomaly(nu_t2) - tgt.mean_anomaly_with_true_anomaly(nu_t))
        meeting_time = delta_M / n_t
        # Long transfers let the target lap its orbit before the vessel arrives
        revolutions = max(0.0, np.floor((travel_time - meeting_time) / tgt.period + 0.5))
        meeting_time += revolutions * tgt.period
        error = travel_time - meeting_time

        # Inclination is matched half-way along the transfer
        nu_mid = PI + HALF_PI if inward else HALF_PI
        v_mid = transfer.relative_velocity_with_radius(transfer.radius_with_true_anomaly(nu_mid))
        nu_t_arrival = tgt.true_anomaly_at_time(t + travel_time)
        delta_declination = (tgt.declination_with_true_anomaly(nu_t_arrival)
                             - transfer.declination_with_true_anomaly(nu_mid))
        plane_change = 2.0 * v_mid * abs(np.sin(delta_declination / 2.0))

        return TransferWindow(
            time=t,
            transfer_type=self.transfer_type,
            transfer_orbit=transfer,
            travel_time=travel_time,
            meeting_time=meeting_time,
            error=error,
            phase_angle=anomalies.normalize_angle(L_t - L_s),
            source_radius=r1,
            target_radius=r2,
            source_velocity=src.relative_velocity_with_radius(r1),
            departure_velocity=transfer.relative_velocity_with_radius(r1),
            arrival_velocity=transfer.relative_velocity_with_radius(r2),
            target_velocity=tgt.relative_velocity_with_radius(r2),
            plane_change_delta_v=float(plane_change),
        )
