"""
===============================================================================
KERBOL TRANSFER PLANNER - Maneuver Planner
===============================================================================
Delta-V budget for a single maneuver: launch, orbit change, transfer between
bodies, or landing.

A Maneuver holds the inputs (source body/orbit, target body/orbit,
aerobrake flag, initial time). The ManeuverPlanner classifies it, computes
every output it can, and returns a frozen ManeuverResult. Outputs that
cannot be computed from the inputs are None; a transfer whose window search
fails raises NoTransferWindowFound.

Dispatch:
    source orbit   target orbit   bodies      kind
    ------------   ------------   ---------   ------------
    absent         absent                     EMPTY
    absent         present                    LAUNCH
    present        present        same        ORBIT_CHANGE
    present        present        different   TRANSFER
    present        absent                     LANDING

Transfer budget:
    ejection + plane change + capture, where ejection and capture use a
    hyperbolic (patched-conic) burn at periapsis unless the vessel is already
    moving in the frame of the transfer's shared primary.

Sign conventions and units:
    - All distances in meters
    - All velocities in m/s
    - All times in seconds
    - All angles in radians
===============================================================================
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

import numpy as np

from core.config import PlannerConfig
from core.constants import PI
from dynamics.body import Body
from dynamics.orbit import Orbit
from guidance.hohmann import (
    HohmannTransfer,
    TransferType,
    TransferWindow,
    ascent_delta_v,
    descent_delta_v,
    orbit_change_delta_v,
)
from guidance.transfer_window import TransferWindowSolver

logger = logging.getLogger(__name__)


class ManeuverKind(Enum):
    EMPTY = auto()
    LAUNCH = auto()
    ORBIT_CHANGE = auto()
    TRANSFER = auto()
    LANDING = auto()


@dataclass(frozen=True)
class ManeuverResult:
    """
    Outputs of one maneuver computation. Every numeric field is None when it
    cannot be computed for this kind of maneuver or these inputs.
    """
    kind: ManeuverKind
    description: str
    delta_v: Optional[float] = None
    ejection_delta_v: Optional[float] = None
    capture_delta_v: Optional[float] = None
    plane_change_delta_v: Optional[float] = None
    transfer_time: Optional[float] = None
    travel_time: Optional[float] = None
    transfer_phase_angle: Optional[float] = None
    ejection_angle: Optional[float] = None
    ejection_velocity: Optional[float] = None
    current_phase_angle: Optional[float] = None
    hyperbolic_excess_escape_velocity: Optional[float] = None
    hyperbolic_excess_capture_velocity: Optional[float] = None
    transfer_orbit: Optional[Orbit] = None


class Maneuver:
    """
    Inputs of a maneuver plus its most recent result.

    The bodies default to the primaries of the given orbits. Callers change
    inputs by assignment and then call recompute(); the result is replaced
    as a whole.
    """

    def __init__(self, source_body: Optional[Body] = None, source_orbit: Optional[Orbit] = None,
                 target_body: Optional[Body] = None, target_orbit: Optional[Orbit] = None,
                 aerobrake: bool = False, initial_time: float = 0.0):
        self.source_orbit = source_orbit
        self.target_orbit = target_orbit
        self.source_body = source_body if source_body is not None else _primary(source_orbit)
        self.target_body = target_body if target_body is not None else _primary(target_orbit)
        self.aerobrake = aerobrake
        self.initial_time = initial_time
        self.result: Optional[ManeuverResult] = None

    def __repr__(self) -> str:
        return f"Maneuver({describe(self)!r})"

    def recompute(self, planner: Optional['ManeuverPlanner'] = None) -> ManeuverResult:
        planner = planner or ManeuverPlanner()
        self.result = planner.plan(self)
        return self.result


def _primary(orbit: Optional[Orbit]) -> Optional[Body]:
    return orbit.primary_body if orbit is not None else None


def _same_body(a: Optional[Body], b: Optional[Body]) -> bool:
    return a is not None and b is not None and a.body_id == b.body_id


def classify(maneuver: Maneuver) -> ManeuverKind:
    has_source = maneuver.source_orbit is not None
    has_target = maneuver.target_orbit is not None
    if not has_source and not has_target:
        return ManeuverKind.EMPTY
    if not has_source:
        return ManeuverKind.LAUNCH
    if not has_target:
        return ManeuverKind.LANDING
    if _same_body(maneuver.source_body, maneuver.target_body):
        return ManeuverKind.ORBIT_CHANGE
    return ManeuverKind.TRANSFER


def describe(maneuver: Maneuver) -> str:
    """One-line human description of the maneuver."""
    kind = classify(maneuver)
    source = maneuver.source_body.name if maneuver.source_body else "?"
    target = maneuver.target_body.name if maneuver.target_body else "?"
    if kind is ManeuverKind.EMPTY:
        return "Empty maneuver"
    if kind is ManeuverKind.LAUNCH:
        return f"Launch from {target}"
    if kind is ManeuverKind.LANDING:
        return f"Land on {source}"
    if kind is ManeuverKind.TRANSFER:
        return f"Transfer to {target}"
    return f"Change {source} orbit"


class ManeuverPlanner:
    """
    Computes the delta-V budget and timing of a Maneuver.

    Typical usage:
        planner = ManeuverPlanner(load_config())
        result = planner.plan(Maneuver(source_orbit=parking, target_orbit=capture))
        result.delta_v, result.transfer_time

    Args:
        config: Planner tuning (defaults to PlannerConfig()).
        solver: Transfer-window solver; built from config when omitted.
    """

    def __init__(self, config: Optional[PlannerConfig] = None,
                 solver: Optional[TransferWindowSolver] = None):
        self.config = config or PlannerConfig()
        self.solver = solver or TransferWindowSolver.from_config(self.config)

    def plan(self, maneuver: Maneuver) -> ManeuverResult:
        kind = classify(maneuver)
        description = describe(maneuver)
        logger.debug("Planning %s (%s)", kind.name, description)

        if kind is ManeuverKind.LAUNCH:
            delta_v = self.launch_delta_v(maneuver.target_body, maneuver.target_orbit)
            return ManeuverResult(kind, description, delta_v=delta_v)
        if kind is ManeuverKind.ORBIT_CHANGE:
            delta_v = orbit_change_delta_v(maneuver.source_orbit, maneuver.target_orbit)
            return ManeuverResult(kind, description, delta_v=delta_v)
        if kind is ManeuverKind.LANDING:
            delta_v = descent_delta_v(maneuver.source_orbit, maneuver.aerobrake)
            return ManeuverResult(kind, description, delta_v=delta_v)
        if kind is ManeuverKind.TRANSFER:
            return self.plan_transfer(maneuver, description)
        return ManeuverResult(kind, description)

    # -------------------------------------------------------------------------
    # Launch
    # -------------------------------------------------------------------------

    def launch_delta_v(self, body: Optional[Body], target: Orbit) -> Optional[float]:
        """
        Surface-to-orbit cost.

        Atmospheric bodies listed in the launch table use the empirical
        value when the target is the circular parking orbit; everything else
        uses the two-burn ascent model.
        """
        if body is None or target.apoapsis is None:
            return None
        empirical = self.config.launch_delta_v.get(body.name)
        if (empirical is not None and body.has_atmosphere and target.eccentricity == 0.0
                and math.isclose(target.apoapsis, body.parking_orbit_height, abs_tol=1.0)):
            logger.debug("Using empirical launch cost for %s: %.0f m/s", body.name, empirical)
            return empirical
        return ascent_delta_v(body, target)

    # -------------------------------------------------------------------------
    # Transfer
    # -------------------------------------------------------------------------

    def plan_transfer(self, maneuver: Maneuver, description: str) -> ManeuverResult:
        transfer = HohmannTransfer.from_bodies(
            maneuver.source_body, maneuver.source_orbit,
            maneuver.target_body, maneuver.target_orbit)
        if transfer is None:
            logger.debug("No Hohmann topology between %s and %s",
                         maneuver.source_body, maneuver.target_body)
            return ManeuverResult(ManeuverKind.TRANSFER, description)

        window = self.solver.find_window(transfer, maneuver.initial_time)

        ejection_dv = self.ejection_delta_v(maneuver, window)
        capture_dv = self.capture_delta_v(maneuver, window)
        ejection_velocity = self.ejection_velocity(maneuver.source_orbit, window)
        if ejection_dv is None or capture_dv is None:
            return ManeuverResult(ManeuverKind.TRANSFER, description)

        return ManeuverResult(
            kind=ManeuverKind.TRANSFER,
            description=description,
            delta_v=ejection_dv + window.plane_change_delta_v + capture_dv,
            ejection_delta_v=ejection_dv,
            capture_delta_v=capture_dv,
            plane_change_delta_v=window.plane_change_delta_v,
            transfer_time=window.time,
            travel_time=window.travel_time,
            transfer_phase_angle=window.phase_angle,
            ejection_angle=self.ejection_angle(maneuver.source_orbit, window),
            ejection_velocity=ejection_velocity,
            current_phase_angle=transfer.current_phase_angle(maneuver.initial_time),
            hyperbolic_excess_escape_velocity=window.hyperbolic_excess_escape_velocity,
            hyperbolic_excess_capture_velocity=window.hyperbolic_excess_capture_velocity,
            transfer_orbit=window.transfer_orbit,
        )

    @staticmethod
    def _escapes(window: TransferWindow) -> bool:
        # A planet-to-moon transfer starts in the shared primary's frame
        return window.transfer_type is not TransferType.TO_SECONDARY

    def ejection_velocity(self, source_orbit: Orbit, window: TransferWindow) -> Optional[float]:
        """
        Periapsis speed of the escape hyperbola, v_p = sqrt(v_inf^2 + 2 mu / r),
        with r the source orbit's periapsis radius.
        """
        if not self._escapes(window):
            return None
        mu = source_orbit.mu
        if mu is None or source_orbit.primary_radius is None:
            return None
        r = source_orbit.primary_radius + source_orbit.periapsis
        v_inf = window.hyperbolic_excess_escape_velocity
        return float(np.sqrt(v_inf ** 2 + 2.0 * mu / r))

    def ejection_delta_v(self, maneuver: Maneuver, window: TransferWindow) -> Optional[float]:
        if not self._escapes(window):
            return window.hyperbolic_excess_escape_velocity
        source_orbit = maneuver.source_orbit
        v_p = self.ejection_velocity(source_orbit, window)
        if v_p is None:
            return None
        r = source_orbit.primary_radius + source_orbit.periapsis
        v_orbit = source_orbit.relative_velocity_with_radius(r)
        if v_orbit is None:
            return None
        return abs(v_p - v_orbit)

    def ejection_angle(self, source_orbit: Orbit, window: TransferWindow) -> Optional[float]:
        """
        Angle before the primary's prograde (outward) or retrograde (inward)
        direction at which to burn so the escape asymptote lines up:

            e_h = sqrt(1 + 2 eps h^2 / mu^2),  eps = v_p^2/2 - mu/r,  h = r v_p
            angle = k*pi - acos(1 / e_h),  k = 2 inward, 1 outward
        """
        v_p = self.ejection_velocity(source_orbit, window)
        if v_p is None:
            return None
        mu = source_orbit.mu
        r = source_orbit.primary_radius + source_orbit.periapsis
        energy = v_p ** 2 / 2.0 - mu / r
        h = r * v_p
        e_h = np.sqrt(1.0 + 2.0 * energy * h ** 2 / mu ** 2)
        k = 2.0 if window.is_inward else 1.0
        return float(k * PI - np.arccos(np.clip(1.0 / e_h, -1.0, 1.0)))

    def capture_delta_v(self, maneuver: Maneuver, window: TransferWindow) -> Optional[float]:
        """
        Insertion burn at the target orbit's periapsis.

        Free when aerobraking into an atmosphere; the bare excess speed when
        the target orbit is around the transfer's own primary (moon to
        planet); a hyperbolic capture otherwise.
        """
        target_orbit = maneuver.target_orbit
        target_primary = target_orbit.primary_body
        if maneuver.aerobrake and target_primary is not None and target_primary.has_atmosphere:
            return 0.0

        v_inf = window.hyperbolic_excess_capture_velocity
        source_body = maneuver.source_body
        if (target_primary is not None and source_body is not None
                and source_body.primary_id == target_primary.body_id):
            return v_inf

        mu = target_orbit.mu
        if mu is None or target_orbit.primary_radius is None:
            return None
        r = target_orbit.primary_radius + target_orbit.periapsis
        v_orbit = target_orbit.relative_velocity_with_radius(r)
        if v_orbit is None:
            return None
        return abs(float(np.sqrt(v_inf ** 2 + 2.0 * mu / r)) - v_orbit)
