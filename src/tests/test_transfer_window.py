"""
===============================================================================
KERBOL TRANSFER PLANNER - Transfer Window Solver Test Suite
===============================================================================
Tests for the bracket-and-refine launch window search: convergence on the
heliocentric regression case, transfers that outlast the target's period,
agreement between bisection and false position, successive windows one
synodic period apart, the direct evaluation for transfers to a primary,
and the failure modes (degenerate periods, no sign change within the
iteration cap).
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from core.config import PlannerConfig
from core.constants import KERBOL_MU, PI, TWO_PI
from core.errors import NoTransferWindowFound, PlannerError
from dynamics.anomalies import angular_difference
from dynamics.body import Body
from dynamics.catalog import load_catalog
from dynamics.orbit import Orbit
from guidance.hohmann import HohmannTransfer, TransferType
from guidance.transfer_window import TransferWindowSolver, find_transfer_window


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="module")
def sun():
    """Return a point star with the Kerbol gravitational parameter."""
    return Body(body_id=0, name="Sun", mass=0.0, radius=261600000.0,
                gravitational_parameter=KERBOL_MU)


@pytest.fixture
def outward(sun):
    """Return a coplanar circular transfer from 13.5e9 m to 40.5e9 m."""
    return HohmannTransfer(
        Orbit(semi_major_axis=13.5e9, primary_body=sun),
        Orbit(semi_major_axis=40.5e9, primary_body=sun),
    )


@pytest.fixture
def solver():
    return TransferWindowSolver()


# =============================================================================
# Convergence
# =============================================================================

class TestConvergence:

    def test_outward_window(self, outward, solver):
        window = solver.find_window(outward, 0.0)
        assert abs(window.error) < 1.0
        assert window.time >= 0.0
        assert window.phase_angle == pytest.approx(np.radians(82.02), abs=1e-3)
        assert window.travel_time == pytest.approx(1.2897e7, abs=1000.0)

    def test_inward_window(self, sun, solver):
        inward = HohmannTransfer(
            Orbit(semi_major_axis=30.0e9, primary_body=sun),
            Orbit(semi_major_axis=20.0e9, primary_body=sun),
        )
        window = solver.find_window(inward, 0.0)
        assert abs(window.error) < 1.0
        assert window.is_inward

    def test_inward_window_longer_than_target_period(self, sun, solver):
        inward = HohmannTransfer(
            Orbit(semi_major_axis=40.5e9, primary_body=sun),
            Orbit(semi_major_axis=13.5e9, primary_body=sun),
        )
        window = solver.find_window(inward, 0.0)
        target = inward.target_orbit
        assert abs(window.error) < 1.0
        assert window.travel_time > target.period
        assert window.meeting_time == pytest.approx(window.travel_time, abs=1.0)
        # Target sits opposite the departure point when the vessel arrives
        L_depart = inward.source_orbit.true_longitude_at_time(window.time)
        L_arrive = target.true_longitude_at_time(window.time + window.travel_time)
        assert angular_difference(L_arrive, L_depart + PI) < 1e-5

    def test_moon_transfer_longer_than_target_period(self, solver):
        catalog = load_catalog()
        pol, laythe = catalog["Pol"], catalog["Laythe"]
        transfer = HohmannTransfer.from_bodies(pol, None, laythe, None)
        assert transfer.transfer_type is TransferType.BETWEEN_SECONDARIES
        window = solver.find_window(transfer, 0.0)
        assert abs(window.error) < 1.0
        assert window.travel_time > 2.0 * laythe.orbit.period

    def test_false_position_agrees_with_bisection(self, outward):
        bisect = TransferWindowSolver(refinement='bisection').find_window(outward, 0.0)
        regula = TransferWindowSolver(refinement='false_position').find_window(outward, 0.0)
        assert abs(regula.error) < 1.0
        assert regula.time == pytest.approx(bisect.time, abs=10.0)

    def test_next_window_one_synodic_period_later(self, outward, solver):
        first = solver.find_window(outward, 0.0)
        second = solver.find_window(outward, first.time + 86400.0)
        n_s = outward.source_orbit.mean_motion
        n_t = outward.target_orbit.mean_motion
        synodic = TWO_PI / (n_s - n_t)
        assert second.time - first.time == pytest.approx(synodic, rel=1e-3)

    def test_tighter_tolerance(self, outward):
        window = TransferWindowSolver(tolerance=1e-3).find_window(outward, 0.0)
        assert abs(window.error) < 1e-3

    def test_built_from_config(self, outward):
        config = PlannerConfig(window_tolerance=0.5, refinement='false_position')
        window = find_transfer_window(outward, 0.0, config)
        assert abs(window.error) < 0.5

    def test_to_secondary_window(self):
        catalog = load_catalog()
        kerbin, mun = catalog["Kerbin"], catalog["Mun"]
        parking = Orbit.from_apsides(kerbin, 100000.0, 100000.0)
        transfer = HohmannTransfer.from_bodies(kerbin, parking, mun, None)
        assert transfer.transfer_type is TransferType.TO_SECONDARY
        window = TransferWindowSolver().find_window(transfer, 0.0)
        assert abs(window.error) < 1.0
        assert 0.0 <= window.time < mun.orbit.period


# =============================================================================
# Transfers to a primary
# =============================================================================

def test_to_primary_evaluates_once(monkeypatch):
    catalog = load_catalog()
    mun, kerbin = catalog["Mun"], catalog["Kerbin"]
    transfer = HohmannTransfer.from_bodies(
        mun, Orbit.from_apsides(mun, 20000.0, 20000.0),
        kerbin, Orbit.from_apsides(kerbin, 100000.0, 100000.0))

    calls = []
    original = HohmannTransfer.transfer_at_time

    def counting(self, t):
        calls.append(t)
        return original(self, t)

    monkeypatch.setattr(HohmannTransfer, "transfer_at_time", counting)
    window = TransferWindowSolver().find_window(transfer, 1234.0)
    assert calls == [1234.0]
    assert window.time == 1234.0


# =============================================================================
# Failure modes
# =============================================================================

class TestFailures:

    def test_zero_period_target(self, sun, solver):
        transfer = HohmannTransfer(
            Orbit(semi_major_axis=13.5e9, primary_body=sun),
            Orbit(semi_major_axis=40.5e9, gravitational_parameter=0.0),
        )
        with pytest.raises(NoTransferWindowFound):
            solver.find_window(transfer, 0.0)

    def test_undefined_period(self, sun, solver):
        transfer = HohmannTransfer(
            Orbit(semi_major_axis=13.5e9, primary_body=sun),
            Orbit(semi_major_axis=40.5e9),
        )
        with pytest.raises(PlannerError):
            solver.find_window(transfer, 0.0)

    def test_equal_periods_never_bracket(self, sun):
        transfer = HohmannTransfer(
            Orbit(semi_major_axis=20e9, primary_body=sun),
            Orbit(semi_major_axis=20e9, mean_anomaly_at_epoch=1.0, primary_body=sun),
        )
        with pytest.raises(NoTransferWindowFound) as excinfo:
            TransferWindowSolver(max_iterations=25).find_window(transfer, 0.0)
        assert excinfo.value.iterations == 25
        assert isinstance(excinfo.value, RuntimeError)

    def test_iteration_cap_applies_to_refinement(self, outward):
        with pytest.raises(NoTransferWindowFound):
            TransferWindowSolver(tolerance=1e-12, max_iterations=12).find_window(outward, 0.0)
