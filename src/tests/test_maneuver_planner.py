"""
===============================================================================
KERBOL TRANSFER PLANNER - Maneuver Planner Test Suite
===============================================================================
Tests for maneuver classification and the delta-V budget of each kind:
launch (empirical table and two-burn ascent), orbit change without a window
search, landing with and without aerobraking, and the Kerbin -> Duna
interplanetary transfer:

    departure  ~235 days after epoch
    travel     ~295 days
    phase      ~36.7 deg
    delta-V    ~1687 m/s  (100 km circular orbits at both ends)
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from core.config import PlannerConfig
from core.constants import DEG2RAD, PI, SECONDS_PER_DAY, TWO_PI
from core.errors import NoTransferWindowFound
from dynamics.catalog import load_catalog
from dynamics.orbit import Orbit
from guidance.hohmann import ascent_delta_v, descent_delta_v, orbit_change_delta_v
from guidance.maneuver_planner import (
    Maneuver,
    ManeuverKind,
    ManeuverPlanner,
    ManeuverResult,
    classify,
)
from guidance.transfer_window import TransferWindowSolver


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="module")
def catalog():
    """Return the built-in Kerbol system."""
    return load_catalog()


@pytest.fixture
def planner():
    """Return a ManeuverPlanner with default configuration."""
    return ManeuverPlanner()


def circular(body, height):
    return Orbit.from_apsides(body, height, height)


@pytest.fixture(scope="module")
def duna_transfer(catalog):
    """Return the planned Kerbin -> Duna transfer between 100 km orbits."""
    maneuver = Maneuver(
        source_orbit=circular(catalog["Kerbin"], 100000.0),
        target_orbit=circular(catalog["Duna"], 100000.0),
    )
    return maneuver.recompute(ManeuverPlanner())


# =============================================================================
# Classification
# =============================================================================

class TestClassification:

    def test_kinds(self, catalog):
        kerbin, duna = catalog["Kerbin"], catalog["Duna"]
        low, high = circular(kerbin, 100000.0), circular(kerbin, 300000.0)
        assert classify(Maneuver()) is ManeuverKind.EMPTY
        assert classify(Maneuver(target_orbit=low)) is ManeuverKind.LAUNCH
        assert classify(Maneuver(source_orbit=low)) is ManeuverKind.LANDING
        assert classify(Maneuver(source_orbit=low, target_orbit=high)) is ManeuverKind.ORBIT_CHANGE
        assert classify(Maneuver(source_orbit=low, target_orbit=circular(duna, 1e5))) is ManeuverKind.TRANSFER

    def test_bodies_default_to_orbit_primaries(self, catalog):
        maneuver = Maneuver(source_orbit=circular(catalog["Mun"], 20000.0))
        assert maneuver.source_body is catalog["Mun"]
        assert maneuver.target_body is None

    @pytest.mark.parametrize("source, target, text", [
        (None, None, "Empty maneuver"),
        (None, "Kerbin", "Launch from Kerbin"),
        ("Duna", None, "Land on Duna"),
        ("Kerbin", "Duna", "Transfer to Duna"),
        ("Mun", "Mun", "Change Mun orbit"),
    ])
    def test_descriptions(self, catalog, planner, source, target, text):
        maneuver = Maneuver(
            source_orbit=circular(catalog[source], 60000.0) if source else None,
            target_orbit=circular(catalog[target], 90000.0) if target else None,
        )
        assert planner.plan(maneuver).description == text

    def test_empty_result_is_all_none(self, planner):
        result = planner.plan(Maneuver())
        assert result.kind is ManeuverKind.EMPTY
        assert result.delta_v is None
        assert result.transfer_time is None
        assert result.ejection_angle is None


# =============================================================================
# Local maneuvers
# =============================================================================

class TestLaunch:

    def test_kerbin_parking_orbit_uses_empirical_cost(self, catalog, planner):
        result = planner.plan(Maneuver(target_orbit=circular(catalog["Kerbin"], 80000.0)))
        assert result.kind is ManeuverKind.LAUNCH
        assert result.delta_v == 4550.0

    def test_other_height_uses_ascent_model(self, catalog, planner):
        kerbin = catalog["Kerbin"]
        target = circular(kerbin, 100000.0)
        result = planner.plan(Maneuver(target_orbit=target))
        assert result.delta_v != 4550.0
        assert_allclose(result.delta_v, ascent_delta_v(kerbin, target))

    def test_eccentric_parking_orbit_uses_ascent_model(self, catalog, planner):
        kerbin = catalog["Kerbin"]
        target = Orbit.from_apsides(kerbin, 75000.0, 80000.0)
        assert planner.plan(Maneuver(target_orbit=target)).delta_v != 4550.0

    def test_mun_launch(self, catalog, planner):
        result = planner.plan(Maneuver(target_orbit=circular(catalog["Mun"], 20000.0)))
        assert result.delta_v == pytest.approx(588.2, abs=1.0)

    def test_configured_launch_table(self, catalog):
        planner = ManeuverPlanner(PlannerConfig(launch_delta_v={"Duna": 1500.0}))
        result = planner.plan(Maneuver(target_orbit=circular(catalog["Duna"], 60000.0)))
        assert result.delta_v == 1500.0


class TestOrbitChange:

    def test_orbit_raise_does_not_search(self, catalog, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("window search must not run for a local orbit change")

        monkeypatch.setattr(TransferWindowSolver, "find_window", fail)
        kerbin = catalog["Kerbin"]
        low, high = circular(kerbin, 100000.0), circular(kerbin, 250000.0)
        result = ManeuverPlanner().plan(Maneuver(source_orbit=low, target_orbit=high))
        assert result.kind is ManeuverKind.ORBIT_CHANGE
        assert_allclose(result.delta_v, orbit_change_delta_v(low, high))
        assert result.transfer_time is None


class TestLanding:

    def test_mun_landing_mirrors_launch(self, catalog, planner):
        orbit = circular(catalog["Mun"], 20000.0)
        landing = planner.plan(Maneuver(source_orbit=orbit))
        launch = planner.plan(Maneuver(target_orbit=orbit))
        assert landing.kind is ManeuverKind.LANDING
        assert_allclose(landing.delta_v, launch.delta_v, rtol=1e-9)

    def test_aerobrake_reduces_landing_cost(self, catalog, planner):
        orbit = circular(catalog["Kerbin"], 100000.0)
        full = planner.plan(Maneuver(source_orbit=orbit))
        braked = planner.plan(Maneuver(source_orbit=orbit, aerobrake=True))
        assert braked.delta_v < full.delta_v
        assert_allclose(braked.delta_v, descent_delta_v(orbit, aerobrake=True))


# =============================================================================
# Interplanetary transfer
# =============================================================================

class TestKerbinToDuna:

    def test_kind(self, duna_transfer):
        assert duna_transfer.kind is ManeuverKind.TRANSFER
        assert duna_transfer.description == "Transfer to Duna"

    def test_departure_day(self, duna_transfer):
        assert duna_transfer.transfer_time / SECONDS_PER_DAY == pytest.approx(235.0, abs=1.0)

    def test_travel_time(self, duna_transfer):
        assert duna_transfer.travel_time / SECONDS_PER_DAY == pytest.approx(295.0, abs=1.0)

    def test_phase_angle(self, duna_transfer):
        assert duna_transfer.transfer_phase_angle == pytest.approx(36.7 * DEG2RAD, abs=1.0 * DEG2RAD)

    def test_total_delta_v(self, duna_transfer):
        assert duna_transfer.delta_v == pytest.approx(1687.0, abs=20.0)
        parts = (duna_transfer.ejection_delta_v + duna_transfer.plane_change_delta_v
                 + duna_transfer.capture_delta_v)
        assert_allclose(duna_transfer.delta_v, parts)

    def test_budget_components(self, duna_transfer):
        assert duna_transfer.ejection_delta_v == pytest.approx(1046.0, abs=10.0)
        assert duna_transfer.capture_delta_v == pytest.approx(638.0, abs=10.0)
        assert 0.0 <= duna_transfer.plane_change_delta_v < 30.0
        assert duna_transfer.hyperbolic_excess_escape_velocity == pytest.approx(866.0, abs=10.0)

    def test_ejection_geometry(self, duna_transfer, catalog):
        kerbin = catalog["Kerbin"]
        r = kerbin.radius + 100000.0
        v_inf = duna_transfer.hyperbolic_excess_escape_velocity
        assert_allclose(duna_transfer.ejection_velocity, np.sqrt(v_inf ** 2 + 2.0 * kerbin.mu / r))
        e_h = 1.0 + r * v_inf ** 2 / kerbin.mu
        assert_allclose(duna_transfer.ejection_angle, PI - np.arccos(1.0 / e_h), rtol=1e-9)

    def test_current_phase_angle_at_epoch(self, duna_transfer, catalog):
        kerbin, duna = catalog["Kerbin"], catalog["Duna"]
        expected = (duna.orbit.true_longitude_at_time(0.0)
                    - kerbin.orbit.true_longitude_at_time(0.0)) % TWO_PI
        assert_allclose(duna_transfer.current_phase_angle, expected)

    def test_transfer_orbit_reaches_duna(self, duna_transfer, catalog):
        orbit = duna_transfer.transfer_orbit
        apoapsis_radius = orbit.semi_major_axis * (1.0 + orbit.eccentricity)
        duna_orbit = catalog["Duna"].orbit
        a, e = duna_orbit.semi_major_axis, duna_orbit.eccentricity
        assert a * (1.0 - e) <= apoapsis_radius <= a * (1.0 + e)

    def test_aerobrake_removes_capture(self, catalog, duna_transfer):
        maneuver = Maneuver(
            source_orbit=circular(catalog["Kerbin"], 100000.0),
            target_orbit=circular(catalog["Duna"], 100000.0),
            aerobrake=True,
        )
        braked = maneuver.recompute()
        assert braked.capture_delta_v == 0.0
        assert braked.transfer_time == pytest.approx(duna_transfer.transfer_time)
        assert_allclose(braked.delta_v, duna_transfer.delta_v - duna_transfer.capture_delta_v)


class TestMoonTransfers:

    def test_kerbin_to_mun(self, catalog, planner):
        result = planner.plan(Maneuver(
            source_orbit=circular(catalog["Kerbin"], 100000.0),
            target_orbit=circular(catalog["Mun"], 20000.0),
        ))
        assert result.kind is ManeuverKind.TRANSFER
        assert result.ejection_delta_v == pytest.approx(result.hyperbolic_excess_escape_velocity)
        assert result.ejection_angle is None
        # Trans-Munar injection from a 100 km Kerbin orbit is about 840 m/s
        assert result.ejection_delta_v == pytest.approx(842.0, abs=10.0)

    def test_mun_to_kerbin(self, catalog, planner):
        result = planner.plan(Maneuver(
            source_orbit=circular(catalog["Mun"], 20000.0),
            target_orbit=circular(catalog["Kerbin"], 100000.0),
            initial_time=5000.0,
        ))
        assert result.transfer_time == 5000.0
        assert result.capture_delta_v == pytest.approx(result.hyperbolic_excess_capture_velocity)
        # Inward escape burns ahead of the retrograde direction
        assert PI < result.ejection_angle < TWO_PI

    def test_non_adjacent_bodies_not_computable(self, catalog, planner):
        result = planner.plan(Maneuver(
            source_orbit=circular(catalog["Mun"], 20000.0),
            target_orbit=circular(catalog["Laythe"], 60000.0),
        ))
        assert result.kind is ManeuverKind.TRANSFER
        assert result.delta_v is None
        assert result.transfer_time is None


# =============================================================================
# Recompute semantics
# =============================================================================

class TestRecompute:

    def test_result_replaced_wholesale(self, catalog):
        maneuver = Maneuver(target_orbit=circular(catalog["Kerbin"], 80000.0))
        first = maneuver.recompute()
        maneuver.target_orbit = circular(catalog["Kerbin"], 120000.0)
        second = maneuver.recompute()
        assert maneuver.result is second
        assert first is not second
        assert first.delta_v == 4550.0
        assert second.delta_v != first.delta_v

    def test_results_are_frozen(self, planner):
        result = planner.plan(Maneuver())
        assert isinstance(result, ManeuverResult)
        with pytest.raises(AttributeError):
            result.delta_v = 1.0

    def test_search_failure_propagates(self, catalog):
        planner = ManeuverPlanner(PlannerConfig(max_iterations=3))
        maneuver = Maneuver(
            source_orbit=circular(catalog["Kerbin"], 100000.0),
            target_orbit=circular(catalog["Duna"], 100000.0),
        )
        with pytest.raises(NoTransferWindowFound):
            planner.plan(maneuver)


class TestKerbinToMoho:

    def test_transfer_outlasting_moho_year(self, catalog, planner):
        moho = catalog["Moho"]
        result = planner.plan(Maneuver(
            source_orbit=circular(catalog["Kerbin"], 100000.0),
            target_orbit=circular(moho, 20000.0),
        ))
        assert result.kind is ManeuverKind.TRANSFER
        assert result.delta_v is not None
        assert result.transfer_time >= 0.0
        assert result.travel_time > moho.orbit.period
        assert result.capture_delta_v > 0.0
