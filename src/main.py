#!/usr/bin/env python3
"""
===============================================================================
KERBOL TRANSFER PLANNER - MAIN ENTRY POINT
===============================================================================
Plans one maneuver between two bodies of the Kerbol system and logs the
delta-V budget and timing.

USAGE:
    python main.py --source Kerbin --target Duna
    python main.py --source Kerbin --source-altitude 80000 --target Mun
    python main.py --target Kerbin                  # launch to parking orbit
    python main.py --source Duna                    # landing
    python main.py --source Kerbin --target Duna --aerobrake --time 1e7
    python main.py --config ../config/planner_config.yaml --log-level DEBUG

Altitudes default to each body's parking-orbit height. Times are seconds
since the epoch; the transfer departure is also reported in Kerbin days.

DEPENDENCIES:
    numpy, scipy, pyyaml
    Install: pip install numpy scipy pyyaml
===============================================================================
"""

import sys
import argparse
import logging
from pathlib import Path

# ---------------------------------------------------------------------------
# Path setup: ensure all project modules are importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import load_config
from core.constants import RAD2DEG, SECONDS_PER_DAY
from core.errors import PlannerError
from dynamics.catalog import Catalog, load_catalog
from dynamics.orbit import Orbit
from guidance.maneuver_planner import Maneuver, ManeuverPlanner, ManeuverResult

logger = logging.getLogger('KERBOL_MAIN')


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Patched-conic maneuver planner for the Kerbol system')
    parser.add_argument('--config', default=None,
                        help='Path to YAML config (default: config/planner_config.yaml)')
    parser.add_argument('--source', default=None, help='Departure body name')
    parser.add_argument('--source-altitude', type=float, default=None,
                        help='Circular departure orbit height (m)')
    parser.add_argument('--target', default=None, help='Arrival body name')
    parser.add_argument('--target-altitude', type=float, default=None,
                        help='Circular arrival orbit height (m)')
    parser.add_argument('--aerobrake', action='store_true',
                        help='Use the target atmosphere instead of a capture burn')
    parser.add_argument('--time', type=float, default=0.0,
                        help='Earliest departure time (s)')
    parser.add_argument('--log-level', default=None,
                        help='Override the configured logging level')
    return parser.parse_args(argv)


def circular_orbit(catalog: Catalog, name: str, altitude: float = None) -> Orbit:
    """Circular equatorial orbit around the named body (parking height by default)."""
    body = catalog[name]
    height = body.parking_orbit_height if altitude is None else altitude
    return Orbit.from_apsides(body, height, height)


def build_maneuver(args: argparse.Namespace, catalog: Catalog) -> Maneuver:
    source_orbit = None
    target_orbit = None
    if args.source:
        source_orbit = circular_orbit(catalog, args.source, args.source_altitude)
    if args.target:
        target_orbit = circular_orbit(catalog, args.target, args.target_altitude)
    return Maneuver(
        source_body=catalog[args.source] if args.source else None,
        source_orbit=source_orbit,
        target_body=catalog[args.target] if args.target else None,
        target_orbit=target_orbit,
        aerobrake=args.aerobrake,
        initial_time=args.time,
    )


def report(result: ManeuverResult) -> None:
    """Log every computed output of a maneuver."""
    logger.info("%s", result.description)
    if result.delta_v is None:
        logger.info("  delta-V: not computable")
        return
    logger.info("  delta-V:            %10.1f m/s", result.delta_v)
    if result.transfer_time is None:
        return
    logger.info("  ejection:           %10.1f m/s", result.ejection_delta_v)
    logger.info("  plane change:       %10.1f m/s", result.plane_change_delta_v)
    logger.info("  capture:            %10.1f m/s", result.capture_delta_v)
    logger.info("  departure:          %10.1f days", result.transfer_time / SECONDS_PER_DAY)
    logger.info("  travel time:        %10.1f days", result.travel_time / SECONDS_PER_DAY)
    logger.info("  transfer phase:     %10.2f deg", result.transfer_phase_angle * RAD2DEG)
    logger.info("  current phase:      %10.2f deg", result.current_phase_angle * RAD2DEG)
    if result.ejection_angle is not None:
        logger.info("  ejection angle:     %10.2f deg", result.ejection_angle * RAD2DEG)
        logger.info("  ejection velocity:  %10.1f m/s", result.ejection_velocity)


def main(argv=None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)

    logging.basicConfig(
        level=getattr(logging, (args.log_level or config.log_level).upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    catalog = load_catalog(config.catalog_path)
    try:
        maneuver = build_maneuver(args, catalog)
        result = maneuver.recompute(ManeuverPlanner(config))
    except KeyError as exc:
        logger.error("Unknown body %s", exc)
        return 2
    except PlannerError as exc:
        logger.error("Planning failed: %s", exc)
        return 1

    report(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
