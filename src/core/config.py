"""
===============================================================================
KERBOL TRANSFER PLANNER - Configuration
===============================================================================
Planner tuning parameters and their YAML loader.

The YAML file groups planner settings under a ``planner:`` section and may
point at an alternative body catalog under ``catalog:``:

    planner:
      window_tolerance: 1.0
      max_iterations: 300
      refinement: bisection
      launch_delta_v:
        Kerbin: 4550.0
    catalog:
      path: bodies.yaml

Unknown keys are ignored so that one file can also carry settings for the
command-line driver.
===============================================================================
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional

import yaml

from core.constants import EMPIRICAL_LAUNCH_DELTA_V
from core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / 'config' / 'planner_config.yaml'

REFINEMENT_METHODS = ('bisection', 'false_position')


@dataclass
class PlannerConfig:
    """
    Tuning parameters for the transfer-window search and the delta-V budget.

    Attributes:
        window_tolerance: Stop refining once the smaller bracket error is
                          below this many seconds.
        max_iterations: Cap on error evaluations shared by the bracketing
                        and refinement loops.
        refinement: 'bisection' (midpoint) or 'false_position' (secant on
                    the bracket).
        between_secondaries_step_fraction: Bracket step as a fraction of the
                                           shorter period, sibling transfers.
        to_secondary_step_fraction: Bracket step fraction for transfers from
                                    a body to one of its moons.
        launch_delta_v: Empirical launch cost per body name (m/s).
        log_level: Logging level name for the command-line driver.
        catalog_path: Optional YAML body catalog replacing the built-in one.
    """
    window_tolerance: float = 1.0
    max_iterations: int = 300
    refinement: str = 'bisection'
    between_secondaries_step_fraction: float = 1.0 / 6.0
    to_secondary_step_fraction: float = 0.25
    launch_delta_v: Dict[str, float] = field(
        default_factory=lambda: dict(EMPIRICAL_LAUNCH_DELTA_V))
    log_level: str = 'INFO'
    catalog_path: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError if any setting is out of range."""
        if self.window_tolerance <= 0.0:
            raise ConfigError(
                f"window_tolerance must be positive, got {self.window_tolerance}")
        if self.max_iterations < 1:
            raise ConfigError(
                f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.refinement not in REFINEMENT_METHODS:
            raise ConfigError(
                f"refinement must be one of {REFINEMENT_METHODS}, got {self.refinement!r}")
        for name in ('between_secondaries_step_fraction', 'to_secondary_step_fraction'):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ConfigError(f"{name} must lie in (0, 1], got {value}")

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'PlannerConfig':
        """Build a config from the parsed YAML mapping."""
        data = data or {}
        planner = dict(data.get('planner') or {})
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in planner.items() if k in known}
        ignored = sorted(set(planner) - known)
        if ignored:
            logger.debug("Ignoring unknown planner keys: %s", ignored)

        if 'launch_delta_v' in kwargs:
            merged = dict(EMPIRICAL_LAUNCH_DELTA_V)
            merged.update({str(k): float(v) for k, v in (kwargs['launch_delta_v'] or {}).items()})
            kwargs['launch_delta_v'] = merged

        catalog = data.get('catalog') or {}
        if catalog.get('path'):
            kwargs['catalog_path'] = str(catalog['path'])

        return cls(**kwargs)


def load_config(config_path: str = None) -> PlannerConfig:
    """
    Load planner configuration from a YAML file.

    Args:
        config_path: Path to YAML config. Defaults to config/planner_config.yaml

    Returns:
        PlannerConfig populated from the file (defaults for missing keys).
    """
    if config_path is None:
        config_path = str(DEFAULT_CONFIG_PATH)

    logger.info("Loading configuration from: %s", config_path)
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f)

    config = PlannerConfig.from_dict(data)
    if config.catalog_path and not Path(config.catalog_path).is_absolute():
        config.catalog_path = str(Path(config_path).resolve().parent / config.catalog_path)
    return config
