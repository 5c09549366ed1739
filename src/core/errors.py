"""
===============================================================================
KERBOL TRANSFER PLANNER - Error Taxonomy
===============================================================================
Exceptions raised by the planner core.

Derived quantities that merely lack an input (no primary body, no mass,
zero period) return None instead of raising; the exceptions below are
reserved for invalid input and for a transfer-window search that cannot
produce an answer.
===============================================================================
"""


class PlannerError(Exception):
    """Base class for all planner errors."""


class DegenerateOrbit(PlannerError, ValueError):
    """Orbital elements or an orbit mutation would violate an invariant."""


class ConfigError(PlannerError, ValueError):
    """A planner configuration value is out of range."""


class NoTransferWindowFound(PlannerError, RuntimeError):
    """
    The transfer-window root finder could not bracket or converge on a
    departure time.

    Attributes:
        iterations: Number of error evaluations spent before giving up.
    """

    def __init__(self, message: str, iterations: int = 0):
        super().__init__(message)
        self.iterations = iterations
