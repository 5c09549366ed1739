"""
===============================================================================
KERBOL TRANSFER PLANNER - Transfer Window Solver
===============================================================================
Finds the departure time at which a Hohmann transfer arrives together with
its target, i.e. the root of

    g(t) = travel_time(t) - meeting_time(t)

g is piecewise continuous: between discontinuities (where the residual
wraps by a whole target period) it is monotone in the direction set by
the relative mean motion. If the source orbit is the faster one, g
decreases through its root, so the search first walks forward to a time
with g > 0 and then to one with g < 0; the opposite holds for a slower
source. Every wrap jumps against that direction, so the walk picks the
continuous sign change. Transfers that outlast the target's period are
handled the same way, since meeting_time counts the target's whole
revolutions.

Algorithm:
    1. Step size gamma = fraction * min(P_source, P_target).
    2. Walk lower forward until g(lower) has the starting sign.
    3. Walk upper forward from lower until g changes sign.
    4. Refine the bracket (bisection or false position) until the smaller
       endpoint error is below the tolerance.

Every evaluation counts against one shared iteration cap.
===============================================================================
"""

import logging
from typing import Optional

import numpy as np

from core.config import PlannerConfig
from core.errors import NoTransferWindowFound
from guidance.hohmann import HohmannTransfer, TransferType, TransferWindow

logger = logging.getLogger(__name__)


class TransferWindowSolver:
    """
    Bracket-and-refine root finder for Hohmann launch windows.

    Args:
        tolerance: Convergence threshold on |g| (s).
        max_iterations: Maximum number of g evaluations per search.
        refinement: 'bisection' or 'false_position'.
        between_secondaries_step_fraction: Bracket step as a fraction of
                                           the shorter period (siblings).
        to_secondary_step_fraction: Bracket step fraction (planet -> moon).
    """

    def __init__(self, tolerance: float = 1.0, max_iterations: int = 300,
                 refinement: str = 'bisection',
                 between_secondaries_step_fraction: float = 1.0 / 6.0,
                 to_secondary_step_fraction: float = 0.25):
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.refinement = refinement
        self.step_fractions = {
            TransferType.BETWEEN_SECONDARIES: between_secondaries_step_fraction,
            TransferType.TO_SECONDARY: to_secondary_step_fraction,
        }

    @classmethod
    def from_config(cls, config: PlannerConfig) -> 'TransferWindowSolver':
        return cls(
            tolerance=config.window_tolerance,
            max_iterations=config.max_iterations,
            refinement=config.refinement,
            between_secondaries_step_fraction=config.between_secondaries_step_fraction,
            to_secondary_step_fraction=config.to_secondary_step_fraction,
        )

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def find_window(self, transfer: HohmannTransfer, earliest_time: float) -> TransferWindow:
        """
        Find the first launch window at or after earliest_time.

        Args:
            transfer: Orbit pair to search.
            earliest_time: Start of the search (s).

        Returns:
            TransferWindow at the bracket endpoint with the smaller |error|.

        Raises:
            NoTransferWindowFound: Degenerate periods, or the bracket /
                                   refinement loop exceeded max_iterations.
        """
        P_s, P_t = transfer.periods
        if not P_s or not P_t:
            self._fail(f"Degenerate orbital periods (source={P_s}, target={P_t})", 0)

        if transfer.transfer_type is TransferType.TO_PRIMARY:
            return transfer.transfer_at_time(earliest_time)

        step = self.step_fractions[transfer.transfer_type] * min(P_s, P_t)
        start_positive = P_s < P_t
        evaluations = 0

        def evaluate(t: float) -> TransferWindow:
            nonlocal evaluations
            if evaluations >= self.max_iterations:
                self._fail(
                    f"Transfer window search exceeded {self.max_iterations} iterations "
                    f"(start={earliest_time:.0f} s, step={step:.0f} s)", evaluations)
            evaluations += 1
            return transfer.transfer_at_time(t)

        # --- Bracket ---
        lower = evaluate(earliest_time)
        while (lower.error > 0.0) != start_positive or lower.error == 0.0:
            if abs(lower.error) < self.tolerance:
                return lower
            lower = evaluate(lower.time + step)

        upper = evaluate(lower.time + step)
        while (upper.error > 0.0) == start_positive and upper.error != 0.0:
            lower = upper
            upper = evaluate(lower.time + step)

        logger.debug(
            "Window bracket [%.0f, %.0f] s, errors (%.1f, %.1f) s after %d evaluations",
            lower.time, upper.time, lower.error, upper.error, evaluations)

        # --- Refine ---
        while min(abs(lower.error), abs(upper.error)) >= self.tolerance:
            guess = evaluate(self._next_guess(lower, upper))
            if np.sign(guess.error) == np.sign(lower.error):
                lower = guess
            else:
                upper = guess

        best = lower if abs(lower.error) <= abs(upper.error) else upper
        logger.debug("Window found at t=%.1f s (error %.3f s, %d evaluations)",
                     best.time, best.error, evaluations)
        return best

    def _next_guess(self, lower: TransferWindow, upper: TransferWindow) -> float:
        if self.refinement == 'false_position':
            denominator = upper.error - lower.error
            if denominator != 0.0:
                guess = upper.time - upper.error * (upper.time - lower.time) / denominator
                if lower.time < guess < upper.time:
                    return guess
        return 0.5 * (lower.time + upper.time)

    def _fail(self, message: str, iterations: int) -> None:
        logger.warning(message)
        raise NoTransferWindowFound(message, iterations=iterations)


def find_transfer_window(transfer: HohmannTransfer, earliest_time: float,
                         config: Optional[PlannerConfig] = None) -> TransferWindow:
    """Convenience wrapper: solve with a solver built from config (or defaults)."""
    solver = TransferWindowSolver.from_config(config) if config else TransferWindowSolver()
    return solver.find_window(transfer, earliest_time)
