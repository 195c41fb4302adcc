# timevalue/finance/irr.py
"""
IRR by bracketed bisection on NPV(r) = 0.

    NPV(r) = sum_i CF_i / (1+r)^t_i

The bracket [low, high] must straddle a sign change of NPV. Each iteration
evaluates the midpoint and keeps the half whose endpoints still straddle
it, so after k iterations the width is initial_width / 2^k.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from itertools import islice
from typing import Iterable, Iterator, List, Mapping, NamedTuple, Optional, Union

from timevalue.config import DEFAULT_TOLERANCE, SolverConfig, coerce_config
from timevalue.errors import DidNotConverge, InvalidConfig, InvalidInput, NoRootBracketed
from timevalue.finance.present_value import series_npv
from timevalue.types import RATE_FLOOR, Bracket, CashFlow, CashFlowLike, as_series, check_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IrrSolution:
    rate: float
    npv: float
    iterations: int
    bracket: Bracket


class BisectionStep(NamedTuple):
    iteration: int
    low: float
    high: float
    mid: float
    npv_mid: float

    @property
    def half_width(self) -> float:
        return (self.high - self.low) / 2.0


def _sign(x: float) -> int:
    if x > 0:
        return 1
    if x < 0:
        return -1
    return 0


def bisection_steps(
    cashflows: Iterable[CashFlowLike],
    bracket: Union[Bracket, tuple],
    npv_low: Optional[float] = None,
) -> Iterator[BisectionStep]:
    """
    Unbounded bisection sequence over `bracket`. Each step reports the
    bracket the midpoint was taken from; the bracket is narrowed after the
    step is yielded. Callers bound it (see solve_irr).
    """
    series = as_series(cashflows)
    low, high = float(bracket[0]), float(bracket[1])
    f_low = series_npv(series, low) if npv_low is None else npv_low
    k = 0
    while True:
        k += 1
        mid = (low + high) / 2.0
        f_mid = series_npv(series, mid)
        yield BisectionStep(k, low, high, mid, f_mid)
        # keep the sub-interval where the sign changes
        if _sign(f_mid) == _sign(f_low):
            low, f_low = mid, f_mid
        else:
            high = mid


# ---------- validation ----------
def _check_series(series: List[CashFlow]) -> None:
    if len(series) < 2:
        raise InvalidInput(f"IRR needs at least two cash flows, got {len(series)}")
    has_outflow = any(cf.amount <= 0 for cf in series)
    has_inflow = any(cf.amount >= 0 for cf in series)
    if not (has_outflow and has_inflow):
        raise NoRootBracketed("all cash flows share the same sign; NPV has no root")


# ---------- IRR (periodic) ----------
def solve_irr(
    cashflows: Iterable[CashFlowLike],
    config: Union[SolverConfig, Mapping, None] = None,
) -> IrrSolution:
    """
    Solve NPV(r) = 0 by bisection inside config.bracket.

    Raises InvalidConfig, InvalidInput, InvalidRate (bracket endpoint <= -1),
    NoRootBracketed, or DidNotConverge.
    """
    cfg = coerce_config(config)
    series = as_series(cashflows)
    _check_series(series)

    tol = float(cfg.tolerance)
    low, high = float(cfg.bracket[0]), float(cfg.bracket[1])
    f_low = series_npv(series, low)
    f_high = series_npv(series, high)
    initial = Bracket(low, high)

    if math.isnan(f_low) or math.isnan(f_high):
        raise NoRootBracketed(
            f"NPV is undefined at the bracket endpoints ({low}, {high})",
            bracket=initial, npv_low=f_low, npv_high=f_high,
        )
    if abs(f_low) <= tol:
        logger.debug("IRR: bracket low %r already within tolerance (npv=%r)", low, f_low)
        return IrrSolution(low, f_low, 0, initial)
    if abs(f_high) <= tol:
        logger.debug("IRR: bracket high %r already within tolerance (npv=%r)", high, f_high)
        return IrrSolution(high, f_high, 0, initial)
    if _sign(f_low) == _sign(f_high):
        raise NoRootBracketed(
            f"NPV has the same sign at both bracket endpoints: "
            f"NPV({low})={f_low:.6g}, NPV({high})={f_high:.6g}",
            bracket=initial, npv_low=f_low, npv_high=f_high,
        )

    logger.debug("IRR: bisecting %d cash flows on [%r, %r], tol=%g", len(series), low, high, tol)
    last: Optional[BisectionStep] = None
    for step in islice(bisection_steps(series, initial, f_low), cfg.max_iterations):
        last = step
        if abs(step.npv_mid) <= tol or step.half_width <= tol:
            logger.debug("IRR: converged to %r after %d iterations", step.mid, step.iteration)
            return IrrSolution(step.mid, step.npv_mid, step.iteration, Bracket(step.low, step.high))

    if last is None:
        raise InvalidConfig(f"max_iterations must be a positive integer, got {cfg.max_iterations!r}")
    logger.debug("IRR: no convergence after %d iterations (last mid %r)", last.iteration, last.mid)
    raise DidNotConverge(
        f"bisection did not converge within {cfg.max_iterations} iterations "
        f"(last midpoint {last.mid!r}, NPV {last.npv_mid:.6g})",
        best_estimate=last.mid,
        npv=last.npv_mid,
        iterations=last.iteration,
        bracket=Bracket(last.low, last.high),
    )


def irr(
    cashflows: Iterable[CashFlowLike],
    config: Union[SolverConfig, Mapping, None] = None,
) -> float:
    """Periodic IRR as a decimal rate (e.g., 0.18 = 18%)."""
    return solve_irr(cashflows, config).rate


# ---------- initial bracket search ----------
def find_bracket(
    cashflows: Iterable[CashFlowLike],
    guess: float = 0.1,
    *,
    step: float = 0.1,
    max_expansions: int = 64,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Bracket:
    """
    Grow an interval around `guess` until NPV changes sign across it.

    Starts at (guess - step, guess + step) and doubles the step on the side
    whose |NPV| is smaller, since that side is heading toward the root.
    The low end never drops below RATE_FLOOR. A guess whose |NPV| is within
    `tolerance` is taken as the root.
    """
    series = as_series(cashflows)
    _check_series(series)
    g = check_rate(guess)
    if isinstance(step, bool) or not step > 0 or not math.isfinite(step):
        raise InvalidInput(f"step must be a positive finite number, got {step!r}")
    if isinstance(max_expansions, bool) or not isinstance(max_expansions, int) or max_expansions < 0:
        raise InvalidInput(f"max_expansions must be a non-negative integer, got {max_expansions!r}")
    if isinstance(tolerance, bool) or not tolerance > 0 or not math.isfinite(tolerance):
        raise InvalidInput(f"tolerance must be a positive finite number, got {tolerance!r}")

    if abs(series_npv(series, g)) <= tolerance:
        # the guess is the root; an endpoint at zero NPV still brackets it
        return Bracket(g, g + step)

    floor = min(RATE_FLOOR, g)
    low = max(floor, g - step)
    high = g + step
    f_low = series_npv(series, low)
    f_high = series_npv(series, high)
    width_low, width_high = g - low, step
    expansions = 0

    while not f_low * f_high <= 0.0:
        if expansions >= max_expansions:
            raise NoRootBracketed(
                f"no sign change found around guess {g!r} after {max_expansions} expansions",
                bracket=Bracket(low, high), npv_low=f_low, npv_high=f_high,
            )
        expansions += 1
        if low > floor and abs(f_low) < abs(f_high):
            width_low *= 2.0
            low = max(floor, g - width_low)
            f_low = series_npv(series, low)
        else:
            width_high *= 2.0
            high = g + width_high
            f_high = series_npv(series, high)

    logger.debug("find_bracket: [%r, %r] from guess %r after %d expansions", low, high, g, expansions)
    return Bracket(low, high)


__all__ = [
    "IrrSolution",
    "BisectionStep",
    "bisection_steps",
    "solve_irr",
    "irr",
    "find_bracket",
]
