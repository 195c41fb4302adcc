# timevalue/errors.py
"""
Error taxonomy for the time-value calculations.

Every failure is a subclass of TimeValueError (itself a ValueError) and
carries a `kind` tag naming the variant, so callers can either catch the
class or switch on the tag (the CLI and batch runner report `kind`).
"""
from __future__ import annotations

from typing import Any, Optional


class TimeValueError(ValueError):
    kind = "TimeValueError"


class InvalidRate(TimeValueError):
    """A discount or compounding rate <= -1 (or non-finite) was supplied or computed."""

    kind = "InvalidRate"

    def __init__(self, rate: Any, message: Optional[str] = None) -> None:
        self.rate = rate
        super().__init__(message or f"rate must be a finite number > -1, got {rate!r}")


class EmptySeries(TimeValueError):
    kind = "EmptySeries"


class EmptyRateSequence(TimeValueError):
    kind = "EmptyRateSequence"


class InvalidInput(TimeValueError):
    kind = "InvalidInput"


class InvalidConfig(InvalidInput):
    kind = "InvalidConfig"


class NoRootBracketed(TimeValueError):
    """NPV does not change sign across the bracket (or the series has a single sign)."""

    kind = "NoRootBracketed"

    def __init__(
        self,
        message: str,
        *,
        bracket: Any = None,
        npv_low: Optional[float] = None,
        npv_high: Optional[float] = None,
    ) -> None:
        self.bracket = bracket
        self.npv_low = npv_low
        self.npv_high = npv_high
        super().__init__(message)


class DidNotConverge(TimeValueError):
    """
    Iteration budget exhausted. `best_estimate` is the last midpoint evaluated;
    it is diagnostic only and never returned as a solution.
    """

    kind = "DidNotConverge"

    def __init__(
        self,
        message: str,
        *,
        best_estimate: Optional[float] = None,
        npv: Optional[float] = None,
        iterations: int = 0,
        bracket: Any = None,
    ) -> None:
        self.best_estimate = best_estimate
        self.npv = npv
        self.iterations = iterations
        self.bracket = bracket
        super().__init__(message)


__all__ = [
    "TimeValueError",
    "InvalidRate",
    "EmptySeries",
    "EmptyRateSequence",
    "InvalidInput",
    "InvalidConfig",
    "NoRootBracketed",
    "DidNotConverge",
]
