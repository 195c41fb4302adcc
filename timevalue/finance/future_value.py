# timevalue/finance/future_value.py
"""
Compounding a present amount forward through per-period rates.

Numbers are per period; rates[0] applies to period 1, rates[1] to period 2, ...
Keep this module self-contained: the IRR solver does not use it.
"""
from __future__ import annotations

from typing import Iterable, List

from timevalue.errors import EmptyRateSequence, InvalidInput
from timevalue.types import check_amount, check_rate


def _rates(rates: Iterable[float]) -> List[float]:
    if rates is None or isinstance(rates, (str, bytes)):
        raise InvalidInput(f"rates must be a sequence of numbers, got {rates!r}")
    out = [check_rate(r) for r in rates]
    if not out:
        raise EmptyRateSequence("rate sequence is empty; at least one period is required")
    return out


def future_value(present_value: float, rates: Iterable[float]) -> float:
    """FV = PV * prod(1 + r_i), applied in sequence order."""
    value = check_amount(present_value)
    for r in _rates(rates):
        value *= 1.0 + r
    return value


def future_value_path(present_value: float, rates: Iterable[float]) -> List[float]:
    """
    Running value after each period: [PV, PV(1+r0), PV(1+r0)(1+r1), ...],
    length len(rates) + 1. The last element equals future_value(...).
    """
    value = check_amount(present_value)
    path = [value]
    for r in _rates(rates):
        value *= 1.0 + r
        path.append(value)
    return path


__all__ = ["future_value", "future_value_path"]
