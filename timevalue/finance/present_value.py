# timevalue/finance/present_value.py
from __future__ import annotations

import math
from typing import Iterable, Sequence

from timevalue.errors import EmptySeries
from timevalue.types import CashFlow, CashFlowLike, as_series, check_amount, check_period, check_rate


# ---------- single amount ----------
def present_value(amount: float, rate: float, periods: int) -> float:
    """
    Discount one amount back to period 0:
        PV = amount / (1+rate)^periods
    """
    a = check_amount(amount)
    r = check_rate(rate)
    n = check_period(periods)
    return _discount(a, r, n)


def _discount(amount: float, rate: float, periods: int) -> float:
    if periods == 0 or amount == 0.0:
        return amount
    try:
        factor = (1.0 + rate) ** periods
    except OverflowError:
        return 0.0
    if factor == 0.0:
        # (1+rate) close to zero underflows for long horizons
        return math.copysign(math.inf, amount)
    return amount / factor


# ---------- NPV ----------
def npv(cashflows: Iterable[CashFlowLike], rate: float) -> float:
    """
    Net present value of an integer-indexed series:
        NPV(r) = sum_i CF_i / (1+r)^t_i
    """
    series = as_series(cashflows)
    return series_npv(series, rate)


def series_npv(series: Sequence[CashFlow], rate: float) -> float:
    """NPV of an already-normalised series; the solver calls this once per candidate rate."""
    if not series:
        raise EmptySeries("cash-flow series is empty")
    r = check_rate(rate)
    total = 0.0
    for cf in series:
        total += _discount(cf.amount, r, cf.period)
    return total


__all__ = ["present_value", "npv", "series_npv"]
