# timevalue/types.py
from __future__ import annotations

import math
from numbers import Integral, Real
from typing import Any, Iterable, List, Mapping, NamedTuple, Sequence, Union

from timevalue.errors import InvalidInput, InvalidRate

# Lowest usable discount rate; anything <= -1 makes (1+r) non-positive.
RATE_FLOOR = -0.999999


class CashFlow(NamedTuple):
    period: int
    amount: float


class Bracket(NamedTuple):
    low: float
    high: float

    @property
    def width(self) -> float:
        return self.high - self.low


CashFlowLike = Union[CashFlow, Sequence[Any], Mapping[str, Any], float]


def check_rate(rate: Any) -> float:
    """Coerce to float and enforce the discounting domain: finite and > -1."""
    if isinstance(rate, bool) or not isinstance(rate, Real):
        raise InvalidRate(rate)
    r = float(rate)
    if not math.isfinite(r) or r <= -1.0:
        raise InvalidRate(rate)
    return r


def check_period(period: Any) -> int:
    if isinstance(period, bool):
        raise InvalidInput(f"period must be a non-negative integer, got {period!r}")
    if isinstance(period, Integral):
        p = int(period)
    elif isinstance(period, float) and period.is_integer():
        # JSON/YAML loaders may hand back 2.0 for 2
        p = int(period)
    else:
        raise InvalidInput(f"period must be a non-negative integer, got {period!r}")
    if p < 0:
        raise InvalidInput(f"period must be a non-negative integer, got {period!r}")
    return p


def check_amount(amount: Any) -> float:
    if isinstance(amount, bool) or not isinstance(amount, Real):
        raise InvalidInput(f"amount must be a real number, got {amount!r}")
    a = float(amount)
    if not math.isfinite(a):
        raise InvalidInput(f"amount must be finite, got {amount!r}")
    return a


def _as_cashflow(item: CashFlowLike, index: int) -> CashFlow:
    if isinstance(item, CashFlow):
        return CashFlow(check_period(item.period), check_amount(item.amount))
    if isinstance(item, Real) and not isinstance(item, bool):
        # dense form: list position is the period
        return CashFlow(index, check_amount(item))
    if isinstance(item, Mapping):
        if "period" not in item or "amount" not in item:
            raise InvalidInput(f"cash flow #{index} needs 'period' and 'amount': {dict(item)!r}")
        return CashFlow(check_period(item["period"]), check_amount(item["amount"]))
    if isinstance(item, (str, bytes)):
        raise InvalidInput(f"cash flow #{index} is not a number or pair: {item!r}")
    try:
        period, amount = item  # type: ignore[misc]
    except (TypeError, ValueError):
        raise InvalidInput(f"cash flow #{index} is not a (period, amount) pair: {item!r}") from None
    return CashFlow(check_period(period), check_amount(amount))


def as_series(cashflows: Iterable[CashFlowLike]) -> List[CashFlow]:
    """
    Normalise caller input into a list of CashFlow, keeping insertion order.

    Accepts CashFlow values, (period, amount) pairs, {"period", "amount"}
    mappings, or plain numbers (dense form, where the position is the period).
    """
    if cashflows is None or isinstance(cashflows, (str, bytes, Mapping)):
        raise InvalidInput(f"cash flows must be a sequence, got {type(cashflows).__name__}")
    try:
        items = list(cashflows)
    except TypeError:
        raise InvalidInput(f"cash flows must be a sequence, got {type(cashflows).__name__}") from None
    return [_as_cashflow(item, i) for i, item in enumerate(items)]


__all__ = [
    "RATE_FLOOR",
    "CashFlow",
    "Bracket",
    "CashFlowLike",
    "check_rate",
    "check_period",
    "check_amount",
    "as_series",
]
