"""
Time-value façade.

Design:
- NPV/PV live only in timevalue.finance.present_value, FV in
  timevalue.finance.future_value, IRR in timevalue.finance.irr.
- This module must not *define* irr/npv (no 'def irr' / 'def npv' here);
  it exposes the stable public entrypoints on top of them.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from timevalue.config import SolverConfig
from timevalue.finance.future_value import future_value
from timevalue.finance.irr import irr
from timevalue.finance.present_value import npv, present_value
from timevalue.types import CashFlowLike


def compute_present_value_single(amount: float, rate: float, periods: int) -> float:
    return present_value(amount, rate, periods)


def compute_present_value(cashflows: Iterable[CashFlowLike], rate: float) -> float:
    return npv(cashflows, rate)


def compute_future_value(present_value: float, rates: Iterable[float]) -> float:
    return future_value(present_value, rates)


def compute_irr(
    cashflows: Iterable[CashFlowLike],
    config: Optional[Union[SolverConfig, Mapping[str, Any]]] = None,
) -> float:
    return irr(cashflows, config)


__all__ = [
    "compute_present_value_single",
    "compute_present_value",
    "compute_future_value",
    "compute_irr",
]
