import logging
import math
from itertools import islice

import numpy_financial as npf
import pytest

from timevalue.config import SolverConfig
from timevalue.errors import DidNotConverge, InvalidConfig, InvalidInput, InvalidRate, NoRootBracketed
from timevalue.finance.irr import bisection_steps, irr, solve_irr
from timevalue.finance.present_value import npv
from timevalue.types import RATE_FLOOR, Bracket


def test_single_period_ten_percent():
    assert irr([(0, -100.0), (1, 110.0)]) == pytest.approx(0.10, abs=1e-6)


def test_two_period_annuity_closed_form():
    # 100 = 60/(1+r) + 60/(1+r)^2
    assert irr([-100.0, 60.0, 60.0]) == pytest.approx(0.130662386291807, abs=1e-6)


def test_sparse_periods():
    assert irr([(0, -1000.0), (2, 1210.0)]) == pytest.approx(0.10, abs=1e-6)
    assert irr([-1000.0, 0.0, 0.0, 1331.0]) == pytest.approx(0.10, abs=1e-6)


def test_root_close_to_minus_one():
    assert irr([-100.0, 1.0]) == pytest.approx(-0.99, abs=1e-6)


@pytest.mark.parametrize(
    "values",
    [
        [-100.0, 39.0, 59.0, 55.0, 20.0],
        [-1000.0, 300.0, 400.0, 500.0],
        [-250.0, 100.0, 100.0, 100.0],
        [-100.0, 0.0, 0.0, 10000.0],
    ],
)
def test_agrees_with_numpy_financial(values):
    assert irr(values) == pytest.approx(float(npf.irr(values)), abs=1e-6)


def test_solution_carries_diagnostics():
    series = [(0, -100.0), (1, 110.0)]
    sol = solve_irr(series)
    assert sol.bracket.low <= sol.rate <= sol.bracket.high
    assert sol.npv == npv(series, sol.rate)
    # width 10.999999 halves to <= 2e-7 within 27 iterations
    assert 1 <= sol.iterations <= 28


def test_repeat_calls_are_bit_identical():
    series = [-100.0, 39.0, 59.0, 55.0, 20.0]
    assert solve_irr(series) == solve_irr(series)


@pytest.mark.parametrize(
    "series",
    [
        [(0, 100.0), (1, 100.0)],
        [(0, -100.0), (1, -10.0), (2, -10.0)],
    ],
)
def test_single_sign_series_has_no_root(series):
    with pytest.raises(NoRootBracketed) as ei:
        irr(series)
    assert ei.value.kind == "NoRootBracketed"


@pytest.mark.parametrize("series", [[], [(0, -100.0)]])
def test_needs_at_least_two_cash_flows(series):
    with pytest.raises(InvalidInput):
        irr(series)


def test_bracket_that_misses_the_root():
    with pytest.raises(NoRootBracketed) as ei:
        irr([(0, -100.0), (1, 110.0)], SolverConfig(bracket=Bracket(0.2, 0.5)))
    err = ei.value
    assert err.bracket == Bracket(0.2, 0.5)
    assert err.npv_low < 0 and err.npv_high < 0


def test_bracket_endpoint_at_or_below_minus_one_propagates_invalid_rate():
    with pytest.raises(InvalidRate):
        irr([(0, -100.0), (1, 110.0)], SolverConfig(bracket=Bracket(-1.5, 1.0)))


def test_endpoint_already_within_tolerance_is_returned():
    sol = solve_irr([(0, -100.0), (1, 110.0)], SolverConfig(bracket=Bracket(0.1, 0.5)))
    assert sol.rate == 0.1
    assert sol.iterations == 0


def test_all_zero_series_returns_low_endpoint():
    sol = solve_irr([(0, 0.0), (1, 0.0)])
    assert sol.rate == RATE_FLOOR
    assert sol.iterations == 0


def test_iteration_budget_exhausted():
    with pytest.raises(DidNotConverge) as ei:
        irr([(0, -100.0), (1, 110.0)], SolverConfig(max_iterations=1))
    err = ei.value
    assert err.kind == "DidNotConverge"
    assert err.iterations == 1
    assert err.best_estimate == pytest.approx((RATE_FLOOR + 10.0) / 2)
    assert err.bracket == Bracket(RATE_FLOOR, 10.0)


def test_mapping_config_is_accepted():
    with pytest.raises(DidNotConverge):
        irr([(0, -100.0), (1, 110.0)], {"maxIterations": 3})
    assert irr([(0, -100.0), (1, 110.0)], {"tolerance": 1e-9, "bracket": [0.0, 1.0]}) == pytest.approx(0.1, abs=1e-8)


@pytest.mark.parametrize(
    "cfg",
    [
        SolverConfig(tolerance=0.0),
        SolverConfig(tolerance=-1e-7),
        SolverConfig(tolerance=float("nan")),
        SolverConfig(max_iterations=0),
        SolverConfig(max_iterations=2.5),
        SolverConfig(bracket=Bracket(1.0, 0.0)),
        SolverConfig(bracket=Bracket(0.5, 0.5)),
    ],
)
def test_invalid_config_is_rejected_before_solving(cfg):
    with pytest.raises(InvalidConfig):
        irr([(0, -100.0), (1, 110.0)], cfg)


def test_bracket_halves_every_iteration_and_keeps_the_root():
    series = [(0, -100.0), (1, 110.0)]
    lo, hi = -0.5, 1.0
    steps = list(islice(bisection_steps(series, (lo, hi)), 40))
    prev = None
    for k, step in enumerate(steps):
        assert step.iteration == k + 1
        assert step.high - step.low == pytest.approx((hi - lo) / 2 ** k, rel=1e-9)
        assert step.low <= step.mid <= step.high
        assert step.low <= 0.1 + 1e-12 and 0.1 - 1e-12 <= step.high
        assert npv(series, step.low) * npv(series, step.high) <= 0
        if prev is not None:
            assert prev.low <= step.low and step.high <= prev.high
        prev = step


def test_bisection_is_deterministic():
    series = [-100.0, 39.0, 59.0, 55.0, 20.0]
    a = list(islice(bisection_steps(series, (0.0, 1.0)), 25))
    b = list(islice(bisection_steps(series, (0.0, 1.0)), 25))
    assert a == b


def test_solver_logs_at_debug(caplog):
    caplog.set_level(logging.DEBUG, logger="timevalue.finance.irr")
    irr([(0, -100.0), (1, 110.0)])
    assert any("converged" in r.getMessage() for r in caplog.records)


def test_solution_rate_is_finite_for_long_series():
    # 80 periods: NPV at the default low end overflows to +inf, which still has a sign
    values = [-1000.0] + [100.0] * 80
    r = irr(values)
    assert math.isfinite(r)
    assert 0.09 < r < 0.11
    assert npv(values, r) == pytest.approx(0.0, abs=1e-2)


def test_solver_checks_the_iteration_limit_itself(monkeypatch):
    import timevalue.finance.irr as irr_mod

    monkeypatch.setattr(irr_mod, "coerce_config", lambda cfg: cfg)
    with pytest.raises(InvalidConfig, match="max_iterations"):
        irr_mod.solve_irr([(0, -100.0), (1, 110.0)], SolverConfig(max_iterations=0))
