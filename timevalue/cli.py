# timevalue/cli.py
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import SolverConfig, load_solver_config
from .errors import InvalidConfig, InvalidInput, TimeValueError
from .finance.future_value import future_value
from .finance.irr import find_bracket, solve_irr
from .finance.present_value import npv, present_value
from .scenario_runner import run_dir
from .types import CashFlow, check_period
from .validate import load_params_from_file, scenario_from_dict


def _flow(text: str) -> CashFlow:
    """argparse type for --flow PERIOD:AMOUNT."""
    period, sep, amount = text.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected PERIOD:AMOUNT, got {text!r}")
    try:
        return CashFlow(check_period(int(period)), float(amount))
    except (ValueError, InvalidInput):
        raise argparse.ArgumentTypeError(f"expected PERIOD:AMOUNT, got {text!r}") from None


def _add_cashflow_args(p: argparse.ArgumentParser) -> None:
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--cashflows", nargs="+", type=float, metavar="AMOUNT",
                     help="Dense series; the position is the period (first value is period 0).")
    src.add_argument("--flow", action="append", type=_flow, metavar="PERIOD:AMOUNT",
                     help="One cash flow; repeat for each period.")
    src.add_argument("--input", metavar="FILE", help="YAML/JSON file with a 'cashflows' list.")


def _add_output_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--format", dest="fmt", default="text", choices=["text", "json"],
                   help="Output format (default: text).")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="timevalue",
        description="Present value, future value and IRR calculations",
    )
    p.add_argument(
        "--log-level",
        default=os.environ.get("TIMEVALUE_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: WARNING, or $TIMEVALUE_LOG_LEVEL).",
    )
    sub = p.add_subparsers(dest="command", required=True)

    pv = sub.add_parser("pv", help="Present value of a single amount.")
    pv.add_argument("--amount", type=float, required=True)
    pv.add_argument("--rate", type=float, required=True)
    pv.add_argument("--periods", type=int, required=True)
    _add_output_args(pv)

    nv = sub.add_parser("npv", help="Net present value of a cash-flow series.")
    nv.add_argument("--rate", type=float, default=None,
                    help="Discount rate; required unless the input file sets 'rate'.")
    _add_cashflow_args(nv)
    _add_output_args(nv)

    fv = sub.add_parser("fv", help="Future value through per-period rates.")
    fv.add_argument("--present-value", type=float, required=True)
    fv.add_argument("--rates", type=float, nargs="+", required=True, metavar="RATE")
    _add_output_args(fv)

    ir = sub.add_parser("irr", help="Internal rate of return by bisection.")
    _add_cashflow_args(ir)
    ir.add_argument("--config", default=None, help="Solver config YAML (tolerance, max_iterations, bracket).")
    ir.add_argument("--tolerance", type=float, default=None)
    ir.add_argument("--max-iterations", type=int, default=None)
    ir.add_argument("--bracket", type=float, nargs=2, default=None, metavar=("LOW", "HIGH"))
    ir.add_argument("--guess", type=float, default=None,
                    help="Search for a bracket around this rate instead of using the configured one.")
    _add_output_args(ir)

    br = sub.add_parser("bracket", help="Search for a rate interval where NPV changes sign.")
    _add_cashflow_args(br)
    br.add_argument("--guess", type=float, default=0.1)
    br.add_argument("--step", type=float, default=0.1)
    _add_output_args(br)

    bt = sub.add_parser("batch", help="Evaluate a file or directory of scenarios.")
    bt.add_argument("--scenarios", required=True, help="Scenario YAML/JSON file or directory.")
    bt.add_argument("--outputs-dir", default="outputs",
                    help="Directory to write result files (default: outputs). Will be created if missing.")
    bt.add_argument("--format", dest="fmt", default="jsonl", choices=["jsonl", "csv"])
    bt.add_argument("--config", default=None, help="Solver config YAML applied to scenarios without a 'solver' section.")
    v = bt.add_mutually_exclusive_group()
    v.add_argument("--strict", action="store_true", help="Enable strict validation (unknown keys raise).")
    v.add_argument("--relaxed", action="store_true", help="Enable relaxed validation (unknown keys ignored).")

    return p.parse_args(argv)


def _load_input(ns: argparse.Namespace) -> Dict[str, Any]:
    """Cash flows (and optional rate/solver) from whichever source flag was used."""
    if ns.input:
        sc = scenario_from_dict(load_params_from_file(Path(ns.input)), default_name=Path(ns.input).stem)
        if sc.cashflows is None:
            raise InvalidInput(f"{ns.input}: no 'cashflows' in input file")
        return {"cashflows": sc.cashflows, "rate": sc.rate, "solver": sc.solver}
    flows: List[Any] = list(ns.cashflows) if ns.cashflows else list(ns.flow)
    return {"cashflows": flows, "rate": None, "solver": None}


def _solver_config(ns: argparse.Namespace, from_file: Optional[SolverConfig]) -> SolverConfig:
    cfg = load_solver_config(ns.config) if ns.config else (from_file or SolverConfig())
    return cfg.replace(
        tolerance=ns.tolerance,
        max_iterations=ns.max_iterations,
        bracket=tuple(ns.bracket) if ns.bracket else None,
    )


def _emit(ns: argparse.Namespace, payload: Dict[str, Any], text: str) -> None:
    if ns.fmt == "json":
        print(json.dumps(payload))
    else:
        print(text)


def _run(ns: argparse.Namespace) -> int:
    if ns.command == "pv":
        val = present_value(ns.amount, ns.rate, ns.periods)
        _emit(ns, {"present_value": val}, f"PV: {val:.6f}")
        return 0

    if ns.command == "fv":
        val = future_value(ns.present_value, ns.rates)
        _emit(ns, {"future_value": val}, f"FV: {val:.6f}")
        return 0

    if ns.command == "batch":
        mode = "strict" if ns.strict else "relaxed" if ns.relaxed else None
        cfg = load_solver_config(ns.config) if ns.config else None
        res = run_dir(ns.scenarios, ns.outputs_dir, fmt=ns.fmt, solver_config=cfg, mode=mode)
        print(f"Ran {res.summary['scenarios']} scenarios ({res.summary['failed']} failed) -> {res.results_path}")
        return 1 if res.summary["failed"] else 0

    data = _load_input(ns)
    flows = data["cashflows"]

    if ns.command == "npv":
        rate = ns.rate if ns.rate is not None else data["rate"]
        if rate is None:
            raise InvalidInput("npv needs --rate (or 'rate' in the input file)")
        val = npv(flows, rate)
        _emit(ns, {"npv": val, "rate": rate}, f"NPV @ {rate:.4%}: {val:.6f}")
        return 0

    if ns.command == "bracket":
        b = find_bracket(flows, ns.guess, step=ns.step)
        _emit(ns, {"low": b.low, "high": b.high}, f"Bracket: [{b.low:.6f}, {b.high:.6f}]")
        return 0

    # irr
    cfg = _solver_config(ns, data["solver"])
    if ns.guess is not None:
        cfg = cfg.replace(bracket=find_bracket(flows, ns.guess, tolerance=cfg.tolerance))
    sol = solve_irr(flows, cfg)
    _emit(
        ns,
        {"irr": sol.rate, "npv": sol.npv, "iterations": sol.iterations,
         "bracket": [sol.bracket.low, sol.bracket.high]},
        f"IRR: {sol.rate:.6%} ({sol.iterations} iterations)",
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    try:
        ns = _parse_args(argv)
    except SystemExit as e:
        # argparse usage errors (and --help) exit through here
        return int(e.code) if isinstance(e.code, int) else 2

    logging.basicConfig(level=getattr(logging, ns.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        return _run(ns)
    except TimeValueError as e:
        print(f"ERROR: {e.kind}: {e}", file=sys.stderr)
        return 2 if isinstance(e, InvalidConfig) else 1


__all__ = ["main"]
