# timevalue/validate.py
from __future__ import annotations
import os, sys, json
from dataclasses import dataclass
from numbers import Real
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
import yaml

from timevalue.config import SolverConfig
from timevalue.errors import InvalidInput, TimeValueError
from timevalue.types import CashFlow, as_series, check_amount

ALLOWED_KEYS = {"name", "cashflows", "rate", "present_value", "rates", "solver"}


@dataclass(frozen=True)
class Scenario:
    name: str
    cashflows: Optional[List[CashFlow]] = None
    rate: Optional[float] = None
    present_value: Optional[float] = None
    rates: Optional[List[float]] = None
    solver: Optional[SolverConfig] = None


def _mode_from_env_or_flag(flag: str | None) -> str:
    if flag in ("strict", "relaxed"):
        return flag
    env = (os.environ.get("VALIDATION_MODE") or "").lower()
    return env if env in ("strict", "relaxed") else "relaxed"


def _number(data: Dict[str, Any], key: str) -> Optional[float]:
    v = data.get(key)
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, Real):
        raise InvalidInput(f"'{key}' must be a number, got {v!r}")
    return float(v)


def validate_params_dict(data: Dict[str, Any], *, mode: str = "relaxed") -> None:
    """
    Guardrails for a scenario mapping:
      - relaxed: unknown top-level keys ignored; every section optional
      - strict : require {cashflows} and reject unknown top-level keys
    Rate domains are left to the calculators (they raise InvalidRate).
    """
    if not isinstance(data, dict):
        raise InvalidInput(f"scenario must be a mapping, got {type(data).__name__}")

    if mode == "strict":
        if "cashflows" not in data:
            raise InvalidInput("missing required keys: ['cashflows']")
        unknown = sorted(k for k in data.keys() if k not in ALLOWED_KEYS)
        if unknown:
            raise InvalidInput(f"unknown top-level keys (strict mode): {unknown}")

    if "cashflows" in data:
        as_series(data["cashflows"])
    _number(data, "rate")
    pv = data.get("present_value")
    if pv is not None:
        check_amount(pv)
    rates = data.get("rates")
    if rates is not None and not isinstance(rates, list):
        raise InvalidInput(f"'rates' must be a list, got {type(rates).__name__}")
    if (pv is None) != (rates is None):
        raise InvalidInput("'present_value' and 'rates' must be given together")
    if data.get("solver") is not None:
        SolverConfig.from_mapping(data["solver"])


def scenario_from_dict(data: Dict[str, Any], *, mode: str = "relaxed", default_name: str = "scenario") -> Scenario:
    validate_params_dict(data, mode=mode)
    cfs = data.get("cashflows")
    pv = data.get("present_value")
    solver = data.get("solver")
    return Scenario(
        name=str(data.get("name") or default_name),
        cashflows=as_series(cfs) if cfs is not None else None,
        rate=_number(data, "rate"),
        present_value=check_amount(pv) if pv is not None else None,
        rates=list(data["rates"]) if data.get("rates") is not None else None,
        solver=SolverConfig.from_mapping(solver) if solver is not None else None,
    )


def load_params_from_file(path: Path) -> Dict[str, Any]:
    p = Path(path)
    if p.is_dir():
        # scenario_runner handles directories; keep this function file-only
        raise InvalidInput(f"{p} is a directory (expected a file)")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidInput(f"{p}: cannot read: {e}") from e
    try:
        if p.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text or "{}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise InvalidInput(f"{p}: cannot parse: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInput(f"{p}: top level must be a mapping")
    return data


def _iter_input_files(p: Path) -> Iterable[Path]:
    if p.is_file():
        yield p
    elif p.is_dir():
        for ext in ("*.yaml", "*.yml", "*.json"):
            yield from sorted(p.rglob(ext))


def _main(argv: List[str] | None = None) -> int:
    import argparse
    parser = argparse.ArgumentParser(prog="timevalue.validate", add_help=True)
    parser.add_argument("paths", nargs="+", help="YAML/JSON scenario files or directories to validate")
    parser.add_argument("--mode", choices=["strict", "relaxed"], default=None, help="validation mode")
    args = parser.parse_args(argv)

    mode = _mode_from_env_or_flag(args.mode)
    had_error = False

    for raw in args.paths:
        target = Path(raw)
        any_seen = False
        for f in _iter_input_files(target):
            if not f.is_file():
                continue
            any_seen = True
            try:
                validate_params_dict(load_params_from_file(f), mode=mode)
                print(f"OK: {f}")
            except TimeValueError as e:
                print(f"{f}: {e.kind}: {e}", file=sys.stderr)
                had_error = True
        if not any_seen:
            print(f"{target}: no YAML/JSON files found", file=sys.stderr)
            had_error = True

    return 1 if had_error else 0


if __name__ == "__main__":
    raise SystemExit(_main())
