# timevalue/scenario_runner.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import json, csv
import logging

from .config import SolverConfig
from .errors import InvalidInput, TimeValueError
from .finance.future_value import future_value
from .finance.irr import solve_irr
from .finance.present_value import npv
from .validate import (
    Scenario,
    _mode_from_env_or_flag,
    _iter_input_files,
    load_params_from_file,
    scenario_from_dict,
)

logger = logging.getLogger(__name__)

RESULT_COLUMNS = (
    "scenario", "source",
    "npv", "npv_error",
    "irr", "irr_iterations", "irr_error",
    "future_value", "future_value_error",
    "error", "message",
)


@dataclass
class RunResult:
    summary: Dict[str, Any]
    summary_path: Path
    results_path: Optional[Path] = None


def evaluate_scenario(sc: Scenario, solver_config: Optional[SolverConfig] = None) -> Dict[str, Any]:
    """
    Run every calculation the scenario has inputs for. Each one is
    independent: a failure is recorded as `<calc>_error` ("Kind: message")
    and the others still run. `error`/`message` repeat the first failure.
    """
    row: Dict[str, Any] = {"scenario": sc.name}

    def _record(calc: str, e: TimeValueError) -> None:
        row[f"{calc}_error"] = f"{e.kind}: {e}"
        row.setdefault("error", e.kind)
        row.setdefault("message", f"{calc}: {e}")

    if sc.cashflows is not None and sc.rate is not None:
        try:
            row["npv"] = npv(sc.cashflows, sc.rate)
        except TimeValueError as e:
            _record("npv", e)
    if sc.cashflows is not None:
        try:
            sol = solve_irr(sc.cashflows, sc.solver or solver_config)
            row["irr"] = sol.rate
            row["irr_iterations"] = sol.iterations
        except TimeValueError as e:
            _record("irr", e)
    if sc.present_value is not None and sc.rates is not None:
        try:
            row["future_value"] = future_value(sc.present_value, sc.rates)
        except TimeValueError as e:
            _record("future_value", e)
    return row


def _write_jsonl(path: Path, rows: List[Dict[str, Any]]) -> None:
    with path.open("w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row) + "\n")


def _write_csv(path: Path, rows: List[Dict[str, Any]]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(RESULT_COLUMNS))
        w.writeheader()
        for row in rows:
            w.writerow({k: row.get(k, "") for k in RESULT_COLUMNS})


def run_dir(
    config: str | Path,
    out_dir: str | Path,
    *,
    fmt: str = "jsonl",
    solver_config: Optional[SolverConfig] = None,
    mode: Optional[str] = None,
) -> RunResult:
    """
    Evaluate a scenario file, or every YAML/JSON scenario under a directory
    (sorted by path), and write results.{jsonl,csv} plus summary.json.

    Files that fail to load or validate are recorded as failed rows; they do
    not abort the batch. Repeated scenario names get a "#2", "#3" ... suffix.
    Raises InvalidInput when `config` holds no scenario files.
    """
    if fmt not in ("jsonl", "csv"):
        raise ValueError(f"unsupported format: {fmt!r}")
    cfg_path = Path(config)
    files = list(_iter_input_files(cfg_path))
    if not files:
        raise InvalidInput(f"{cfg_path}: no scenario files found")
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    vmode = _mode_from_env_or_flag(mode)

    rows: List[Dict[str, Any]] = []
    seen: Dict[str, int] = {}
    for f in files:
        try:
            sc = scenario_from_dict(load_params_from_file(f), mode=vmode, default_name=f.stem)
            row = evaluate_scenario(sc, solver_config)
        except TimeValueError as e:
            row = {"scenario": f.stem, "error": e.kind, "message": str(e)}
        name = row["scenario"]
        seen[name] = seen.get(name, 0) + 1
        if seen[name] > 1:
            row["scenario"] = f"{name}#{seen[name]}"
        row["source"] = str(f)
        if "error" in row:
            logger.warning("scenario %s failed: %s: %s", f, row["error"], row.get("message"))
        rows.append(row)

    results_path = out / f"results.{fmt}"
    if fmt == "jsonl":
        _write_jsonl(results_path, rows)
    else:
        _write_csv(results_path, rows)

    failed = sum(1 for r in rows if "error" in r)
    summary: Dict[str, Any] = {
        "scenarios": len(rows),
        "ok": len(rows) - failed,
        "failed": failed,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "results": {r["scenario"]: {k: v for k, v in r.items() if k not in ("scenario", "source")} for r in rows},
    }
    summary_path = out / "summary.json"
    summary_path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")
    logger.info("ran %d scenarios (%d failed); wrote %s", len(rows), failed, results_path)
    return RunResult(summary=summary, summary_path=summary_path, results_path=results_path)


__all__ = ["RunResult", "evaluate_scenario", "run_dir"]
