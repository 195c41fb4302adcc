import importlib
import inspect
from pathlib import Path


def _param_names(fn):
    return [p.name for p in inspect.signature(fn).parameters.values()]


def test_finance_irr_public_api_is_stable():
    """Lock down that IRR lives in finance.irr with a stable entrypoint."""
    m = importlib.import_module("timevalue.finance.irr")
    for name in ("irr", "solve_irr", "find_bracket", "bisection_steps"):
        assert callable(getattr(m, name, None)), f"Missing finance.irr.{name}"

    # Keep the first parameter name stable to avoid accidental API churn.
    assert _param_names(m.irr)[:2] == ["cashflows", "config"]
    assert _param_names(m.solve_irr)[:2] == ["cashflows", "config"]

    # The solver must stay free of the I/O layers.
    src = Path(m.__file__).read_text(encoding="utf-8")
    for forbidden in ("scenario_runner", "from ..cli", "from ..validate", "import yaml"):
        assert forbidden not in src, f"Unexpected dependency '{forbidden}' inside finance/irr.py"


def test_present_value_public_api_is_stable():
    m = importlib.import_module("timevalue.finance.present_value")
    assert _param_names(m.present_value) == ["amount", "rate", "periods"]
    assert _param_names(m.npv) == ["cashflows", "rate"]
    f = importlib.import_module("timevalue.finance.future_value")
    assert _param_names(f.future_value) == ["present_value", "rates"]


def test_metrics_facade_exports():
    """metrics re-exposes the calculations under compute_* names."""
    m = importlib.import_module("timevalue.finance.metrics")
    for name in ("compute_present_value_single", "compute_present_value", "compute_future_value", "compute_irr"):
        assert callable(getattr(m, name, None)), f"Missing metrics.{name}"
    assert _param_names(m.compute_irr)[0] == "cashflows"
    assert _param_names(m.compute_present_value)[:2] == ["cashflows", "rate"]
    assert m.compute_irr([-100.0, 110.0]) == importlib.import_module("timevalue.finance.irr").irr([-100.0, 110.0])


def test_validate_exports_are_stable():
    """validate module must expose these helpers (names kept stable)."""
    v = importlib.import_module("timevalue.validate")
    for name in ("validate_params_dict", "load_params_from_file", "scenario_from_dict"):
        obj = getattr(v, name, None)
        assert callable(obj), f"Missing or non-callable export: {name}"


def test_scenario_runner_run_dir_api_minimal(tmp_path):
    """run_dir must accept (cfg_path, out_dir, ...) and return a RunResult with a summary."""
    r = importlib.import_module("timevalue.scenario_runner")
    assert hasattr(r, "run_dir") and callable(r.run_dir)

    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("cashflows: [-100, 110]\nrate: 0.1\n", encoding="utf-8")
    out = tmp_path / "o"

    res = r.run_dir(cfg, out, fmt="jsonl")
    assert isinstance(res.summary, dict)
    for k in ("scenarios", "ok", "failed", "generated_at", "results"):
        assert k in res.summary
    assert res.summary["results"]["cfg"]["irr"] > 0
    assert res.summary_path.exists()
