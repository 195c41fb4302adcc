from __future__ import annotations
import json, os, subprocess, sys
from pathlib import Path

SCENARIOS = Path("tests/golden/scenarios")
OUTDIR    = Path("_out_golden_baseline")
BASELINE  = Path("tests/golden/baseline.json")
FROZEN_KEYS = ("npv", "irr", "future_value")

def main() -> int:
    if not SCENARIOS.is_dir():
        print(f"[x] Missing scenarios dir: {SCENARIOS}", file=sys.stderr)
        return 2

    OUTDIR.mkdir(parents=True, exist_ok=True)
    env = os.environ.copy()
    env["VALIDATION_MODE"] = "relaxed"

    cmd = [
        sys.executable, "-m", "timevalue", "batch",
        "--scenarios", str(SCENARIOS),
        "--outputs-dir", str(OUTDIR),
        "--format", "csv",
    ]
    subprocess.run(cmd, check=True, env=env)

    sj = OUTDIR / "summary.json"
    if not sj.exists():
        print("[x] summary.json not produced; check CLI/run_dir", file=sys.stderr)
        return 3

    data = json.loads(sj.read_text(encoding="utf-8"))
    if data.get("failed"):
        print(f"[x] {data['failed']} scenario(s) failed; refusing to write a baseline", file=sys.stderr)
        return 4

    # Only store frozen keys to keep the baseline slim & stable
    minimal = {
        name: {k: float(row[k]) for k in FROZEN_KEYS if k in row}
        for name, row in data["results"].items()
    }

    BASELINE.parent.mkdir(parents=True, exist_ok=True)
    BASELINE.write_text(json.dumps(minimal, indent=2, sort_keys=True), encoding="utf-8")
    print(f"[ok] Wrote baseline {BASELINE}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
