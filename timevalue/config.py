from __future__ import annotations

import dataclasses
import io
import math
import os
from dataclasses import dataclass, field
from numbers import Integral
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from timevalue.errors import InvalidConfig
from timevalue.types import RATE_FLOOR, Bracket

DEFAULT_TOLERANCE = 1e-7
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_BRACKET = Bracket(RATE_FLOOR, 10.0)

_ALIASES = {
    "maxIterations": "max_iterations",
    "iteration_limit": "max_iterations",
    "tol": "tolerance",
}


@dataclass(frozen=True)
class SolverConfig:
    """
    Bisection policy: convergence tolerance (absolute NPV or bracket
    half-width), iteration budget, and the initial search interval.
    """

    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    bracket: Bracket = field(default=DEFAULT_BRACKET)

    def validate(self) -> "SolverConfig":
        tol = self.tolerance
        if isinstance(tol, bool) or not isinstance(tol, (int, float)) or not math.isfinite(tol) or tol <= 0:
            raise InvalidConfig(f"tolerance must be a positive finite number, got {tol!r}")
        it = self.max_iterations
        if isinstance(it, bool) or not isinstance(it, Integral) or it < 1:
            raise InvalidConfig(f"max_iterations must be a positive integer, got {it!r}")
        if not isinstance(self.bracket, (tuple, list)) or len(self.bracket) != 2:
            raise InvalidConfig(f"bracket must be (low, high), got {self.bracket!r}")
        lo, hi = self.bracket
        for v in (lo, hi):
            if isinstance(v, bool) or not isinstance(v, (int, float)) or math.isnan(v):
                raise InvalidConfig(f"bracket endpoints must be numbers, got {self.bracket!r}")
        if not lo < hi:
            raise InvalidConfig(f"bracket low must be < high, got ({lo}, {hi})")
        return self

    def replace(self, **changes: Any) -> "SolverConfig":
        if "bracket" in changes and changes["bracket"] is not None:
            changes["bracket"] = _as_bracket(changes["bracket"])
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SolverConfig":
        """Build from a plain dict; unknown keys are rejected, missing keys take defaults."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidConfig(f"solver config must be a mapping, got {type(data).__name__}")
        kw: Dict[str, Any] = {}
        for k, v in data.items():
            key = _ALIASES.get(k, k)
            if key not in ("tolerance", "max_iterations", "bracket"):
                raise InvalidConfig(f"unknown solver config key: {k!r}")
            kw[key] = v
        if "tolerance" in kw:
            kw["tolerance"] = _as_float(kw["tolerance"], "tolerance")
        if "max_iterations" in kw:
            kw["max_iterations"] = _as_int(kw["max_iterations"], "max_iterations")
        if "bracket" in kw:
            kw["bracket"] = _as_bracket(kw["bracket"])
        return cls(**kw).validate()


def _as_float(v: Any, name: str) -> float:
    # YAML 1.1 reads "1e-7" (no dot) as a string
    if isinstance(v, bool):
        raise InvalidConfig(f"{name} must be a number, got {v!r}")
    try:
        return float(v)
    except (TypeError, ValueError):
        raise InvalidConfig(f"{name} must be a number, got {v!r}") from None


def _as_int(v: Any, name: str) -> int:
    if isinstance(v, bool):
        raise InvalidConfig(f"{name} must be an integer, got {v!r}")
    if isinstance(v, Integral):
        return int(v)
    f = _as_float(v, name)
    if not f.is_integer():
        raise InvalidConfig(f"{name} must be an integer, got {v!r}")
    return int(f)


def _as_bracket(v: Any) -> Bracket:
    if isinstance(v, Bracket):
        return v
    if isinstance(v, Mapping):
        if "low" not in v or "high" not in v:
            raise InvalidConfig(f"bracket mapping needs 'low' and 'high', got {dict(v)!r}")
        return Bracket(_as_float(v["low"], "bracket.low"), _as_float(v["high"], "bracket.high"))
    if isinstance(v, (list, tuple)) and len(v) == 2:
        return Bracket(_as_float(v[0], "bracket.low"), _as_float(v[1], "bracket.high"))
    raise InvalidConfig(f"bracket must be [low, high], got {v!r}")


def coerce_config(config: Union[SolverConfig, Mapping[str, Any], None]) -> SolverConfig:
    """Accept a SolverConfig, a plain mapping, or None (defaults); always validated."""
    if config is None:
        return SolverConfig()
    if isinstance(config, SolverConfig):
        return config.validate()
    return SolverConfig.from_mapping(config)


def _flatten_grouped(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Lift the keys of a `solver:` group to the top level.
    Prefers top-level keys if collisions occur.
    """
    flat: Dict[str, Any] = {k: v for k, v in cfg.items() if k != "solver"}
    group = cfg.get("solver")
    if group is not None:
        if not isinstance(group, dict):
            raise InvalidConfig("'solver' section must be a mapping")
        for sk, sv in group.items():
            flat.setdefault(sk, sv)
    return flat


def load_solver_config(source: Union[str, os.PathLike, io.TextIOBase]) -> SolverConfig:
    """
    Load a SolverConfig from a YAML path or text stream.
    Keys may be top-level or grouped under `solver:`; missing keys use defaults.
    """
    text: str
    if hasattr(source, "read"):
        text = str(source.read())  # type: ignore[union-attr]
    else:
        p = os.fspath(source)
        try:
            with open(p, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidConfig(f"{p}: cannot read solver config: {e}") from e

    try:
        cfg = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise InvalidConfig(f"malformed solver config: {e}") from e
    if not isinstance(cfg, dict):
        raise InvalidConfig(f"solver config must be a mapping, got {type(cfg).__name__}")

    return SolverConfig.from_mapping(_flatten_grouped(cfg))


__all__ = [
    "DEFAULT_TOLERANCE",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_BRACKET",
    "SolverConfig",
    "coerce_config",
    "load_solver_config",
]
