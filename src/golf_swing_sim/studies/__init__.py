"""
Studies framework: reproducible tolerance-convergence and sensitivity analyses.

All simulations are executed via `golf_swing_sim.core.engine.run_swing` on
flat engine parameter dicts (see `get_default_simulation_params`).
"""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List
import copy
import json
import math
import re
import subprocess

from golf_swing_sim.config.loader import FIELD_MAP
from golf_swing_sim.core.engine import SwingResult
from golf_swing_sim.core.errors import GolfSimError

SwingFunc = Callable[[Dict[str, Any]], SwingResult]


# ----------------------------
# Parameter keys
# ----------------------------

def resolve_param_key(path: str) -> str:
    """
    Map a parameter path to its flat engine key:
      - 'torque' -> 'torque'
      - 'pendulum.torque_Nm' -> 'torque'
    """
    from golf_swing_sim.core.engine import get_default_simulation_params

    path = path.strip()
    if path in get_default_simulation_params():
        return path
    parts = tuple(path.split("."))
    if len(parts) == 2 and parts in FIELD_MAP:
        return FIELD_MAP[parts]
    raise ValueError(
        f"Unknown parameter path {path!r}. Use an engine key such as 'torque' "
        "or a config path such as 'pendulum.torque_Nm'."
    )


def get_param(cfg: Dict[str, Any], path: str) -> Any:
    key = resolve_param_key(path)
    if key not in cfg:
        raise KeyError(f"Parameter '{key}' not set in config")
    return cfg[key]


def set_param(cfg: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """Return a deep-copied cfg with the parameter set to `value`."""
    new_cfg = copy.deepcopy(cfg)
    new_cfg[resolve_param_key(path)] = value
    return new_cfg


def merge_with_engine_defaults(cfg_overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge user overrides with engine defaults, returning a full config dict.

    Mirrors what `run_swing()` does internally, so studies can report the
    base value of a swept parameter.
    """
    from golf_swing_sim.core.engine import get_default_simulation_params

    base = get_default_simulation_params()
    base.update(copy.deepcopy(cfg_overrides))
    return base


# ----------------------------
# Metrics
# ----------------------------

METRIC_KEYS = (
    "impact_time_s",
    "club_speed_m_s",
    "club_speed_after_m_s",
    "ball_speed_m_s",
    "smash_factor",
    "n_steps",
    "n_fev",
)


def run_swing_safely(simulate_func: SwingFunc, cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Run one swing and return its metrics; failures become an error row."""
    try:
        result = simulate_func(cfg)
    except GolfSimError as exc:
        row: Dict[str, Any] = {key: math.nan for key in METRIC_KEYS}
        row["error_type"] = type(exc).__name__
        row["error"] = str(exc)
        return row
    summary = result.summary()
    row = {key: summary.get(key) for key in METRIC_KEYS}
    row["error_type"] = None
    row["error"] = None
    return row


# ----------------------------
# Reproducibility utilities
# ----------------------------

def get_git_hash() -> str:
    """Return current git hash (or 'unknown')."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
        return proc.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        return "unknown"


def _json_default(obj: Any) -> Any:
    if is_dataclass(obj):
        return asdict(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return str(obj)


def save_study_metadata(output_dir: Path, *, metadata: Dict[str, Any]) -> None:
    """Write run_metadata.json to the output directory."""
    from golf_swing_sim import __version__

    output_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "git_hash": get_git_hash(),
        "package_version": __version__,
        **metadata,
    }
    (output_dir / "run_metadata.json").write_text(
        json.dumps(payload, indent=2, default=_json_default),
        encoding="utf-8",
    )


def parse_floats_csv(s: str) -> List[float]:
    """Parse '1,2,3' or '1 2 3' into list of floats."""
    parts = re.split(r"[,\s]+", (s or "").strip())
    return [float(p) for p in parts if p]
