"""
Single-parameter sensitivity study.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import yaml

from . import (
    SwingFunc,
    get_param,
    merge_with_engine_defaults,
    resolve_param_key,
    run_swing_safely,
    save_study_metadata,
    set_param,
)


def run_sensitivity_study(
    cfg_overrides: Dict[str, Any],
    *,
    param_path: str,
    values: Iterable[float],
    out_dir: Optional[Path] = None,
    simulate_func: Optional[SwingFunc] = None,
) -> pd.DataFrame:
    """
    Sweep one parameter over `values` and summarize the impact response.

    Notes
    -----
    `param_path` is an engine key ("torque") or a config path
    ("pendulum.torque_Nm"). Runs that fail (e.g. the club never reaches the
    ball) are kept as rows with ``error_type`` set.
    """
    if simulate_func is None:
        from golf_swing_sim.core.engine import run_swing as simulate_func  # type: ignore

    key = resolve_param_key(param_path)
    base_full = merge_with_engine_defaults(cfg_overrides)
    base_value = get_param(base_full, key)
    values = [float(v) for v in values]

    rows: List[Dict[str, Any]] = []
    for v in values:
        cfg = set_param(base_full, key, v)
        rows.append(
            {
                "param": key,
                "base_value": base_value,
                "param_value": v,
                **run_swing_safely(simulate_func, cfg),
            }
        )

    summary = pd.DataFrame(rows)

    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)
        summary.to_csv(out_dir / "sensitivity_summary.csv", index=False)
        (out_dir / "config_overrides.yml").write_text(
            yaml.safe_dump(cfg_overrides, sort_keys=False), encoding="utf-8"
        )
        save_study_metadata(
            out_dir,
            metadata={
                "study_type": "sensitivity",
                "param": key,
                "values": values,
            },
        )

    return summary
