"""
Solver-tolerance convergence study.

Sweeps the relative tolerance of the ODE solver and reports how the impact
time and club/ball speeds settle as the tolerance tightens.
"""
from __future__ import annotations

import math
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import yaml

from . import SwingFunc, merge_with_engine_defaults, run_swing_safely, save_study_metadata


def run_convergence_study(
    cfg_overrides: Dict[str, Any],
    rtol_values: Iterable[float],
    *,
    atol_ratio: float = 1.0e-2,
    out_dir: Optional[Path] = None,
    simulate_func: Optional[SwingFunc] = None,
) -> pd.DataFrame:
    """
    Sweep the solver tolerance and report convergence metrics.

    Parameters
    ----------
    cfg_overrides:
        Flat engine overrides (can be partial).
    rtol_values:
        Relative tolerances to try.
    atol_ratio:
        ``atol = atol_ratio * rtol`` for every run.
    out_dir:
        If provided, write summary CSV + metadata.
    simulate_func:
        For testing; defaults to `golf_swing_sim.core.engine.run_swing`.

    Returns
    -------
    pd.DataFrame with one row per tolerance, loosest first.
    """
    if simulate_func is None:
        from golf_swing_sim.core.engine import run_swing as simulate_func  # type: ignore

    rtols = sorted((float(r) for r in rtol_values), reverse=True)
    base_full = merge_with_engine_defaults(cfg_overrides)

    rows: List[Dict[str, Any]] = []
    prev_speed: Optional[float] = None

    for rtol in rtols:
        cfg = dict(base_full)
        cfg["rtol"] = rtol
        cfg["atol"] = atol_ratio * rtol

        t0 = time.perf_counter()
        metrics = run_swing_safely(simulate_func, cfg)
        wall = time.perf_counter() - t0

        speed = metrics["club_speed_m_s"]
        rel = None
        if prev_speed is not None and speed is not None and not math.isnan(speed) and prev_speed != 0.0:
            rel = 100.0 * abs(speed - prev_speed) / abs(prev_speed)
        if speed is not None and not math.isnan(speed):
            prev_speed = speed

        rows.append(
            {
                "rtol": rtol,
                "atol": cfg["atol"],
                "method": cfg.get("method"),
                "wall_time_s": float(wall),
                "relative_change_club_speed_pct": rel,
                **metrics,
            }
        )

    summary = pd.DataFrame(rows)

    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)
        summary.to_csv(out_dir / "convergence_summary.csv", index=False)
        (out_dir / "config_overrides.yml").write_text(
            yaml.safe_dump(cfg_overrides, sort_keys=False), encoding="utf-8"
        )
        save_study_metadata(
            out_dir,
            metadata={
                "study_type": "convergence",
                "rtol_values": rtols,
                "atol_ratio": float(atol_ratio),
            },
        )
    return summary
