"""
Typer CLI commands for studies.

Imported and registered from `golf_swing_sim.cli`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from golf_swing_sim.config import ConfigError, config_to_params, load_simulation_config

from . import parse_floats_csv


def _parse_floats_option(s: str) -> List[float]:
    try:
        values = parse_floats_csv(s)
    except ValueError as e:
        raise typer.BadParameter(f"Could not parse floats from: {s!r}") from e
    if not values:
        raise typer.BadParameter("Expected at least one value.")
    return values


def _load_overrides(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    try:
        return config_to_params(load_simulation_config(path))
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def register_study_commands(app: typer.Typer) -> None:
    @app.command("convergence")
    def convergence_cmd(
        config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="Base config YAML"),
        rtols: str = typer.Option("1e-4,1e-6,1e-8,1e-10", "--rtols", help="Comma/space-separated relative tolerances"),
        atol_ratio: float = typer.Option(1e-2, "--atol-ratio", help="atol = atol_ratio * rtol"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
    ) -> None:
        """Run solver-tolerance convergence study."""
        from .convergence import run_convergence_study

        overrides = _load_overrides(config)
        summary = run_convergence_study(
            overrides, _parse_floats_option(rtols), atol_ratio=atol_ratio, out_dir=out
        )
        typer.echo(summary.to_string(index=False))
        typer.echo(f"Saved to: {out}")

    @app.command("sensitivity")
    def sensitivity_cmd(
        param_path: str = typer.Argument(..., help="Parameter, e.g. torque or pendulum.torque_Nm"),
        config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="Base config YAML"),
        values: str = typer.Option(..., "--values", help="Comma/space-separated values"),
        out: Path = typer.Option(..., "--out", "-o", help="Output directory"),
    ) -> None:
        """Run single-parameter sensitivity study."""
        from .sensitivity import run_sensitivity_study

        overrides = _load_overrides(config)
        try:
            summary = run_sensitivity_study(
                overrides,
                param_path=param_path,
                values=_parse_floats_option(values),
                out_dir=out,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        typer.echo(summary.to_string(index=False))
        typer.echo(f"Saved to: {out}")
