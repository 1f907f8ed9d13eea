# src/golf_swing_sim/cli.py

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .config import ConfigError, config_to_params, load_simulation_config
from .core.collision import resolve_collision
from .core.engine import build_simulation_params, run_simulation, swing_from_trajectory
from .core.errors import GolfSimError, NoEventDetected

app = typer.Typer(
    add_completion=False,
    help=(
        "Golf swing impact simulator CLI\n\n"
        "Integrates a torque-driven point-mass pendulum (the club), locates\n"
        "the instant it reaches the ball and resolves the elastic club/ball\n"
        "collision. Use 'run' for a swing or 'collide' for the collision only."
    ),
)

# Studies commands (convergence / sensitivity)
from .studies.cli import register_study_commands  # noqa: E402
register_study_commands(app)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _ensure_output_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _setup_logger(output_dir: Path, log_stem: str) -> logging.Logger:
    """
    Set up a per-run logger writing to <output_dir>/<log_stem>.log.

    Engine messages (golf_swing_sim.core.*) go to the same file.
    """
    _ensure_output_dir(output_dir)
    logger = logging.getLogger(f"golf_swing_sim.cli.{log_stem}")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    log_file = output_dir / f"{log_stem}.log"
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    core_logger = logging.getLogger("golf_swing_sim.core")
    core_logger.setLevel(logging.INFO)
    core_logger.handlers.clear()
    core_logger.addHandler(handler)

    return logger


def _close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logging.getLogger("golf_swing_sim.core").handlers.clear()


def _print_and_log(logger: logging.Logger, msg: str) -> None:
    typer.echo(msg)
    logger.info(msg)


def _load_params(config: Optional[Path]) -> Dict[str, Any]:
    """Load a YAML/JSON config into flat engine overrides."""
    if config is None:
        return {}
    try:
        return config_to_params(load_simulation_config(config))
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

@app.command()
def run(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        readable=True,
        help="YAML/JSON configuration file (pendulum, initial_state, integration, ball).",
    ),
    output_dir: Path = typer.Option(
        Path("results"), "--out", "-o", help="Directory for the trajectory CSV and run log."
    ),
    torque: Optional[float] = typer.Option(None, "--torque", help="Override driving torque [N*m]."),
    ball_mass: Optional[float] = typer.Option(None, "--ball-mass", help="Override ball mass [kg]."),
    t_end: Optional[float] = typer.Option(None, "--t-end", help="Override end of the horizon [s]."),
    write_csv: bool = typer.Option(True, "--csv/--no-csv", help="Write the sampled trajectory as CSV."),
) -> None:
    """Simulate one swing and resolve the club/ball impact."""
    overrides = _load_params(config)
    if torque is not None:
        overrides["torque"] = torque
    if ball_mass is not None:
        overrides["ball_mass"] = ball_mass
    if t_end is not None:
        overrides["t_end"] = t_end

    case_name = str(overrides.get("case_name") or (config.stem if config else "swing"))
    logger = _setup_logger(output_dir, case_name)
    try:
        try:
            sim_params = build_simulation_params(overrides)
        except GolfSimError as exc:
            raise typer.BadParameter(str(exc)) from exc
        logger.info("Parameters: %s", sim_params)

        t0 = time.perf_counter()
        try:
            trajectory = run_simulation(sim_params)
        except GolfSimError as exc:
            logger.error("Simulation failed: %s", exc)
            typer.echo(f"Simulation failed ({type(exc).__name__}): {exc}", err=True)
            raise typer.Exit(code=1)
        wall = time.perf_counter() - t0

        if write_csv:
            csv_path = output_dir / f"{case_name}_trajectory.csv"
            trajectory.to_dataframe().to_csv(csv_path, index=False)
            _print_and_log(logger, f"Trajectory written to {csv_path}")

        try:
            result = swing_from_trajectory(
                trajectory, sim_params.effective_club_mass, sim_params.ball_mass
            )
        except NoEventDetected as exc:
            logger.error("%s", exc)
            typer.echo(f"No impact: {exc}", err=True)
            raise typer.Exit(code=1)
        except GolfSimError as exc:
            logger.error("Collision failed: %s", exc)
            typer.echo(f"Collision failed ({type(exc).__name__}): {exc}", err=True)
            raise typer.Exit(code=1)

        summary = result.summary()
        typer.echo("")
        _print_and_log(logger, f"  Impact time           : {summary['impact_time_s']:.6f} s")
        _print_and_log(logger, f"  Club head speed       : {summary['club_speed_m_s']:.4f} m/s")
        _print_and_log(logger, f"  Club speed after      : {summary['club_speed_after_m_s']:.4f} m/s")
        _print_and_log(logger, f"  Ball speed            : {summary['ball_speed_m_s']:.4f} m/s")
        _print_and_log(logger, f"  Smash factor          : {summary['smash_factor']:.4f}")
        _print_and_log(
            logger,
            f"  Solver                : {summary['method']}, rtol={summary['rtol']:g}, "
            f"{summary['n_steps']} steps, {summary['n_fev']} rhs evaluations, {wall:.3f} s",
        )
    finally:
        _close_logger(logger)


@app.command()
def collide(
    m1: float = typer.Option(..., "--m1", help="Club head mass [kg]."),
    m2: float = typer.Option(..., "--m2", help="Ball mass [kg]."),
    u1: float = typer.Option(..., "--u1", help="Club head velocity before impact [m/s]."),
) -> None:
    """Resolve a 1-D elastic collision with the ball at rest."""
    try:
        res = resolve_collision(m1, m2, u1)
    except GolfSimError as exc:
        typer.echo(f"Collision failed ({type(exc).__name__}): {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"v1 = {res.post_velocity1:.6f} m/s")
    typer.echo(f"v2 = {res.post_velocity2:.6f} m/s")
    typer.echo(f"smash factor = {res.smash_factor:.6f}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
