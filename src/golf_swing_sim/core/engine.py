"""Engine for the golf swing simulator.

The club is a point-mass pendulum driven by gravity and a constant torque:

    d(theta)/dt = omega
    d(omega)/dt = -(g/L) * sin(theta) + tau / (m * L^2)

The first time ``theta`` crosses zero the club meets the ball. The crossing
is located inside the integration step and recorded as a sticky
``collided`` flag; the club head speed at that instant feeds the elastic
collision solver.

Use from CLI, studies or tests as:

    from golf_swing_sim.core.engine import run_swing

    result = run_swing({"torque": 200.0})
    print(result.collision.post_velocity2)

or, for full control, call :func:`simulate` and
:func:`golf_swing_sim.core.collision.resolve_collision` directly.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .collision import CollisionResult, resolve_collision
from .errors import InvalidInput, NoEventDetected
from .integrator import SOLVER_METHODS, ZeroCrossingIntegrator
from .trajectory import PendulumState, PhysicalParameters, Tolerances, Trajectory

logger = logging.getLogger(__name__)


class SimulationConstants:
    """Numerical constants of the engine."""

    # Relative slack (in units of dt) when deciding whether t1 lies on the sample grid
    GRID_ALIGN_TOL = 1.0e-9

    # Reference ball mass [kg] (USGA maximum 45.93 g)
    BALL_MASS_KG = 0.045


# ====================================================================
# DYNAMICS
# ====================================================================

def derivatives(t: float, y: np.ndarray, params: PhysicalParameters) -> np.ndarray:
    """Right-hand side of the forced pendulum, state ``y = [theta, omega]``."""
    theta, omega = y[0], y[1]
    alpha = -(params.gravity / params.length) * math.sin(theta) + params.torque_acceleration
    return np.array([omega, alpha])


def sample_times(horizon: Tuple[float, float], step: float) -> np.ndarray:
    """Output grid ``t0 + k*step`` inside ``[t0, t1]``.

    ``t1`` is included when it lies on the grid (up to round-off).
    """
    t0, t1 = float(horizon[0]), float(horizon[1])
    n_int = int(math.floor((t1 - t0) / step + SimulationConstants.GRID_ALIGN_TOL))
    times = t0 + step * np.arange(n_int + 1, dtype=float)
    if abs(times[-1] - t1) <= SimulationConstants.GRID_ALIGN_TOL * step:
        times[-1] = t1
    return times[times <= t1]


def _validate_run(horizon: Tuple[float, float], step: float) -> None:
    try:
        t0, t1 = horizon
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"horizon must be a (t0, t1) pair, got {horizon!r}") from exc
    if not (math.isfinite(t0) and math.isfinite(t1)) or t1 <= t0:
        raise InvalidInput(f"horizon must satisfy t1 > t0, got ({t0!r}, {t1!r})")
    if not math.isfinite(step) or step <= 0.0:
        raise InvalidInput(f"step must be a finite value > 0, got {step!r}")


def simulate(
    params: PhysicalParameters,
    initial_state: PendulumState,
    horizon: Tuple[float, float],
    step: float,
    tolerances: Optional[Tolerances] = None,
) -> Trajectory:
    """Integrate the swing over ``horizon`` and sample every ``step`` seconds.

    Parameters
    ----------
    params : PhysicalParameters
        Club length, mass, gravity and driving torque.
    initial_state : PendulumState
        State at ``horizon[0]``. If it is already flagged as collided the
        flag stays set for the whole run.
    horizon : tuple of float
        ``(t0, t1)`` with ``t1 > t0``.
    step : float
        Output sample interval, > 0.
    tolerances : Tolerances, optional
        Solver method and error control; defaults to :class:`Tolerances()`.

    Returns
    -------
    Trajectory
        Samples with the sticky ``collided`` flag, plus the exact first
        crossing in ``event_time``/``event_state`` (``None`` if the club
        never reached the ball).

    Raises
    ------
    InvalidInput
        Malformed horizon or step.
    NumericalFailure
        The solver could not complete the horizon within its step budget.
    """
    _validate_run(horizon, step)
    tol = tolerances or Tolerances()
    t_eval = sample_times(horizon, step)

    integrator = ZeroCrossingIntegrator(
        lambda t, y: derivatives(t, y, params),
        method=tol.method,
        rtol=tol.rtol,
        atol=tol.atol,
        max_steps=tol.max_steps,
        event_index=0,
    )
    y0 = np.array([initial_state.angle, initial_state.angular_velocity], dtype=float)
    res = integrator.integrate(y0, (float(horizon[0]), float(horizon[1])), t_eval)

    if initial_state.collided:
        collided = np.ones(t_eval.shape[0], dtype=bool)
    elif res.event_time is not None:
        collided = res.t >= res.event_time
    else:
        collided = np.zeros(t_eval.shape[0], dtype=bool)

    event_state: Optional[PendulumState] = None
    if res.event_time is not None and res.event_y is not None:
        event_state = PendulumState(
            angle=float(res.event_y[0]),
            angular_velocity=float(res.event_y[1]),
            collided=True,
        )
        logger.info(
            "Impact at t=%.6f s, omega=%.6f rad/s (%d steps, %d rhs evaluations)",
            res.event_time,
            event_state.angular_velocity,
            res.stats["n_steps"],
            res.stats["n_fev"],
        )
    else:
        logger.info("No angle-zero crossing within t=[%g, %g] s", horizon[0], horizon[1])

    return Trajectory(
        times=res.t,
        angle=res.y[:, 0],
        angular_velocity=res.y[:, 1],
        collided=collided,
        params=params,
        event_time=res.event_time,
        event_state=event_state,
        stats=res.stats,
    )


def impact_speed(trajectory: Trajectory) -> float:
    """Club head linear speed ``|omega| * L`` at the first crossing [m/s].

    Raises
    ------
    NoEventDetected
        If the trajectory has no crossing.
    """
    if trajectory.event_state is None:
        raise NoEventDetected(
            "Club never reached the ball (no angle-zero crossing); "
            "extend the horizon or increase the torque."
        )
    return abs(trajectory.event_state.angular_velocity) * trajectory.params.length


def first_crossing_sample(trajectory: Trajectory) -> Tuple[float, PendulumState]:
    """First grid sample at which ``collided`` is set."""
    idx = trajectory.first_collided_index()
    if idx is None:
        raise NoEventDetected("No sample of the trajectory is flagged as collided.")
    return trajectory[idx]


# ====================================================================
# CONFIGURATION & HIGH-LEVEL ENTRY POINTS
# ====================================================================

@dataclass
class SimulationParams:
    """Flat container for one swing (pendulum, integration and ball)."""
    # Club (point mass at the head)
    length: float
    mass: float
    gravity: float
    torque: float

    # Initial state
    theta0: float
    omega0: float

    # Integration
    t_start: float
    t_end: float
    dt: float
    rtol: float
    atol: float
    method: str
    max_steps: int

    # Collision
    ball_mass: float
    club_mass: Optional[float] = None  # defaults to `mass`

    def physical_parameters(self) -> PhysicalParameters:
        return PhysicalParameters(
            length=self.length, mass=self.mass, gravity=self.gravity, torque=self.torque
        )

    def initial_state(self) -> PendulumState:
        return PendulumState(angle=self.theta0, angular_velocity=self.omega0)

    def tolerances(self) -> Tolerances:
        return Tolerances(
            rtol=self.rtol, atol=self.atol, method=self.method, max_steps=self.max_steps
        )

    @property
    def horizon(self) -> Tuple[float, float]:
        return (self.t_start, self.t_end)

    @property
    def effective_club_mass(self) -> float:
        return self.club_mass if self.club_mass is not None else self.mass


def get_default_simulation_params() -> dict:
    """
    Baseline swing: 1 m club with a 0.2 kg head released horizontally
    (theta0 = -pi/2) under a 200 N*m torque, sampled every 0.1 s for 10 s,
    striking a 45 g ball.

    Returned as a plain dict so it can be updated from YAML/JSON configs
    and then passed into SimulationParams(**params).
    """
    return {
        # Club
        "length": 1.0,       # [m]
        "mass": 0.2,         # [kg]
        "gravity": 9.81,     # [m/s^2]
        "torque": 200.0,     # [N*m]
        # Initial state
        "theta0": -math.pi / 2.0,  # [rad]
        "omega0": 0.0,             # [rad/s]
        # Integration
        "t_start": 0.0,      # [s]
        "t_end": 10.0,       # [s]
        "dt": 0.1,           # [s] output sample interval
        "rtol": 1.0e-8,
        "atol": 1.0e-10,
        "method": "DOP853",
        "max_steps": 200_000,
        # Ball
        "ball_mass": SimulationConstants.BALL_MASS_KG,  # [kg]
        "club_mass": None,
    }


def _coerce_scalar_types_for_simulation(base: dict) -> dict:
    """
    Normalize types coming from YAML/JSON before constructing SimulationParams.

    Float-like strings such as '1.0e-8' are accepted; anything else that is
    not a scalar fails loudly.
    """
    data: dict = dict(base)

    def _to_float(val, name: str):
        if val is None:
            return None
        if isinstance(val, bool):
            raise TypeError(f"Parameter '{name}' expects a float, got a bool ({val!r}).")
        if isinstance(val, (float, int)):
            return float(val)
        if isinstance(val, str):
            try:
                return float(val)
            except ValueError as exc:
                raise ValueError(
                    f"Parameter '{name}' expects a float-compatible value, "
                    f"got {val!r} (type {type(val).__name__})."
                ) from exc
        raise TypeError(
            f"Parameter '{name}' expects a scalar float, got {val!r} "
            f"(type {type(val).__name__})."
        )

    def _to_int(val, name: str):
        if val is None:
            return None
        if isinstance(val, (int, float)) and not isinstance(val, bool):
            return int(val)
        if isinstance(val, str):
            try:
                return int(float(val))
            except ValueError as exc:
                raise ValueError(
                    f"Parameter '{name}' expects an int-compatible value, "
                    f"got {val!r} (type {type(val).__name__})."
                ) from exc
        raise TypeError(
            f"Parameter '{name}' expects an int, got {val!r} "
            f"(type {type(val).__name__})."
        )

    scalar_float_keys = [
        "length",
        "mass",
        "gravity",
        "torque",
        "theta0",
        "omega0",
        "t_start",
        "t_end",
        "dt",
        "rtol",
        "atol",
        "ball_mass",
        "club_mass",
    ]
    for key in scalar_float_keys:
        if key in data and data[key] is not None:
            data[key] = _to_float(data[key], key)

    if data.get("max_steps") is not None:
        data["max_steps"] = _to_int(data["max_steps"], "max_steps")

    if data.get("method") is not None:
        method = str(data["method"])
        if method not in SOLVER_METHODS:
            raise ValueError(
                f"Parameter 'method' must be one of {sorted(SOLVER_METHODS)}, got {method!r}."
            )
        data["method"] = method

    return data


def build_simulation_params(params: SimulationParams | Dict[str, Any]) -> SimulationParams:
    if isinstance(params, SimulationParams):
        raw = {f.name: getattr(params, f.name) for f in fields(SimulationParams)}
    else:
        raw = get_default_simulation_params()
        raw.update(params or {})

    # Descriptive keys commonly present in YAML
    extra_ok = {"case_name", "notes", "description", "title", "tags"}
    allowed = {f.name for f in fields(SimulationParams)}
    unknown = sorted(set(raw.keys()) - allowed)
    unknown_nonmeta = [k for k in unknown if k not in extra_ok]
    if unknown_nonmeta:
        logger.warning(
            "Ignoring %d unknown SimulationParams key(s): %s",
            len(unknown_nonmeta),
            ", ".join(unknown_nonmeta),
        )
    if unknown:
        raw = {k: raw[k] for k in allowed if k in raw}

    try:
        coerced = _coerce_scalar_types_for_simulation(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(str(exc)) from exc
    return SimulationParams(**coerced)


def run_simulation(params: SimulationParams | Dict[str, Any]) -> Trajectory:
    """
    High-level convenience wrapper around :func:`simulate`.

    A dict may contain only overrides; missing fields are filled from
    get_default_simulation_params() and types are normalised.
    """
    sim_params = build_simulation_params(params)
    return simulate(
        sim_params.physical_parameters(),
        sim_params.initial_state(),
        sim_params.horizon,
        sim_params.dt,
        sim_params.tolerances(),
    )


@dataclass(frozen=True)
class SwingResult:
    """Simulation, extracted club speed and collision outcome of one swing."""

    trajectory: Trajectory
    impact_time: float
    club_speed: float
    collision: CollisionResult

    @property
    def ball_speed(self) -> float:
        return self.collision.post_velocity2

    def summary(self) -> Dict[str, Any]:
        stats = self.trajectory.stats
        return {
            "impact_time_s": self.impact_time,
            "club_speed_m_s": self.club_speed,
            "club_speed_after_m_s": self.collision.post_velocity1,
            "ball_speed_m_s": self.collision.post_velocity2,
            "smash_factor": self.collision.smash_factor,
            "club_mass_kg": self.collision.mass1,
            "ball_mass_kg": self.collision.mass2,
            "n_steps": stats.get("n_steps"),
            "n_fev": stats.get("n_fev"),
            "method": stats.get("method"),
            "rtol": stats.get("rtol"),
        }


def swing_from_trajectory(trajectory: Trajectory, club_mass: float, ball_mass: float) -> SwingResult:
    """Resolve the club/ball collision at the first crossing of ``trajectory``."""
    club_speed = impact_speed(trajectory)
    collision = resolve_collision(club_mass, ball_mass, club_speed)
    return SwingResult(
        trajectory=trajectory,
        impact_time=float(trajectory.event_time),
        club_speed=club_speed,
        collision=collision,
    )


def run_swing(params: SimulationParams | Dict[str, Any]) -> SwingResult:
    """Simulate the swing and resolve the club/ball collision at first contact.

    Raises
    ------
    NoEventDetected
        If the club never reaches the ball within the horizon.
    """
    sim_params = build_simulation_params(params)
    trajectory = run_simulation(sim_params)
    return swing_from_trajectory(trajectory, sim_params.effective_club_mass, sim_params.ball_mass)
