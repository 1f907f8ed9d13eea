"""Swing dynamics, impact detection and club/ball collision."""

from .collision import CollisionResult, resolve_collision
from .engine import (
    SwingResult,
    impact_speed,
    run_simulation,
    run_swing,
    simulate,
    swing_from_trajectory,
)
from .errors import (
    DegenerateSystem,
    GolfSimError,
    InvalidInput,
    NoEventDetected,
    NumericalFailure,
)
from .trajectory import PendulumState, PhysicalParameters, Tolerances, Trajectory

__all__ = [
    "CollisionResult",
    "DegenerateSystem",
    "GolfSimError",
    "InvalidInput",
    "NoEventDetected",
    "NumericalFailure",
    "PendulumState",
    "PhysicalParameters",
    "SwingResult",
    "Tolerances",
    "Trajectory",
    "impact_speed",
    "resolve_collision",
    "run_simulation",
    "run_swing",
    "simulate",
    "swing_from_trajectory",
]
