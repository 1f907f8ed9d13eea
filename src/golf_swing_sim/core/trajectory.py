"""State containers for the swinging club.

The club is modelled as a point mass at the end of a massless rod of length
``L``. The angle is measured from the vertical (pointing down), so the ball
sits at ``angle == 0`` and the default backswing starts at ``-pi/2``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import InvalidInput


@dataclass(frozen=True)
class PendulumState:
    """Single snapshot of the club state."""

    angle: float = -math.pi / 2.0  # [rad]
    angular_velocity: float = 0.0  # [rad/s]
    collided: bool = False

    def __post_init__(self) -> None:
        if not (math.isfinite(self.angle) and math.isfinite(self.angular_velocity)):
            raise InvalidInput(
                f"Pendulum state must be finite, got angle={self.angle!r}, "
                f"angular_velocity={self.angular_velocity!r}"
            )


@dataclass(frozen=True)
class PhysicalParameters:
    """Constant physical parameters of one simulation run."""

    length: float = 1.0    # [m]
    mass: float = 0.2      # [kg]
    gravity: float = 9.81  # [m/s^2]
    torque: float = 0.0    # [N*m]

    def __post_init__(self) -> None:
        for name in ("length", "mass", "gravity"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0.0:
                raise InvalidInput(f"{name} must be a finite value > 0, got {value!r}")
        if not math.isfinite(self.torque):
            raise InvalidInput(f"torque must be finite, got {self.torque!r}")

    @property
    def torque_acceleration(self) -> float:
        """Angular acceleration from the driving torque, tau / (m L^2)."""
        return self.torque / (self.mass * self.length**2)

    @property
    def natural_frequency(self) -> float:
        """Small-angle natural frequency sqrt(g / L) [rad/s]."""
        return math.sqrt(self.gravity / self.length)


@dataclass(frozen=True)
class Tolerances:
    """Error control settings forwarded to the ODE solver."""

    rtol: float = 1.0e-8
    atol: float = 1.0e-10
    method: str = "DOP853"
    max_steps: int = 200_000

    def __post_init__(self) -> None:
        if not (self.rtol > 0.0 and self.atol > 0.0):
            raise InvalidInput(f"rtol and atol must be > 0, got rtol={self.rtol}, atol={self.atol}")
        if self.max_steps <= 0:
            raise InvalidInput(f"max_steps must be > 0, got {self.max_steps}")


def _readonly(values: Any, dtype: Any) -> np.ndarray:
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Trajectory:
    """Time-sampled result of one simulation run.

    The sample arrays and ``stats`` are read-only. ``event_time``/``event_state`` hold the
    precisely located first angle-zero crossing, or ``None`` if the club
    never reached the ball.
    """

    times: np.ndarray
    angle: np.ndarray
    angular_velocity: np.ndarray
    collided: np.ndarray
    params: PhysicalParameters
    event_time: Optional[float] = None
    event_state: Optional[PendulumState] = None
    stats: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "times", _readonly(self.times, float))
        object.__setattr__(self, "angle", _readonly(self.angle, float))
        object.__setattr__(self, "angular_velocity", _readonly(self.angular_velocity, float))
        object.__setattr__(self, "collided", _readonly(self.collided, bool))
        object.__setattr__(self, "stats", MappingProxyType(dict(self.stats)))

        n = self.times.shape[0]
        if not (self.angle.shape[0] == self.angular_velocity.shape[0] == self.collided.shape[0] == n):
            raise ValueError("Trajectory sample arrays must all have the same length")
        if n > 1 and np.any(np.diff(self.times) <= 0.0):
            raise ValueError("Trajectory times must be strictly increasing")
        if n > 1 and np.any(np.diff(self.collided.astype(np.int8)) < 0):
            raise ValueError("collided flag must never reset once set")

    def __len__(self) -> int:
        return int(self.times.shape[0])

    def __getitem__(self, idx: int) -> Tuple[float, PendulumState]:
        return (
            float(self.times[idx]),
            PendulumState(
                angle=float(self.angle[idx]),
                angular_velocity=float(self.angular_velocity[idx]),
                collided=bool(self.collided[idx]),
            ),
        )

    def __iter__(self) -> Iterator[Tuple[float, PendulumState]]:
        for idx in range(len(self)):
            yield self[idx]

    @property
    def has_event(self) -> bool:
        return self.event_time is not None

    @property
    def club_head_speed(self) -> np.ndarray:
        """Linear speed of the club head |omega| * L for every sample [m/s]."""
        return np.abs(self.angular_velocity) * self.params.length

    def energies(self) -> Dict[str, np.ndarray]:
        """Energy bookkeeping per sample.

            E_num = (E_kin + E_pot) - W_ext - E0

        with the pivot as potential reference and ``W_ext`` the work of the
        constant torque since the first sample. ``E_num`` is the numerical
        residual and stays at solver-tolerance level.
        """
        p = self.params
        inertia = p.mass * p.length**2
        e_kin = 0.5 * inertia * self.angular_velocity**2
        e_pot = -p.mass * p.gravity * p.length * np.cos(self.angle)
        e_mech = e_kin + e_pot
        if len(self) == 0:
            w_ext = np.zeros(0)
            e0 = 0.0
        else:
            w_ext = p.torque * (self.angle - self.angle[0])
            e0 = float(e_mech[0])
        e_num = e_mech - w_ext - e0
        return {
            "E_kin": e_kin,
            "E_pot": e_pot,
            "E_mech": e_mech,
            "W_ext": w_ext,
            "E_num": e_num,
        }

    def first_collided_index(self) -> Optional[int]:
        hits = np.flatnonzero(self.collided)
        if hits.size == 0:
            return None
        return int(hits[0])

    def to_dataframe(self) -> pd.DataFrame:
        """Tabular view of the samples, solver statistics in ``df.attrs``."""
        energies = self.energies()
        df = pd.DataFrame(
            {
                "Time_s": self.times,
                "Angle_rad": self.angle,
                "AngularVelocity_rad_s": self.angular_velocity,
                "Collided": self.collided,
                "ClubHeadSpeed_m_s": self.club_head_speed,
                "E_kin_J": energies["E_kin"],
                "E_pot_J": energies["E_pot"],
                "W_ext_J": energies["W_ext"],
                "E_num_J": energies["E_num"],
            }
        )
        df.attrs.update(self.stats)
        df.attrs["length_m"] = self.params.length
        df.attrs["mass_kg"] = self.params.mass
        df.attrs["gravity_m_s2"] = self.params.gravity
        df.attrs["torque_Nm"] = self.params.torque
        df.attrs["event_time_s"] = self.event_time
        return df
