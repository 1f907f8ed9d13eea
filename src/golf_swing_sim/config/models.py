from __future__ import annotations

import math
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

SolverMethod = Literal["RK23", "RK45", "DOP853", "Radau", "BDF", "LSODA"]


class ConfigBase(BaseModel):
    model_config = {"extra": "forbid"}


def _positive(name: str, value: Optional[float]) -> Optional[float]:
    if value is not None and (not math.isfinite(value) or value <= 0.0):
        raise ValueError(f"{name} must be > 0")
    return value


class PendulumSpec(ConfigBase):
    length_m: Optional[float] = None
    mass_kg: Optional[float] = None
    gravity_m_s2: Optional[float] = None
    torque_Nm: Optional[float] = None

    @field_validator("length_m", "mass_kg", "gravity_m_s2")
    @classmethod
    def _strictly_positive(cls, value: Optional[float], info) -> Optional[float]:
        return _positive(info.field_name, value)

    @field_validator("torque_Nm")
    @classmethod
    def _torque_finite(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not math.isfinite(value):
            raise ValueError("torque_Nm must be finite")
        return value


class InitialStateSpec(ConfigBase):
    angle_rad: Optional[float] = None
    angular_velocity_rad_s: Optional[float] = None


class IntegrationSpec(ConfigBase):
    t_start_s: Optional[float] = None
    t_end_s: Optional[float] = None
    dt_s: Optional[float] = None
    rtol: Optional[float] = None
    atol: Optional[float] = None
    method: Optional[SolverMethod] = None
    max_steps: Optional[int] = None

    @field_validator("dt_s", "rtol", "atol")
    @classmethod
    def _strictly_positive(cls, value: Optional[float], info) -> Optional[float]:
        return _positive(info.field_name, value)

    @field_validator("max_steps")
    @classmethod
    def _steps_positive(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("max_steps must be > 0")
        return value

    @model_validator(mode="after")
    def _horizon_ordered(self) -> "IntegrationSpec":
        t0 = self.t_start_s if self.t_start_s is not None else 0.0
        if self.t_end_s is not None and self.t_end_s <= t0:
            raise ValueError("t_end_s must be greater than t_start_s")
        return self


class BallSpec(ConfigBase):
    mass_kg: Optional[float] = None

    @field_validator("mass_kg")
    @classmethod
    def _mass_positive(cls, value: Optional[float]) -> Optional[float]:
        return _positive("mass_kg", value)


class SimulationConfig(ConfigBase):
    case_name: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    pendulum: PendulumSpec = Field(default_factory=PendulumSpec)
    initial_state: InitialStateSpec = Field(default_factory=InitialStateSpec)
    integration: IntegrationSpec = Field(default_factory=IntegrationSpec)
    ball: BallSpec = Field(default_factory=BallSpec)


def format_validation_error(exc: ValidationError, *, filename: str) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", []))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}")
    details = "; ".join(parts) if parts else str(exc)
    return f"{filename}: invalid configuration: {details}"
