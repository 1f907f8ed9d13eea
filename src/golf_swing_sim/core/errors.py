"""Error taxonomy for the golf swing simulator.

Every failure of the simulation or the collision solver is raised as a
subclass of :class:`GolfSimError` so callers can decide on their own retry
policy (e.g. tighten tolerances after a :class:`NumericalFailure`).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GolfSimError(Exception):
    """Base class for all simulator failures."""


class InvalidInput(GolfSimError, ValueError):
    """Non-physical parameters, masses, step sizes or horizons."""


class NoEventDetected(GolfSimError):
    """The pendulum never crossed the impact position within the horizon."""


class DegenerateSystem(GolfSimError, ArithmeticError):
    """The collision equations have no distinct non-trivial root."""


class NumericalFailure(GolfSimError, RuntimeError):
    """The ODE solver could not complete the horizon.

    Carries the state of the solver at the time of failure so that the
    caller can log or report it.
    """

    def __init__(
        self,
        message: str,
        *,
        t_last: Optional[float] = None,
        steps: int = 0,
        n_fev: int = 0,
        method: Optional[str] = None,
        solver_message: Optional[str] = None,
        state_snapshot: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.t_last = t_last
        self.steps = steps
        self.n_fev = n_fev
        self.method = method
        self.solver_message = solver_message
        self.state_snapshot = dict(state_snapshot or {})

    def to_diagnostics_dict(self) -> Dict[str, Any]:
        diag: Dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": str(self),
            "t_last": self.t_last,
            "steps": self.steps,
            "n_fev": self.n_fev,
            "method": self.method,
            "solver_message": self.solver_message,
        }
        diag.update(self.state_snapshot)
        return diag
