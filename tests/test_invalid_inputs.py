from __future__ import annotations

import math
import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from golf_swing_sim.core.engine import build_simulation_params, run_simulation, simulate
from golf_swing_sim.core.errors import GolfSimError, InvalidInput
from golf_swing_sim.core.integrator import ZeroCrossingIntegrator
from golf_swing_sim.core.trajectory import PendulumState, PhysicalParameters, Tolerances


@pytest.mark.parametrize(
    "horizon",
    [(1.0, 1.0), (1.0, 0.5), (0.0, math.inf), (0.0,)],
)
def test_bad_horizon(horizon) -> None:
    with pytest.raises(InvalidInput):
        simulate(PhysicalParameters(), PendulumState(), horizon, 0.1)


@pytest.mark.parametrize("step", [0.0, -0.1, math.nan])
def test_bad_step(step) -> None:
    with pytest.raises(InvalidInput):
        simulate(PhysicalParameters(), PendulumState(), (0.0, 1.0), step)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"length": 0.0},
        {"mass": -0.2},
        {"gravity": 0.0},
        {"length": math.nan},
        {"torque": math.inf},
    ],
)
def test_non_physical_parameters(kwargs) -> None:
    with pytest.raises(InvalidInput):
        PhysicalParameters(**kwargs)


def test_non_finite_state() -> None:
    with pytest.raises(InvalidInput):
        PendulumState(angle=math.nan)


def test_bad_tolerances() -> None:
    with pytest.raises(InvalidInput):
        Tolerances(rtol=0.0)
    with pytest.raises(InvalidInput):
        Tolerances(max_steps=0)


def test_unknown_solver_method() -> None:
    with pytest.raises(InvalidInput):
        ZeroCrossingIntegrator(lambda t, y: -y, method="Euler")
    with pytest.raises(InvalidInput, match="method"):
        run_simulation({"method": "Euler", "t_end": 0.1})


def test_string_scalars_are_coerced() -> None:
    params = build_simulation_params({"torque": "150", "rtol": "1e-6", "max_steps": "1000"})
    assert params.torque == 150.0
    assert params.rtol == 1e-6
    assert params.max_steps == 1000


def test_non_numeric_scalar_rejected() -> None:
    with pytest.raises(InvalidInput, match="torque"):
        build_simulation_params({"torque": "a lot"})
    with pytest.raises(InvalidInput):
        build_simulation_params({"mass": [0.2]})


def test_invalid_input_is_a_value_error() -> None:
    # Callers that only know ValueError still catch it
    with pytest.raises(ValueError):
        run_simulation({"dt": -1.0})
    with pytest.raises(GolfSimError):
        run_simulation({"length": 0.0})


def test_unknown_keys_are_ignored_with_warning(caplog) -> None:
    with caplog.at_level("WARNING", logger="golf_swing_sim.core.engine"):
        params = build_simulation_params({"torque": 10.0, "colour": "red", "case_name": "x"})
    assert params.torque == 10.0
    assert "colour" in caplog.text
    assert "case_name" not in caplog.text


def test_simulate_does_not_touch_input_state() -> None:
    state = PendulumState(angle=-1.0, angular_velocity=0.5)
    traj = simulate(PhysicalParameters(torque=1.0), state, (0.0, 0.1), 0.05)
    assert state.angle == -1.0 and state.angular_velocity == 0.5
    assert np.isclose(traj.angle[0], -1.0)
