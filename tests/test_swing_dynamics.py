"""
Tests for the forced pendulum integration and impact detection.

The torque-free swing from the horizontal has closed-form references:
the speed at the bottom follows from energy conservation,

    omega = sqrt(2 g / L),

and the time to reach it is a quarter of the large-amplitude period,
``K(1/2) * sqrt(L/g)``.
"""

import math
import sys
sys.path.insert(0, 'src')

import numpy as np
import pytest
from scipy.special import ellipk

from golf_swing_sim.core.engine import (
    derivatives,
    first_crossing_sample,
    impact_speed,
    run_simulation,
    run_swing,
    sample_times,
    simulate,
)
from golf_swing_sim.core.errors import NoEventDetected
from golf_swing_sim.core.trajectory import PendulumState, PhysicalParameters, Tolerances


G = 9.81


def _free_swing(t_end: float, dt: float = 0.01):
    return simulate(
        PhysicalParameters(length=1.0, mass=0.2, gravity=G, torque=0.0),
        PendulumState(angle=-math.pi / 2.0, angular_velocity=0.0),
        (0.0, t_end),
        dt,
    )


def test_derivatives_match_equation_of_motion():
    params = PhysicalParameters(length=2.0, mass=0.5, gravity=G, torque=3.0)
    dy = derivatives(0.0, np.array([0.3, -1.5]), params)
    assert dy[0] == pytest.approx(-1.5)
    assert dy[1] == pytest.approx(-(G / 2.0) * math.sin(0.3) + 3.0 / (0.5 * 4.0))
    assert params.torque_acceleration == pytest.approx(1.5)
    assert params.natural_frequency == pytest.approx(math.sqrt(G / 2.0))


def test_torque_free_swing_conserves_energy():
    traj = _free_swing(1.0)

    assert traj.has_event
    assert impact_speed(traj) == pytest.approx(math.sqrt(2.0 * G), rel=1e-6)
    assert traj.event_time == pytest.approx(ellipk(0.5) / math.sqrt(G), rel=1e-6)
    assert abs(traj.event_state.angle) < 1e-8

    e_num = traj.energies()["E_num"]
    mgl = 0.2 * G * 1.0
    assert np.max(np.abs(e_num)) < 1e-6 * mgl


@pytest.mark.parametrize(
    "length, theta0, gravity",
    [
        (0.7, -1.0, 9.81),
        (2.5, -2.5, 3.7),
        (1.3, 0.8, 9.81),
    ],
)
def test_torque_free_impact_speed_scales_with_length(length, theta0, gravity):
    traj = simulate(
        PhysicalParameters(length=length, mass=0.3, gravity=gravity, torque=0.0),
        PendulumState(angle=theta0),
        (0.0, 5.0),
        0.05,
    )
    expected = math.sqrt(2.0 * gravity * length * (1.0 - math.cos(theta0)))
    assert impact_speed(traj) == pytest.approx(expected, rel=1e-6)
    # Linear speed, not the angular rate
    assert abs(traj.event_state.angular_velocity) == pytest.approx(expected / length, rel=1e-6)


def test_forced_swing_energy_residual_small():
    traj = run_simulation({"t_end": 0.2, "dt": 0.01})
    energies = traj.energies()
    assert np.max(np.abs(energies["E_num"])) < 1e-6 * np.max(energies["E_kin"])


def test_collided_flag_is_sticky_and_first_crossing_only():
    # Free swing crosses zero at ~0.59 s, ~1.78 s and ~2.96 s
    traj = _free_swing(3.0, dt=0.05)
    flags = traj.collided.astype(int)

    assert np.all(np.diff(flags) >= 0)
    assert traj.event_time == pytest.approx(ellipk(0.5) / math.sqrt(G), rel=1e-6)

    idx = traj.first_collided_index()
    assert idx is not None
    assert traj.times[idx] >= traj.event_time
    assert traj.times[idx - 1] < traj.event_time
    assert traj.collided[-1]

    t_hit, state = first_crossing_sample(traj)
    assert t_hit == traj.times[idx]
    assert state.collided


def test_no_crossing_when_started_at_ball():
    traj = simulate(
        PhysicalParameters(torque=0.0),
        PendulumState(angle=0.0, angular_velocity=0.0),
        (0.0, 1.0),
        0.1,
    )
    assert not traj.has_event
    assert not traj.collided.any()
    assert np.allclose(traj.angle, 0.0)
    with pytest.raises(NoEventDetected):
        impact_speed(traj)
    with pytest.raises(NoEventDetected):
        first_crossing_sample(traj)


def test_no_crossing_within_short_horizon():
    # Quarter period for a 0.5 rad amplitude is ~0.51 s
    traj = simulate(
        PhysicalParameters(torque=0.0),
        PendulumState(angle=-0.5),
        (0.0, 0.3),
        0.05,
    )
    assert traj.event_time is None
    assert traj.event_state is None
    assert not traj.collided.any()
    assert np.all(traj.angle < 0.0)


def test_initially_collided_state_stays_collided():
    traj = simulate(
        PhysicalParameters(torque=200.0),
        PendulumState(angle=-math.pi / 2.0, collided=True),
        (0.0, 0.2),
        0.05,
    )
    assert traj.collided.all()


def test_forced_swing_end_to_end():
    result = run_swing({"t_end": 0.5, "dt": 0.01})

    # tau/(m L^2) = 1000 rad/s^2 from the horizontal
    omega = math.sqrt(1000.0 * math.pi + 2.0 * G)
    assert result.impact_time == pytest.approx(0.056, abs=1e-3)
    assert result.club_speed == pytest.approx(omega, rel=1e-6)

    u1 = result.club_speed
    assert result.collision.post_velocity1 == pytest.approx(u1 * 0.155 / 0.245, rel=1e-12)
    assert result.ball_speed == pytest.approx(u1 * 0.4 / 0.245, rel=1e-12)

    summary = result.summary()
    assert summary["method"] == "DOP853"
    assert summary["club_mass_kg"] == pytest.approx(0.2)
    assert summary["ball_mass_kg"] == pytest.approx(0.045)
    assert summary["n_steps"] > 0


def test_separate_club_mass_for_collision():
    result = run_swing({"t_end": 0.2, "club_mass": 0.3})
    assert result.collision.mass1 == pytest.approx(0.3)
    # Dynamics still use the pendulum mass
    assert result.club_speed == pytest.approx(math.sqrt(1000.0 * math.pi + 2.0 * G), rel=1e-6)


@pytest.mark.parametrize("method", ["RK45", "Radau", "LSODA"])
def test_other_solvers_agree(method):
    ref = run_swing({"t_end": 0.2})
    other = run_swing({"t_end": 0.2, "method": method})
    assert other.club_speed == pytest.approx(ref.club_speed, rel=1e-5)
    assert other.impact_time == pytest.approx(ref.impact_time, rel=1e-5)


def test_sample_grid():
    assert np.allclose(sample_times((0.0, 1.0), 0.1), np.linspace(0.0, 1.0, 11))
    assert sample_times((0.0, 0.3), 0.1)[-1] == 0.3
    assert np.allclose(sample_times((0.0, 0.25), 0.1), [0.0, 0.1, 0.2])
    assert np.allclose(sample_times((1.0, 1.5), 0.25), [1.0, 1.25, 1.5])


def test_horizon_not_on_grid_is_still_integrated():
    traj = simulate(
        PhysicalParameters(torque=200.0),
        PendulumState(),
        (0.0, 0.25),
        0.1,
        Tolerances(),
    )
    assert len(traj) == 3
    assert traj.times[-1] == pytest.approx(0.2)
    assert traj.has_event
    assert list(traj.collided) == [False, True, True]


def test_trajectory_is_read_only_and_iterable():
    traj = run_simulation({"t_end": 0.2, "dt": 0.05})

    with pytest.raises(ValueError):
        traj.angle[0] = 1.0
    with pytest.raises(ValueError):
        traj.collided[0] = True
    with pytest.raises(TypeError):
        traj.stats["method"] = "RK45"
    assert traj.stats["method"] == "DOP853"

    samples = list(traj)
    assert len(samples) == len(traj) == 5
    t0, s0 = samples[0]
    assert t0 == 0.0
    assert s0.angle == pytest.approx(-math.pi / 2.0)
    assert s0.angular_velocity == 0.0
    assert not s0.collided


def test_to_dataframe_columns_and_attrs():
    traj = run_simulation({"t_end": 0.2, "dt": 0.05})
    df = traj.to_dataframe()

    for col in (
        "Time_s",
        "Angle_rad",
        "AngularVelocity_rad_s",
        "Collided",
        "ClubHeadSpeed_m_s",
        "E_kin_J",
        "E_pot_J",
        "W_ext_J",
        "E_num_J",
    ):
        assert col in df.columns
    assert len(df) == 5
    assert df.attrs["method"] == "DOP853"
    assert df.attrs["event_time_s"] == pytest.approx(traj.event_time)
    assert df.attrs["torque_Nm"] == pytest.approx(200.0)
    assert np.allclose(df["ClubHeadSpeed_m_s"], np.abs(df["AngularVelocity_rad_s"]))


def test_reference_scenario_full_horizon():
    # L=1, m=0.2, g=9.81, tau=200, theta0=-pi/2, horizon (0, 10), dt=0.1, ball 0.045 kg
    result = run_swing({})
    traj = result.trajectory

    assert len(traj) == 101
    assert traj.times[-1] == 10.0
    assert list(traj.collided[:2]) == [False, True]
    assert traj.collided[1:].all()

    u1 = math.sqrt(1000.0 * math.pi + 2.0 * G)
    assert result.club_speed == pytest.approx(u1, rel=1e-6)
    assert result.collision.post_velocity1 == pytest.approx(u1 * 0.155 / 0.245, rel=1e-6)
    assert result.collision.post_velocity2 == pytest.approx(u1 * 0.4 / 0.245, rel=1e-6)
