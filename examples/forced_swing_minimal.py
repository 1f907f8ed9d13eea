from pathlib import Path

from golf_swing_sim.config import config_to_params, load_simulation_config
from golf_swing_sim.core.engine import run_swing


def main():
    project_root = Path(__file__).resolve().parents[1]
    cfg_path = project_root / "configs" / "forced_swing.yml"

    params = config_to_params(load_simulation_config(cfg_path))
    result = run_swing(params)

    print(f"Impact at t = {result.impact_time:.6f} s")
    print(f"Club head speed: {result.club_speed:.3f} m/s")
    print(f"Ball speed:      {result.ball_speed:.3f} m/s")
    print(f"Smash factor:    {result.collision.smash_factor:.4f}")

    df = result.trajectory.to_dataframe()
    E_ref = float(df["E_kin_J"].abs().max())
    rel_err = df["E_num_J"].abs().max() / (E_ref + 1e-16)
    print(f"Max relative energy error: {rel_err:.3e}")


if __name__ == "__main__":
    main()
