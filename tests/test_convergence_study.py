import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

import pandas as pd

from golf_swing_sim.studies.convergence import run_convergence_study


class FakeSwing:
    def __init__(self, rtol):
        # Looser tolerance -> slightly different club speed
        self.club_speed = 56.0 * (1.0 + rtol)

    def summary(self):
        return {
            "impact_time_s": 0.056,
            "club_speed_m_s": self.club_speed,
            "club_speed_after_m_s": self.club_speed * 0.155 / 0.245,
            "ball_speed_m_s": self.club_speed * 0.4 / 0.245,
            "smash_factor": 0.4 / 0.245,
            "n_steps": 10,
            "n_fev": 120,
        }


def fake_swing(cfg):
    return FakeSwing(float(cfg["rtol"]))


class TestConvergenceStudy(unittest.TestCase):
    def test_convergence_summary(self):
        summary = run_convergence_study(
            {"t_end": 0.2}, [1e-8, 1e-4, 1e-6], simulate_func=fake_swing
        )
        self.assertEqual(len(summary), 3)
        # Sorted loosest tolerance first
        self.assertEqual(list(summary["rtol"]), [1e-4, 1e-6, 1e-8])
        self.assertAlmostEqual(float(summary.loc[0, "atol"]), 1e-6)
        self.assertTrue(pd.isna(summary.loc[0, "relative_change_club_speed_pct"]))
        self.assertAlmostEqual(
            float(summary.loc[1, "relative_change_club_speed_pct"]),
            100.0 * (1e-4 - 1e-6) / (1.0 + 1e-4),
        )
        self.assertTrue(summary["error_type"].isna().all())

    def test_real_swing_converges(self):
        with TemporaryDirectory() as tmp:
            out = Path(tmp) / "conv"
            summary = run_convergence_study(
                {"t_end": 0.2, "dt": 0.05}, [1e-6, 1e-9], out_dir=out
            )
            self.assertLess(float(summary.loc[1, "relative_change_club_speed_pct"]), 1e-3)
            self.assertTrue((out / "convergence_summary.csv").is_file())
            self.assertTrue((out / "config_overrides.yml").is_file())
            meta = json.loads((out / "run_metadata.json").read_text(encoding="utf-8"))
            self.assertEqual(meta["study_type"], "convergence")
            self.assertEqual(meta["rtol_values"], [1e-6, 1e-9])
            self.assertIn("git_hash", meta)

if __name__ == "__main__":
    unittest.main()
