import unittest

import numpy as np

from config import VehicleConfig
from models import KinematicBicycleModel, ReferenceCurve


class LatencyCompensationTests(unittest.TestCase):
    def setUp(self):
        self.model = KinematicBicycleModel(VehicleConfig())

    def test_heading_and_speed_follow_one_forward_step(self):
        pose = np.array([3.0, -2.0, 0.4, 20.0])
        control = np.array([0.1, 0.3])
        latency = 0.1

        x, y, psi, v = self.model.compensate_latency(pose, control, latency)

        self.assertAlmostEqual(psi - 0.4, -20.0 / 2.67 * 0.1 * latency, places=12)
        self.assertAlmostEqual(v - 20.0, 0.3 * latency, places=12)
        self.assertAlmostEqual(x, 3.0 + 20.0 * np.cos(0.4) * latency, places=12)
        self.assertAlmostEqual(y, -2.0 + 20.0 * np.sin(0.4) * latency, places=12)

    def test_zero_latency_is_identity(self):
        pose = np.array([1.0, 2.0, 0.3, 12.0])
        np.testing.assert_array_equal(
            self.model.compensate_latency(pose, np.array([0.2, 1.0]), 0.0), pose
        )

    def test_positive_steering_turns_right(self):
        _, _, psi, _ = self.model.pose_step(np.array([0.0, 0.0, 0.0, 10.0]), np.array([0.1, 0.0]), 0.1)
        self.assertLess(psi, 0.0)

    def test_continuous_dynamics_match_discrete_step_for_small_dt(self):
        dynamics = self.model.create_time_domain_dynamics()
        pose = np.array([0.0, 0.0, 0.2, 15.0])
        control = np.array([-0.05, 0.5])
        dt = 1e-4

        euler = pose + dt * dynamics(pose, control).full().flatten()
        np.testing.assert_allclose(euler, self.model.pose_step(pose, control, dt), atol=1e-12)

    def test_error_step_on_zero_reference(self):
        curve = ReferenceCurve(coeffs=np.zeros(4))
        state = [0.0, 0.0, 0.0, 10.0, 0.0, 0.0]
        nxt = self.model.error_step(state, [0.0, 1.0], curve, curve.desired_heading, 0.05)
        np.testing.assert_allclose(nxt, [0.5, 0.0, 0.0, 10.05, 0.0, 0.0], atol=1e-12)


if __name__ == "__main__":
    unittest.main()
