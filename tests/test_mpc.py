import unittest
from unittest.mock import patch

import numpy as np

from config import MPCConfig, VehicleConfig
from controllers import TrajectoryMPC, WarmStart
from models import ReferenceCurve, SolverError


class TrajectoryMPCTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # Building the NLP is the slow part; share one optimizer
        cls.vehicle = VehicleConfig()
        # Generous cap so solution-quality checks do not depend on machine speed
        cls.config = MPCConfig(max_wall_time=1.0)
        cls.mpc = TrajectoryMPC(cls.vehicle, cls.config)
        cls.straight = ReferenceCurve(coeffs=np.zeros(4))

    def test_straight_on_track_drives_straight_and_accelerates(self):
        state = np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0])
        solution = self.mpc.solve(state, self.straight)

        delta, a = solution.first_control
        self.assertLess(abs(delta), 1e-4)
        self.assertGreaterEqual(a, 0.0)

        # Speed rises toward the reference without overshooting it
        v = solution.states[:, 3]
        self.assertTrue(np.all(np.diff(v) >= -1e-6))
        self.assertTrue(np.all(v <= self.config.ref_v + 1e-6))
        np.testing.assert_allclose(solution.states[:, 4], 0.0, atol=1e-5)
        np.testing.assert_allclose(solution.states[:, 5], 0.0, atol=1e-5)

    def test_initial_state_is_pinned(self):
        curve = ReferenceCurve(coeffs=np.array([1.5, 0.2, -0.01, 0.0005]))
        state = np.array([0.0, 0.0, 0.0, 15.0, curve.cte, curve.epsi])
        solution = self.mpc.solve(state, curve)

        np.testing.assert_allclose(solution.states[0], state, atol=1e-6)

    def test_dynamics_hold_along_solution(self):
        curve = ReferenceCurve(coeffs=np.array([-0.8, 0.05, 0.004, 0.0]))
        state = np.array([0.0, 0.0, 0.0, 12.0, curve.cte, curve.epsi])
        solution = self.mpc.solve(state, curve)

        model = self.mpc.model
        for k in range(self.config.horizon_steps - 1):
            expected = model.error_step(solution.states[k], solution.controls[k], curve,
                                        curve.desired_heading, self.config.dt)
            np.testing.assert_allclose(solution.states[k + 1], expected, atol=1e-4)

    def test_bounds_enforced_under_large_error(self):
        curve = ReferenceCurve(coeffs=np.array([-15.0, 0.0, 0.0, 0.0]))
        state = np.array([0.0, 0.0, 0.0, 30.0, curve.cte, curve.epsi])
        solution = self.mpc.solve(state, curve)

        steering_max = self.vehicle.steering_max
        self.assertTrue(np.all(np.abs(solution.controls[:, 0]) <= steering_max))
        self.assertTrue(np.all(np.abs(solution.controls[:, 1]) <= 1.0))
        # Path far to the right: steer right (positive delta)
        self.assertGreater(solution.first_control[0], 0.0)

        # The optimizer's own iterate, before the output clip, must respect the box
        raw = np.asarray(self.mpc.opti.debug.value(self.mpc.vars['U']))
        self.assertTrue(np.all(np.abs(raw[0, :]) <= steering_max + 1e-6))
        self.assertTrue(np.all(np.abs(raw[1, :]) <= 1.0 + 1e-6))
        self.assertGreater(np.max(raw[0, :]), 0.9 * steering_max)

        # Predicted states follow the saturated actuation
        model = self.mpc.model
        for k in range(self.config.horizon_steps - 1):
            expected = model.error_step(solution.states[k], solution.controls[k], curve,
                                        curve.desired_heading, self.config.dt)
            np.testing.assert_allclose(solution.states[k + 1], expected, atol=1e-4)

    def test_path_to_the_left_steers_left(self):
        curve = ReferenceCurve(coeffs=np.array([2.0, 0.0, 0.0, 0.0]))
        state = np.array([0.0, 0.0, 0.0, 15.0, curve.cte, curve.epsi])
        delta, _ = self.mpc.solve(state, curve).first_control
        self.assertLess(delta, 0.0)

    def test_output_shapes(self):
        state = np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0])
        solution = self.mpc.solve(state, self.straight)
        N = self.config.horizon_steps

        self.assertEqual(solution.states.shape, (N, 6))
        self.assertEqual(solution.controls.shape, (N - 1, 2))
        self.assertEqual(len(solution.predicted_x), N - 1)
        self.assertEqual(len(solution.predicted_y), N - 1)

    def test_shifted_warm_start_repeats_last_control(self):
        state = np.array([0.0, 0.0, 0.0, 10.0, 0.5, 0.0])
        solution = self.mpc.solve(state, ReferenceCurve(coeffs=np.array([0.5, 0.0, 0.0, 0.0])))
        warm = solution.shifted()

        np.testing.assert_array_equal(warm.controls[:-1], solution.controls[1:])
        np.testing.assert_array_equal(warm.controls[-1], solution.controls[-1])

    def test_warm_start_reaches_same_optimum(self):
        curve = ReferenceCurve(coeffs=np.array([0.7, -0.05, 0.002, 0.0]))
        state = np.array([0.0, 0.0, 0.0, 14.0, curve.cte, curve.epsi])

        cold = self.mpc.solve(state, curve)
        warm = self.mpc.solve(state, curve, warm_start=WarmStart(controls=cold.controls))

        np.testing.assert_allclose(warm.controls, cold.controls, atol=1e-3)

    def test_mismatched_warm_start_is_ignored(self):
        state = np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0])
        bad = WarmStart(controls=np.ones((3, 2)))
        solution = self.mpc.solve(state, self.straight, warm_start=bad)
        self.assertLess(abs(solution.first_control[0]), 1e-4)

    def test_wrong_degree_rejected(self):
        with self.assertRaises(ValueError):
            self.mpc.solve(np.zeros(6), ReferenceCurve(coeffs=np.zeros(3)))

    def test_wrong_state_size_is_fatal_with_assertions(self):
        with self.assertRaises(AssertionError):
            self.mpc.solve(np.zeros(4), self.straight)


class TrajectoryMPCFailureTests(unittest.TestCase):
    def test_iteration_cap_raises_solver_error(self):
        mpc = TrajectoryMPC(VehicleConfig(), MPCConfig(max_iter=1))
        curve = ReferenceCurve(coeffs=np.array([3.0, 0.3, 0.01, 0.0]))
        state = np.array([0.0, 0.0, 0.0, 20.0, curve.cte, curve.epsi])

        with self.assertRaises(SolverError) as ctx:
            mpc.solve(state, curve)

        self.assertIsNotNone(ctx.exception.status)
        self.assertEqual(mpc.get_statistics()['fail_count'], 1)

    def test_wall_clock_cap_defaults_to_one_step(self):
        config = MPCConfig()
        mpc = TrajectoryMPC(VehicleConfig(), config)
        self.assertEqual(config.solve_time_limit, config.dt)
        self.assertEqual(mpc.solver_options['ipopt.max_wall_time'], config.dt)
        self.assertNotIn('ipopt.max_cpu_time', mpc.solver_options)

        relaxed = MPCConfig(max_wall_time=0.02)
        self.assertEqual(relaxed.solve_time_limit, 0.02)
        with self.assertRaises(ValueError):
            MPCConfig(max_wall_time=0.0)

    def test_wall_clock_overrun_raises_solver_error(self):
        mpc = TrajectoryMPC(VehicleConfig(), MPCConfig(max_wall_time=1e-9))
        curve = ReferenceCurve(coeffs=np.array([3.0, 0.3, 0.01, 0.0]))
        state = np.array([0.0, 0.0, 0.0, 20.0, curve.cte, curve.epsi])

        with self.assertRaises(SolverError):
            mpc.solve(state, curve)
        self.assertEqual(mpc.get_statistics()['fail_count'], 1)

    def test_solver_exception_is_wrapped(self):
        mpc = TrajectoryMPC()
        with patch('casadi.Opti.solve', side_effect=RuntimeError('Infeasible_Problem_Detected')):
            with self.assertRaises(SolverError):
                mpc.solve(np.array([0.0, 0.0, 0.0, 10.0, 0.0, 0.0]),
                          ReferenceCurve(coeffs=np.zeros(4)))

        stats = mpc.get_statistics()
        self.assertEqual(stats['solve_count'], 0)
        self.assertEqual(stats['success_rate'], 0.0)


if __name__ == "__main__":
    unittest.main()
