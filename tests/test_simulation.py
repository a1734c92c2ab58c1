import os
import tempfile
import unittest

import numpy as np

from config import ControllerConfig, MPCConfig, VehicleConfig
from controllers import PathTrackingController
from models import KinematicBicycleModel, TrackModel
from simulation import LapSimulator, compare_latencies


class TrackModelTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.track = TrackModel.oval(straight=120.0, radius=40.0, ds=5.0)

    def test_oval_length(self):
        expected = 2 * 120.0 + 2 * np.pi * 40.0
        self.assertAlmostEqual(self.track.total_length, expected, delta=0.05 * expected)

    def test_waypoints_uniformly_spaced(self):
        td = self.track.track_data
        spacing = np.hypot(np.diff(td.x), np.diff(td.y))
        np.testing.assert_allclose(spacing, td.ds, rtol=0.05)

    def test_waypoints_ahead(self):
        td = self.track.track_data
        wx, wy = self.track.waypoints_ahead(td.x[10], td.y[10], n=6, stride=2)
        self.assertEqual(len(wx), 6)
        np.testing.assert_allclose(wx, td.x[[9, 11, 13, 15, 17, 19]])
        np.testing.assert_allclose(wy, td.y[[9, 11, 13, 15, 17, 19]])

    def test_waypoints_wrap_around(self):
        td = self.track.track_data
        last = td.n_points - 1
        wx, _ = self.track.waypoints_ahead(td.x[last], td.y[last], n=4, stride=1)
        np.testing.assert_allclose(wx, td.x[[last - 1, last, 0, 1]])

    def test_cross_track_error_sign(self):
        td = self.track.track_data
        i = 5
        normal = np.array([-np.sin(td.heading[i]), np.cos(td.heading[i])])
        left = np.array([td.x[i], td.y[i]]) + 1.5 * normal
        self.assertAlmostEqual(self.track.cross_track_error(*left), 1.5, places=6)
        right = np.array([td.x[i], td.y[i]]) - 0.5 * normal
        self.assertAlmostEqual(self.track.cross_track_error(*right), -0.5, places=6)

    def test_progress_wraps(self):
        n = self.track.track_data.n_points
        self.assertAlmostEqual(self.track.progress([n - 2, n - 1, 0, 1]), 3 * self.track.ds)

    def test_load_from_csv(self):
        theta = np.linspace(0, 2 * np.pi, 16, endpoint=False)
        with tempfile.NamedTemporaryFile('w', suffix='.csv', delete=False) as f:
            f.write("x,y\n")
            for xi, yi in zip(50 * np.cos(theta), 50 * np.sin(theta)):
                f.write(f"{xi:.6f},{yi:.6f}\n")
            path = f.name
        try:
            track = TrackModel('circle')
            track.load_from_csv(path)
        finally:
            os.remove(path)

        self.assertAlmostEqual(track.total_length, 2 * np.pi * 50, delta=2.0)
        np.testing.assert_allclose(np.abs(track.track_data.curvature), 1 / 50, rtol=0.05)

    def test_unknown_track_rejected(self):
        with self.assertRaises(ValueError):
            TrackModel.from_name('monza')


class ClosedLoopTests(unittest.TestCase):
    def test_oval_tracked_within_lane(self):
        vehicle = VehicleConfig()
        track = TrackModel.oval()
        controller = PathTrackingController(
            vehicle, MPCConfig(max_wall_time=1.0), ControllerConfig(speed_scale=1.0, latency=0.1)
        )
        simulator = LapSimulator(KinematicBicycleModel(vehicle), track, controller,
                                 dt=0.1, latency=0.1)

        result = simulator.simulate_lap(initial_velocity=5.0, max_time=8.0)

        self.assertEqual(len(result.steering_history), 80)
        self.assertLess(result.max_abs_cte, 3.0)
        self.assertGreater(result.distance, 40.0)
        self.assertGreater(result.velocities[-1], result.velocities[0])
        self.assertGreaterEqual(result.status_history.count('optimal'), 75)
        self.assertTrue(np.all(np.abs(result.steering_history) <= 1.0))

        df = result.to_dataframe()
        self.assertEqual(len(df), 80)
        self.assertIn('cte', df.columns)
        self.assertEqual(result.summary()['statuses'].get('optimal', 0),
                         result.status_history.count('optimal'))

    def test_compare_latencies_runs_each_setting(self):
        vehicle = VehicleConfig()
        track = TrackModel.oval()
        mpc = MPCConfig(max_wall_time=1.0)

        def factory(latency):
            return PathTrackingController(
                vehicle, mpc, ControllerConfig(speed_scale=1.0, latency=latency)
            )

        results = compare_latencies(KinematicBicycleModel(vehicle), track, factory,
                                    latencies=(0.0, 0.2), max_time=1.0)

        self.assertEqual(sorted(results), [0.0, 0.2])
        for result in results.values():
            self.assertEqual(len(result.steering_history), 10)


if __name__ == "__main__":
    unittest.main()
