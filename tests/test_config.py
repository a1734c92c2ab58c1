import os
import tempfile
import unittest

import typer

from config import ControllerConfig, MPCConfig, VehicleConfig, get_default_config, get_vehicle_config
from config.app_config import AppConfig, build_config


class ConfigDefaultsTests(unittest.TestCase):
    def test_defaults(self):
        vehicle = VehicleConfig()
        mpc = MPCConfig()
        self.assertEqual(vehicle.lf, 2.67)
        self.assertAlmostEqual(vehicle.steering_max, 0.436332, places=6)
        self.assertEqual(mpc.horizon_steps, 10)
        self.assertEqual(mpc.dt, 0.05)
        self.assertEqual((mpc.w_cte, mpc.w_epsi, mpc.w_delta_rate), (2000.0, 2000.0, 200.0))

    def test_default_bundle(self):
        vehicle, mpc, controller = get_default_config()
        self.assertEqual(controller.speed_scale, 0.44704)
        self.assertEqual(mpc.ref_v, 20.0)
        self.assertEqual(vehicle.max_steering_deg, 25.0)

    def test_vehicle_presets(self):
        rc = get_vehicle_config("rc")
        self.assertEqual(rc.lf, 0.17)
        with self.assertRaises(ValueError):
            get_vehicle_config("truck")

    def test_invalid_values_rejected(self):
        with self.assertRaises(ValueError):
            MPCConfig(horizon_steps=2)
        with self.assertRaises(ValueError):
            MPCConfig(dt=0.0)
        with self.assertRaises(ValueError):
            ControllerConfig(latency=-0.1)
        with self.assertRaises(ValueError):
            ControllerConfig(min_waypoints=3)


class BuildConfigTests(unittest.TestCase):
    def _write_yaml(self, text):
        with tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False) as f:
            f.write(text)
        self.addCleanup(os.remove, f.name)
        return f.name

    def test_cli_values_only(self):
        args = build_config({"port": 5000, "latency": None})
        self.assertEqual(args.port, 5000)
        self.assertEqual(args.latency, AppConfig().latency)

    def test_yaml_defaults_overridden_by_cli(self):
        path = self._write_yaml("latency: 0.2\nref_v: 15.0\ntrack: figure8\n")
        args = build_config({"latency": 0.05, "ref_v": None}, path)

        self.assertEqual(args.latency, 0.05)
        self.assertEqual(args.ref_v, 15.0)
        self.assertEqual(args.track, "figure8")

    def test_unknown_yaml_key_rejected(self):
        path = self._write_yaml("latncy: 0.2\n")
        with self.assertRaises(typer.BadParameter):
            build_config({}, path)

    def test_kwargs_feed_configs(self):
        args = AppConfig(latency=0.0, horizon_steps=8, reference_display="polynomial",
                         max_wall_time=0.03)
        controller = ControllerConfig(**args.controller_kwargs())
        mpc = MPCConfig(**args.mpc_kwargs())
        self.assertEqual(controller.latency, 0.0)
        self.assertEqual(controller.reference_display, "polynomial")
        self.assertEqual(mpc.horizon_steps, 8)
        self.assertEqual(mpc.solve_time_limit, 0.03)
        self.assertEqual(MPCConfig(**AppConfig().mpc_kwargs()).solve_time_limit, AppConfig().dt)


if __name__ == "__main__":
    unittest.main()
