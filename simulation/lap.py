import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from models import KinematicBicycleModel, Telemetry, TrackModel


@dataclass
class LapResult:
    """Container for closed-loop simulation results"""

    # Time series data (one entry per control cycle, plus the final state)
    times: np.ndarray          # Time stamps (s)
    xs: np.ndarray             # World-frame position (m)
    ys: np.ndarray
    psis: np.ndarray           # Heading (rad)
    velocities: np.ndarray     # Speed (m/s)
    cte: np.ndarray            # Distance to the centerline (m)

    # Command history (one entry per control cycle)
    steering_history: np.ndarray   # Normalized [-1, 1]
    throttle_history: np.ndarray   # [-1, 1]
    status_history: List[str]

    # Summary statistics
    distance: float            # Progress along the track (m)
    completed: bool            # At least one full loop

    # Solver performance
    solve_times: Optional[np.ndarray] = None

    @property
    def max_abs_cte(self) -> float:
        return float(np.max(np.abs(self.cte)))

    @property
    def rms_cte(self) -> float:
        return float(np.sqrt(np.mean(self.cte**2)))

    def to_dataframe(self) -> pd.DataFrame:
        """Per-cycle history (final state dropped so all columns align)"""
        n = len(self.steering_history)
        return pd.DataFrame({
            't': self.times[:n],
            'x': self.xs[:n],
            'y': self.ys[:n],
            'psi': self.psis[:n],
            'v': self.velocities[:n],
            'cte': self.cte[:n],
            'steering': self.steering_history,
            'throttle': self.throttle_history,
            'status': self.status_history,
            'solve_time': self.solve_times if self.solve_times is not None else np.zeros(n),
        })

    def summary(self) -> Dict:
        statuses = pd.Series(self.status_history).value_counts().to_dict()
        return {
            'duration': float(self.times[-1]),
            'distance': self.distance,
            'completed': self.completed,
            'mean_speed': float(np.mean(self.velocities)),
            'max_abs_cte': self.max_abs_cte,
            'rms_cte': self.rms_cte,
            'avg_solve_time': float(np.mean(self.solve_times)) if self.solve_times is not None else 0.0,
            'max_solve_time': float(np.max(self.solve_times)) if self.solve_times is not None else 0.0,
            'statuses': {str(k): int(v) for k, v in statuses.items()},
        }


class LapSimulator:
    """
    Drive the kinematic bicycle plant around a track with a controller in the loop.

    Each control period the controller receives the vehicle's telemetry and
    the waypoints ahead; its command takes effect `latency` seconds later.
    """

    def __init__(self,
                 vehicle_model: KinematicBicycleModel,
                 track_model: TrackModel,
                 controller,
                 dt: float = 0.1,
                 latency: float = 0.1,
                 n_waypoints: int = 6,
                 waypoint_stride: int = 2):
        self.vehicle = vehicle_model
        self.track = track_model
        self.controller = controller
        self.dt = dt
        self.latency = latency
        self.n_waypoints = n_waypoints
        self.waypoint_stride = waypoint_stride

        self.steering_max = vehicle_model.vehicle.steering_max
        self.dynamics_func = vehicle_model.create_time_domain_dynamics()

    def initial_pose(self, initial_velocity: float = 5.0) -> np.ndarray:
        """On the centerline at the first waypoint, aligned with the track"""
        td = self.track.track_data
        return np.array([td.x[0], td.y[0], td.heading[0], initial_velocity])

    def simulate_lap(self,
                     initial_velocity: float = 5.0,
                     max_time: float = 30.0,
                     initial_pose: Optional[np.ndarray] = None) -> LapResult:
        """
        Args:
            initial_velocity: Starting speed (m/s), ignored if initial_pose given
            max_time: Simulated duration (s)
            initial_pose: Optional [x, y, psi, v]

        Returns:
            LapResult with complete telemetry
        """
        pose = (np.asarray(initial_pose, dtype=float).copy() if initial_pose is not None
                else self.initial_pose(initial_velocity))

        # Actuation currently applied, and commands waiting for the latency to elapse
        applied = np.zeros(2)
        pending = []            # [(apply_time, control)]

        hint = self.track.nearest_index(pose[0], pose[1])
        index_history = [hint]

        times, xs, ys, psis, vs, ctes = [], [], [], [], [], []
        steering_history, throttle_history, status_history, solve_times = [], [], [], []

        t = 0.0
        n_steps = int(round(max_time / self.dt))
        for _ in range(n_steps):
            hint = self.track.nearest_index(pose[0], pose[1], hint)
            index_history.append(hint)

            times.append(t)
            xs.append(pose[0])
            ys.append(pose[1])
            psis.append(pose[2])
            vs.append(pose[3])
            ctes.append(self.track.cross_track_error(pose[0], pose[1], hint))

            wx, wy = self.track.waypoints_ahead(pose[0], pose[1], self.n_waypoints,
                                                self.waypoint_stride, hint)
            telemetry = Telemetry(
                waypoints_x=wx, waypoints_y=wy,
                x=pose[0], y=pose[1], psi=pose[2], speed=pose[3],
                steering_angle=applied[0], throttle=applied[1],
            )

            start_solve = time.time()
            command = self.controller.step(telemetry)
            solve_times.append(time.time() - start_solve)

            steering_history.append(command.steering_angle)
            throttle_history.append(command.throttle)
            status_history.append(command.status)

            control = np.array([command.steering_angle * self.steering_max, command.throttle])
            pending.append((t + self.latency, control))

            pose, applied, pending = self._advance(pose, applied, pending, t, t + self.dt)
            t += self.dt

        hint = self.track.nearest_index(pose[0], pose[1], hint)
        index_history.append(hint)
        times.append(t)
        xs.append(pose[0])
        ys.append(pose[1])
        psis.append(pose[2])
        vs.append(pose[3])
        ctes.append(self.track.cross_track_error(pose[0], pose[1], hint))

        distance = self.track.progress(index_history)
        return LapResult(
            times=np.array(times),
            xs=np.array(xs),
            ys=np.array(ys),
            psis=np.array(psis),
            velocities=np.array(vs),
            cte=np.array(ctes),
            steering_history=np.array(steering_history),
            throttle_history=np.array(throttle_history),
            status_history=status_history,
            distance=distance,
            completed=distance >= self.track.total_length,
            solve_times=np.array(solve_times),
        )

    def _advance(self, pose, applied, pending, t_start, t_end):
        """Integrate from t_start to t_end, switching actuation as pending commands mature."""
        t = t_start
        while t < t_end - 1e-12:
            due = [p for p in pending if p[0] <= t + 1e-12]
            if due:
                applied = due[-1][1]
                pending = [p for p in pending if p[0] > t + 1e-12]
            t_next = min([t_end] + [p[0] for p in pending if p[0] < t_end])
            pose = self._integrate_rk4(pose, applied, t_next - t)
            t = t_next
        return pose, applied, pending

    def _integrate_rk4(self, pose: np.ndarray, control: np.ndarray, dt: float) -> np.ndarray:
        """RK4 integration step"""

        k1 = self.dynamics_func(pose, control).full().flatten()
        k2 = self.dynamics_func(pose + dt/2 * k1, control).full().flatten()
        k3 = self.dynamics_func(pose + dt/2 * k2, control).full().flatten()
        k4 = self.dynamics_func(pose + dt * k3, control).full().flatten()

        return pose + dt / 6 * (k1 + 2*k2 + 2*k3 + k4)


def compare_latencies(vehicle_model: KinematicBicycleModel,
                      track_model: TrackModel,
                      controller_factory,
                      latencies=(0.0, 0.1, 0.2),
                      max_time: float = 20.0) -> Dict[float, LapResult]:
    """
    Run the same track with different actuation latencies.

    Args:
        controller_factory: callable(latency) -> controller compensating that latency
    """
    print("\n" + "="*60)
    print("LATENCY COMPARISON")
    print("="*60)

    results = {}
    for latency in latencies:
        print(f"\nRunning latency {latency*1000:.0f}ms...")
        sim = LapSimulator(vehicle_model, track_model, controller_factory(latency),
                           latency=latency)
        results[latency] = sim.simulate_lap(max_time=max_time)
        print(f"   RMS cte: {results[latency].rms_cte:.3f}m")

    print(f"\n{'Latency':<10} {'RMS cte':<10} {'Max cte':<10} {'Distance'}")
    print("-"*45)
    for latency, result in results.items():
        print(f"{latency*1000:<10.0f} {result.rms_cte:<10.3f} {result.max_abs_cte:<10.3f} "
              f"{result.distance:.0f}m")

    return results
