import casadi as ca
import numpy as np

from config import VehicleConfig


# State layout shared by the optimizer, the latency compensator and the simulator
X, Y, PSI, V, CTE, EPSI = range(6)
N_STATES = 6
N_CONTROLS = 2


class KinematicBicycleModel:
    """
    Discrete kinematic bicycle model.

    Sign convention: positive steering turns right, so heading decreases:
        psi' = psi - v / Lf * delta * dt

    Pose update (x, y, psi, v):
        x'   = x + v cos(psi) dt
        y'   = y + v sin(psi) dt
        psi' = psi - v / Lf * delta * dt
        v'   = v + a dt

    Error update, given reference f and desired heading psi_des:
        cte'  = (f(x) - y) + v sin(epsi) dt
        epsi' = (psi - psi_des(x)) - v / Lf * delta * dt
    """

    def __init__(self, vehicle_config: VehicleConfig):
        self.vehicle = vehicle_config
        self.lf = vehicle_config.lf

        # cache for CasADi functions
        self._dynamics_func = None

    def heading_rate(self, v, delta):
        """Yaw rate [rad/s] produced by steering delta [rad] at speed v"""
        return -v / self.lf * delta

    def pose_step(self, pose: np.ndarray, control: np.ndarray, dt: float) -> np.ndarray:
        """Advance [x, y, psi, v] by dt under control [delta, a]."""
        x, y, psi, v = pose
        delta, a = control
        return np.array([
            x + v * np.cos(psi) * dt,
            y + v * np.sin(psi) * dt,
            psi + self.heading_rate(v, delta) * dt,
            v + a * dt,
        ])

    def compensate_latency(self, pose: np.ndarray, control: np.ndarray, latency: float) -> np.ndarray:
        """
        Project a pose forward by the actuation latency.

        The projection uses the actuation currently in effect: the new command
        only takes hold once the latency has elapsed.
        """
        if latency <= 0.0:
            return np.asarray(pose, dtype=float).copy()
        return self.pose_step(pose, control, latency)

    def create_time_domain_dynamics(self) -> ca.Function:
        """
        Continuous-time pose dynamics for the closed-loop simulator.

        State: pose = [x, y, psi, v]
        Control: u = [delta, a]

        Returns:
            CasADi Function: dynamics(pose, u) -> pose_dot
        """
        if self._dynamics_func is not None:
            return self._dynamics_func

        pose = ca.SX.sym('pose', 4)
        u = ca.SX.sym('u', N_CONTROLS)

        pose_dot = ca.vertcat(
            pose[3] * ca.cos(pose[2]),
            pose[3] * ca.sin(pose[2]),
            self.heading_rate(pose[3], u[0]),
            u[1],
        )
        self._dynamics_func = ca.Function(
            'dynamics', [pose, u], [pose_dot],
            ['pose', 'u'], ['pose_dot'],
        )
        return self._dynamics_func

    def error_step(self, state, control, coeffs_eval, psi_des_eval, dt):
        """
        Full six-state update. coeffs_eval/psi_des_eval are callables for f(x)
        and psi_des(x) so the same expressions work on numpy and CasADi types.
        """
        x, y, psi, v, cte, epsi = (state[i] for i in range(N_STATES))
        delta, a = control[0], control[1]

        if isinstance(x, (ca.SX, ca.MX)):
            cos, sin = ca.cos, ca.sin
        else:
            cos, sin = np.cos, np.sin

        yaw = self.heading_rate(v, delta) * dt
        return [
            x + v * cos(psi) * dt,
            y + v * sin(psi) * dt,
            psi + yaw,
            v + a * dt,
            (coeffs_eval(x) - y) + v * sin(epsi) * dt,
            (psi - psi_des_eval(x)) + yaw,
        ]
