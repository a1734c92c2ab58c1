"""
Per-cycle input and output records.

Telemetry   : what the vehicle reports (world frame)
ControlCommand : what the controller sends back (normalized steering, body-frame
                 display paths)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

import numpy as np

from .errors import TelemetryError


@dataclass(frozen=True)
class Telemetry:
    """One telemetry message, already converted to model units"""
    waypoints_x: np.ndarray     # World-frame reference points
    waypoints_y: np.ndarray
    x: float                    # World-frame position (m)
    y: float
    psi: float                  # World-frame heading (rad)
    speed: float                # Speed (m/s)
    steering_angle: float       # Applied steering (rad)
    throttle: float             # Applied throttle/brake [-1, 1]

    @property
    def pose(self) -> np.ndarray:
        return np.array([self.x, self.y, self.psi, self.speed])

    @property
    def control(self) -> np.ndarray:
        return np.array([self.steering_angle, self.throttle])

    @classmethod
    def from_dict(cls, data: Mapping, speed_scale: float = 1.0, min_waypoints: int = 4) -> 'Telemetry':
        """
        Validate a raw record.

        Accepts both the controller's field names (waypoints_x, ...) and the
        simulator's (ptsx, ptsy).

        Raises:
            TelemetryError: missing field, non-numeric or non-finite value,
                mismatched or too few waypoints
        """
        try:
            wx = data['waypoints_x'] if 'waypoints_x' in data else data['ptsx']
            wy = data['waypoints_y'] if 'waypoints_y' in data else data['ptsy']
            scalars = {
                name: float(data[name])
                for name in ('x', 'y', 'psi', 'speed', 'steering_angle', 'throttle')
            }
            wx = np.asarray(wx, dtype=float).ravel()
            wy = np.asarray(wy, dtype=float).ravel()
        except KeyError as e:
            raise TelemetryError(f"Missing telemetry field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise TelemetryError(f"Malformed telemetry: {e}") from e

        if wx.size != wy.size:
            raise TelemetryError(f"Waypoint length mismatch: {wx.size} x vs {wy.size} y")
        if wx.size < min_waypoints:
            raise TelemetryError(f"Need at least {min_waypoints} waypoints, got {wx.size}")
        if not (np.all(np.isfinite(wx)) and np.all(np.isfinite(wy))):
            raise TelemetryError("Non-finite waypoint")
        bad = [name for name, value in scalars.items() if not np.isfinite(value)]
        if bad:
            raise TelemetryError(f"Non-finite telemetry values: {', '.join(bad)}")

        scalars['speed'] *= speed_scale
        return cls(waypoints_x=wx, waypoints_y=wy, **scalars)


@dataclass
class ControlCommand:
    """Controller output for one cycle"""
    steering_angle: float                   # Normalized [-1, 1]
    throttle: float                         # [-1, 1]
    predicted_trajectory_x: List[float] = field(default_factory=list)
    predicted_trajectory_y: List[float] = field(default_factory=list)
    reference_x: List[float] = field(default_factory=list)
    reference_y: List[float] = field(default_factory=list)

    # Diagnostics
    status: str = 'optimal'                 # 'optimal', 'previous', 'neutral'
    solve_time: float = 0.0
    error: str = ''

    def to_dict(self) -> Dict:
        return {
            'steering_angle': float(self.steering_angle),
            'throttle': float(self.throttle),
            'predicted_trajectory_x': [float(v) for v in self.predicted_trajectory_x],
            'predicted_trajectory_y': [float(v) for v in self.predicted_trajectory_y],
            'reference_x': [float(v) for v in self.reference_x],
            'reference_y': [float(v) for v in self.reference_y],
            'status': self.status,
            'solve_time': float(self.solve_time),
            'error': self.error,
        }

    def to_simulator_dict(self) -> Dict:
        """Field names expected by the driving simulator's 'steer' event"""
        return {
            'steering_angle': float(self.steering_angle),
            'throttle': float(self.throttle),
            'mpc_x': [float(v) for v in self.predicted_trajectory_x],
            'mpc_y': [float(v) for v in self.predicted_trajectory_y],
            'next_x': [float(v) for v in self.reference_x],
            'next_y': [float(v) for v in self.reference_y],
        }
