"""
Closed waypoint tracks for the closed-loop simulator.

Supports:
1. Generated shapes (oval, figure-eight, random smooth loop)
2. Waypoint CSV files (x,y per line, optional header), e.g. the simulator's
   lake track
"""
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.interpolate import CubicSpline


@dataclass
class TrackData:
    """Uniformly resampled closed track"""
    s: np.ndarray              # Arc length of each waypoint (m)
    x: np.ndarray              # World-frame waypoints
    y: np.ndarray
    heading: np.ndarray        # Tangent angle (rad)
    curvature: np.ndarray      # Signed curvature (1/m)
    ds: float                  # Waypoint spacing (m)
    total_length: float        # Loop length (m)

    @property
    def n_points(self) -> int:
        return len(self.x)


class TrackModel:
    """Closed track described by world-frame waypoints"""

    def __init__(self, name: str = 'track', ds: float = 5.0):
        self.name = name
        self.ds = ds
        self.track_data: Optional[TrackData] = None

    @property
    def total_length(self) -> float:
        return self.track_data.total_length if self.track_data is not None else 0.0

    # ==================== Loading ====================

    @classmethod
    def oval(cls, straight: float = 120.0, radius: float = 40.0, ds: float = 5.0) -> 'TrackModel':
        """Two straights joined by half circles, driven counter-clockwise"""
        arc = np.linspace(-np.pi / 2, np.pi / 2, 12)
        half = straight / 2
        line = np.linspace(half, -half, 8)[1:-1]
        x = np.concatenate([
            half + radius * np.cos(arc),
            line,
            -half + radius * np.cos(arc + np.pi),
            -line,
        ])
        y = np.concatenate([
            radius * np.sin(arc),
            np.full(line.size, radius),
            radius * np.sin(arc + np.pi),
            np.full(line.size, -radius),
        ])
        track = cls('oval', ds)
        track.load_from_points(x, y)
        return track

    @classmethod
    def figure8(cls, size: float = 80.0, ds: float = 5.0) -> 'TrackModel':
        """Lemniscate of Gerono"""
        t = np.linspace(0, 2 * np.pi, 40, endpoint=False)
        track = cls('figure8', ds)
        track.load_from_points(size * np.sin(t), size * np.sin(t) * np.cos(t))
        return track

    @classmethod
    def random(cls, seed: int = 0, mean_radius: float = 80.0, ds: float = 5.0) -> 'TrackModel':
        """Star-shaped loop with smoothly varying radius"""
        rng = np.random.default_rng(seed)
        n_ctrl = 10
        theta = np.linspace(0, 2 * np.pi, n_ctrl, endpoint=False)
        r = mean_radius * (1.0 + 0.25 * rng.uniform(-1.0, 1.0, n_ctrl))
        track = cls(f'random_{seed}', ds)
        track.load_from_points(r * np.cos(theta), r * np.sin(theta))
        return track

    @classmethod
    def from_name(cls, name: str, seed: int = 0, ds: float = 5.0) -> 'TrackModel':
        builders = {
            'oval': lambda: cls.oval(ds=ds),
            'figure8': lambda: cls.figure8(ds=ds),
            'random': lambda: cls.random(seed=seed, ds=ds),
        }
        try:
            return builders[name.lower()]()
        except KeyError as e:
            raise ValueError(f"Unknown track: {name}") from e

    def load_from_csv(self, path: str):
        """Load a closed track from an 'x,y' CSV (header lines are skipped)."""
        print(f"   Loading waypoints from {path}...")
        data = np.atleast_2d(np.genfromtxt(path, delimiter=',', comments='#'))
        if data.shape[1] >= 2:
            data = data[np.all(np.isfinite(data[:, :2]), axis=1)]
        if data.shape[1] < 2 or len(data) < 4:
            raise ValueError(f"{path}: expected at least 4 rows of x,y")
        self.load_from_points(data[:, 0], data[:, 1])

    def load_from_points(self, x: np.ndarray, y: np.ndarray):
        """
        Fit a periodic spline through control points and resample it at ds.
        The loop is closed automatically.
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)

        # Drop an explicit closing point
        if np.hypot(x[-1] - x[0], y[-1] - y[0]) < 1e-9:
            x, y = x[:-1], y[:-1]

        xc = np.append(x, x[0])
        yc = np.append(y, y[0])
        chord = np.hypot(np.diff(xc), np.diff(yc))
        u = np.concatenate([[0.0], np.cumsum(chord)])

        spline_x = CubicSpline(u, xc, bc_type='periodic')
        spline_y = CubicSpline(u, yc, bc_type='periodic')

        # Arc length on a dense grid, then uniform resampling
        u_dense = np.linspace(0, u[-1], 20 * len(u))
        dxdu, dydu = spline_x(u_dense, 1), spline_y(u_dense, 1)
        speed = np.hypot(dxdu, dydu)
        s_dense = np.concatenate([[0.0], np.cumsum(0.5 * (speed[1:] + speed[:-1]) * np.diff(u_dense))])
        total_length = float(s_dense[-1])

        s = np.arange(0.0, total_length, self.ds)
        u_s = np.interp(s, s_dense, u_dense)

        dx, dy = spline_x(u_s, 1), spline_y(u_s, 1)
        ddx, ddy = spline_x(u_s, 2), spline_y(u_s, 2)
        curvature = (dx * ddy - dy * ddx) / np.power(dx**2 + dy**2, 1.5)

        self.track_data = TrackData(
            s=s,
            x=spline_x(u_s),
            y=spline_y(u_s),
            heading=np.arctan2(dy, dx),
            curvature=curvature,
            ds=self.ds,
            total_length=total_length,
        )
        self._print_track_stats()

    # ==================== Queries ====================

    def nearest_index(self, px: float, py: float, hint: Optional[int] = None,
                      window: int = 15) -> int:
        """
        Closest waypoint. With a hint only waypoints within `window` of it are
        searched, so self-crossing tracks don't jump between branches.
        """
        td = self.track_data
        if hint is None:
            return int(np.argmin((td.x - px)**2 + (td.y - py)**2))
        idx = (hint + np.arange(-window, window + 1)) % td.n_points
        return int(idx[np.argmin((td.x[idx] - px)**2 + (td.y[idx] - py)**2)])

    def waypoints_ahead(self, px: float, py: float, n: int = 6, stride: int = 2,
                        hint: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Next n waypoints starting one behind the nearest point, every `stride`
        waypoints, wrapping around the loop.
        """
        td = self.track_data
        start = self.nearest_index(px, py, hint) - 1
        idx = (start + stride * np.arange(n)) % td.n_points
        return td.x[idx], td.y[idx]

    def cross_track_error(self, px: float, py: float, hint: Optional[int] = None) -> float:
        """Signed lateral distance to the centerline (positive = left of it)"""
        td = self.track_data
        i = self.nearest_index(px, py, hint)
        dx, dy = px - td.x[i], py - td.y[i]
        return float(-np.sin(td.heading[i]) * dx + np.cos(td.heading[i]) * dy)

    def progress(self, index_history) -> float:
        """Distance travelled along the loop given visited nearest indices (m)"""
        idx = np.asarray(index_history)
        if idx.size < 2:
            return 0.0
        steps = np.diff(idx)
        n = self.track_data.n_points
        steps = (steps + n // 2) % n - n // 2
        return float(np.sum(steps) * self.ds)

    def _print_track_stats(self):
        td = self.track_data
        print(f"   Track '{self.name}': {td.total_length:.0f}m, {td.n_points} waypoints, "
              f"min radius {1.0 / max(np.max(np.abs(td.curvature)), 1e-6):.1f}m")
