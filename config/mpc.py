"""
MPC Configuration

Horizon, cost weights and IPOPT settings for the trajectory optimizer.
All values are fixed per deployment; the optimizer builds its NLP once
from them.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MPCConfig:
    """Configuration for the receding-horizon trajectory optimizer"""
    # Horizon parameters
    horizon_steps: int = 10             # N states, N-1 actuations
    dt: float = 0.05                    # [s] Step duration

    # Target speed
    ref_v: float = 20.0                 # [m/s] Reference speed

    # Tracking weights
    w_cte: float = 2000.0               # Cross-track error
    w_epsi: float = 2000.0              # Heading error
    w_v: float = 1.0                    # Speed tracking

    # Actuation magnitude weights
    w_delta: float = 5.0
    w_a: float = 5.0

    # Smoothness weights - steering rate dominates to avoid oscillation at speed
    w_delta_rate: float = 200.0
    w_a_rate: float = 10.0

    # Solver settings
    max_iter: int = 100
    max_wall_time: Optional[float] = None   # [s] IPOPT wall-clock cap, one step (dt) when unset
    tol: float = 1e-6
    acceptable_tol: float = 1e-4
    verbose: bool = False

    def __post_init__(self):
        if self.horizon_steps < 3:
            raise ValueError(f"horizon_steps must be >= 3, got {self.horizon_steps}")
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.max_wall_time is not None and self.max_wall_time <= 0:
            raise ValueError(f"max_wall_time must be positive, got {self.max_wall_time}")

    @property
    def horizon_time(self) -> float:
        """Time covered by the prediction horizon [s]"""
        return (self.horizon_steps - 1) * self.dt

    @property
    def solve_time_limit(self) -> float:
        """Wall-clock budget for one solve; past it the cycle degrades"""
        return self.max_wall_time if self.max_wall_time is not None else self.dt
