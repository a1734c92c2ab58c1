from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class ControllerConfig:
    """Per-cycle pipeline options around the optimizer"""

    latency: float = 0.1                # [s] Actuation latency compensated in the model
    speed_scale: float = 0.44704        # Telemetry speed unit -> m/s (mph by default)
    poly_degree: int = 3                # Reference curve degree
    min_waypoints: int = 4

    # Fallback command
    neutral_throttle: float = 0.0       # Throttle sent when no valid command exists

    # Reference display: raw waypoints or the fitted curve sampled ahead
    reference_display: Literal["waypoints", "polynomial"] = "waypoints"
    poly_display_spacing: float = 2.5   # [m]
    poly_display_points: int = 25

    use_warm_start: bool = True
    verbose: bool = False

    def __post_init__(self):
        if self.latency < 0:
            raise ValueError(f"latency must be non-negative, got {self.latency}")
        if self.min_waypoints < self.poly_degree + 1:
            raise ValueError(
                f"min_waypoints ({self.min_waypoints}) must be at least "
                f"poly_degree + 1 ({self.poly_degree + 1})"
            )
        if not -1.0 <= self.neutral_throttle <= 0.0:
            raise ValueError("neutral_throttle must be in [-1, 0]")
