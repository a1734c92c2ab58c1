from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional
import math


@dataclass(frozen=True)
class VehicleConfig:
    """
    Kinematic bicycle parameters of the tracked vehicle.

    Lf is measured from the center of mass to the front axle and was tuned
    against the simulator so that a constant steering angle and speed
    reproduce the observed turning radius.
    """
    # ==================== Geometry ====================
    lf: float = 2.67              # [m] CoG to front axle

    # ==================== Actuators ====================
    max_steering_deg: float = 25.0  # [deg] Steering lock
    max_throttle: float = 1.0       # [-] |a| limit (throttle/brake)

    @property
    def steering_max(self) -> float:
        """Steering lock in radians"""
        return math.radians(self.max_steering_deg)

    def get_constraints(self) -> Dict[str, float]:
        """Actuator bounds used by the optimizer."""
        return {
            'delta_min': -self.steering_max,
            'delta_max': self.steering_max,
            'a_min': -self.max_throttle,
            'a_max': self.max_throttle,
        }


# ==================== Vehicle-specific variants ====================

_VEHICLE_OVERRIDES: Mapping[str, Dict[str, float]] = {
    # Simulator car
    "sim": {
        "lf": 2.67,
        "max_steering_deg": 25.0,
    },
    # 1/10 scale RC car
    "rc": {
        "lf": 0.17,
        "max_steering_deg": 24.0,
    },
}


def get_vehicle_config(vehicle: str = "sim", *, base: Optional["VehicleConfig"] = None) -> "VehicleConfig":
    """Return a VehicleConfig for a named vehicle.

    Only the fields that differ from the base configuration are overridden.
    """
    cfg = base or VehicleConfig()
    try:
        overrides = _VEHICLE_OVERRIDES[vehicle]
    except KeyError as e:
        raise ValueError(f"Unknown vehicle: {vehicle}") from e
    return replace(cfg, **overrides)
