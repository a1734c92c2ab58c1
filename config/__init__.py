from .vehicle import VehicleConfig, get_vehicle_config
from .mpc import MPCConfig
from .controller import ControllerConfig


def get_default_config() -> tuple:
    return (
        VehicleConfig(),
        MPCConfig(),
        ControllerConfig(),
    )


__all__ = [
    'VehicleConfig',
    'MPCConfig',
    'ControllerConfig',
    'get_default_config',
    'get_vehicle_config',
]
