from .errors import (
    ControllerError,
    TelemetryError,
    ReferenceFitError,
    SolverError,
    InvariantError,
    check_invariant,
)
from .frames import world_to_body, body_to_world
from .reference import ReferenceCurve, polyfit, polyeval
from .kinematics import KinematicBicycleModel
from .telemetry import Telemetry, ControlCommand
from .track import TrackModel, TrackData

__all__ = [
    'ControllerError',
    'TelemetryError',
    'ReferenceFitError',
    'SolverError',
    'InvariantError',
    'check_invariant',
    'world_to_body',
    'body_to_world',
    'ReferenceCurve',
    'polyfit',
    'polyeval',
    'KinematicBicycleModel',
    'Telemetry',
    'ControlCommand',
    'TrackModel',
    'TrackData',
]
