from .mpc import (
    TrajectoryMPC,
    MPCSolution,
    WarmStart,
)
from .actuation import map_actuation, neutral_command
from .pipeline import (
    PathTrackingController,
    CycleMemory,
    CycleResult,
)

__all__ = [
    'TrajectoryMPC',
    'MPCSolution',
    'WarmStart',
    'map_actuation',
    'neutral_command',
    'PathTrackingController',
    'CycleMemory',
    'CycleResult',
]
