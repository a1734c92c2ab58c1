"""
Per-cycle path tracking pipeline

    telemetry ──► latency compensation ──► body frame ──► reference fit
                                                             │
    command  ◄── actuation mapping ◄── trajectory optimizer ◄┘

Failures are recovered here, once per cycle:
    TelemetryError, ReferenceFitError -> neutral command
    SolverError                        -> previous valid command, else neutral
    InvariantError (python -O only)    -> neutral command
"""
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple, Union

import numpy as np

from config import ControllerConfig, MPCConfig, VehicleConfig
from models import (
    ControlCommand,
    InvariantError,
    KinematicBicycleModel,
    ReferenceCurve,
    ReferenceFitError,
    SolverError,
    Telemetry,
    TelemetryError,
    world_to_body,
)
from .actuation import map_actuation, neutral_command
from .mpc import MPCSolution, TrajectoryMPC, WarmStart


@dataclass(frozen=True)
class CycleMemory:
    """
    Everything carried from one cycle to the next.

    Held by the caller and passed in explicitly so a cycle can be replayed
    in isolation.
    """
    last_command: Optional[Tuple[float, float]] = None   # (normalized steering, throttle)
    warm_start: Optional[WarmStart] = None


@dataclass
class CycleResult:
    """Command plus the intermediate products, for plotting and tests"""
    command: ControlCommand
    memory: CycleMemory
    state: Optional[np.ndarray] = None
    reference: Optional[ReferenceCurve] = None
    solution: Optional[MPCSolution] = None


class PathTrackingController:
    """
    Receding-horizon path tracking controller.

    Usage:
        controller = PathTrackingController()
        command = controller.step(telemetry_dict)
    """

    def __init__(self,
                 vehicle_config: Optional[VehicleConfig] = None,
                 mpc_config: Optional[MPCConfig] = None,
                 config: Optional[ControllerConfig] = None,
                 optimizer: Optional[TrajectoryMPC] = None):
        self.vehicle = vehicle_config or VehicleConfig()
        self.config = config or ControllerConfig()
        self.model = KinematicBicycleModel(self.vehicle)
        self.mpc = optimizer or TrajectoryMPC(self.vehicle, mpc_config, self.config.poly_degree)
        self.verbose = self.config.verbose

        self.memory = CycleMemory()
        self.neutral_count = 0
        self.previous_count = 0

    def _log(self, message: str):
        if self.verbose:
            print(f"   [Controller] {message}")

    def reset(self):
        """Forget the previous command and warm start."""
        self.memory = CycleMemory()

    def step(self, telemetry: Union[Telemetry, Mapping]) -> ControlCommand:
        """Run one cycle and keep its memory for the next."""
        result = self.run_cycle(telemetry, self.memory)
        self.memory = result.memory
        return result.command

    def run_cycle(self, telemetry: Union[Telemetry, Mapping],
                  memory: CycleMemory) -> CycleResult:
        """
        Run one cycle without touching self.memory.

        Args:
            telemetry: Parsed Telemetry or a raw record (converted with speed_scale)
            memory: Memory returned by the previous cycle

        Returns:
            CycleResult; never raises for input, fit or solver failures
        """
        try:
            if not isinstance(telemetry, Telemetry):
                telemetry = Telemetry.from_dict(
                    telemetry,
                    speed_scale=self.config.speed_scale,
                    min_waypoints=self.config.min_waypoints,
                )
            state, reference, ref_x, ref_y = self.prepare(telemetry)
        except (TelemetryError, ReferenceFitError) as e:
            self.neutral_count += 1
            self._log(f"⚠ Rejected cycle: {e}")
            command = neutral_command(self.config.neutral_throttle, error=str(e))
            return CycleResult(command=command, memory=memory)

        warm_start = memory.warm_start if self.config.use_warm_start else None
        try:
            solution = self.mpc.solve(state, reference, warm_start=warm_start)
            command = map_actuation(solution, self.vehicle.steering_max, ref_x, ref_y)
            if not (np.isfinite(command.steering_angle) and np.isfinite(command.throttle)):
                raise SolverError("Non-finite actuation in solution", status='nan')
        except SolverError as e:
            command = self._fallback(memory, str(e))
            # Stale plan is dropped; the last good command survives
            return CycleResult(command=command, memory=replace(memory, warm_start=None),
                               state=state, reference=reference)
        except InvariantError as e:
            self.neutral_count += 1
            self._log(f"⚠ Internal check failed, cycle rejected: {e}")
            command = neutral_command(self.config.neutral_throttle, error=str(e))
            return CycleResult(command=command, memory=replace(memory, warm_start=None),
                               state=state, reference=reference)

        new_memory = CycleMemory(
            last_command=(command.steering_angle, command.throttle),
            warm_start=solution.shifted(),
        )
        return CycleResult(command=command, memory=new_memory, state=state,
                           reference=reference, solution=solution)

    def prepare(self, telemetry: Telemetry):
        """
        Latency compensation, frame transform and reference fit.

        Returns:
            state: [0, 0, 0, v, cte, epsi] at the compensated pose
            reference: Fitted ReferenceCurve
            ref_x, ref_y: Body-frame reference points for display
        """
        px, py, psi, v = self.model.compensate_latency(
            telemetry.pose, telemetry.control, self.config.latency
        )

        wx, wy = world_to_body(telemetry.waypoints_x, telemetry.waypoints_y, px, py, psi)
        reference = ReferenceCurve.fit(wx, wy, self.config.poly_degree)

        state = np.array([0.0, 0.0, 0.0, v, reference.cte, reference.epsi])

        if self.config.reference_display == "polynomial":
            ref_x, ref_y = reference.sample(self.config.poly_display_spacing,
                                            self.config.poly_display_points)
        else:
            ref_x, ref_y = wx, wy
        return state, reference, ref_x, ref_y

    def _fallback(self, memory: CycleMemory, error: str) -> ControlCommand:
        if memory.last_command is not None:
            self.previous_count += 1
            steering, throttle = memory.last_command
            self._log(f"⚠ Solver failed, holding previous command: {error}")
            return ControlCommand(steering_angle=steering, throttle=throttle,
                                  status='previous', error=error)
        self.neutral_count += 1
        self._log(f"⚠ Solver failed, no previous command: {error}")
        return neutral_command(self.config.neutral_throttle, error=error)

    def get_statistics(self):
        stats = self.mpc.get_statistics()
        stats.update({
            'neutral_count': self.neutral_count,
            'previous_count': self.previous_count,
        })
        return stats
