import numpy as np

from models import ControlCommand, check_invariant
from .mpc import MPCSolution


def map_actuation(solution: MPCSolution,
                  steering_max: float,
                  reference_x,
                  reference_y) -> ControlCommand:
    """
    Turn the optimizer result into the outgoing command.

    Steering leaves the model in radians and goes out normalized to [-1, 1];
    throttle passes through unchanged.
    """
    delta, a = solution.first_control
    steering = float(np.clip(delta / steering_max, -1.0, 1.0))

    pred_x, pred_y = solution.predicted_x, solution.predicted_y
    check_invariant(len(pred_x) == len(pred_y), "predicted trajectory x/y length mismatch")
    check_invariant(len(reference_x) == len(reference_y), "reference x/y length mismatch")

    return ControlCommand(
        steering_angle=steering,
        throttle=float(a),
        predicted_trajectory_x=list(pred_x),
        predicted_trajectory_y=list(pred_y),
        reference_x=list(reference_x),
        reference_y=list(reference_y),
        status='optimal',
        solve_time=solution.solve_time,
    )


def neutral_command(throttle: float = 0.0, error: str = '') -> ControlCommand:
    """Safe command when no valid actuation exists: wheels straight, no drive."""
    return ControlCommand(steering_angle=0.0, throttle=throttle, status='neutral', error=error)
