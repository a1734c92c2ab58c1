"""Exceptions raised inside one control cycle."""

from typing import Optional


class ControllerError(Exception):
    """Base class for recoverable per-cycle failures"""


class TelemetryError(ControllerError, ValueError):
    """Malformed or insufficient telemetry (too few waypoints, NaN, ...)"""


class ReferenceFitError(ControllerError, ValueError):
    """Least-squares system for the reference curve is ill-posed"""


class SolverError(ControllerError, RuntimeError):
    """NLP did not converge (infeasible, iteration or time cap)"""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class InvariantError(ControllerError, RuntimeError):
    """Internal consistency check failed with assertions disabled (python -O)"""


def check_invariant(condition: bool, message: str):
    """
    Assert an internal invariant.

    With assertions enabled a violation is fatal (AssertionError). Under -O the
    assert is stripped and InvariantError is raised instead, so the cycle can
    be rejected.
    """
    assert condition, message
    if not condition:
        raise InvariantError(message)
