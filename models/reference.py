"""
Polynomial reference curve

The reference path ahead of the vehicle is approximated in the body frame by
y = f(x) = c0 + c1*x + c2*x^2 + c3*x^3 (coefficients lowest order first).
At the planning origin:
    cte  = f(0)           = c0
    epsi = 0 - atan(f'(0)) = -atan(c1)
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import ReferenceFitError


def polyfit(xs, ys, degree: int) -> np.ndarray:
    """
    Least-squares polynomial fit.

    Args:
        xs: Independent samples
        ys: Dependent samples (same length as xs)
        degree: Polynomial degree (>= 1)

    Returns:
        degree + 1 coefficients, lowest order first

    Raises:
        ReferenceFitError: too few points, mismatched lengths, non-finite
            samples, or a rank-deficient Vandermonde system
    """
    xs = np.asarray(xs, dtype=float).ravel()
    ys = np.asarray(ys, dtype=float).ravel()

    if degree < 1:
        raise ReferenceFitError(f"Degree must be >= 1, got {degree}")
    if xs.size != ys.size:
        raise ReferenceFitError(f"Length mismatch: {xs.size} x samples vs {ys.size} y samples")
    if xs.size < degree + 1:
        raise ReferenceFitError(
            f"Need at least {degree + 1} points for a degree-{degree} fit, got {xs.size}"
        )
    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise ReferenceFitError("Non-finite sample in fit input")

    A = np.vander(xs, degree + 1, increasing=True)
    coeffs, _, rank, _ = np.linalg.lstsq(A, ys, rcond=None)

    if rank < degree + 1:
        raise ReferenceFitError(
            f"Degenerate samples: Vandermonde rank {rank} < {degree + 1} "
            f"({np.unique(xs).size} distinct x values)"
        )
    return coeffs


def polyeval(coeffs, x):
    """Evaluate a polynomial (lowest order first) at x (scalar or array)."""
    result = 0.0
    for i, c in enumerate(coeffs):
        result = result + c * x**i
    return result


def polyder(coeffs) -> np.ndarray:
    """Coefficients of the first derivative, lowest order first."""
    coeffs = np.asarray(coeffs, dtype=float)
    if coeffs.size <= 1:
        return np.zeros(1)
    return coeffs[1:] * np.arange(1, coeffs.size)


@dataclass(frozen=True)
class ReferenceCurve:
    """Body-frame polynomial reference for one control cycle"""
    coeffs: np.ndarray

    @classmethod
    def fit(cls, xs, ys, degree: int = 3) -> 'ReferenceCurve':
        return cls(coeffs=polyfit(xs, ys, degree))

    @property
    def degree(self) -> int:
        return len(self.coeffs) - 1

    def __call__(self, x):
        return polyeval(self.coeffs, x)

    def slope(self, x):
        return polyeval(polyder(self.coeffs), x)

    def desired_heading(self, x):
        """Path tangent angle at x [rad]"""
        return np.arctan(self.slope(x))

    @property
    def cte(self) -> float:
        """Cross-track error at the origin"""
        return float(self.coeffs[0])

    @property
    def epsi(self) -> float:
        """Heading error at the origin (vehicle heading is 0 by construction)"""
        return float(-np.arctan(self.coeffs[1]))

    def sample(self, spacing: float = 2.5, n_points: int = 25) -> Tuple[np.ndarray, np.ndarray]:
        """Points along the curve ahead of the vehicle, for display."""
        xs = spacing * np.arange(n_points, dtype=float)
        return xs, np.asarray(self(xs), dtype=float)
