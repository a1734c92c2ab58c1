"""
World <-> body frame conversion.

Body frame: origin at the vehicle, x forward, y to the left. World headings
are counter-clockwise from the world x axis.
"""

from typing import Tuple

import numpy as np


def world_to_body(xs, ys, px: float, py: float, psi: float) -> Tuple[np.ndarray, np.ndarray]:
    """Translate by -(px, py), then rotate by -psi."""
    dx = np.asarray(xs, dtype=float) - px
    dy = np.asarray(ys, dtype=float) - py

    cos_m = np.cos(-psi)
    sin_m = np.sin(-psi)

    x_body = dx * cos_m - dy * sin_m
    y_body = dx * sin_m + dy * cos_m
    return x_body, y_body


def body_to_world(xs, ys, px: float, py: float, psi: float) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of world_to_body: rotate by psi, then translate by (px, py)."""
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)

    cos_p = np.cos(psi)
    sin_p = np.sin(psi)

    x_world = xs * cos_p - ys * sin_p + px
    y_world = xs * sin_p + ys * cos_p + py
    return x_world, y_world
