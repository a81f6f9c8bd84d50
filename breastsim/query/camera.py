# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from breastsim.errors import PreconditionError
from breastsim.utils.geometry import normalize


@dataclass(frozen=True)
class Ray:
    origin: np.ndarray
    direction: np.ndarray

    def at(self, t: float) -> np.ndarray:
        return self.origin + t * self.direction


def _check_ndc(ndc: Sequence[float]) -> Tuple[float, float]:
    x, y = float(ndc[0]), float(ndc[1])
    if not (-1.0 <= x <= 1.0 and -1.0 <= y <= 1.0):
        raise PreconditionError(f"pointer position {x, y} is outside [-1, 1] x [-1, 1]")
    return x, y


@dataclass
class PerspectiveCamera:
    """Pinhole camera producing world-space rays for normalized pointer positions."""

    position: Sequence[float] = (0.0, 0.0, 1.0)
    target: Sequence[float] = (0.0, 0.0, 0.0)
    up: Sequence[float] = (0.0, 1.0, 0.0)
    fov_deg: float = 50.0
    aspect: float = 1.0

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        eye = np.asarray(self.position, dtype=float)
        forward = normalize(np.asarray(self.target, dtype=float) - eye)
        right = normalize(np.cross(forward, np.asarray(self.up, dtype=float)))
        if not np.any(forward) or not np.any(right):
            raise PreconditionError("camera position, target and up are degenerate")
        true_up = np.cross(right, forward)
        return forward, right, true_up

    def ray(self, ndc: Sequence[float]) -> Ray:
        x, y = _check_ndc(ndc)
        forward, right, true_up = self.basis()
        tan_half = math.tan(math.radians(self.fov_deg) / 2.0)
        direction = forward + x * tan_half * self.aspect * right + y * tan_half * true_up
        return Ray(np.asarray(self.position, dtype=float), normalize(direction))

    def project(self, point: Sequence[float]) -> Tuple[float, float]:
        """Normalized device coordinates of a world point in front of the camera."""
        forward, right, true_up = self.basis()
        rel = np.asarray(point, dtype=float) - np.asarray(self.position, dtype=float)
        depth = float(rel @ forward)
        if depth <= 0:
            raise PreconditionError("point is behind the camera")
        tan_half = math.tan(math.radians(self.fov_deg) / 2.0)
        x = float(rel @ right) / (depth * tan_half * self.aspect)
        y = float(rel @ true_up) / (depth * tan_half)
        return x, y
