# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from breastsim.config import get_config
from breastsim.errors import PreconditionError

EPS = 1e-12


def build_kdtree(points: np.ndarray) -> cKDTree:
    """Build a KD-tree from a set of points."""
    return cKDTree(np.asarray(points, dtype=float))


def normalize(vectors: np.ndarray) -> np.ndarray:
    """Normalize vectors along the last axis; zero-length vectors stay zero."""
    vectors = np.asarray(vectors, dtype=float)
    norms = np.linalg.norm(vectors, axis=-1, keepdims=True)
    safe = np.where(norms > EPS, norms, 1.0)
    return np.where(norms > EPS, vectors / safe, 0.0)


def max_pairwise_distance(points: np.ndarray) -> float:
    points = np.asarray(points, dtype=float)
    if len(points) < 2:
        return 0.0
    diff = points[:, None, :] - points[None, :, :]
    return float(np.sqrt((diff**2).sum(axis=-1)).max())


def closed_polyline_length(points: np.ndarray) -> float:
    points = np.asarray(points, dtype=float)
    if len(points) < 2:
        return 0.0
    segments = np.roll(points, -1, axis=0) - points
    return float(np.linalg.norm(segments, axis=1).sum())


@dataclass(frozen=True)
class Frame:
    """Orthonormal anatomical frame: ``up``, ``forward`` and ``lateral``.

    ``lateral`` is ``up x forward``. Vertices on the negative ``lateral``
    side of the midline are tagged ``left``, which is screen-left for a
    camera looking down ``-forward``.
    """

    up: np.ndarray
    forward: np.ndarray
    lateral: np.ndarray

    @classmethod
    def from_axes(cls, up: Sequence[float], forward: Sequence[float]) -> "Frame":
        up_v = normalize(np.asarray(up, dtype=float))
        fwd = np.asarray(forward, dtype=float)
        # make forward orthogonal to up
        fwd = normalize(fwd - up_v * float(fwd @ up_v))
        lateral = normalize(np.cross(up_v, fwd))
        if not np.any(lateral):
            raise PreconditionError("frame axes 'up' and 'forward' must not be parallel")
        return cls(up=up_v, forward=fwd, lateral=lateral)

    @classmethod
    def default(cls, config: Optional[object] = None) -> "Frame":
        if config is None:
            config = get_config().frame
        return cls.from_axes(config.up, config.forward)

    def to_local(self, points: np.ndarray) -> np.ndarray:
        """Express points as ``(lateral, up, forward)`` coordinates."""
        basis = np.stack([self.lateral, self.up, self.forward])
        return np.asarray(points, dtype=float) @ basis.T
