# SPDX-License-Identifier: Apache-2.0
"""Annotation and anatomy value objects shared by capture, analysis and measurement."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence

import numpy as np

from breastsim.errors import IncompleteContourError


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def other(self) -> "Side":
        return Side.RIGHT if self is Side.LEFT else Side.LEFT


def _readonly(values, shape=None) -> np.ndarray:
    array = np.array(values, dtype=float)
    if shape is not None:
        array = array.reshape(shape)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class Contour:
    """Closed polygon drawn on the surface; the last point joins the first."""

    side: Side
    points: np.ndarray
    centroid: np.ndarray
    radius: float

    @classmethod
    def from_points(cls, side, points: Sequence[Sequence[float]], min_points: int = 3) -> "Contour":
        pts = _readonly(points, (-1, 3)) if len(points) else np.zeros((0, 3))
        if len(pts) < min_points:
            raise IncompleteContourError(len(pts), min_points)
        centroid = _readonly(pts.mean(axis=0))
        radius = float(np.linalg.norm(pts - centroid, axis=1).max())
        return cls(side=Side(side), points=pts, centroid=centroid, radius=radius)

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class Landmark:
    side: Side
    position: np.ndarray
    source: str = "manual"

    @classmethod
    def at(cls, side, position: Sequence[float], source: str = "manual") -> "Landmark":
        return cls(side=Side(side), position=_readonly(position, (3,)), source=source)


@dataclass(frozen=True)
class Region:
    """High-curvature vertices clustered on one side of the midline."""

    side: Side
    vertex_indices: np.ndarray
    bbox_min: np.ndarray
    bbox_max: np.ndarray
    centroid: np.ndarray

    @classmethod
    def from_vertices(cls, side, indices: np.ndarray, positions: np.ndarray) -> "Region":
        pts = positions[indices]
        return cls(
            side=Side(side),
            vertex_indices=np.asarray(indices, dtype=np.int64),
            bbox_min=_readonly(pts.min(axis=0)),
            bbox_max=_readonly(pts.max(axis=0)),
            centroid=_readonly(pts.mean(axis=0)),
        )

    @property
    def size(self) -> int:
        return len(self.vertex_indices)


@dataclass(frozen=True)
class SideAnatomy:
    """Automatic landmark set for one side."""

    side: Side
    nipple: np.ndarray
    fold: np.ndarray
    apex: np.ndarray
    boundary: np.ndarray


@dataclass
class AnatomySet:
    sides: Dict[Side, SideAnatomy] = field(default_factory=dict)
    mid_chest: Optional[np.ndarray] = None
    strategy: str = "curvature"

    def get(self, side) -> Optional[SideAnatomy]:
        return self.sides.get(Side(side))

    @property
    def complete(self) -> bool:
        return all(side in self.sides for side in Side) and self.mid_chest is not None
