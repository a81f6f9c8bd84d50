# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from breastsim.anatomy.models import Contour, Landmark, Side


class _JsonModel(BaseModel):
    def to_json(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def from_json(cls, path: Path):
        return cls.model_validate_json(Path(path).read_text())


class MeasurementSet(_JsonModel):
    """Scalar measurements in ``unit`` (centimetres unless the scale says otherwise)."""

    nipple_distance: float
    left_width: float
    right_width: float
    left_height: float
    right_height: float
    left_circumference: float
    right_circumference: float
    left_projection: float
    right_projection: float
    inframammary_width: float
    chest_wall_width: float
    symmetry_ratio: float
    cup_size: str
    unit: str = "cm"
    source: str = "manual"

    def width(self, side: Side) -> float:
        return self.left_width if Side(side) is Side.LEFT else self.right_width

    def projection(self, side: Side) -> float:
        return self.left_projection if Side(side) is Side.LEFT else self.right_projection


class VolumeCalculation(_JsonModel):
    left_volume: float
    right_volume: float
    total_volume: float
    asymmetry: float
    method: str = "ellipsoid"
    unit: str = "cm3"


class AugmentationResult(_JsonModel):
    side: Side
    original_volume: float
    augmented_volume: float
    volume_increase: float
    new_cup_size: str
    projection_increase: float


class ContourRecord(BaseModel):
    side: Side
    points: List[List[float]]


class LandmarkRecord(BaseModel):
    side: Side
    position: List[float]
    source: str = "manual"


class AnnotationDocument(_JsonModel):
    """Serialized contours and landmarks, one of each per side at most."""

    contours: List[ContourRecord] = []
    landmarks: List[LandmarkRecord] = []
    reference_distance_cm: Optional[float] = None

    @classmethod
    def from_annotations(cls, contours, landmarks, reference_distance_cm=None) -> "AnnotationDocument":
        return cls(
            contours=[
                ContourRecord(side=c.side, points=c.points.tolist()) for c in contours
            ],
            landmarks=[
                LandmarkRecord(side=lm.side, position=lm.position.tolist(), source=lm.source)
                for lm in landmarks
            ],
            reference_distance_cm=reference_distance_cm,
        )

    def build_contours(self) -> List[Contour]:
        return [Contour.from_points(c.side, c.points) for c in self.contours]

    def build_landmarks(self) -> List[Landmark]:
        return [Landmark.at(lm.side, lm.position, lm.source) for lm in self.landmarks]
