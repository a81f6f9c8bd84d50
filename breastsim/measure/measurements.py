# SPDX-License-Identifier: Apache-2.0
"""Distances, perimeters, projections and size categories.

Every function here is pure: identical inputs give bit-identical outputs.
Geometric helpers work in mesh units; the ``*_measurements`` builders apply a
:class:`ScaleCalibration` and return centimetres.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from breastsim.anatomy.models import AnatomySet, Contour, Landmark, Side
from breastsim.config import MeasurementConfig, get_config
from breastsim.logging_utils import get_logger
from breastsim.measure.calibration import ScaleCalibration
from breastsim.schemas import MeasurementSet
from breastsim.utils.geometry import Frame, closed_polyline_length, max_pairwise_distance

LOGGER = get_logger(__name__)


def _point(value) -> np.ndarray:
    if isinstance(value, Landmark):
        value = value.position
    return np.asarray(value, dtype=float)


def distance(a, b) -> float:
    """Euclidean distance between two points or landmarks."""
    return float(np.linalg.norm(_point(a) - _point(b)))


def contour_diameter(contour: Contour) -> float:
    return max_pairwise_distance(contour.points)


def contour_circumference(contour: Contour) -> float:
    return closed_polyline_length(contour.points)


def contour_height(contour: Contour, frame: Optional[Frame] = None) -> float:
    """Vertical extent of the contour along the frame's up axis."""
    frame = frame or Frame.default()
    heights = contour.points @ frame.up
    return float(heights.max() - heights.min())


def projection(landmark: Landmark, contour: Contour) -> float:
    return distance(landmark, contour.centroid)


def symmetry_ratio(left: float, right: float) -> float:
    """``min / max * 100``; 0 when either value is 0."""
    if left <= 0 or right <= 0:
        return 0.0
    return min(left, right) / max(left, right) * 100.0


def asymmetry_ratio(left: float, right: float) -> float:
    """``|left - right| / max * 100``; 0 when both are 0."""
    largest = max(left, right)
    if largest <= 0:
        return 0.0
    return abs(left - right) / largest * 100.0


def size_category(value: float, thresholds: Sequence[Tuple[str, float]], overflow: str) -> str:
    """First label whose upper bound exceeds ``value``."""
    for label, upper in thresholds:
        if value < upper:
            return label
    return overflow


def cup_from_projection(projection_cm: float, config: Optional[MeasurementConfig] = None) -> str:
    config = config or get_config().measurement
    return size_category(projection_cm, config.cup_by_projection_cm, config.cup_by_projection_overflow)


def cup_from_volume(volume_cc: float, config: Optional[MeasurementConfig] = None) -> str:
    config = config or get_config().measurement
    return size_category(volume_cc, config.cup_by_volume_cc, config.cup_by_volume_overflow)


def _lowest_point(points: np.ndarray, frame: Frame) -> np.ndarray:
    return points[int(np.argmin(points @ frame.up))]


def manual_measurements(
    contours,
    landmarks,
    calibration: Optional[ScaleCalibration] = None,
    config: Optional[MeasurementConfig] = None,
    frame: Optional[Frame] = None,
) -> Optional[MeasurementSet]:
    """Measurement set from user-drawn contours and landmarks.

    ``contours`` and ``landmarks`` map :class:`Side` to the committed items.
    Returns ``None`` until both sides have a contour and a landmark.
    """
    config = config or get_config().measurement
    calibration = calibration or ScaleCalibration.default(config)
    frame = frame or Frame.default()
    if any(contours.get(s) is None or landmarks.get(s) is None for s in Side):
        return None

    left_c, right_c = contours[Side.LEFT], contours[Side.RIGHT]
    left_l, right_l = landmarks[Side.LEFT], landmarks[Side.RIGHT]
    cm = calibration.linear

    nipple_distance = distance(left_l, right_l)
    left_width, right_width = contour_diameter(left_c), contour_diameter(right_c)
    left_proj, right_proj = projection(left_l, left_c), projection(right_l, right_c)
    fold_width = distance(_lowest_point(left_c.points, frame), _lowest_point(right_c.points, frame))
    average_projection = cm((left_proj + right_proj) / 2.0)

    return MeasurementSet(
        nipple_distance=cm(nipple_distance),
        left_width=cm(left_width),
        right_width=cm(right_width),
        left_height=cm(contour_height(left_c, frame)),
        right_height=cm(contour_height(right_c, frame)),
        left_circumference=cm(contour_circumference(left_c)),
        right_circumference=cm(contour_circumference(right_c)),
        left_projection=cm(left_proj),
        right_projection=cm(right_proj),
        inframammary_width=cm(fold_width),
        chest_wall_width=cm(nipple_distance * config.chest_wall_factor),
        symmetry_ratio=symmetry_ratio(left_width, right_width),
        cup_size=cup_from_projection(average_projection, config),
        source="manual",
    )


def automatic_measurements(
    anatomy: AnatomySet,
    calibration: Optional[ScaleCalibration] = None,
    config: Optional[MeasurementConfig] = None,
    frame: Optional[Frame] = None,
) -> Optional[MeasurementSet]:
    """Measurement set from an automatic landmark set; ``None`` if a side is missing."""
    config = config or get_config().measurement
    calibration = calibration or ScaleCalibration.default(config)
    frame = frame or Frame.default()
    if not anatomy.complete:
        LOGGER.warning("automatic_measurements_partial", sides=[s.value for s in anatomy.sides])
        return None

    left, right = anatomy.sides[Side.LEFT], anatomy.sides[Side.RIGHT]
    cm = calibration.linear
    chest_depth = float(anatomy.mid_chest @ frame.forward)

    def side_values(side):
        return (
            max_pairwise_distance(side.boundary),
            abs(float((side.nipple - side.fold) @ frame.up)),
            closed_polyline_length(side.boundary),
            abs(float(side.apex @ frame.forward) - chest_depth),
        )

    lw, lh, lc, lp = side_values(left)
    rw, rh, rc, rp = side_values(right)
    nipple_distance = distance(left.nipple, right.nipple)

    return MeasurementSet(
        nipple_distance=cm(nipple_distance),
        left_width=cm(lw),
        right_width=cm(rw),
        left_height=cm(lh),
        right_height=cm(rh),
        left_circumference=cm(lc),
        right_circumference=cm(rc),
        left_projection=cm(lp),
        right_projection=cm(rp),
        inframammary_width=cm(distance(left.fold, right.fold)),
        chest_wall_width=cm(nipple_distance * config.chest_wall_factor),
        symmetry_ratio=symmetry_ratio(lw, rw),
        cup_size=cup_from_projection(cm((lp + rp) / 2.0), config),
        source=f"automatic:{anatomy.strategy}",
    )


def format_measurement(value: float, unit: str = "cm", digits: int = 1) -> str:
    if unit in ("cm3", "cc"):
        return f"{value:.0f} {unit}"
    if unit == "%":
        return f"{value:.{digits}f}%"
    return f"{value:.{digits}f} {unit}"
