# SPDX-License-Identifier: Apache-2.0
"""Full automatic landmark sets: nipple, fold, apex, boundary and mid-chest.

Two strategies produce an :class:`AnatomySet`:

``curvature``
    derived from the detected regions (:func:`derive_anatomy`);
``proportional``
    placed at fixed fractions of the mesh bounding box
    (:func:`proportional_anatomy`), useful as a fallback for smooth scans.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.spatial import ConvexHull

from breastsim.analysis.detection import DetectionResult, detect_regions
from breastsim.anatomy.models import AnatomySet, Side, SideAnatomy
from breastsim.config import AnalyzerConfig, get_config
from breastsim.errors import PreconditionError
from breastsim.logging_utils import get_logger
from breastsim.mesh.surface import Mesh
from breastsim.utils.geometry import Frame

LOGGER = get_logger(__name__)

_SIGN = {Side.LEFT: -1.0, Side.RIGHT: 1.0}


def _to_world(frame: Frame, local: np.ndarray) -> np.ndarray:
    basis = np.stack([frame.lateral, frame.up, frame.forward])
    return np.asarray(local, dtype=float) @ basis


def ordered_boundary(points: np.ndarray, frame: Frame) -> np.ndarray:
    """Outline of a vertex cluster seen from the front, as an ordered polygon."""
    local = frame.to_local(points)[:, :2]
    centered = local - local.mean(axis=0)
    if len(points) >= 3 and np.linalg.matrix_rank(centered, tol=1e-12) == 2:
        return points[ConvexHull(local).vertices]
    angles = np.arctan2(centered[:, 1], centered[:, 0])
    return points[np.argsort(angles)]


def derive_anatomy(mesh: Mesh, detection: DetectionResult, config: Optional[AnalyzerConfig] = None) -> AnatomySet:
    config = config or get_config().analyzer
    frame = detection.frame
    positions = mesh.vertices
    anatomy = AnatomySet(strategy="curvature")

    for side, region in detection.regions.items():
        landmark = detection.landmark(side)
        if landmark is None:
            continue
        pts = positions[region.vertex_indices]
        local = frame.to_local(pts)
        anatomy.sides[side] = SideAnatomy(
            side=side,
            nipple=landmark.position,
            fold=pts[int(np.argmin(local[:, 1]))],
            apex=pts[int(np.argmax(local[:, 2]))],
            boundary=ordered_boundary(pts, frame),
        )

    if anatomy.sides:
        roi = frame.to_local(positions[detection.features.in_region])
        chest_depth = float(np.percentile(roi[:, 2], config.chest_wall_percentile))
        height = float(
            np.mean([frame.to_local(s.nipple)[1] for s in anatomy.sides.values()])
        )
        anatomy.mid_chest = _to_world(frame, [detection.midline, height, chest_depth])
    return anatomy


def proportional_anatomy(mesh: Mesh, config: Optional[AnalyzerConfig] = None, frame: Optional[Frame] = None) -> AnatomySet:
    """Landmarks at fixed fractions of the bounding box; needs no curvature pass."""
    config = config or get_config().analyzer
    frame = frame or Frame.default()
    mesh.require_normals()
    local = frame.to_local(mesh.vertices)
    lower, upper = local.min(axis=0), local.max(axis=0)
    center = (lower + upper) / 2.0
    size = upper - lower

    def place(offset, sign):
        return _to_world(frame, center + np.array([sign * offset[0], offset[1], offset[2]]) * size)

    anatomy = AnatomySet(strategy="proportional")
    segments = config.boundary_segments
    angles = np.linspace(0.0, 2.0 * np.pi, segments, endpoint=False)
    radius = config.boundary_radius_fraction * size[0]
    for side, sign in _SIGN.items():
        ring = np.stack(
            [
                center[0] + sign * config.boundary_lateral_fraction * size[0] + np.cos(angles) * radius,
                center[1] + config.nipple_offset[1] * size[1] + np.sin(angles) * radius * config.boundary_aspect,
                np.full(segments, center[2] + config.nipple_offset[2] * size[2]),
            ],
            axis=-1,
        )
        anatomy.sides[side] = SideAnatomy(
            side=side,
            nipple=place(config.nipple_offset, sign),
            fold=place(config.fold_offset, sign),
            apex=place(config.apex_offset, sign),
            boundary=_to_world(frame, ring),
        )
    anatomy.mid_chest = _to_world(
        frame, center + np.array([0.0, 0.0, config.chest_depth_offset * size[2]])
    )
    return anatomy


def analyze_anatomy(mesh: Mesh, config: Optional[AnalyzerConfig] = None, frame: Optional[Frame] = None):
    """Run the configured strategy; returns ``(anatomy, detection_or_None)``."""
    config = config or get_config().analyzer
    if config.strategy == "proportional":
        return proportional_anatomy(mesh, config, frame), None
    if config.strategy != "curvature":
        raise PreconditionError(f"unknown landmark strategy: {config.strategy!r}")
    detection = detect_regions(mesh, config, frame)
    anatomy = derive_anatomy(mesh, detection, config)
    LOGGER.info("anatomy_derived", sides=[s.value for s in anatomy.sides])
    return anatomy, detection
