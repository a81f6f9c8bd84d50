# SPDX-License-Identifier: Apache-2.0
"""Curvature-based region segmentation and automatic landmark selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from breastsim.analysis.curvature import CurvatureEstimator
from breastsim.anatomy.models import Landmark, Region, Side
from breastsim.config import AnalyzerConfig, get_config
from breastsim.logging_utils import get_logger
from breastsim.mesh.surface import Mesh
from breastsim.utils.geometry import Frame

LOGGER = get_logger(__name__)

NO_SIDE = -1
SIDE_CODES = {Side.LEFT: 0, Side.RIGHT: 1}


@dataclass
class VertexFeatures:
    """Per-vertex analysis output, rebuilt from scratch on every run."""

    positions: np.ndarray
    normals: np.ndarray
    curvature: np.ndarray
    in_region: np.ndarray
    is_candidate: np.ndarray
    side: np.ndarray

    def side_of(self, index: int) -> Optional[Side]:
        code = int(self.side[index])
        for side, value in SIDE_CODES.items():
            if value == code:
                return side
        return None

    def candidates(self, side: Side) -> np.ndarray:
        return np.flatnonzero(self.is_candidate & (self.side == SIDE_CODES[side]))


@dataclass
class DetectionResult:
    features: VertexFeatures
    threshold: float
    midline: float
    bounds: Tuple[np.ndarray, np.ndarray]
    frame: Frame
    regions: Dict[Side, Region] = field(default_factory=dict)
    landmarks: Dict[Side, Optional[Landmark]] = field(default_factory=dict)

    def region(self, side) -> Optional[Region]:
        return self.regions.get(Side(side))

    def landmark(self, side) -> Optional[Landmark]:
        return self.landmarks.get(Side(side))

    @property
    def partial(self) -> bool:
        return any(self.landmarks.get(side) is None for side in Side)


def region_of_interest(
    mesh: Mesh, frame: Frame, config: AnalyzerConfig
) -> Tuple[np.ndarray, np.ndarray, float]:
    """Mask of vertices inside the heuristic upper-front sub-volume and their side codes."""
    local = frame.to_local(mesh.vertices)
    lower, upper = local.min(axis=0), local.max(axis=0)
    center = (lower + upper) / 2.0
    size = upper - lower
    rel = local - center

    facing = mesh.normals @ frame.forward
    mask = (
        (np.abs(rel[:, 1]) < config.region_vertical_fraction * size[1])
        & (np.abs(rel[:, 0]) < config.region_lateral_fraction * size[0])
        & (rel[:, 2] > config.region_depth_fraction * size[2])
        & (facing > config.region_min_forward_normal)
        & (np.linalg.norm(rel, axis=1) < config.region_max_distance_factor * size.max())
    )
    side = np.where(rel[:, 0] < 0.0, SIDE_CODES[Side.LEFT], SIDE_CODES[Side.RIGHT])
    return mask, side, float(center[0])


def adaptive_threshold(values: np.ndarray, config: AnalyzerConfig) -> float:
    """First percentile threshold whose candidate count falls in the accepted band.

    Falls back to a fixed fraction of the maximum when none qualifies.
    """
    values = np.asarray(values, dtype=float)
    positive = values > 0.0
    if not positive.any():
        return float("inf")
    upper_count = config.max_candidate_fraction * len(values)
    for percentile in config.percentiles:
        threshold = float(np.percentile(values, percentile))
        count = int(((values >= threshold) & positive).sum())
        if config.min_candidates <= count <= upper_count:
            LOGGER.debug("threshold_selected", percentile=percentile, count=count)
            return threshold
    threshold = config.fallback_fraction * float(values.max())
    LOGGER.debug("threshold_fallback", threshold=threshold)
    return threshold


def refine_cluster(indices: np.ndarray, positions: np.ndarray, config: AnalyzerConfig) -> Optional[np.ndarray]:
    """Drop outliers far from the cluster centroid; ``None`` if too few remain."""
    if len(indices) > config.refine_min_vertices:
        pts = positions[indices]
        dist = np.linalg.norm(pts - pts.mean(axis=0), axis=1)
        median = float(np.median(dist))
        if median > 0.0:
            indices = indices[dist <= config.outlier_median_factor * median]
    if len(indices) < config.min_region_vertices:
        return None
    return indices


def select_landmark(region: Region, positions: np.ndarray, curvature: np.ndarray, config: AnalyzerConfig) -> Landmark:
    idx = region.vertex_indices
    curv = curvature[idx]
    peak = curv.max()
    curv_score = curv / peak if peak > 0 else np.zeros_like(curv)
    dist = np.linalg.norm(positions[idx] - region.centroid, axis=1)
    maxd = dist.max()
    centrality = 1.0 - dist / maxd if maxd > 0 else np.ones_like(dist)
    score = config.curvature_weight * curv_score + config.centrality_weight * centrality
    best = idx[int(np.argmax(score))]
    return Landmark.at(region.side, positions[best], source="automatic")


def is_plausible_torso(mesh: Mesh, config: Optional[AnalyzerConfig] = None, frame: Optional[Frame] = None) -> bool:
    """Loose sanity check on vertex count and bounding-box proportions."""
    config = config or get_config().analyzer
    frame = frame or Frame.default()
    if mesh.vertex_count < config.min_vertices:
        return False
    local = frame.to_local(mesh.vertices)
    size = local.max(axis=0) - local.min(axis=0)
    width, height = size[0], size[1]
    if width <= 0 or height <= 0:
        return False
    return max(width / height, height / width) <= config.max_aspect_ratio


def _classify(mesh: Mesh, curvature: np.ndarray, frame: Frame, config: AnalyzerConfig) -> DetectionResult:
    positions = mesh.vertices
    in_region, side, midline = region_of_interest(mesh, frame, config)
    threshold = adaptive_threshold(curvature[in_region], config) if in_region.any() else float("inf")
    is_candidate = in_region & (curvature >= threshold) & (curvature > 0.0)

    features = VertexFeatures(
        positions=positions,
        normals=mesh.normals,
        curvature=curvature,
        in_region=in_region,
        is_candidate=is_candidate,
        side=np.where(in_region, side, NO_SIDE),
    )
    result = DetectionResult(
        features=features,
        threshold=threshold,
        midline=midline,
        bounds=mesh.bounds,
        frame=frame,
    )

    total = int(is_candidate.sum())
    for s in Side:
        result.landmarks[s] = None
    if total < config.min_candidates:
        LOGGER.warning("too_few_candidates", candidates=total, required=config.min_candidates)
        return result

    for s in Side:
        cluster = refine_cluster(features.candidates(s), positions, config)
        if cluster is None:
            LOGGER.warning("region_not_found", side=s.value)
            continue
        region = Region.from_vertices(s, cluster, positions)
        result.regions[s] = region
        result.landmarks[s] = select_landmark(region, positions, curvature, config)

    LOGGER.info(
        "regions_detected",
        candidates=total,
        threshold=threshold,
        sides=[s.value for s in result.regions],
    )
    return result


def detect_regions(mesh: Mesh, config: Optional[AnalyzerConfig] = None, frame: Optional[Frame] = None) -> DetectionResult:
    """Run the curvature pass and segment left/right regions.

    Raises
    ------
    MissingGeometryError
        If the mesh has no vertices or no per-vertex normals.
    """
    config = config or get_config().analyzer
    frame = frame or Frame.default()
    estimator = CurvatureEstimator(mesh, config, frame)
    if not is_plausible_torso(mesh, config, frame):
        LOGGER.warning("implausible_torso", vertices=mesh.vertex_count)
    return _classify(mesh, estimator.run(), frame, config)


async def detect_regions_async(mesh: Mesh, config: Optional[AnalyzerConfig] = None, frame: Optional[Frame] = None, progress=None) -> DetectionResult:
    config = config or get_config().analyzer
    frame = frame or Frame.default()
    estimator = CurvatureEstimator(mesh, config, frame)
    curvature = await estimator.run_async(progress)
    return _classify(mesh, curvature, frame, config)


REGION_COLORS = {
    Side.LEFT: (255, 105, 180, 255),
    Side.RIGHT: (65, 105, 225, 255),
}
BASE_COLOR = (200, 200, 200, 255)


def region_colors(detection: DetectionResult) -> np.ndarray:
    """Per-vertex RGBA colours highlighting the detected regions."""
    colors = np.tile(np.array(BASE_COLOR, dtype=np.uint8), (len(detection.features.positions), 1))
    for side, region in detection.regions.items():
        colors[region.vertex_indices] = REGION_COLORS[side]
    return colors
