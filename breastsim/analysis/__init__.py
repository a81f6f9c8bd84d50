# SPDX-License-Identifier: Apache-2.0
"""Automatic curvature analysis, region detection and region extraction."""

from .anatomy import analyze_anatomy, derive_anatomy, proportional_anatomy  # noqa: F401
from .curvature import (  # noqa: F401
    CurvatureEstimator,
    CurvatureProgress,
    compute_curvature,
    compute_curvature_async,
)
from .detection import (  # noqa: F401
    DetectionResult,
    VertexFeatures,
    detect_regions,
    detect_regions_async,
    is_plausible_torso,
    region_colors,
)
from .extraction import (  # noqa: F401
    ExtractedRegion,
    close_patch,
    extract_detected_region,
    extract_region,
    extract_region_by_indices,
)
