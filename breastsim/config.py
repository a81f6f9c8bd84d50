# SPDX-License-Identifier: Apache-2.0
"""Configuration for the measurement and simulation core.

Every numeric heuristic used by the analyzer, the measurement calculator and
the deformation engine lives here as a named tunable. None of the defaults is
anatomically validated; override them from ``config.yaml`` or the
environment.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel


class FrameConfig(BaseModel):
    """Anatomical axes of the loaded mesh in model space."""

    up: List[float] = [0.0, 1.0, 0.0]
    forward: List[float] = [0.0, 0.0, 1.0]


class CaptureConfig(BaseModel):
    min_point_spacing: float = 0.002
    min_contour_points: int = 3
    marker_radius: float = 0.005
    handle_radius: float = 0.003
    landmark_drag_reposition: bool = False


class AnalyzerConfig(BaseModel):
    strategy: str = "curvature"

    # curvature pass
    sample_neighbors: int = 10
    radius_factor: float = 2.0
    max_neighbors: int = 32
    forward_weight: float = 0.5
    chunk_size: int = 100
    yield_every: int = 500

    # region of interest, fractions of the bounding box size
    region_vertical_fraction: float = 0.6
    region_lateral_fraction: float = 0.6
    region_depth_fraction: float = -0.4
    region_min_forward_normal: float = -0.3
    region_max_distance_factor: float = 1.2

    # adaptive threshold
    percentiles: List[float] = [90.0, 80.0, 70.0]
    min_candidates: int = 20
    max_candidate_fraction: float = 0.4
    fallback_fraction: float = 0.3

    # clustering
    refine_min_vertices: int = 50
    outlier_median_factor: float = 2.5
    min_region_vertices: int = 5

    # landmark scoring
    curvature_weight: float = 0.6
    centrality_weight: float = 0.4

    # anatomy derivation
    chest_wall_percentile: float = 10.0

    # proportional strategy, offsets as fractions of the bounding box size
    nipple_offset: Tuple[float, float, float] = (0.12, -0.05, 0.35)
    fold_offset: Tuple[float, float, float] = (0.15, -0.25, 0.25)
    apex_offset: Tuple[float, float, float] = (0.10, -0.02, 0.40)
    chest_depth_offset: float = -0.2
    boundary_lateral_fraction: float = 0.15
    boundary_radius_fraction: float = 0.12
    boundary_aspect: float = 0.8
    boundary_segments: int = 16

    # plausibility check on loaded torsos
    min_vertices: int = 100
    max_aspect_ratio: float = 4.0


class MeasurementConfig(BaseModel):
    unit_scale: float = 100.0
    reference_range_cm: Tuple[float, float] = (5.0, 50.0)
    chest_wall_factor: float = 1.5
    cup_by_projection_cm: List[Tuple[str, float]] = [
        ("A", 2.0),
        ("B", 3.5),
        ("C", 5.0),
        ("D", 6.5),
        ("DD", 8.0),
        ("E", 9.5),
    ]
    cup_by_projection_overflow: str = "F"
    cup_by_volume_cc: List[Tuple[str, float]] = [
        ("A", 150.0),
        ("B", 250.0),
        ("C", 350.0),
        ("D", 450.0),
        ("DD", 550.0),
        ("E", 650.0),
        ("F", 750.0),
        ("G", 850.0),
    ]
    cup_by_volume_overflow: str = "H+"


class ExtractionConfig(BaseModel):
    capture_factor: float = 1.5
    landmark_capture_radius: float = 0.02


class DeformationConfig(BaseModel):
    influence_factor: float = 1.5
    min_amplitude_fraction: float = 0.25
    offset_gain: float = 0.5
    radial_gain: dict = {"round": 0.3, "teardrop": 0.25, "gummy": 0.2}
    teardrop_upper_reduction: float = 0.5
    gummy_taper: float = 0.2
    profile_multipliers: dict = {
        "low": 0.8,
        "moderate": 1.0,
        "high": 1.3,
        "ultra-high": 1.6,
    }


class Config(BaseModel):
    frame: FrameConfig = FrameConfig()
    capture: CaptureConfig = CaptureConfig()
    analyzer: AnalyzerConfig = AnalyzerConfig()
    measurement: MeasurementConfig = MeasurementConfig()
    extraction: ExtractionConfig = ExtractionConfig()
    deformation: DeformationConfig = DeformationConfig()


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    env_path = os.getenv("BREASTSIM_CONFIG")
    path = Path(path) if path else (Path(env_path) if env_path else Path(__file__).with_name("config.yaml"))
    if path.exists():
        data = yaml.safe_load(path.read_text()) or {}
        cfg = Config(**data)
    else:
        cfg = Config()

    # environment overrides
    scale = os.getenv("BREASTSIM_UNIT_SCALE")
    if scale:
        cfg.measurement.unit_scale = float(scale)
    strategy = os.getenv("BREASTSIM_STRATEGY")
    if strategy:
        cfg.analyzer.strategy = strategy
    return cfg


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Return the process-wide configuration, loaded once."""
    return load_config()
