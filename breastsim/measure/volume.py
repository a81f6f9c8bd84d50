# SPDX-License-Identifier: Apache-2.0
"""Per-side volume estimates: closed-form ellipsoid and mesh integration."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from breastsim.analysis.extraction import ExtractedRegion, close_patch
from breastsim.logging_utils import get_logger
from breastsim.measure.calibration import ScaleCalibration
from breastsim.measure.measurements import asymmetry_ratio
from breastsim.mesh.surface import Mesh
from breastsim.schemas import MeasurementSet, VolumeCalculation

LOGGER = get_logger(__name__)


def ellipsoid_volume(diameter: float, projection: float) -> float:
    """``4/3 * pi * r^2 * projection`` with ``r = diameter / 2``."""
    radius = diameter / 2.0
    return 4.0 / 3.0 * math.pi * radius * radius * projection


def mesh_volume(mesh: Mesh) -> float:
    """Enclosed volume by the divergence theorem, in mesh units cubed.

    Each triangle contributes ``centroid . (e1 x e2)``; the sum over a closed,
    consistently oriented surface is six times the volume.
    """
    if mesh.face_count == 0:
        return 0.0
    tris = mesh.triangles
    centroids = tris.mean(axis=1)
    cross = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    return float(abs(np.einsum("ij,ij->i", centroids, cross).sum()) / 6.0)


def volume_calculation(left: float, right: float, method: str = "ellipsoid") -> VolumeCalculation:
    return VolumeCalculation(
        left_volume=left,
        right_volume=right,
        total_volume=left + right,
        asymmetry=asymmetry_ratio(left, right),
        method=method,
    )


def estimate_volumes(measurements: MeasurementSet) -> VolumeCalculation:
    """Ellipsoid volumes from a measurement set already expressed in centimetres."""
    left = ellipsoid_volume(measurements.left_width, measurements.left_projection)
    right = ellipsoid_volume(measurements.right_width, measurements.right_projection)
    return volume_calculation(left, right, "ellipsoid")


def region_volume(region: ExtractedRegion, calibration: Optional[ScaleCalibration] = None) -> float:
    """Volume of a region patch in cubic centimetres after closing its boundary."""
    calibration = calibration or ScaleCalibration.default()
    return calibration.volume(mesh_volume(close_patch(region.mesh)))


def integrate_volumes(
    left: ExtractedRegion,
    right: ExtractedRegion,
    calibration: Optional[ScaleCalibration] = None,
) -> VolumeCalculation:
    calibration = calibration or ScaleCalibration.default()
    result = volume_calculation(
        region_volume(left, calibration), region_volume(right, calibration), "mesh"
    )
    LOGGER.info("volumes_integrated", left=result.left_volume, right=result.right_volume)
    return result
