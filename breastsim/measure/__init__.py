# SPDX-License-Identifier: Apache-2.0
"""Measurement and volume calculation."""

from .calibration import ScaleCalibration  # noqa: F401
from .measurements import (  # noqa: F401
    asymmetry_ratio,
    automatic_measurements,
    contour_circumference,
    contour_diameter,
    contour_height,
    cup_from_projection,
    cup_from_volume,
    distance,
    format_measurement,
    manual_measurements,
    projection,
    size_category,
    symmetry_ratio,
)
from .volume import (  # noqa: F401
    ellipsoid_volume,
    estimate_volumes,
    integrate_volumes,
    mesh_volume,
    region_volume,
    volume_calculation,
)
