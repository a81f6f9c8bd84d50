# SPDX-License-Identifier: Apache-2.0
"""Closed-form augmentation outcome from a measurement set."""

from __future__ import annotations

from typing import Dict, Optional

from breastsim.anatomy.models import Side
from breastsim.config import Config, get_config
from breastsim.deform.parameters import AugmentationParameters
from breastsim.measure.measurements import cup_from_volume
from breastsim.measure.volume import ellipsoid_volume
from breastsim.schemas import AugmentationResult, MeasurementSet


def simulate_augmentation(
    measurements: MeasurementSet,
    params: AugmentationParameters,
    side,
    config: Optional[Config] = None,
) -> AugmentationResult:
    """Ellipsoid volume before and after scaling width and projection.

    The augmented radius is ``r * size``; the augmented projection is
    ``p * projection * profile``; the pole fullness average scales the
    result. The augmented volume never decreases as ``size`` grows.
    """
    config = config or get_config()
    side = Side(side)
    diameter = measurements.width(side)
    base_projection = measurements.projection(side)
    profile = config.deformation.profile_multipliers[params.implant_profile.value]

    original = ellipsoid_volume(diameter, base_projection)
    new_projection = base_projection * params.projection_multiplier * profile
    fullness = (params.upper_pole_fullness + params.lower_pole_fullness) / 2.0
    augmented = ellipsoid_volume(diameter * params.size_multiplier, new_projection) * fullness

    return AugmentationResult(
        side=side,
        original_volume=original,
        augmented_volume=augmented,
        volume_increase=augmented - original,
        new_cup_size=cup_from_volume(augmented, config.measurement),
        projection_increase=new_projection - base_projection,
    )


def simulate_bilateral(
    measurements: MeasurementSet,
    params: Dict[Side, AugmentationParameters],
    config: Optional[Config] = None,
) -> Dict[Side, AugmentationResult]:
    return {
        Side(side): simulate_augmentation(measurements, side_params, side, config)
        for side, side_params in params.items()
    }
