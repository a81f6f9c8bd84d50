# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from breastsim.config import MeasurementConfig, get_config
from breastsim.errors import PreconditionError
from breastsim.logging_utils import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ScaleCalibration:
    """Linear unit scale: centimetres per mesh unit.

    Linear measurements are multiplied by ``cm_per_unit`` and volumes by its
    cube, so a single factor keeps every output consistent.
    """

    cm_per_unit: float = 100.0

    def __post_init__(self) -> None:
        if not self.cm_per_unit > 0:
            raise PreconditionError(f"scale factor must be positive, got {self.cm_per_unit}")

    @classmethod
    def default(cls, config: Optional[MeasurementConfig] = None) -> "ScaleCalibration":
        config = config or get_config().measurement
        return cls(config.unit_scale)

    @classmethod
    def from_reference(
        cls,
        reference_cm: float,
        measured_units: float,
        config: Optional[MeasurementConfig] = None,
    ) -> "ScaleCalibration":
        """Calibrate from a known real distance and the same distance on the mesh."""
        config = config or get_config().measurement
        if not reference_cm > 0:
            raise PreconditionError(f"reference distance must be positive, got {reference_cm}")
        if not measured_units > 0:
            raise PreconditionError(
                f"measured mesh distance must be positive, got {measured_units}"
            )
        low, high = config.reference_range_cm
        if not low <= reference_cm <= high:
            LOGGER.warning(
                "reference_out_of_range", reference_cm=reference_cm, low=low, high=high
            )
        scale = cls(reference_cm / measured_units)
        LOGGER.info("scale_calibrated", cm_per_unit=scale.cm_per_unit)
        return scale

    def linear(self, value: float) -> float:
        return value * self.cm_per_unit

    def volume(self, value: float) -> float:
        return value * self.cm_per_unit**3
