# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from breastsim.anatomy.models import Side


class ImplantShape(str, Enum):
    ROUND = "round"
    TEARDROP = "teardrop"
    GUMMY = "gummy"


class ImplantProfile(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    ULTRA_HIGH = "ultra-high"


class AugmentationParameters(BaseModel):
    """Shape controls for one side. The defaults leave the mesh untouched.

    ``height_offset`` moves the region up (positive) or down; ``medial_offset``
    moves it towards (positive) or away from the midline. Both are measured
    relative to the side, so the same value means the same thing left and right.
    """

    model_config = ConfigDict(frozen=True)

    size_multiplier: float = Field(1.0, ge=0.5, le=3.0)
    projection_multiplier: float = Field(1.0, ge=0.5, le=2.5)
    upper_pole_fullness: float = Field(1.0, ge=0.5, le=1.5)
    lower_pole_fullness: float = Field(1.0, ge=0.5, le=1.5)
    height_offset: float = Field(0.0, ge=-0.2, le=0.2)
    medial_offset: float = Field(0.0, ge=-0.2, le=0.2)
    implant_shape: ImplantShape = ImplantShape.ROUND
    implant_profile: ImplantProfile = ImplantProfile.MODERATE

    def updated(self, **changes) -> "AugmentationParameters":
        """Validated copy with some fields replaced."""
        return type(self)(**{**self.model_dump(), **changes})


NEUTRAL = AugmentationParameters()

PRESETS: Dict[str, AugmentationParameters] = {
    "natural": AugmentationParameters(
        size_multiplier=1.2,
        projection_multiplier=1.1,
        upper_pole_fullness=0.9,
        lower_pole_fullness=1.1,
        implant_profile=ImplantProfile.LOW,
    ),
    "moderate": AugmentationParameters(
        size_multiplier=1.5,
        projection_multiplier=1.3,
        upper_pole_fullness=1.0,
        lower_pole_fullness=1.2,
        implant_profile=ImplantProfile.MODERATE,
    ),
    "dramatic": AugmentationParameters(
        size_multiplier=2.0,
        projection_multiplier=1.8,
        upper_pole_fullness=1.3,
        lower_pole_fullness=1.4,
        implant_profile=ImplantProfile.HIGH,
    ),
}


def preset(name: str, base: AugmentationParameters = NEUTRAL) -> AugmentationParameters:
    """Apply a named preset on top of ``base``; shape and offsets are kept."""
    try:
        chosen = PRESETS[name]
    except KeyError:
        raise ValueError(f"unknown preset {name!r}; choose from {sorted(PRESETS)}") from None
    return base.updated(
        size_multiplier=chosen.size_multiplier,
        projection_multiplier=chosen.projection_multiplier,
        upper_pole_fullness=chosen.upper_pole_fullness,
        lower_pole_fullness=chosen.lower_pole_fullness,
        implant_profile=chosen.implant_profile,
    )


def synchronized(source: AugmentationParameters, side=Side.LEFT) -> Dict[Side, AugmentationParameters]:
    """Copy one side's controls to both sides.

    Offsets are side-relative, so the mirrored side moves symmetrically
    about the midline without a sign change.
    """
    source_side = Side(side)
    return {source_side: source, source_side.other: source.updated()}
