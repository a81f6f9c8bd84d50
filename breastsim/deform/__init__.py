# SPDX-License-Identifier: Apache-2.0
"""Parametric augmentation: mesh deformation and closed-form outcomes."""

from .engine import (  # noqa: F401
    DeformationTarget,
    deform,
    deform_bilateral,
    displacement_field,
    falloff,
)
from .parameters import (  # noqa: F401
    NEUTRAL,
    PRESETS,
    AugmentationParameters,
    ImplantProfile,
    ImplantShape,
    preset,
    synchronized,
)
from .simulation import simulate_augmentation, simulate_bilateral  # noqa: F401
