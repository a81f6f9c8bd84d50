# SPDX-License-Identifier: Apache-2.0
"""Local vertex-field deformation around a landmark.

Each vertex within the influence radius ``R`` of the landmark is moved by

    sigma * A * sqrt(M^2 - (k * rho)^2 - 2 |k| rho |O| / A) * a(x) * forward
    + w(d) * (A * k * rho * radial + O)

with ``w(d) = (1 - d / R)^2`` (zero at and beyond ``R``), ``A`` the target's
forward amplitude, ``rho`` the in-plane distance over ``R`` and ``O`` the
height/medial offset. The forward change is
``F = s * projection * profile * mean_fullness - 1`` and the radial change
``k = radial_gain * (s - 1)``; ``M^2 = F^2 + k^2 + 2 |k| |O| / A`` is the
squared forward push at the landmark. ``a(x) = w(d) ** (1 / pole) * shape``
lets the pole fullness slow or speed up the taper above and below the
landmark without exceeding 1, and ``shape`` is the implant-specific weighting.

The landmark vertex therefore always carries the largest displacement:
``|D(x)|^2 <= A^2 M^2 + |O|^2 = |D(landmark)|^2``. Neutral parameters give a
zero field and vertices outside ``R`` never move.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from breastsim.anatomy.models import Contour, Landmark, Region, Side
from breastsim.config import DeformationConfig, get_config
from breastsim.deform.parameters import AugmentationParameters, ImplantShape
from breastsim.errors import DeformationError, PreconditionError
from breastsim.logging_utils import get_logger
from breastsim.measure.measurements import projection
from breastsim.mesh.surface import Mesh
from breastsim.utils.geometry import Frame, normalize

LOGGER = get_logger(__name__)


def falloff(distance: np.ndarray, radius: float) -> np.ndarray:
    """Quadratic taper ``(1 - d/R)^2``; exactly zero for ``d >= R``."""
    distance = np.asarray(distance, dtype=float)
    ratio = np.clip(1.0 - distance / radius, 0.0, 1.0)
    return np.where(distance >= radius, 0.0, ratio * ratio)


@dataclass(frozen=True)
class DeformationTarget:
    side: Side
    landmark: np.ndarray
    influence_radius: float
    amplitude: float
    forward: np.ndarray
    up: np.ndarray
    medial: np.ndarray

    def __post_init__(self) -> None:
        if not self.influence_radius > 0:
            raise PreconditionError(f"influence radius must be positive, got {self.influence_radius}")
        if not self.amplitude > 0:
            raise PreconditionError(f"forward amplitude must be positive, got {self.amplitude}")

    @classmethod
    def _build(cls, side, landmark, region_radius, base_projection, frame, config) -> "DeformationTarget":
        side = Side(side)
        # lateral points away from the left side, so +lateral is medial for left
        medial = frame.lateral if side is Side.LEFT else -frame.lateral
        return cls(
            side=side,
            landmark=np.asarray(landmark, dtype=float),
            influence_radius=region_radius * config.influence_factor,
            amplitude=max(base_projection, config.min_amplitude_fraction * region_radius),
            forward=frame.forward,
            up=frame.up,
            medial=medial,
        )

    @classmethod
    def from_contour(
        cls,
        contour: Contour,
        landmark: Landmark,
        frame: Optional[Frame] = None,
        config: Optional[DeformationConfig] = None,
    ) -> "DeformationTarget":
        config = config or get_config().deformation
        frame = frame or Frame.default()
        return cls._build(
            contour.side, landmark.position, contour.radius, projection(landmark, contour), frame, config
        )

    @classmethod
    def from_region(
        cls,
        region: Region,
        landmark: Landmark,
        positions: np.ndarray,
        frame: Optional[Frame] = None,
        config: Optional[DeformationConfig] = None,
    ) -> "DeformationTarget":
        config = config or get_config().deformation
        frame = frame or Frame.default()
        pts = positions[region.vertex_indices]
        radius = float(np.linalg.norm(pts - region.centroid, axis=1).max())
        depth = pts @ frame.forward
        return cls._build(
            region.side, landmark.position, radius, float(depth.max() - depth.min()), frame, config
        )


def displacement_field(
    positions: np.ndarray,
    target: DeformationTarget,
    params: AugmentationParameters,
    config: Optional[DeformationConfig] = None,
) -> np.ndarray:
    config = config or get_config().deformation
    positions = np.asarray(positions, dtype=float)
    radius = target.influence_radius
    rel = positions - target.landmark
    dist = np.linalg.norm(rel, axis=1)
    weight = falloff(dist, radius)

    amp = target.amplitude
    s = params.size_multiplier
    shape_kind = params.implant_shape
    profile = config.profile_multipliers[params.implant_profile.value]
    fullness = (params.upper_pole_fullness + params.lower_pole_fullness) / 2.0
    forward_change = s * params.projection_multiplier * profile * fullness - 1.0
    radial_change = config.radial_gain[shape_kind.value] * (s - 1.0)
    offset = radius * config.offset_gain * (
        params.height_offset * target.up + params.medial_offset * target.medial
    )
    offset_norm = float(np.linalg.norm(offset))
    # squared forward push at the landmark; reserves room for radial and offset
    peak_sq = forward_change ** 2 + radial_change ** 2 + 2.0 * abs(radial_change) * offset_norm / amp
    sign = np.sign(forward_change) if forward_change != 0.0 else np.sign(radial_change)

    vertical = rel @ target.up
    t_up = np.clip(vertical / radius, -1.0, 1.0)
    pole = (
        1.0
        + (params.upper_pole_fullness - 1.0) * np.clip(t_up, 0.0, None)
        + (params.lower_pole_fullness - 1.0) * np.clip(-t_up, 0.0, None)
    )

    along = rel @ target.forward
    in_plane = rel - along[:, None] * target.forward
    rho = np.clip(np.linalg.norm(in_plane, axis=1) / radius, 0.0, 1.0)

    if shape_kind is ImplantShape.TEARDROP:
        # lower half keeps the full forward push, upper half is reduced
        shape = 1.0 - config.teardrop_upper_reduction * np.clip(t_up, 0.0, None)
    elif shape_kind is ImplantShape.GUMMY:
        shape = 1.0 - config.gummy_taper * rho
    else:
        shape = np.ones_like(dist)

    # fuller poles taper slower; w ** (1 / pole) stays within [0, 1]
    taper = np.power(weight, 1.0 / pole) * shape
    budget = peak_sq - (radial_change * rho) ** 2 - 2.0 * abs(radial_change) * rho * offset_norm / amp
    forward_mag = sign * amp * np.sqrt(np.clip(budget, 0.0, None)) * taper
    radial_mag = amp * weight * radial_change * rho

    field = (
        forward_mag[:, None] * target.forward
        + radial_mag[:, None] * normalize(in_plane)
        + weight[:, None] * offset
    )
    field[weight == 0.0] = 0.0
    if not np.isfinite(field).all():
        raise DeformationError("non-finite displacement produced")
    return field


def deform(
    mesh: Mesh,
    target: DeformationTarget,
    params: AugmentationParameters,
    config: Optional[DeformationConfig] = None,
) -> Mesh:
    """Displaced copy of ``mesh`` with recomputed normals; the input is untouched."""
    return deform_bilateral(mesh, {target.side: target}, {target.side: params}, config)


def deform_bilateral(
    mesh: Mesh,
    targets: Dict[Side, DeformationTarget],
    params: Dict[Side, AugmentationParameters],
    config: Optional[DeformationConfig] = None,
) -> Mesh:
    """Apply every side's field, all evaluated on the undeformed positions."""
    config = config or get_config().deformation
    if mesh.vertex_count == 0:
        raise DeformationError("cannot deform an empty mesh")
    total = np.zeros_like(mesh.vertices)
    moved = 0
    for side, target in targets.items():
        side_params = params.get(side)
        if side_params is None:
            continue
        field = displacement_field(mesh.vertices, target, side_params, config)
        moved += int(np.count_nonzero(np.any(field != 0.0, axis=1)))
        total += field
    deformed = mesh.with_vertices(mesh.vertices + total)
    LOGGER.info(
        "mesh_deformed",
        sides=[Side(s).value for s in targets],
        moved_vertices=moved,
        max_displacement=float(np.linalg.norm(total, axis=1).max()),
    )
    return deformed
