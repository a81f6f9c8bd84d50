# SPDX-License-Identifier: Apache-2.0
"""Small diagnostic shapes: annotation markers and synthetic test surfaces."""

from __future__ import annotations

import numpy as np
import trimesh

from breastsim.mesh.surface import Mesh, compute_vertex_normals


def marker_mesh(center, radius: float, name: str = "marker") -> Mesh:
    """Icosphere marker centred on ``center``."""
    sphere = trimesh.creation.icosphere(subdivisions=1, radius=radius)
    sphere.apply_translation(np.asarray(center, dtype=float))
    return Mesh.from_trimesh(sphere, name=name)


def dome_mesh(
    radius: float = 1.0,
    center=(0.0, 0.0, 0.0),
    axis: int = 2,
    rings: int = 24,
    segments: int = 48,
    name: str = "dome",
) -> Mesh:
    """Open hemispherical UV dome bulging along ``+axis``.

    The boundary ring lies in the plane through ``center`` orthogonal to
    ``axis``; the pole is at ``center + radius * e_axis``.
    """
    polar = np.linspace(0.0, np.pi / 2.0, rings + 1)[1:]
    azimuth = np.linspace(0.0, 2.0 * np.pi, segments, endpoint=False)
    theta, phi = np.meshgrid(polar, azimuth, indexing="ij")
    local = np.stack(
        [
            np.sin(theta) * np.cos(phi),
            np.sin(theta) * np.sin(phi),
            np.cos(theta),
        ],
        axis=-1,
    ).reshape(-1, 3)
    local = np.vstack([[0.0, 0.0, 1.0], local])

    faces = []
    # pole fan
    for j in range(segments):
        faces.append([0, 1 + j, 1 + (j + 1) % segments])
    for i in range(rings - 1):
        top = 1 + i * segments
        bottom = 1 + (i + 1) * segments
        for j in range(segments):
            k = (j + 1) % segments
            faces.append([top + j, bottom + j, bottom + k])
            faces.append([top + j, bottom + k, top + k])
    faces = np.asarray(faces, dtype=np.int64)

    order = {0: [2, 0, 1], 1: [1, 2, 0], 2: [0, 1, 2]}[axis]
    vertices = local[:, order] * radius + np.asarray(center, dtype=float)
    return Mesh(
        vertices=vertices,
        faces=faces,
        normals=compute_vertex_normals(vertices, faces),
        name=name,
    )
