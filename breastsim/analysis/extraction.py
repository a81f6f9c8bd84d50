# SPDX-License-Identifier: Apache-2.0
"""Cut a breast region out of the full surface and close it for volume integration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from breastsim.anatomy.models import Contour, Landmark, Region, Side
from breastsim.config import ExtractionConfig, get_config
from breastsim.errors import DegenerateGeometryError
from breastsim.logging_utils import get_logger
from breastsim.mesh.surface import Mesh, compute_vertex_normals

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ExtractedRegion:
    side: Side
    mesh: Mesh
    vertex_indices: np.ndarray
    centroid: np.ndarray
    bbox_min: np.ndarray
    bbox_max: np.ndarray

    def refresh(self, source: Mesh) -> "ExtractedRegion":
        """Same vertex selection taken from a displaced copy of the source mesh."""
        return extract_region_by_indices(source, self.vertex_indices, self.side)


def extract_region_by_indices(mesh: Mesh, indices: np.ndarray, side) -> ExtractedRegion:
    indices = np.unique(np.asarray(indices, dtype=np.int64))
    if not len(indices):
        raise DegenerateGeometryError(f"no vertices selected for {Side(side).value} region")
    sub = mesh.submesh(indices, name=f"{Side(side).value}-region")
    if sub.face_count == 0:
        raise DegenerateGeometryError(
            f"{Side(side).value} region selection contains no complete triangle"
        )
    return ExtractedRegion(
        side=Side(side),
        mesh=sub,
        vertex_indices=indices,
        centroid=sub.vertices.mean(axis=0),
        bbox_min=sub.vertices.min(axis=0),
        bbox_max=sub.vertices.max(axis=0),
    )


def extract_region(
    mesh: Mesh,
    contour: Contour,
    landmark: Optional[Landmark] = None,
    config: Optional[ExtractionConfig] = None,
) -> ExtractedRegion:
    """Vertices near the contour, restricted to its radius or the landmark's vicinity.

    A vertex is kept when it lies within ``capture_factor * contour.radius``
    of the contour centroid and either inside the contour radius or within
    ``landmark_capture_radius`` of the landmark. Only faces whose three
    vertices are all kept survive.
    """
    config = config or get_config().extraction
    to_center = np.linalg.norm(mesh.vertices - contour.centroid, axis=1)
    near = to_center <= contour.radius
    if landmark is not None:
        near |= np.linalg.norm(mesh.vertices - landmark.position, axis=1) <= config.landmark_capture_radius
    selected = (to_center <= config.capture_factor * contour.radius) & near
    region = extract_region_by_indices(mesh, np.flatnonzero(selected), contour.side)
    LOGGER.info(
        "region_extracted",
        side=contour.side.value,
        vertices=region.mesh.vertex_count,
        faces=region.mesh.face_count,
    )
    return region


def extract_detected_region(mesh: Mesh, region: Region) -> ExtractedRegion:
    return extract_region_by_indices(mesh, region.vertex_indices, region.side)


def boundary_loops(faces: np.ndarray) -> List[List[int]]:
    """Open boundary loops, each ordered along the face winding.

    Every boundary edge is walked exactly once. A vertex shared by several
    loops (a pinch) splits the walk, so each loop is returned on its own.
    """
    directed = np.concatenate([faces[:, [0, 1]], faces[:, [1, 2]], faces[:, [2, 0]]])
    undirected = np.sort(directed, axis=1)
    _, inverse, counts = np.unique(undirected, axis=0, return_inverse=True, return_counts=True)
    border = directed[counts[inverse.reshape(-1)] == 1]

    successors: Dict[int, List[int]] = {}
    for a, b in border:
        successors.setdefault(int(a), []).append(int(b))

    loops = []
    for start in list(successors):
        path = [start]
        position = {start: 0}
        current = start
        while successors.get(current):
            nxt = successors[current].pop()
            if nxt in position:
                # closed a cycle; split it off and keep walking from its head
                cut = position[nxt]
                loop = path[cut:]
                for vertex in loop[1:]:
                    del position[vertex]
                path = path[: cut + 1]
                if len(loop) >= 3:
                    loops.append(loop)
            else:
                position[nxt] = len(path)
                path.append(nxt)
            current = nxt
    return loops


def close_patch(mesh: Mesh) -> Mesh:
    """Fan-cap every boundary loop to its centroid so the surface is closed.

    Cap triangles reuse each boundary edge in the opposite direction, which
    keeps the orientation consistent with the patch.
    """
    loops = boundary_loops(mesh.faces)
    if not loops:
        return mesh
    vertices = [mesh.vertices]
    faces = [mesh.faces]
    next_index = mesh.vertex_count
    for loop in loops:
        ring = np.asarray(loop, dtype=np.int64)
        vertices.append(mesh.vertices[ring].mean(axis=0, keepdims=True))
        cap = np.stack(
            [np.roll(ring, -1), ring, np.full(len(ring), next_index)], axis=1
        )
        faces.append(cap)
        next_index += 1
    verts = np.vstack(vertices)
    tris = np.vstack(faces)
    return Mesh(
        vertices=verts,
        faces=tris,
        normals=compute_vertex_normals(verts, tris),
        name=f"{mesh.name}-closed",
    )
