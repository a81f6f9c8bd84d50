# SPDX-License-Identifier: Apache-2.0
"""Indexed triangle surface used throughout the core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import trimesh

from breastsim.errors import MissingGeometryError, PreconditionError


def compute_vertex_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Area-weighted per-vertex normals.

    Vertices not referenced by any non-degenerate face get a zero normal.
    """
    vertices = np.asarray(vertices, dtype=float)
    normals = np.zeros_like(vertices)
    if len(faces) == 0:
        return normals
    tris = vertices[faces]
    face_normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    for corner in range(3):
        np.add.at(normals, faces[:, corner], face_normals)
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    return np.divide(normals, lengths, out=np.zeros_like(normals), where=lengths > 1e-12)


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(eq=False)
class Mesh:
    """Vertex positions, optional per-vertex normals and a triangle index list.

    Arrays are copied and made read-only on construction. A displaced surface
    is always a new ``Mesh``; nothing reads geometry mid-update.
    """

    vertices: np.ndarray
    faces: np.ndarray
    normals: Optional[np.ndarray] = None
    name: str = "mesh"
    _bounds: Optional[Tuple[np.ndarray, np.ndarray]] = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.vertices = _frozen(np.array(self.vertices, dtype=float).reshape(-1, 3))
        self.faces = _frozen(np.array(self.faces, dtype=np.int64).reshape(-1, 3))
        if self.normals is not None:
            self.normals = _frozen(np.array(self.normals, dtype=float).reshape(-1, 3))
        self.validate()

    @classmethod
    def from_arrays(
        cls,
        vertices: np.ndarray,
        normals: Optional[np.ndarray] = None,
        faces: Optional[np.ndarray] = None,
        name: str = "mesh",
    ) -> "Mesh":
        """Build a mesh, synthesizing sequential triples when ``faces`` is absent."""
        vertices = np.asarray(vertices, dtype=float).reshape(-1, 3)
        if faces is None:
            if len(vertices) % 3:
                raise PreconditionError(
                    "non-indexed geometry needs a multiple of three vertices, "
                    f"got {len(vertices)}"
                )
            faces = np.arange(len(vertices), dtype=np.int64).reshape(-1, 3)
        return cls(vertices=vertices, faces=faces, normals=normals, name=name)

    @classmethod
    def from_trimesh(cls, tm, name: Optional[str] = None) -> "Mesh":
        return cls(
            vertices=np.asarray(tm.vertices),
            faces=np.asarray(tm.faces),
            normals=np.asarray(tm.vertex_normals),
            name=name or tm.metadata.get("name", "mesh"),
        )

    def validate(self) -> None:
        if self.normals is not None and len(self.normals) != len(self.vertices):
            raise PreconditionError(
                f"normal count {len(self.normals)} != vertex count {len(self.vertices)}"
            )
        if len(self.faces) and (self.faces.min() < 0 or self.faces.max() >= len(self.vertices)):
            raise PreconditionError("face index out of range for vertex buffer")

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def face_count(self) -> int:
        return len(self.faces)

    @property
    def has_normals(self) -> bool:
        return self.normals is not None and len(self.normals) == len(self.vertices)

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._bounds is None:
            if not len(self.vertices):
                raise MissingGeometryError("vertices", "mesh is empty")
            self._bounds = (self.vertices.min(axis=0), self.vertices.max(axis=0))
        return self._bounds

    @property
    def triangles(self) -> np.ndarray:
        return self.vertices[self.faces]

    def with_vertices(self, vertices: np.ndarray, recompute_normals: bool = True) -> "Mesh":
        """Return a copy with new positions and the same topology."""
        normals = (
            compute_vertex_normals(vertices, self.faces)
            if recompute_normals
            else self.normals
        )
        return Mesh(vertices=vertices, faces=self.faces, normals=normals, name=self.name)

    def with_normals(self) -> "Mesh":
        return Mesh(
            vertices=self.vertices,
            faces=self.faces,
            normals=compute_vertex_normals(self.vertices, self.faces),
            name=self.name,
        )

    def require_normals(self) -> np.ndarray:
        if not len(self.vertices):
            raise MissingGeometryError("vertices", "mesh has zero vertices")
        if not self.has_normals:
            raise MissingGeometryError("normals")
        return self.normals

    def submesh(self, vertex_indices: np.ndarray, name: Optional[str] = None) -> "Mesh":
        """Faces whose three vertices are all selected, renumbered locally."""
        vertex_indices = np.unique(np.asarray(vertex_indices, dtype=np.int64))
        selected = np.zeros(len(self.vertices), dtype=bool)
        selected[vertex_indices] = True
        keep = selected[self.faces].all(axis=1)
        remap = np.full(len(self.vertices), -1, dtype=np.int64)
        remap[vertex_indices] = np.arange(len(vertex_indices))
        return Mesh(
            vertices=self.vertices[vertex_indices],
            faces=remap[self.faces[keep]],
            normals=None if self.normals is None else self.normals[vertex_indices],
            name=name or f"{self.name}-sub",
        )

    def to_trimesh(self):
        return trimesh.Trimesh(
            vertices=np.array(self.vertices),
            faces=np.array(self.faces),
            vertex_normals=None if self.normals is None else np.array(self.normals),
            process=False,
        )
