# SPDX-License-Identifier: Apache-2.0
"""Ray/surface intersection against the loaded mesh."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from breastsim.mesh.surface import Mesh
from breastsim.query.camera import PerspectiveCamera, Ray
from breastsim.query.scene import Scene, SceneNode
from breastsim.utils.geometry import normalize

_EPS = 1e-12


@dataclass(frozen=True)
class SurfaceHit:
    point: np.ndarray
    distance: float
    node: Optional[SceneNode]
    face_index: int
    normal: np.ndarray


def ray_hits_box(ray: Ray, lower: np.ndarray, upper: np.ndarray) -> bool:
    """Slab test of a ray against an axis-aligned box."""
    with np.errstate(divide="ignore", invalid="ignore"):
        inv = 1.0 / ray.direction
        t0 = (lower - ray.origin) * inv
        t1 = (upper - ray.origin) * inv
    # axis-parallel rays: inside the slab means unbounded, outside means miss
    parallel = ray.direction == 0
    inside = (ray.origin >= lower) & (ray.origin <= upper)
    if np.any(parallel & ~inside):
        return False
    t_near = np.where(parallel, -np.inf, np.minimum(t0, t1))
    t_far = np.where(parallel, np.inf, np.maximum(t0, t1))
    near, far = t_near.max(), t_far.min()
    return bool(far >= max(near, 0.0))


def intersect_ray_mesh(ray: Ray, mesh: Mesh) -> Optional[Tuple[float, int, np.ndarray]]:
    """Nearest ray/triangle hit as ``(t, face_index, barycentric)``.

    Vectorized Moller-Trumbore over every face; triangles are two-sided.
    """
    if mesh.face_count == 0:
        return None
    lower, upper = mesh.bounds
    if not ray_hits_box(ray, lower, upper):
        return None

    tris = mesh.triangles
    v0 = tris[:, 0]
    e1 = tris[:, 1] - v0
    e2 = tris[:, 2] - v0
    pvec = np.cross(ray.direction, e2)
    det = np.einsum("ij,ij->i", e1, pvec)
    valid = np.abs(det) > _EPS
    inv_det = np.divide(1.0, det, out=np.zeros_like(det), where=valid)

    tvec = ray.origin - v0
    u = np.einsum("ij,ij->i", tvec, pvec) * inv_det
    qvec = np.cross(tvec, e1)
    v = (qvec @ ray.direction) * inv_det
    t = np.einsum("ij,ij->i", e2, qvec) * inv_det

    valid &= (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0) & (t > _EPS)
    if not valid.any():
        return None
    candidates = np.flatnonzero(valid)
    best = candidates[np.argmin(t[candidates])]
    bary = np.array([1.0 - u[best] - v[best], u[best], v[best]])
    return float(t[best]), int(best), bary


def _hit_normal(mesh: Mesh, face: int, bary: np.ndarray) -> np.ndarray:
    if mesh.has_normals:
        return normalize(bary @ mesh.normals[mesh.faces[face]])
    tri = mesh.vertices[mesh.faces[face]]
    return normalize(np.cross(tri[1] - tri[0], tri[2] - tri[0]))


class SurfaceQuery:
    """Closest hit on the scene's real surfaces; tool artifacts are never candidates."""

    def __init__(self, scene: Scene) -> None:
        self.scene = scene

    def cast(self, ray: Ray) -> Optional[SurfaceHit]:
        best: Optional[SurfaceHit] = None
        for node in self.scene.surface_nodes():
            found = intersect_ray_mesh(ray, node.mesh)
            if found is None:
                continue
            t, face, bary = found
            if best is None or t < best.distance:
                best = SurfaceHit(
                    point=ray.at(t),
                    distance=t,
                    node=node,
                    face_index=face,
                    normal=_hit_normal(node.mesh, face, bary),
                )
        return best

    def pick(self, ndc: Sequence[float], camera: PerspectiveCamera) -> Optional[SurfaceHit]:
        return self.cast(camera.ray(ndc))
