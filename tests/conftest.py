from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

from breastsim.mesh.primitives import dome_mesh
from breastsim.mesh.surface import Mesh, compute_vertex_normals
from breastsim.query.camera import PerspectiveCamera

BUMP_CENTERS = (-0.08, 0.08)
BUMP_HEIGHT = 0.03
BUMP_SIGMA = 0.025


def bump_height(x, y):
    z = np.zeros_like(np.asarray(x, dtype=float))
    for cx in BUMP_CENTERS:
        z = z + BUMP_HEIGHT * np.exp(-((x - cx) ** 2 + y**2) / (2 * BUMP_SIGMA**2))
    return z


def grid_surface(half: float = 0.2, count: int = 81) -> Mesh:
    axis = np.linspace(-half, half, count)
    xx, yy = np.meshgrid(axis, axis, indexing="ij")
    vertices = np.stack([xx, yy, bump_height(xx, yy)], axis=-1).reshape(-1, 3)
    faces = []
    for i in range(count - 1):
        for j in range(count - 1):
            a = i * count + j
            b = (i + 1) * count + j
            faces.append([a, b, b + 1])
            faces.append([a, b + 1, a + 1])
    faces = np.asarray(faces)
    return Mesh(
        vertices=vertices,
        faces=faces,
        normals=compute_vertex_normals(vertices, faces),
        name="torso",
    )


def surface_point(x: float, y: float) -> np.ndarray:
    return np.array([x, y, float(bump_height(np.array(x), np.array(y)))])


@pytest.fixture(scope="session")
def torso() -> Mesh:
    """Flat chest patch with two Gaussian bumps at x = -0.08 (left) and 0.08 (right)."""
    return grid_surface()


@pytest.fixture(scope="session")
def dome() -> Mesh:
    return dome_mesh(radius=0.05)


@pytest.fixture
def camera() -> PerspectiveCamera:
    return PerspectiveCamera(position=(0.0, 0.0, 1.0), target=(0.0, 0.0, 0.0))


@pytest.fixture
def controls():
    return SimpleNamespace(enabled=True)


@pytest.fixture(scope="session")
def synthetic_mesh(tmp_path_factory, torso) -> Path:
    path = tmp_path_factory.mktemp("samples") / "synthetic_torso.ply"
    torso.to_trimesh().export(str(path))
    return path
