# SPDX-License-Identifier: Apache-2.0
"""Mesh loading and export via ``trimesh``."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import trimesh

from breastsim.errors import NoMeshError
from breastsim.logging_utils import get_logger
from breastsim.mesh.surface import Mesh

LOGGER = get_logger(__name__)


def load_meshes(path: Union[str, Path]) -> List[Mesh]:
    """Load every triangle mesh contained in a file.

    Parameters
    ----------
    path:
        Path to an OBJ/PLY/STL/GLB file.

    Returns
    -------
    list of Mesh
        One entry per geometry, with scene transforms applied. Point clouds
        and empty geometries are skipped.
    """
    loaded = trimesh.load(str(path), process=False)
    if isinstance(loaded, trimesh.Scene):
        geometries = loaded.dump()
    else:
        geometries = [loaded]

    meshes = []
    for index, geom in enumerate(geometries):
        if not isinstance(geom, trimesh.Trimesh) or len(geom.faces) == 0:
            continue
        name = geom.metadata.get("name") or f"{Path(path).stem}-{index}"
        meshes.append(Mesh.from_trimesh(geom, name=name))
    LOGGER.info("meshes_loaded", path=str(path), count=len(meshes))
    return meshes


def load_mesh(path: Union[str, Path]) -> Mesh:
    """Load the largest triangle mesh in a file."""
    meshes = load_meshes(path)
    if not meshes:
        raise NoMeshError(f"no triangle mesh found in {path}")
    return max(meshes, key=lambda m: m.face_count)


def export_mesh(mesh: Mesh, path: Union[str, Path], colors: Optional[np.ndarray] = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tm = mesh.to_trimesh()
    if colors is not None:
        tm.visual.vertex_colors = np.asarray(colors)
    tm.export(str(path))
    return path
