import numpy as np
import pytest
import trimesh

from breastsim.errors import NoMeshError, PreconditionError
from breastsim.mesh.loader import export_mesh, load_mesh, load_meshes
from breastsim.mesh.surface import Mesh



def test_load_mesh(synthetic_mesh, torso):
    mesh = load_mesh(synthetic_mesh)
    assert mesh.vertices.shape == torso.vertices.shape
    assert mesh.face_count == torso.face_count
    assert mesh.has_normals
    assert not mesh.vertices.flags.writeable


def test_scene_picks_largest_geometry(tmp_path):
    scene = trimesh.Scene()
    scene.add_geometry(trimesh.creation.box(), geom_name="small")
    scene.add_geometry(trimesh.creation.icosphere(subdivisions=3), geom_name="large")
    path = tmp_path / "scene.glb"
    scene.export(str(path))

    assert len(load_meshes(path)) == 2
    assert load_mesh(path).face_count == 1280


def test_point_cloud_has_no_mesh(tmp_path):
    path = tmp_path / "cloud.ply"
    trimesh.PointCloud(np.random.default_rng(0).random((20, 3))).export(str(path))
    with pytest.raises(NoMeshError):
        load_mesh(path)


def test_export_with_colors(dome, tmp_path):
    colors = np.tile([255, 0, 0, 255], (dome.vertex_count, 1)).astype(np.uint8)
    path = export_mesh(dome, tmp_path / "nested" / "dome.ply", colors=colors)
    assert path.exists()
    assert load_mesh(path).vertex_count == dome.vertex_count


def test_non_indexed_geometry():
    tri = Mesh.from_arrays(np.arange(9, dtype=float))
    assert tri.face_count == 1
    with pytest.raises(PreconditionError):
        Mesh.from_arrays(np.zeros((4, 3)))
    with pytest.raises(PreconditionError):
        Mesh(vertices=np.zeros((3, 3)), faces=[[0, 1, 5]])
