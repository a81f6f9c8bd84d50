from __future__ import annotations

import numpy as np
import pytest

from breastsim.errors import NoMeshError, PreconditionError
from breastsim.mesh.primitives import marker_mesh
from breastsim.mesh.surface import Mesh
from breastsim.query import PerspectiveCamera, Ray, Scene, SceneNode, SurfaceQuery, intersect_ray_mesh


def _scene_with(mesh):
    scene = Scene()
    node = scene.add_mesh(mesh)
    return scene, node


class TestSurfaceQuery:
    def test_center_ray_hits_dome_pole(self, dome, camera):
        scene, node = _scene_with(dome)
        hit = SurfaceQuery(scene).pick((0.0, 0.0), camera)
        assert hit is not None
        assert hit.node is node
        np.testing.assert_allclose(hit.point, [0.0, 0.0, 0.05], atol=1e-9)
        assert hit.distance == pytest.approx(0.95)
        assert hit.normal[2] > 0.99

    def test_miss_returns_none(self, dome, camera):
        scene, _ = _scene_with(dome)
        assert SurfaceQuery(scene).pick((0.9, 0.9), camera) is None

    def test_tool_artifacts_are_never_candidates(self, dome, camera):
        scene, node = _scene_with(dome)
        blocker = marker_mesh((0.003, 0.002, 0.2), 0.02)
        scene.add(SceneNode(name="torso-marker", mesh=blocker, is_tool_artifact=True))

        hit = SurfaceQuery(scene).pick((0.0, 0.0), camera)
        assert hit.node is node, "flagged artifact must not occlude the surface"

        # the same geometry without the flag is a real surface and wins
        unflagged = scene.add(SceneNode(name="contour-like-name", mesh=blocker))
        hit = SurfaceQuery(scene).pick((0.0, 0.0), camera)
        assert hit.node is unflagged

    def test_closest_of_several_meshes_wins(self, dome, camera):
        scene, _ = _scene_with(dome)
        near = scene.add_mesh(marker_mesh((0.001, 0.0015, 0.5), 0.01), name="near")
        assert SurfaceQuery(scene).pick((0.0, 0.0), camera).node is near

    def test_empty_scene_has_no_hit(self, camera):
        scene = Scene()
        assert SurfaceQuery(scene).pick((0.0, 0.0), camera) is None
        with pytest.raises(NoMeshError):
            scene.primary()

    @pytest.mark.parametrize("ndc", [(1.5, 0.0), (0.0, -1.01)])
    def test_ndc_outside_viewport_is_rejected(self, camera, ndc):
        with pytest.raises(PreconditionError):
            camera.ray(ndc)


def test_single_triangle_intersection():
    tri = Mesh.from_arrays(np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float))
    ray = Ray(np.array([0.25, 0.25, 2.0]), np.array([0.0, 0.0, -1.0]))
    t, face, bary = intersect_ray_mesh(ray, tri)
    assert t == pytest.approx(2.0)
    assert face == 0
    assert bary.sum() == pytest.approx(1.0)

    behind = Ray(np.array([0.25, 0.25, -2.0]), np.array([0.0, 0.0, -1.0]))
    assert intersect_ray_mesh(behind, tri) is None


def test_project_inverts_ray(camera):
    point = np.array([0.02, -0.01, 0.03])
    ndc = camera.project(point)
    ray = camera.ray(ndc)
    direction = (point - ray.origin) / np.linalg.norm(point - ray.origin)
    np.testing.assert_allclose(ray.direction, direction, atol=1e-9)


def test_publish_swaps_geometry(dome):
    scene, node = _scene_with(dome)
    moved = dome.with_vertices(dome.vertices + [0.0, 0.0, 0.01])
    scene.publish(node, moved)
    assert scene.primary().mesh is moved
    with pytest.raises(NoMeshError):
        scene.publish(SceneNode(name="stray"), moved)


def test_perspective_camera_rejects_degenerate_setup():
    cam = PerspectiveCamera(position=(0, 1, 0), target=(0, 0, 0), up=(0, 1, 0))
    with pytest.raises(PreconditionError):
        cam.ray((0.0, 0.0))
