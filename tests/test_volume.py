from __future__ import annotations

import math

import numpy as np
import pytest
import trimesh

from breastsim.analysis import close_patch, extract_region, extract_region_by_indices
from breastsim.analysis.extraction import boundary_loops
from breastsim.anatomy.models import Contour, Landmark, Side
from breastsim.config import ExtractionConfig
from breastsim.errors import DegenerateGeometryError
from breastsim.measure import ScaleCalibration, ellipsoid_volume, estimate_volumes, mesh_volume, region_volume
from breastsim.mesh.primitives import dome_mesh
from breastsim.mesh.surface import Mesh
from breastsim.schemas import MeasurementSet

HEMISPHERE_CC = 2.0 / 3.0 * math.pi * 5.0**3


def test_hemisphere_region_volume(dome):
    region = extract_region_by_indices(dome, np.arange(dome.vertex_count), Side.LEFT)
    volume = region_volume(region, ScaleCalibration(100.0))
    assert volume == pytest.approx(HEMISPHERE_CC, rel=0.05)


def test_closed_sphere_volume():
    tm = trimesh.creation.icosphere(subdivisions=4, radius=0.5)
    sphere = Mesh.from_trimesh(tm)
    assert mesh_volume(sphere) == pytest.approx(4.0 / 3.0 * math.pi * 0.125, rel=0.01)
    assert close_patch(sphere) is sphere


def test_volume_is_translation_invariant(dome):
    closed = close_patch(dome)
    moved = closed.with_vertices(closed.vertices + [1.0, -2.0, 3.0])
    assert mesh_volume(moved) == pytest.approx(mesh_volume(closed), rel=1e-6)


def test_cap_closes_every_boundary_edge(dome):
    assert len(boundary_loops(dome.faces)) == 1
    closed = close_patch(dome)
    assert boundary_loops(closed.faces) == []
    assert closed.vertex_count == dome.vertex_count + 1


def _pinched_domes(rings=12, segments=32):
    """Two unit domes whose rims touch at the single vertex (1, 0, 0)."""
    first = dome_mesh(rings=rings, segments=segments)
    second = dome_mesh(center=(2.0, 0.0, 0.0), rings=rings, segments=segments)
    rim = 1 + (rings - 1) * segments
    shared, duplicate = rim, rim + segments // 2
    faces = second.faces + first.vertex_count
    faces[faces == duplicate + first.vertex_count] = shared
    return first, Mesh(
        vertices=np.vstack([first.vertices, second.vertices]),
        faces=np.vstack([first.faces, faces]),
    )


def test_pinched_boundary_caps_both_loops():
    single, pinched = _pinched_domes()
    loops = boundary_loops(pinched.faces)
    assert len(loops) == 2
    assert sorted(len(loop) for loop in loops) == [32, 32]

    closed = close_patch(pinched)
    assert boundary_loops(closed.faces) == []
    expected = 2.0 * mesh_volume(close_patch(single))
    assert mesh_volume(closed) == pytest.approx(expected, rel=1e-6)
    shifted = closed.with_vertices(closed.vertices + [0.0, 0.0, 5.0])
    assert mesh_volume(shifted) == pytest.approx(expected, rel=1e-6)


def test_extract_region_with_contour():
    dome = dome_mesh(radius=0.05, center=(0.1, 0.0, 0.0))
    ring = dome.vertices[1:][np.abs(dome.vertices[1:, 2] - 0.025) < 0.001]
    contour = Contour.from_points(Side.RIGHT, ring)
    landmark = Landmark.at(Side.RIGHT, dome.vertices[0])

    region = extract_region(dome, contour, landmark, ExtractionConfig())
    assert region.side is Side.RIGHT
    assert region.mesh.face_count > 0
    assert region.mesh.vertex_count < dome.vertex_count
    assert 0 in region.vertex_indices
    # rim vertices sit outside the contour radius
    rim = np.abs(dome.vertices[:, 2]) < 1e-9
    assert not np.isin(np.flatnonzero(rim), region.vertex_indices).any()


def test_empty_selection_is_rejected(dome):
    contour = Contour.from_points(Side.LEFT, [[5.0, 5.0, 5.0], [5.01, 5.0, 5.0], [5.0, 5.01, 5.0]])
    with pytest.raises(DegenerateGeometryError):
        extract_region(dome, contour)


def test_ellipsoid_and_mesh_volumes_agree_roughly(dome):
    # a 10 cm wide, 5 cm deep hemisphere
    closed_form = ellipsoid_volume(10.0, 5.0)
    measured = region_volume(
        extract_region_by_indices(dome, np.arange(dome.vertex_count), Side.LEFT),
        ScaleCalibration(100.0),
    )
    assert 0.25 < measured / closed_form < 1.0


def test_estimate_volumes_from_measurements():
    ms = MeasurementSet(
        nipple_distance=18.0,
        left_width=12.0,
        right_width=10.0,
        left_height=10.0,
        right_height=9.0,
        left_circumference=35.0,
        right_circumference=30.0,
        left_projection=4.0,
        right_projection=4.0,
        inframammary_width=16.0,
        chest_wall_width=27.0,
        symmetry_ratio=83.3,
        cup_size="C",
    )
    volumes = estimate_volumes(ms)
    assert volumes.left_volume == pytest.approx(4.0 / 3.0 * math.pi * 36.0 * 4.0)
    assert volumes.total_volume == pytest.approx(volumes.left_volume + volumes.right_volume)
    assert volumes.asymmetry == pytest.approx((1 - 100.0 / 144.0) * 100.0)
    assert volumes.method == "ellipsoid"
