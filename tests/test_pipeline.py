from __future__ import annotations

import asyncio

import numpy as np
import pytest

from breastsim.anatomy.models import Side
from breastsim.config import Config
from breastsim.deform import preset
from breastsim.errors import PreconditionError
from breastsim.pipeline import MeasurementSession
from breastsim.query import PerspectiveCamera

from conftest import surface_point


def _session(mesh, **analyzer):
    cfg = Config()
    for key, value in analyzer.items():
        setattr(cfg.analyzer, key, value)
    return MeasurementSession(mesh, camera=PerspectiveCamera(position=(0.0, 0.0, 1.0)), config=cfg)


def _annotate(session, side, cx):
    camera = session.camera
    capture = session.capture
    capture.begin_contour(side)
    for dx, dy in [(-0.025, -0.025), (0.025, -0.025), (0.025, 0.025), (-0.025, 0.025)]:
        ndc = camera.project(surface_point(cx + dx, dy))
        capture.pointer_down(ndc)
        capture.pointer_up(ndc)
    capture.finish()
    capture.begin_landmark(side)
    capture.pointer_down(camera.project(surface_point(cx, 0.0)))


@pytest.fixture
def annotated(torso):
    session = _session(torso)
    _annotate(session, "left", -0.08)
    _annotate(session, "right", 0.08)
    return session


def test_automatic_measurements(torso):
    session = _session(torso)
    ms = session.automatic_measurements()
    assert ms is not None
    assert ms.source == "automatic:curvature"
    assert ms.nipple_distance == pytest.approx(16.0, abs=1.5)
    assert ms.symmetry_ratio > 90.0
    assert ms.left_projection > 0.0


def test_detect_async(torso):
    session = _session(torso)
    anatomy = asyncio.run(session.detect_async())
    assert anatomy.complete
    assert session.detection is not None


def test_simulation_publishes_deformed_mesh(torso):
    session = _session(torso)
    session.detect()
    before = session.volumes("mesh")

    result = session.simulate(preset("moderate"))
    assert session.mesh is result.mesh
    assert result.mesh is not session.base_mesh
    assert result.volumes.left_volume > before.left_volume
    assert result.volumes.right_volume > before.right_volume
    assert set(result.results) == {Side.LEFT, Side.RIGHT}

    session.reset()
    assert session.mesh is session.base_mesh


def test_manual_annotation_and_calibration(annotated):
    ms = annotated.measurements()
    assert ms.source == "manual"
    assert ms.nipple_distance == pytest.approx(16.0, abs=0.3)

    scale = annotated.calibrate(20.0)
    assert scale.cm_per_unit == pytest.approx(125.0, rel=0.02)
    assert annotated.manual_measurements().nipple_distance == pytest.approx(20.0)


def test_contour_regions_drive_mesh_volumes(annotated):
    volumes = annotated.volumes("mesh")
    assert volumes.method == "mesh"
    assert volumes.left_volume > 0.0
    assert volumes.asymmetry < 10.0
    assert set(annotated.targets()) == {Side.LEFT, Side.RIGHT}


def test_annotations_round_trip(annotated, torso, tmp_path):
    path = tmp_path / "annotations.json"
    annotated.save_annotations(path, reference_cm=20.0)

    restored = _session(torso)
    restored.load_annotations(path)
    assert set(restored.annotations.contours) == {Side.LEFT, Side.RIGHT}
    np.testing.assert_allclose(
        restored.annotations.landmark("left").position,
        annotated.annotations.landmark("left").position,
    )
    assert restored.calibration.cm_per_unit == pytest.approx(annotated.calibrate(20.0).cm_per_unit)
    # restored items are drawn as tool artifacts
    assert restored.scene.artifacts()


def test_simulate_without_targets(torso):
    session = _session(torso, strategy="proportional")
    session.detect()
    with pytest.raises(PreconditionError):
        session.simulate(preset("natural"))


def test_calibration_needs_landmarks(torso):
    with pytest.raises(PreconditionError):
        _session(torso).calibrate(18.0)


def test_unknown_volume_method(annotated):
    with pytest.raises(ValueError):
        annotated.volumes("voxel")
