from __future__ import annotations

import numpy as np
import pytest
from structlog.testing import capture_logs

from breastsim.anatomy.models import Side
from breastsim.annotation import AnnotationCapture, CaptureMode, KeyEvent, PointerEvent
from breastsim.config import CaptureConfig
from breastsim.query import Scene, SurfaceQuery

from conftest import surface_point


@pytest.fixture
def capture(torso, camera, controls):
    scene = Scene()
    scene.add_mesh(torso)
    return AnnotationCapture(scene, camera, controls, CaptureConfig())


def _ndc(camera, x, y):
    return camera.project(surface_point(x, y))


def _draw(capture, camera, coords):
    for x, y in coords:
        capture.pointer_down(_ndc(camera, x, y))
        capture.pointer_up(_ndc(camera, x, y))


SQUARE = [(-0.10, -0.02), (-0.06, -0.02), (-0.06, 0.02), (-0.10, 0.02)]


def test_contour_is_emitted_on_enter(capture, camera, controls):
    emitted = []
    capture.on_contour(emitted.append)
    capture.begin_contour("left")
    assert capture.camera_locked and controls.enabled is False

    _draw(capture, camera, SQUARE)
    capture.key("Enter")

    assert len(emitted) == 1
    contour = emitted[0]
    assert contour.side is Side.LEFT
    assert len(contour) == 4
    for point, (x, y) in zip(contour.points, SQUARE):
        np.testing.assert_allclose(point, surface_point(x, y), atol=2e-3)
    assert capture.annotations.contour(Side.LEFT) is contour
    assert capture.state.mode is CaptureMode.IDLE
    assert capture.points == []
    assert controls.enabled is True


def test_points_closer_than_spacing_are_skipped(capture, camera):
    capture.begin_contour(Side.RIGHT)
    capture.pointer_down(_ndc(camera, 0.08, 0.0))
    capture.pointer_move(_ndc(camera, 0.0805, 0.0))
    capture.pointer_move(_ndc(camera, 0.09, 0.0))
    capture.pointer_up(_ndc(camera, 0.09, 0.0))
    assert len(capture.points) == 2


def test_finish_with_too_few_points_keeps_drawing(capture, camera):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE[:2])
    with capture_logs() as logs:
        assert capture.finish() is None
    assert any(entry["event"] == "contour_incomplete" for entry in logs)
    assert capture.state.mode is CaptureMode.DRAWING_CONTOUR
    assert len(capture.points) == 2
    assert capture.annotations.contour("left") is None


def test_modifier_click_finishes_contour(capture, camera):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE[:3])
    capture.pointer_down(_ndc(camera, 0.0, 0.15), modifier=True)
    contour = capture.annotations.contour("left")
    assert contour is not None and len(contour) == 3


def test_escape_discards_points_artifacts_and_lock(capture, camera, controls):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE)
    assert capture.overlay.artifacts()

    capture.handle(KeyEvent("Escape"))
    assert capture.points == []
    assert capture.overlay.artifacts() == []
    assert capture.state.mode is CaptureMode.IDLE
    assert controls.enabled is True
    assert capture.annotations.contour("left") is None


def test_switching_modes_discards_uncommitted_points(capture, camera, controls):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE[:2])
    assert len(capture.points) == 2

    capture.begin_landmark("right")
    assert capture.points == []
    assert capture.state.mode is CaptureMode.PLACING_LANDMARK
    assert capture.state.side is Side.RIGHT
    assert controls.enabled is True

    capture.begin_contour("left")
    assert capture.points == []
    assert capture.state.side is Side.LEFT


def test_landmark_commits_on_first_hit(capture, camera):
    emitted = []
    capture.on_landmark(emitted.append)
    capture.begin_landmark("right")
    capture.pointer_down(_ndc(camera, 0.08, 0.0))

    assert len(emitted) == 1
    np.testing.assert_allclose(emitted[0].position, surface_point(0.08, 0.0), atol=2e-3)
    assert capture.state.mode is CaptureMode.IDLE
    assert len(capture.overlay.artifacts()) == 1


def test_landmark_miss_keeps_waiting(capture, camera):
    capture.begin_landmark("left")
    capture.pointer_down((0.95, 0.95))
    assert capture.state.mode is CaptureMode.PLACING_LANDMARK
    assert capture.annotations.landmark("left") is None


def test_landmark_drag_repositions_before_commit(torso, camera, controls):
    scene = Scene()
    scene.add_mesh(torso)
    capture = AnnotationCapture(scene, camera, controls, CaptureConfig(landmark_drag_reposition=True))

    capture.begin_landmark("left")
    capture.pointer_down(_ndc(camera, -0.10, 0.0))
    assert capture.camera_locked and controls.enabled is False
    assert capture.annotations.landmark("left") is None

    capture.pointer_move(_ndc(camera, -0.08, 0.0))
    capture.pointer_up(_ndc(camera, -0.08, 0.0))

    landmark = capture.annotations.landmark("left")
    np.testing.assert_allclose(landmark.position, surface_point(-0.08, 0.0), atol=2e-3)
    assert controls.enabled is True
    assert len(scene.artifacts()) == 1


def test_event_sequence_through_handle(capture, camera):
    capture.begin_contour("right")
    for x, y in [(0.06, -0.02), (0.10, -0.02), (0.10, 0.02)]:
        capture.handle(PointerEvent("down", _ndc(camera, x, y)))
        capture.handle(PointerEvent("up", _ndc(camera, x, y)))
    capture.handle(KeyEvent("Enter"))
    assert len(capture.annotations.contour("right")) == 3

    with pytest.raises(ValueError):
        capture.handle(PointerEvent("wheel", (0.0, 0.0)))


def test_committed_contour_replaces_previous_overlay(capture, camera):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE)
    capture.finish()
    first = len(capture.overlay.artifacts())

    capture.begin_contour("left")
    _draw(capture, camera, SQUARE)
    capture.finish()
    assert len(capture.overlay.artifacts()) == first


def test_handles_are_not_pickable(capture, camera):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE)
    hit = SurfaceQuery(capture.scene).pick(_ndc(camera, *SQUARE[0]), camera)
    assert hit.node.name == "torso"
    assert not hit.node.is_tool_artifact


def test_annotations_round_trip_through_document(capture, camera):
    capture.begin_contour("left")
    _draw(capture, camera, SQUARE)
    capture.finish()
    capture.begin_landmark("left")
    capture.pointer_down(_ndc(camera, -0.08, 0.0))

    document = capture.annotations.to_document(reference_distance_cm=16.0)
    assert document.reference_distance_cm == 16.0
    assert [c.side for c in document.contours] == [Side.LEFT]
    assert len(document.build_landmarks()) == 1
