# SPDX-License-Identifier: Apache-2.0
"""Pointer-driven contour drawing and landmark placement.

The capture tool is a small state machine::

    idle --begin_contour(side)--> drawing_contour(side) --finish--> idle
    idle --begin_landmark(side)--> placing_landmark(side) --hit--> idle

Any mode can be entered from any other; entering a mode first discards the
previous mode's uncommitted points, preview artifacts and camera lock.
Events are processed synchronously in the order they are delivered.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from breastsim.anatomy.models import Contour, Landmark, Side
from breastsim.annotation.overlay import OverlayLayer
from breastsim.config import CaptureConfig, get_config
from breastsim.logging_utils import get_logger
from breastsim.query.camera import PerspectiveCamera
from breastsim.query.picking import SurfaceHit, SurfaceQuery
from breastsim.query.scene import Scene, SceneNode
from breastsim.schemas import AnnotationDocument

LOGGER = get_logger(__name__)


class CaptureMode(str, Enum):
    IDLE = "idle"
    DRAWING_CONTOUR = "drawing_contour"
    PLACING_LANDMARK = "placing_landmark"


@dataclass(frozen=True)
class CaptureState:
    mode: CaptureMode
    side: Optional[Side] = None


@dataclass(frozen=True)
class PointerEvent:
    kind: str  # "down" | "move" | "up"
    ndc: Sequence[float]
    modifier: bool = False


@dataclass(frozen=True)
class KeyEvent:
    key: str


class CameraLock:
    """Suspends an orbit-style controller (anything with ``enabled``) and restores it."""

    def __init__(self, controls=None) -> None:
        self.controls = controls
        self._saved: Optional[bool] = None

    @property
    def held(self) -> bool:
        return self._saved is not None

    def acquire(self) -> None:
        if self.controls is None or self.held:
            return
        self._saved = bool(self.controls.enabled)
        self.controls.enabled = False

    def release(self) -> None:
        if self.controls is None or not self.held:
            return
        self.controls.enabled = self._saved
        self._saved = None


class AnnotationSet:
    """Committed contours and landmarks, at most one of each per side."""

    def __init__(self) -> None:
        self.contours: Dict[Side, Contour] = {}
        self.landmarks: Dict[Side, Landmark] = {}

    def add(self, item: Union[Contour, Landmark]) -> None:
        target = self.contours if isinstance(item, Contour) else self.landmarks
        target[item.side] = item

    def contour(self, side) -> Optional[Contour]:
        return self.contours.get(Side(side))

    def landmark(self, side) -> Optional[Landmark]:
        return self.landmarks.get(Side(side))

    def clear(self) -> None:
        self.contours.clear()
        self.landmarks.clear()

    def to_document(self, reference_distance_cm: Optional[float] = None) -> AnnotationDocument:
        return AnnotationDocument.from_annotations(
            list(self.contours.values()),
            list(self.landmarks.values()),
            reference_distance_cm=reference_distance_cm,
        )

    @classmethod
    def from_document(cls, document: AnnotationDocument) -> "AnnotationSet":
        annotations = cls()
        for item in document.build_contours() + document.build_landmarks():
            annotations.add(item)
        return annotations


class AnnotationCapture:
    def __init__(
        self,
        scene: Scene,
        camera: PerspectiveCamera,
        controls=None,
        config: Optional[CaptureConfig] = None,
        overlay: Optional[OverlayLayer] = None,
    ) -> None:
        self.config = config or get_config().capture
        self.scene = scene
        self.camera = camera
        self.query = SurfaceQuery(scene)
        self.overlay = overlay or OverlayLayer(
            scene, self.config.marker_radius, self.config.handle_radius
        )
        self.annotations = AnnotationSet()
        self._lock = CameraLock(controls)
        self._state = CaptureState(CaptureMode.IDLE)
        self._points: List[np.ndarray] = []
        self._pressed = False
        self._pending: Optional[np.ndarray] = None
        self._pending_node: Optional[SceneNode] = None
        self._contour_listeners: List[Callable[[Contour], None]] = []
        self._landmark_listeners: List[Callable[[Landmark], None]] = []

    # -- state -----------------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def points(self) -> List[np.ndarray]:
        """Copy of the in-progress contour points."""
        return [p.copy() for p in self._points]

    @property
    def camera_locked(self) -> bool:
        return self._lock.held

    def on_contour(self, callback: Callable[[Contour], None]) -> None:
        self._contour_listeners.append(callback)

    def on_landmark(self, callback: Callable[[Landmark], None]) -> None:
        self._landmark_listeners.append(callback)

    def begin_contour(self, side) -> None:
        self._discard()
        self._state = CaptureState(CaptureMode.DRAWING_CONTOUR, Side(side))
        self._lock.acquire()
        LOGGER.info("contour_started", side=self._state.side.value)

    def begin_landmark(self, side) -> None:
        self._discard()
        self._state = CaptureState(CaptureMode.PLACING_LANDMARK, Side(side))
        LOGGER.info("landmark_started", side=self._state.side.value)

    def cancel(self) -> None:
        if self._state.mode is not CaptureMode.IDLE:
            LOGGER.info("capture_cancelled", mode=self._state.mode.value, points=len(self._points))
        self._discard()

    def _discard(self) -> None:
        self._points = []
        self._pressed = False
        self._pending = None
        if self._pending_node is not None:
            self.overlay.remove(self._pending_node)
            self._pending_node = None
        self.overlay.clear_draft()
        self._lock.release()
        self._state = CaptureState(CaptureMode.IDLE)

    # -- events ----------------------------------------------------------

    def handle(self, event: Union[PointerEvent, KeyEvent]) -> None:
        if isinstance(event, KeyEvent):
            self.key(event.key)
        elif event.kind == "down":
            self.pointer_down(event.ndc, modifier=event.modifier)
        elif event.kind == "move":
            self.pointer_move(event.ndc)
        elif event.kind == "up":
            self.pointer_up(event.ndc)
        else:
            raise ValueError(f"unknown pointer event kind: {event.kind!r}")

    def key(self, name: str) -> None:
        if name == "Enter":
            self.finish()
        elif name == "Escape":
            self.cancel()

    def pointer_down(self, ndc: Sequence[float], modifier: bool = False) -> None:
        mode = self._state.mode
        if mode is CaptureMode.DRAWING_CONTOUR:
            if modifier:
                self.finish()
                return
            self._pressed = True
            hit = self.query.pick(ndc, self.camera)
            if hit is not None:
                self._append(hit)
        elif mode is CaptureMode.PLACING_LANDMARK:
            hit = self.query.pick(ndc, self.camera)
            if hit is None:
                LOGGER.debug("landmark_missed", ndc=list(ndc))
                return
            if not self.config.landmark_drag_reposition:
                self._commit_landmark(hit.point)
                return
            self._pressed = True
            self._lock.acquire()
            self._pending = hit.point
            self._pending_node = self.overlay.add_marker(hit.point, name="landmark-pending")

    def pointer_move(self, ndc: Sequence[float]) -> None:
        if not self._pressed:
            return
        hit = self.query.pick(ndc, self.camera)
        if hit is None:
            return
        if self._state.mode is CaptureMode.DRAWING_CONTOUR:
            self._append(hit)
        elif self._state.mode is CaptureMode.PLACING_LANDMARK and self._pending_node is not None:
            self._pending = hit.point
            self.overlay.move(self._pending_node, hit.point)

    def pointer_up(self, ndc: Sequence[float]) -> None:
        if not self._pressed:
            return
        self._pressed = False
        if self._state.mode is CaptureMode.PLACING_LANDMARK and self._pending is not None:
            hit = self.query.pick(ndc, self.camera)
            self._commit_landmark(hit.point if hit is not None else self._pending)

    def finish(self) -> Optional[Contour]:
        """Emit the in-progress contour if it has enough points."""
        if self._state.mode is not CaptureMode.DRAWING_CONTOUR:
            return None
        if len(self._points) < self.config.min_contour_points:
            LOGGER.warning(
                "contour_incomplete",
                side=self._state.side.value,
                points=len(self._points),
                required=self.config.min_contour_points,
            )
            return None
        contour = Contour.from_points(
            self._state.side, np.stack(self._points), self.config.min_contour_points
        )
        self._discard()
        self.annotations.add(contour)
        self.overlay.show_contour(contour)
        LOGGER.info("contour_emitted", side=contour.side.value, points=len(contour))
        for callback in self._contour_listeners:
            callback(contour)
        return contour

    # -- helpers ---------------------------------------------------------

    def _append(self, hit: SurfaceHit) -> None:
        point = np.asarray(hit.point, dtype=float)
        if self._points and np.linalg.norm(point - self._points[-1]) <= self.config.min_point_spacing:
            return
        self._points.append(point)
        self.overlay.add_handle(point)
        self.overlay.set_preview(np.stack(self._points))

    def _commit_landmark(self, position: np.ndarray) -> Landmark:
        landmark = Landmark.at(self._state.side, position)
        node = self._pending_node
        self._pending_node = None
        self._discard()
        self.annotations.add(landmark)
        self.overlay.show_landmark(landmark, node)
        LOGGER.info("landmark_emitted", side=landmark.side.value)
        for callback in self._landmark_listeners:
            callback(landmark)
        return landmark
