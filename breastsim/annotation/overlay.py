# SPDX-License-Identifier: Apache-2.0
"""Visual feedback objects owned by the annotation tools."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from breastsim.anatomy.models import Contour, Landmark, Side
from breastsim.mesh.primitives import marker_mesh
from breastsim.query.scene import Scene, SceneNode


class OverlayLayer:
    """Adds, tracks and removes tool artifacts in a shared scene.

    Every node created here is flagged ``is_tool_artifact=True`` so picking
    never lands on a marker, a contour handle or the preview line.
    """

    def __init__(self, scene: Scene, marker_radius: float = 0.005, handle_radius: float = 0.003) -> None:
        self.scene = scene
        self.marker_radius = marker_radius
        self.handle_radius = handle_radius
        self._draft: List[SceneNode] = []
        self._preview: Optional[SceneNode] = None
        self._committed: Dict[Tuple[str, Side], List[SceneNode]] = {}

    def _add(self, node: SceneNode) -> SceneNode:
        node.is_tool_artifact = True
        return self.scene.add(node)

    def add_marker(self, position: Sequence[float], name: str = "marker") -> SceneNode:
        return self._add(SceneNode(name=name, mesh=marker_mesh(position, self.marker_radius, name)))

    def add_handle(self, position: Sequence[float]) -> SceneNode:
        node = self._add(
            SceneNode(name="contour-handle", mesh=marker_mesh(position, self.handle_radius))
        )
        self._draft.append(node)
        return node

    def set_preview(self, points: np.ndarray, closed: bool = False) -> SceneNode:
        line = np.asarray(points, dtype=float)
        if closed and len(line):
            line = np.vstack([line, line[:1]])
        if self._preview is None:
            self._preview = self._add(SceneNode(name="drawing-preview", polyline=line))
        else:
            self._preview.polyline = line
        return self._preview

    def move(self, node: SceneNode, position: Sequence[float]) -> None:
        node.mesh = marker_mesh(position, self.marker_radius, node.name)

    def remove(self, node: SceneNode) -> None:
        self.scene.remove(node)
        self._draft = [n for n in self._draft if n is not node]
        if node is self._preview:
            self._preview = None

    def clear_draft(self) -> None:
        for node in self._draft:
            self.scene.remove(node)
        self._draft = []
        if self._preview is not None:
            self.scene.remove(self._preview)
            self._preview = None

    def show_contour(self, contour: Contour) -> List[SceneNode]:
        self._drop_committed("contour", contour.side)
        nodes = [
            self._add(
                SceneNode(
                    name=f"{contour.side.value}-contour",
                    polyline=np.vstack([contour.points, contour.points[:1]]),
                )
            )
        ]
        for point in contour.points:
            nodes.append(
                self._add(SceneNode(name="contour-handle", mesh=marker_mesh(point, self.handle_radius)))
            )
        self._committed[("contour", contour.side)] = nodes
        return nodes

    def show_landmark(self, landmark: Landmark, node: Optional[SceneNode] = None) -> SceneNode:
        self._drop_committed("landmark", landmark.side)
        if node is None:
            node = self.add_marker(landmark.position, name=f"{landmark.side.value}-landmark")
        else:
            self.move(node, landmark.position)
        self._committed[("landmark", landmark.side)] = [node]
        return node

    def _drop_committed(self, kind: str, side: Side) -> None:
        for node in self._committed.pop((kind, side), []):
            self.scene.remove(node)

    def artifacts(self) -> List[SceneNode]:
        return self.scene.artifacts()

    def clear(self) -> None:
        self.clear_draft()
        for key in list(self._committed):
            self._drop_committed(*key)
