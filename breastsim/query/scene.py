# SPDX-License-Identifier: Apache-2.0
"""Minimal scene graph shared by the loader, the annotation overlay and picking.

Whether a node is a tool artifact (marker, contour handle, preview line) is
decided once, when the node is created, and stored on the node. Nothing in
the package inspects node names to make that decision.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from breastsim.errors import NoMeshError
from breastsim.mesh.surface import Mesh

_IDS = itertools.count(1)


@dataclass(eq=False)
class SceneNode:
    name: str
    mesh: Optional[Mesh] = None
    polyline: Optional[np.ndarray] = None
    is_tool_artifact: bool = False
    visible: bool = True
    node_id: int = field(default_factory=lambda: next(_IDS))

    @property
    def is_triangle_mesh(self) -> bool:
        return self.mesh is not None and self.mesh.face_count > 0


class Scene:
    def __init__(self) -> None:
        self._nodes: List[SceneNode] = []

    def __iter__(self) -> Iterator[SceneNode]:
        return iter(list(self._nodes))

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: SceneNode) -> bool:
        return any(n is node for n in self._nodes)

    def add(self, node: SceneNode) -> SceneNode:
        if node not in self:
            self._nodes.append(node)
        return node

    def add_mesh(self, mesh: Mesh, name: Optional[str] = None) -> SceneNode:
        return self.add(SceneNode(name=name or mesh.name, mesh=mesh))

    def remove(self, node: SceneNode) -> None:
        self._nodes = [n for n in self._nodes if n is not node]

    def surface_nodes(self) -> List[SceneNode]:
        """Visible triangle meshes that are not tool artifacts."""
        return [
            n
            for n in self._nodes
            if n.visible and n.is_triangle_mesh and not n.is_tool_artifact
        ]

    def artifacts(self) -> List[SceneNode]:
        return [n for n in self._nodes if n.is_tool_artifact]

    def primary(self) -> SceneNode:
        """The largest non-artifact mesh node."""
        nodes = self.surface_nodes()
        if not nodes:
            raise NoMeshError("scene contains no mesh besides tool artifacts")
        return max(nodes, key=lambda n: n.mesh.face_count)

    def publish(self, node: SceneNode, mesh: Mesh) -> None:
        """Swap a node's geometry in one step."""
        if node not in self:
            raise NoMeshError(f"node {node.name!r} is not part of this scene")
        node.mesh = mesh
