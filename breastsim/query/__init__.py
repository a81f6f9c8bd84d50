# SPDX-License-Identifier: Apache-2.0
"""Ray construction, scene graph and surface picking."""

from .camera import PerspectiveCamera, Ray  # noqa: F401
from .picking import SurfaceHit, SurfaceQuery, intersect_ray_mesh  # noqa: F401
from .scene import Scene, SceneNode  # noqa: F401
