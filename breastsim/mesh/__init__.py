# SPDX-License-Identifier: Apache-2.0
"""Mesh containers, loading and diagnostic primitives."""

from .surface import Mesh, compute_vertex_normals  # noqa: F401
