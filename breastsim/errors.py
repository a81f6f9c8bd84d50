# SPDX-License-Identifier: Apache-2.0
"""Typed failures raised by the measurement and simulation core.

Partial results (a side without a region, a missing automatic landmark) are
represented as ``None`` and never raised. The classes below cover the cases
where continuing would produce plausible-looking but wrong geometry.
"""

from __future__ import annotations


class BreastSimError(Exception):
    """Base class for every error raised by :mod:`breastsim`."""


class PreconditionError(BreastSimError, ValueError):
    """An input did not satisfy a documented precondition."""


class MissingGeometryError(PreconditionError):
    """A mesh lacks a required attribute (vertices, normals, faces)."""

    def __init__(self, attribute: str, detail: str = "") -> None:
        self.attribute = attribute
        message = f"mesh is missing required geometry attribute '{attribute}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class IncompleteContourError(PreconditionError):
    """A contour was finished with fewer points than required."""

    def __init__(self, count: int, required: int = 3) -> None:
        self.count = count
        self.required = required
        super().__init__(f"contour needs at least {required} points, got {count}")


class NoMeshError(PreconditionError):
    """The scene holds no mesh that is not a tool artifact."""


class DegenerateGeometryError(BreastSimError):
    """A geometric construction collapsed (empty extraction, zero-area patch)."""


class DeformationError(BreastSimError):
    """The augmentation engine could not produce a valid displaced mesh."""
