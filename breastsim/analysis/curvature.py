# SPDX-License-Identifier: Apache-2.0
"""Per-vertex convexity estimate from normal variation.

For vertex ``i`` with neighbours ``j`` inside an adaptive radius the estimate
is the mean discrete normal curvature

    k_i = mean_j ((n_j - n_i) . (p_j - p_i)) / |p_j - p_i|^2

clamped at zero (concave and saddle regions score 0) and scaled by how much
the vertex faces forward. On a sphere of radius ``r`` with outward normals
this gives ``1 / r`` everywhere.

The pass is chunked: :meth:`CurvatureEstimator.steps` yields after every
chunk so a host event loop can interleave other work, and
:meth:`CurvatureEstimator.run_async` awaits between chunks.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import numpy as np

from breastsim.config import AnalyzerConfig, get_config
from breastsim.logging_utils import get_logger
from breastsim.mesh.surface import Mesh
from breastsim.utils.geometry import Frame, build_kdtree

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class CurvatureProgress:
    done: int
    total: int

    @property
    def fraction(self) -> float:
        return 1.0 if self.total == 0 else self.done / self.total


class CurvatureEstimator:
    def __init__(
        self,
        mesh: Mesh,
        config: Optional[AnalyzerConfig] = None,
        frame: Optional[Frame] = None,
    ) -> None:
        self.config = config or get_config().analyzer
        self.frame = frame or Frame.default()
        self.normals = mesh.require_normals()
        self.positions = mesh.vertices
        self.curvature = np.zeros(len(self.positions))
        self.radii = np.zeros(len(self.positions))
        self._tree = build_kdtree(self.positions)

    def _chunk(self, start: int, stop: int) -> None:
        cfg = self.config
        n = len(self.positions)
        k = min(max(cfg.sample_neighbors, cfg.max_neighbors) + 1, n)
        ids = np.arange(start, stop)
        pts = self.positions[ids]
        dists, idx = self._tree.query(pts, k=list(range(1, k + 1)))

        # adaptive radius from the spacing of the nearest samples
        sample = dists[:, 1 : cfg.sample_neighbors + 1]
        spacing = sample.mean(axis=1) if sample.shape[1] else np.zeros(len(ids))
        radius = cfg.radius_factor * spacing
        self.radii[ids] = radius

        mask = (dists > 0) & (dists <= radius[:, None]) & (idx != ids[:, None])
        dp = self.positions[idx] - pts[:, None, :]
        dn = self.normals[idx] - self.normals[ids][:, None, :]
        dist2 = np.where(mask, dists**2, 1.0)
        kappa = np.where(mask, np.einsum("ijk,ijk->ij", dn, dp) / dist2, 0.0)
        counts = mask.sum(axis=1)
        mean = np.divide(kappa.sum(axis=1), counts, out=np.zeros(len(ids)), where=counts > 0)

        facing = np.clip(self.normals[ids] @ self.frame.forward, 0.0, None)
        weight = cfg.forward_weight
        self.curvature[ids] = np.clip(mean, 0.0, None) * ((1.0 - weight) + weight * facing)

    def steps(self) -> Iterator[CurvatureProgress]:
        total = len(self.positions)
        chunk = max(1, int(self.config.chunk_size))
        for start in range(0, total, chunk):
            stop = min(start + chunk, total)
            self._chunk(start, stop)
            yield CurvatureProgress(stop, total)

    def run(self, progress: Optional[Callable[[CurvatureProgress], None]] = None) -> np.ndarray:
        for step in self.steps():
            if progress is not None:
                progress(step)
        LOGGER.info("curvature_computed", vertices=len(self.positions))
        return self.curvature

    async def run_async(
        self, progress: Optional[Callable[[CurvatureProgress], None]] = None
    ) -> np.ndarray:
        last_yield = 0
        for step in self.steps():
            if progress is not None:
                progress(step)
            if step.done - last_yield >= self.config.yield_every:
                last_yield = step.done
                await asyncio.sleep(0)
        LOGGER.info("curvature_computed", vertices=len(self.positions), mode="async")
        return self.curvature


def compute_curvature(mesh: Mesh, config: Optional[AnalyzerConfig] = None, frame: Optional[Frame] = None) -> np.ndarray:
    return CurvatureEstimator(mesh, config, frame).run()


async def compute_curvature_async(
    mesh: Mesh,
    config: Optional[AnalyzerConfig] = None,
    frame: Optional[Frame] = None,
    progress: Optional[Callable[[CurvatureProgress], None]] = None,
) -> np.ndarray:
    return await CurvatureEstimator(mesh, config, frame).run_async(progress)
