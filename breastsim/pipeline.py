# SPDX-License-Identifier: Apache-2.0
"""Session object wiring annotation, analysis, measurement and deformation.

Data flows one way per step::

    SurfaceQuery -> AnnotationCapture -> {detection | manual landmarks}
        -> measurements -> deformation -> measurements

Every parameter change deforms the original mesh again and recomputes the
volumes; the displaced mesh is published to the scene in a single swap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from breastsim.analysis.anatomy import analyze_anatomy, derive_anatomy
from breastsim.analysis.detection import DetectionResult, detect_regions_async
from breastsim.analysis.extraction import (
    ExtractedRegion,
    extract_detected_region,
    extract_region,
)
from breastsim.annotation.capture import AnnotationCapture, AnnotationSet
from breastsim.anatomy.models import AnatomySet, Side
from breastsim.config import Config, get_config
from breastsim.deform.engine import DeformationTarget, deform_bilateral
from breastsim.deform.parameters import AugmentationParameters
from breastsim.deform.simulation import simulate_bilateral
from breastsim.errors import PreconditionError
from breastsim.logging_utils import get_logger
from breastsim.measure.calibration import ScaleCalibration
from breastsim.measure.measurements import automatic_measurements, distance, manual_measurements
from breastsim.measure.volume import estimate_volumes, region_volume, volume_calculation
from breastsim.mesh.loader import load_mesh
from breastsim.mesh.surface import Mesh
from breastsim.query.camera import PerspectiveCamera
from breastsim.query.scene import Scene
from breastsim.schemas import (
    AnnotationDocument,
    AugmentationResult,
    MeasurementSet,
    VolumeCalculation,
)
from breastsim.utils.geometry import Frame

LOGGER = get_logger(__name__)


@dataclass
class SimulationResult:
    mesh: Mesh
    volumes: Optional[VolumeCalculation]
    results: Dict[Side, AugmentationResult] = field(default_factory=dict)


class MeasurementSession:
    def __init__(
        self,
        mesh: Mesh,
        camera: Optional[PerspectiveCamera] = None,
        controls=None,
        config: Optional[Config] = None,
    ) -> None:
        self.config = config or get_config()
        self.frame = Frame.from_axes(self.config.frame.up, self.config.frame.forward)
        self.base_mesh = mesh if mesh.has_normals else mesh.with_normals()
        self.scene = Scene()
        self.node = self.scene.add_mesh(self.base_mesh)
        self.camera = camera or PerspectiveCamera()
        self.capture = AnnotationCapture(self.scene, self.camera, controls, self.config.capture)
        self.calibration = ScaleCalibration.default(self.config.measurement)
        self.detection: Optional[DetectionResult] = None
        self.anatomy: Optional[AnatomySet] = None

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "MeasurementSession":
        return cls(load_mesh(path), **kwargs)

    @property
    def annotations(self):
        return self.capture.annotations

    @property
    def mesh(self) -> Mesh:
        """Currently published geometry (deformed after :meth:`simulate`)."""
        return self.node.mesh

    def load_annotations(self, path: Union[str, Path]) -> AnnotationSet:
        """Restore saved contours and landmarks, and their reference distance if any."""
        document = AnnotationDocument.from_json(Path(path))
        loaded = AnnotationSet.from_document(document)
        for contour in loaded.contours.values():
            self.annotations.add(contour)
            self.capture.overlay.show_contour(contour)
        for landmark in loaded.landmarks.values():
            self.annotations.add(landmark)
            self.capture.overlay.show_landmark(landmark)
        if document.reference_distance_cm is not None:
            self.calibrate(document.reference_distance_cm)
        return self.annotations

    def save_annotations(self, path: Union[str, Path], reference_cm: Optional[float] = None) -> None:
        self.annotations.to_document(reference_cm).to_json(Path(path))

    # -- automatic path --------------------------------------------------

    def detect(self) -> AnatomySet:
        self.anatomy, self.detection = analyze_anatomy(
            self.base_mesh, self.config.analyzer, self.frame
        )
        return self.anatomy

    async def detect_async(self, progress=None) -> AnatomySet:
        if self.config.analyzer.strategy != "curvature":
            return self.detect()
        self.detection = await detect_regions_async(
            self.base_mesh, self.config.analyzer, self.frame, progress
        )
        self.anatomy = derive_anatomy(self.base_mesh, self.detection, self.config.analyzer)
        return self.anatomy

    # -- calibration -----------------------------------------------------

    def calibrate(self, reference_cm: float, measured_units: Optional[float] = None) -> ScaleCalibration:
        """Set the unit scale from a known nipple-to-nipple distance in centimetres."""
        if measured_units is None:
            measured_units = self._landmark_distance()
        self.calibration = ScaleCalibration.from_reference(
            reference_cm, measured_units, self.config.measurement
        )
        return self.calibration

    def _landmark_distance(self) -> float:
        left, right = self.annotations.landmark(Side.LEFT), self.annotations.landmark(Side.RIGHT)
        if left is not None and right is not None:
            return distance(left, right)
        if self.anatomy is not None and all(s in self.anatomy.sides for s in Side):
            return distance(self.anatomy.sides[Side.LEFT].nipple, self.anatomy.sides[Side.RIGHT].nipple)
        raise PreconditionError("calibration needs both landmarks, placed or detected")

    # -- measurements ----------------------------------------------------

    def manual_measurements(self) -> Optional[MeasurementSet]:
        return manual_measurements(
            self.annotations.contours,
            self.annotations.landmarks,
            self.calibration,
            self.config.measurement,
            self.frame,
        )

    def automatic_measurements(self) -> Optional[MeasurementSet]:
        if self.anatomy is None:
            self.detect()
        return automatic_measurements(self.anatomy, self.calibration, self.config.measurement, self.frame)

    def measurements(self) -> Optional[MeasurementSet]:
        """Manual measurements when both sides are annotated, automatic otherwise."""
        manual = self.manual_measurements()
        return manual if manual is not None else self.automatic_measurements()

    def regions(self) -> Dict[Side, ExtractedRegion]:
        """Region patches on the base mesh, preferring drawn contours over detection."""
        regions: Dict[Side, ExtractedRegion] = {}
        for side in Side:
            contour = self.annotations.contour(side)
            if contour is not None:
                regions[side] = extract_region(
                    self.base_mesh, contour, self.annotations.landmark(side), self.config.extraction
                )
            elif self.detection is not None and self.detection.region(side) is not None:
                regions[side] = extract_detected_region(self.base_mesh, self.detection.region(side))
        return regions

    def volumes(self, method: str = "ellipsoid", mesh: Optional[Mesh] = None) -> Optional[VolumeCalculation]:
        if method == "ellipsoid":
            measurements = self.measurements()
            return None if measurements is None else estimate_volumes(measurements)
        if method != "mesh":
            raise ValueError(f"unknown volume method: {method!r}")
        regions = self.regions()
        if len(regions) < 2:
            return None
        source = mesh or self.base_mesh
        per_side = {
            side: region_volume(region.refresh(source), self.calibration)
            for side, region in regions.items()
        }
        return volume_calculation(per_side[Side.LEFT], per_side[Side.RIGHT], "mesh")

    # -- deformation loop ------------------------------------------------

    def targets(self) -> Dict[Side, DeformationTarget]:
        targets: Dict[Side, DeformationTarget] = {}
        for side in Side:
            contour = self.annotations.contour(side)
            landmark = self.annotations.landmark(side)
            if contour is not None and landmark is not None:
                targets[side] = DeformationTarget.from_contour(
                    contour, landmark, self.frame, self.config.deformation
                )
                continue
            if self.detection is None:
                continue
            region, auto = self.detection.region(side), self.detection.landmark(side)
            if region is not None and auto is not None:
                targets[side] = DeformationTarget.from_region(
                    region, auto, self.base_mesh.vertices, self.frame, self.config.deformation
                )
        return targets

    def simulate(
        self,
        left: AugmentationParameters,
        right: Optional[AugmentationParameters] = None,
        volume_method: str = "mesh",
    ) -> SimulationResult:
        params = {Side.LEFT: left, Side.RIGHT: right if right is not None else left}
        targets = self.targets()
        if not targets:
            raise PreconditionError("no deformation target: annotate or detect a region first")
        deformed = deform_bilateral(self.base_mesh, targets, params, self.config.deformation)
        self.scene.publish(self.node, deformed)

        volumes = self.volumes(volume_method, mesh=deformed)
        measurements = self.measurements()
        results = (
            simulate_bilateral(measurements, params, self.config)
            if measurements is not None
            else {}
        )
        return SimulationResult(mesh=deformed, volumes=volumes, results=results)

    def reset(self) -> None:
        """Publish the undeformed mesh again."""
        self.scene.publish(self.node, self.base_mesh)
