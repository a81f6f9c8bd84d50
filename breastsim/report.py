# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Dict, Optional

from breastsim.anatomy.models import Side
from breastsim.deform.parameters import AugmentationParameters
from breastsim.deform.simulation import simulate_bilateral
from breastsim.logging_utils import get_logger
from breastsim.measure.measurements import asymmetry_ratio, format_measurement
from breastsim.schemas import MeasurementSet, VolumeCalculation

LOGGER = get_logger(__name__)


def planning_report(
    measurements: MeasurementSet,
    params: Dict[Side, AugmentationParameters],
    volumes: Optional[VolumeCalculation] = None,
    generated_on: Optional[date] = None,
) -> str:
    """Plain-text augmentation planning summary."""
    results = simulate_bilateral(measurements, params)
    lines = [
        "BREAST AUGMENTATION SIMULATION REPORT",
        "=====================================",
        "",
        "PATIENT MEASUREMENTS:",
        f"- Nipple-to-nipple distance: {format_measurement(measurements.nipple_distance)}",
        f"- Inframammary width: {format_measurement(measurements.inframammary_width)}",
        f"- Current symmetry ratio: {format_measurement(measurements.symmetry_ratio, '%')}",
        f"- Estimated cup size: {measurements.cup_size}",
    ]
    if volumes is not None:
        lines.append(
            f"- Current volumes ({volumes.method}): "
            f"L {format_measurement(volumes.left_volume, 'cm3')}, "
            f"R {format_measurement(volumes.right_volume, 'cm3')}"
        )

    for side, result in results.items():
        lines += [
            "",
            f"{side.value.upper()} BREAST:",
            f"- Current volume: {format_measurement(result.original_volume, 'cm3')}",
            f"- Projected volume: {format_measurement(result.augmented_volume, 'cm3')}",
            f"- Volume increase: +{format_measurement(result.volume_increase, 'cm3')}",
            f"- Projected cup size: {result.new_cup_size}",
            f"- Projection increase: +{format_measurement(result.projection_increase)}",
            f"- Implant: {params[side].implant_shape.value}, {params[side].implant_profile.value} profile",
        ]

    if len(results) == 2:
        after = asymmetry_ratio(
            results[Side.LEFT].augmented_volume, results[Side.RIGHT].augmented_volume
        )
        lines += ["", "SYMMETRY ANALYSIS:", f"- Post-augmentation asymmetry: {format_measurement(after, '%')}"]

    lines += ["", f"Generated on: {(generated_on or date.today()).isoformat()}"]
    return "\n".join(lines)


def write_report(path: Path, text: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    LOGGER.info("report_written", path=str(path))
    return path
