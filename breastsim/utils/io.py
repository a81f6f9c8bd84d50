# SPDX-License-Identifier: Apache-2.0
"""Result files written by the command line: measurement JSON and feature archives."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np

from breastsim.errors import PreconditionError
from breastsim.schemas import MeasurementSet, VolumeCalculation

FEATURE_KEYS = ("curvature", "in_region", "is_candidate", "side")

PathLike = Union[str, Path]


def _writable(path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_results(
    path: PathLike, measurements: MeasurementSet, volumes: Optional[VolumeCalculation] = None
) -> Path:
    payload = {"measurements": measurements.model_dump(mode="json")}
    if volumes is not None:
        payload["volumes"] = volumes.model_dump(mode="json")
    path = _writable(path)
    path.write_text(json.dumps(payload, indent=2))
    return path


def read_results(path: PathLike) -> Tuple[MeasurementSet, Optional[VolumeCalculation]]:
    payload = json.loads(Path(path).read_text())
    if "measurements" not in payload:
        raise PreconditionError(f"{path} has no 'measurements' section")
    volumes = payload.get("volumes")
    return (
        MeasurementSet.model_validate(payload["measurements"]),
        VolumeCalculation.model_validate(volumes) if volumes is not None else None,
    )


def save_features(path: PathLike, features) -> Path:
    """Store the per-vertex curvature pass (``VertexFeatures``) as a compressed archive."""
    path = _writable(path)
    np.savez_compressed(path, **{key: getattr(features, key) for key in FEATURE_KEYS})
    return path


def load_features(path: PathLike) -> Dict[str, np.ndarray]:
    with np.load(path) as data:
        missing = [key for key in FEATURE_KEYS if key not in data.files]
        if missing:
            raise PreconditionError(f"{path} is missing feature arrays {missing}")
        return {key: data[key] for key in FEATURE_KEYS}
