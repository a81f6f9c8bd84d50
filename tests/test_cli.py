from __future__ import annotations

import json

import numpy as np
import pytest
from typer.testing import CliRunner

from breastsim.anatomy.models import Contour, Landmark
from breastsim.cli import app
from breastsim.schemas import AnnotationDocument

from conftest import surface_point

runner = CliRunner()


@pytest.fixture
def annotation_file(tmp_path):
    contours, landmarks = [], []
    for side, cx in (("left", -0.08), ("right", 0.08)):
        angles = np.linspace(0.0, 2.0 * np.pi, 12, endpoint=False)
        ring = [surface_point(cx + 0.03 * np.cos(a), 0.03 * np.sin(a)) for a in angles]
        contours.append(Contour.from_points(side, ring))
        landmarks.append(Landmark.at(side, surface_point(cx, 0.0)))
    path = tmp_path / "annotations.json"
    AnnotationDocument.from_annotations(contours, landmarks).to_json(path)
    return path


def test_presets_lists_all_three():
    result = runner.invoke(app, ["presets"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert set(data) == {"natural", "moderate", "dramatic"}
    assert data["dramatic"]["size_multiplier"] == 2.0


def test_analyze(synthetic_mesh, tmp_path):
    out = tmp_path / "analysis.json"
    features = tmp_path / "features.npz"
    result = runner.invoke(
        app, ["analyze", str(synthetic_mesh), "--json", str(out), "--features", str(features)]
    )
    assert result.exit_code == 0, result.stdout
    assert "left landmark" in result.stdout
    payload = json.loads(out.read_text())
    assert payload["measurements"]["source"] == "automatic:curvature"
    assert payload["measurements"]["nipple_distance"] == pytest.approx(16.0, abs=1.5)
    assert payload["volumes"]["method"] == "ellipsoid"
    with np.load(features) as data:
        assert data["curvature"].shape == data["side"].shape


def test_measure_with_annotations(synthetic_mesh, annotation_file, tmp_path):
    out = tmp_path / "measurements.json"
    result = runner.invoke(
        app,
        [
            "measure",
            str(synthetic_mesh),
            "--annotations",
            str(annotation_file),
            "--volume-method",
            "mesh",
            "--json",
            str(out),
        ],
    )
    assert result.exit_code == 0, result.stdout
    payload = json.loads(out.read_text())
    assert payload["measurements"]["source"] == "manual"
    assert payload["measurements"]["nipple_distance"] == pytest.approx(16.0)
    assert payload["volumes"]["method"] == "mesh"


def test_simulate_writes_mesh_and_report(synthetic_mesh, tmp_path):
    mesh_out = tmp_path / "augmented.ply"
    report = tmp_path / "report.txt"
    result = runner.invoke(
        app,
        [
            "simulate",
            str(synthetic_mesh),
            "--preset",
            "natural",
            "--size",
            "1.4",
            "--output",
            str(mesh_out),
            "--report",
            str(report),
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert mesh_out.exists()
    assert "BREAST AUGMENTATION SIMULATION REPORT" in report.read_text()


def test_simulate_rejects_out_of_range_size(synthetic_mesh):
    result = runner.invoke(app, ["simulate", str(synthetic_mesh), "--size", "9"])
    assert result.exit_code == 1


def test_analyze_rejects_unknown_strategy(synthetic_mesh):
    result = runner.invoke(app, ["analyze", str(synthetic_mesh), "--strategy", "magic"])
    assert result.exit_code == 1
    assert "unknown landmark strategy" in result.stdout
