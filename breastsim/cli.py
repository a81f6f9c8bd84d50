"""CLI entrypoints."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .analysis.detection import region_colors
from .config import get_config
from .deform.parameters import PRESETS, AugmentationParameters, ImplantProfile, ImplantShape, preset
from .errors import BreastSimError
from .measure.measurements import format_measurement
from .mesh.loader import export_mesh
from .pipeline import MeasurementSession
from .report import planning_report, write_report
from .schemas import MeasurementSet, VolumeCalculation
from .utils.io import save_features, write_results

app = typer.Typer(help="Breast mesh measurement and augmentation simulation.")
console = Console()


def _session(mesh: Path, strategy: Optional[str] = None) -> MeasurementSession:
    cfg = get_config().model_copy(deep=True)
    if strategy:
        cfg.analyzer.strategy = strategy
    return MeasurementSession.from_file(mesh, config=cfg)


def _measurement_table(ms: MeasurementSet, volumes: Optional[VolumeCalculation] = None) -> Table:
    table = Table(title=f"Measurements ({ms.source})")
    table.add_column("Measurement", style="cyan")
    table.add_column("Left", justify="right")
    table.add_column("Right", justify="right")
    table.add_row("Width", format_measurement(ms.left_width), format_measurement(ms.right_width))
    table.add_row("Height", format_measurement(ms.left_height), format_measurement(ms.right_height))
    table.add_row(
        "Circumference",
        format_measurement(ms.left_circumference),
        format_measurement(ms.right_circumference),
    )
    table.add_row(
        "Projection", format_measurement(ms.left_projection), format_measurement(ms.right_projection)
    )
    if volumes is not None:
        table.add_row(
            f"Volume ({volumes.method})",
            format_measurement(volumes.left_volume, "cm3"),
            format_measurement(volumes.right_volume, "cm3"),
        )
    table.add_row("Nipple distance", format_measurement(ms.nipple_distance), "")
    table.add_row("Inframammary width", format_measurement(ms.inframammary_width), "")
    table.add_row("Chest wall width", format_measurement(ms.chest_wall_width), "")
    table.add_row("Symmetry", format_measurement(ms.symmetry_ratio, "%"), "")
    table.add_row("Cup size", ms.cup_size, "")
    return table


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]error:[/] {exc}")
    raise typer.Exit(code=1)


@app.command()
def analyze(
    mesh: Path = typer.Argument(..., exists=True, help="OBJ/PLY/STL/GLB torso scan"),
    strategy: Optional[str] = typer.Option(None, help="curvature or proportional"),
    reference_cm: Optional[float] = typer.Option(None, help="Known nipple-to-nipple distance"),
    json_out: Optional[Path] = typer.Option(None, "--json", help="Write measurements as JSON"),
    features_out: Optional[Path] = typer.Option(None, "--features", help="Write curvature features (.npz)"),
    colored_out: Optional[Path] = typer.Option(None, "--colored", help="Export mesh with region colours"),
):
    """Detect regions and landmarks automatically and measure them."""
    try:
        session = _session(mesh, strategy)
        anatomy = session.detect()
        if reference_cm is not None:
            session.calibrate(reference_cm)
        ms = session.automatic_measurements()
    except BreastSimError as exc:
        _fail(exc)

    detection = session.detection
    if detection is not None:
        if features_out is not None:
            save_features(features_out, detection.features)
        if colored_out is not None:
            export_mesh(session.base_mesh, colored_out, colors=region_colors(detection))

    for side in anatomy.sides.values():
        typer.echo(f"{side.side.value} landmark: {[round(float(v), 4) for v in side.nipple]}")
    if ms is None:
        console.print("[yellow]partial detection: measurements need both sides[/]")
        raise typer.Exit(code=2)
    volumes = session.volumes("ellipsoid")
    console.print(_measurement_table(ms, volumes))
    if json_out is not None:
        write_results(json_out, ms, volumes)


@app.command()
def measure(
    mesh: Path = typer.Argument(..., exists=True),
    annotations: Path = typer.Option(..., exists=True, help="Annotation JSON with contours and landmarks"),
    reference_cm: Optional[float] = typer.Option(None, help="Known nipple-to-nipple distance"),
    volume_method: str = typer.Option("ellipsoid", help="ellipsoid or mesh"),
    json_out: Optional[Path] = typer.Option(None, "--json"),
):
    """Measure user-drawn contours and landmarks."""
    try:
        session = _session(mesh)
        session.load_annotations(annotations)
        if reference_cm is not None:
            session.calibrate(reference_cm)
        ms = session.manual_measurements()
        if ms is None:
            _fail(BreastSimError("annotations need a contour and a landmark on both sides"))
        volumes = session.volumes(volume_method)
    except BreastSimError as exc:
        _fail(exc)
    console.print(_measurement_table(ms, volumes))
    if json_out is not None:
        write_results(json_out, ms, volumes)


@app.command()
def simulate(
    mesh: Path = typer.Argument(..., exists=True),
    annotations: Optional[Path] = typer.Option(None, exists=True, help="Use drawn regions instead of detection"),
    preset_name: Optional[str] = typer.Option("moderate", "--preset", help="natural, moderate or dramatic"),
    size: Optional[float] = typer.Option(None, help="Override the size multiplier"),
    projection: Optional[float] = typer.Option(None, help="Override the projection multiplier"),
    shape: ImplantShape = typer.Option(ImplantShape.ROUND),
    profile: Optional[ImplantProfile] = typer.Option(None),
    output: Optional[Path] = typer.Option(None, help="Export the deformed mesh"),
    report: Optional[Path] = typer.Option(None, help="Write a text planning report"),
):
    """Deform the scan with augmentation parameters and report new volumes."""
    try:
        params = preset(preset_name) if preset_name else AugmentationParameters()
        overrides = {"implant_shape": shape}
        if size is not None:
            overrides["size_multiplier"] = size
        if projection is not None:
            overrides["projection_multiplier"] = projection
        if profile is not None:
            overrides["implant_profile"] = profile
        params = params.updated(**overrides)
    except ValueError as exc:
        _fail(exc)

    try:
        session = _session(mesh)
        if annotations is not None:
            session.load_annotations(annotations)
        else:
            session.detect()
        before = session.volumes("mesh")
        result = session.simulate(params)
    except BreastSimError as exc:
        _fail(exc)

    table = Table(title="Augmentation")
    table.add_column("Side", style="cyan")
    table.add_column("Volume before", justify="right")
    table.add_column("Volume after", justify="right")
    table.add_column("Cup", justify="right")
    for side, outcome in result.results.items():
        mesh_before = mesh_after = ""
        if before is not None and result.volumes is not None:
            key = f"{side.value}_volume"
            mesh_before = format_measurement(getattr(before, key), "cm3")
            mesh_after = format_measurement(getattr(result.volumes, key), "cm3")
        table.add_row(side.value, mesh_before, mesh_after, outcome.new_cup_size)
    console.print(table)

    if output is not None:
        export_mesh(result.mesh, output)
        typer.echo(f"Deformed mesh written to {output}")
    if report is not None:
        measurements = session.measurements()
        if measurements is not None:
            write_report(report, planning_report(measurements, {s: params for s in result.results}, result.volumes))
            typer.echo(f"Report written to {report}")


@app.command()
def presets():
    """List the built-in augmentation presets."""
    typer.echo(json.dumps({name: p.model_dump(mode="json") for name, p in PRESETS.items()}, indent=2))


if __name__ == "__main__":
    app()
