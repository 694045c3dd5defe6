from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from poseproof.alignment.calculator import AlignmentResult, calculate_aligned_draw_params
from poseproof.alignment.validation import ValidationResult, validate_alignment
from poseproof.config import (
    AnimationStyle,
    ExportFormat,
    ExportResolution,
    GifExportOptions,
    PngExportOptions,
    panel_dimensions,
)
from poseproof.errors import EncoderError, ImageDecodeError, SurfaceError
from poseproof.export.gif_export import export_gif
from poseproof.export.static_export import export_png
from poseproof.io.image_loader import LoadedImage, load_image_pair, save_png
from poseproof.landmarks.pose import Landmark, PhotoRef, load_landmarks_json
from poseproof.render.animation import build_schedule
from poseproof.render.preview import PreviewRenderer
from poseproof.viz.alignment_plot import save_alignment_plot

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="PoseProof CLI for aligned before/after photo comparisons.",
)
align_app = typer.Typer(help="Alignment computation and QA utilities.")
export_app = typer.Typer(help="PNG and GIF export.")
app.add_typer(align_app, name="align")
app.add_typer(export_app, name="export")
console = Console()

LOG_FORMAT = "%(asctime)s  %(levelname)-7s  %(name)s  %(message)s"


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging.",
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


def _load_landmarks(path: Path | None, param_hint: str) -> list[Landmark | None] | None:
    if path is None:
        return None
    try:
        return load_landmarks_json(path)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint=param_hint) from exc


def _load_pair(
    before: Path,
    after: Path,
    before_landmarks: Path | None,
    after_landmarks: Path | None,
) -> tuple[LoadedImage, LoadedImage, PhotoRef, PhotoRef]:
    before_lm = _load_landmarks(before_landmarks, "--before-landmarks")
    after_lm = _load_landmarks(after_landmarks, "--after-landmarks")
    for path, hint in ((before, "--before"), (after, "--after")):
        if not path.exists():
            raise typer.BadParameter(f"Image file does not exist: {path}", param_hint=hint)
    try:
        before_img, after_img = load_image_pair(before, after)
    except (FileNotFoundError, ValueError, ImageDecodeError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--before/--after") from exc
    return before_img, after_img, before_img.photo_ref(before_lm), after_img.photo_ref(after_lm)


def _resolve_panel(
    export_format: ExportFormat,
    resolution: int,
    width: int | None,
    height: int | None,
) -> tuple[int, int]:
    if (width is None) != (height is None):
        raise typer.BadParameter("--width and --height must be given together", param_hint="--width")
    if width is not None and height is not None:
        if width <= 0 or height <= 0:
            raise typer.BadParameter(
                f"panel size must be positive, got: {width}x{height}", param_hint="--width"
            )
        return width, height
    try:
        return panel_dimensions(export_format, resolution)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--resolution") from exc


def _validation_table(validation: ValidationResult, result: AlignmentResult) -> Table:
    table = Table(title="Alignment check")
    table.add_column("Check")
    table.add_column("Value")
    table.add_row("Anchor", "shoulder" if result.used_shoulder_anchor else "nose")
    table.add_row("Anchor delta", f"{validation.anchor_delta:.2f}px")
    table.add_row("Headroom", f"{validation.headroom_ratio * 100:.1f}%")
    table.add_row("Applied scale", f"{validation.applied_scale:.3f}")
    table.add_row("Top crop offset", f"{result.top_crop_offset:.1f}px")
    table.add_row("Result", "[green]PASS[/green]" if validation.passed else "[red]FAIL[/red]")
    for message in validation.errors:
        table.add_row("[red]error[/red]", message)
    for message in validation.warnings:
        table.add_row("[yellow]warning[/yellow]", message)
    return table


def _write_output(out: Path, data: bytes) -> Path:
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    return out


@align_app.command("run")
def align_run(
    before: Path = typer.Option(..., "--before", help="Before photo path."),
    after: Path = typer.Option(..., "--after", help="After photo path."),
    before_landmarks: Optional[Path] = typer.Option(
        None,
        "--before-landmarks",
        help="JSON file with 33 pose landmarks for the before photo.",
    ),
    after_landmarks: Optional[Path] = typer.Option(
        None,
        "--after-landmarks",
        help="JSON file with 33 pose landmarks for the after photo.",
    ),
    export_format: ExportFormat = typer.Option(ExportFormat.square, "--format", help="Panel aspect."),
    resolution: int = typer.Option(1080, "--resolution", help="Panel width: 1080, 1440 or 2160."),
    width: Optional[int] = typer.Option(None, "--width", help="Explicit panel width."),
    height: Optional[int] = typer.Option(None, "--height", help="Explicit panel height."),
    out: Optional[Path] = typer.Option(None, "--out", help="Optional JSON output path."),
) -> None:
    _, _, before_ref, after_ref = _load_pair(before, after, before_landmarks, after_landmarks)
    panel_width, panel_height = _resolve_panel(export_format, resolution, width, height)
    result = calculate_aligned_draw_params(before_ref, after_ref, panel_width, panel_height)
    validation = validate_alignment(result, before_ref.landmarks, after_ref.landmarks, panel_height)

    payload = {
        "panel": {"width": panel_width, "height": panel_height},
        **result.as_dict(),
        "validation": {
            "passed": validation.passed,
            "errors": validation.errors,
            "warnings": validation.warnings,
        },
    }
    console.print_json(data=payload)
    console.print(_validation_table(validation, result))
    if out is not None:
        _write_output(out, json.dumps(payload, indent=2).encode("utf-8"))
        console.print(f"Saved alignment to {out}")


@align_app.command("viz")
def align_viz(
    before: Path = typer.Option(..., "--before", help="Before photo path."),
    after: Path = typer.Option(..., "--after", help="After photo path."),
    before_landmarks: Optional[Path] = typer.Option(None, "--before-landmarks"),
    after_landmarks: Optional[Path] = typer.Option(None, "--after-landmarks"),
    export_format: ExportFormat = typer.Option(ExportFormat.square, "--format"),
    resolution: int = typer.Option(1080, "--resolution"),
    out: Path = typer.Option(Path("alignment_check.png"), "--out", help="QA plot PNG path."),
) -> None:
    _, _, before_ref, after_ref = _load_pair(before, after, before_landmarks, after_landmarks)
    panel_width, panel_height = _resolve_panel(export_format, resolution, None, None)
    result = calculate_aligned_draw_params(before_ref, after_ref, panel_width, panel_height)
    try:
        validation = save_alignment_plot(
            result, before_ref, after_ref, panel_width, panel_height, out
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--out") from exc

    console.print(_validation_table(validation, result))
    console.print(f"Saved alignment plot to {out}")


@export_app.command("png")
def export_png_command(
    before: Path = typer.Option(..., "--before", help="Before photo path."),
    after: Path = typer.Option(..., "--after", help="After photo path."),
    before_landmarks: Optional[Path] = typer.Option(None, "--before-landmarks"),
    after_landmarks: Optional[Path] = typer.Option(None, "--after-landmarks"),
    export_format: ExportFormat = typer.Option(ExportFormat.square, "--format"),
    resolution: int = typer.Option(
        int(ExportResolution.hd),
        "--resolution",
        help="Half-panel width: 1080, 1440 or 2160.",
    ),
    labels: bool = typer.Option(False, "--labels/--no-labels", help="Draw Before/After labels."),
    out: Optional[Path] = typer.Option(None, "--out", help="Output PNG path."),
) -> None:
    try:
        options = PngExportOptions(format=export_format, resolution=resolution, include_labels=labels)
    except ValidationError as exc:
        message = exc.errors()[0].get("msg", "Invalid input")
        raise typer.BadParameter(message, param_hint="--resolution") from exc

    before_lm = _load_landmarks(before_landmarks, "--before-landmarks")
    after_lm = _load_landmarks(after_landmarks, "--after-landmarks")
    try:
        result = export_png(
            before, after, options, before_landmarks=before_lm, after_landmarks=after_lm
        )
    except (FileNotFoundError, ValueError, ImageDecodeError, SurfaceError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--before/--after") from exc

    target = _write_output(out or Path(result.filename), result.data)
    console.print(f"Saved {result.width}x{result.height} PNG to {target}")


@export_app.command("gif")
def export_gif_command(
    before: Path = typer.Option(..., "--before", help="Before photo path."),
    after: Path = typer.Option(..., "--after", help="After photo path."),
    before_landmarks: Optional[Path] = typer.Option(None, "--before-landmarks"),
    after_landmarks: Optional[Path] = typer.Option(None, "--after-landmarks"),
    export_format: ExportFormat = typer.Option(ExportFormat.square, "--format"),
    style: AnimationStyle = typer.Option(AnimationStyle.slider, "--style", help="Animation style."),
    duration: float = typer.Option(2.0, "--duration", help="Seconds, 0.5-10 (toggle ignores it)."),
    labels: bool = typer.Option(False, "--labels/--no-labels"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output GIF path."),
) -> None:
    try:
        options = GifExportOptions(
            format=export_format,
            animation_style=style,
            duration=duration,
            include_labels=labels,
        )
    except ValidationError as exc:
        message = exc.errors()[0].get("msg", "Invalid input")
        raise typer.BadParameter(message, param_hint="--duration") from exc

    before_lm = _load_landmarks(before_landmarks, "--before-landmarks")
    after_lm = _load_landmarks(after_landmarks, "--after-landmarks")

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )
    with progress:
        task_id = progress.add_task("frames", total=1.0)

        def _on_progress(fraction: float, status: str) -> None:
            progress.update(task_id, completed=fraction, description=status)

        try:
            result = export_gif(
                before,
                after,
                options,
                before_landmarks=before_lm,
                after_landmarks=after_lm,
                on_progress=_on_progress,
            )
        except (FileNotFoundError, ValueError, ImageDecodeError, SurfaceError) as exc:
            raise typer.BadParameter(str(exc), param_hint="--before/--after") from exc
        except EncoderError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc

    target = _write_output(out or Path(result.filename), result.data)
    console.print(
        f"Saved {result.width}x{result.height} GIF ({result.frame_count} frames, "
        f"{result.file_size / 1024:.1f} KB) to {target}"
    )


@app.command("preview")
def preview_command(
    before: Path = typer.Option(..., "--before", help="Before photo path."),
    after: Path = typer.Option(..., "--after", help="After photo path."),
    before_landmarks: Optional[Path] = typer.Option(None, "--before-landmarks"),
    after_landmarks: Optional[Path] = typer.Option(None, "--after-landmarks"),
    export_format: ExportFormat = typer.Option(ExportFormat.square, "--format"),
    container_width: int = typer.Option(960, "--container-width", min=1),
    container_height: int = typer.Option(540, "--container-height", min=1),
    labels: bool = typer.Option(False, "--labels/--no-labels"),
    out: Path = typer.Option(Path("preview.png"), "--out", help="Preview PNG path."),
) -> None:
    before_img, after_img, before_ref, after_ref = _load_pair(
        before, after, before_landmarks, after_landmarks
    )
    renderer = PreviewRenderer(export_format, include_labels=labels)
    surface, layout = renderer.render_to_array(
        before_img.image_rgb,
        after_img.image_rgb,
        before_ref,
        after_ref,
        container_width,
        container_height,
    )
    try:
        save_png(out, surface)
    except (ValueError, RuntimeError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--out") from exc
    console.print(f"Saved {layout.width}x{layout.height} preview to {out}")


@app.command("schedule")
def schedule_command(
    style: AnimationStyle = typer.Option(AnimationStyle.slider, "--style"),
    duration: float = typer.Option(2.0, "--duration", min=0.5, max=10.0),
) -> None:
    schedule = build_schedule(style, duration)
    table = Table(title=f"{style.value} schedule")
    table.add_column("Frame", justify="right")
    table.add_column("Delay (ms)", justify="right")
    for idx, delay in enumerate(schedule.delays_ms):
        table.add_row(str(idx), str(delay))
    console.print(table)
    console.print(f"Total: {schedule.frame_count} frames, {schedule.total_ms} ms")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
