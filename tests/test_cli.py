import json
from pathlib import Path
from typing import Callable

from typer.testing import CliRunner

from conftest import build_pose
from poseproof.cli import app
from poseproof.landmarks.pose import landmarks_to_payload

runner = CliRunner()


def _landmarks_file(path: Path, **pose_kwargs: float) -> Path:
    path.write_text(json.dumps(landmarks_to_payload(build_pose(**pose_kwargs))), encoding="utf-8")
    return path


def test_cli_help_runs() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "aligned before/after photo comparisons" in result.output


def test_schedule_prints_toggle_table() -> None:
    result = runner.invoke(app, ["schedule", "--style", "toggle", "--duration", "5"])
    assert result.exit_code == 0
    assert "8000 ms" in result.output
    assert "12 frames" in result.output


def test_align_run_writes_json(tmp_path: Path, write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    before_lm = _landmarks_file(tmp_path / "before.json")
    after_lm = _landmarks_file(tmp_path / "after.json", nose_y=0.01)
    out = tmp_path / "alignment.json"

    result = runner.invoke(
        app,
        [
            "align",
            "run",
            "--before",
            str(before),
            "--after",
            str(after),
            "--before-landmarks",
            str(before_lm),
            "--after-landmarks",
            str(after_lm),
            "--format",
            "4:5",
            "--out",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["panel"] == {"width": 1080, "height": 1350}
    assert payload["used_shoulder_anchor"] is True
    assert "Alignment check" in result.output


def test_align_run_rejects_missing_image(tmp_path: Path, write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    result = runner.invoke(
        app,
        ["align", "run", "--before", str(before), "--after", str(tmp_path / "missing.png")],
    )
    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_align_run_rejects_missing_landmarks(
    tmp_path: Path, write_image: Callable[..., Path]
) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    result = runner.invoke(
        app,
        [
            "align",
            "run",
            "--before",
            str(before),
            "--after",
            str(after),
            "--before-landmarks",
            str(tmp_path / "nope.json"),
        ],
    )
    assert result.exit_code != 0
    assert "Landmarks file not found" in result.output


def test_export_png_command(tmp_path: Path, write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    out = tmp_path / "out" / "comparison.png"

    result = runner.invoke(
        app,
        ["export", "png", "--before", str(before), "--after", str(after), "--labels", "--out", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert out.read_bytes().startswith(b"\x89PNG")


def test_export_png_rejects_unsupported_resolution(write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    result = runner.invoke(
        app,
        ["export", "png", "--before", str(before), "--after", str(after), "--resolution", "720"],
    )
    assert result.exit_code != 0
    assert "Unsupported resolution" in result.output


def test_export_gif_command(tmp_path: Path, write_image: Callable[..., Path]) -> None:
    before = write_image("before.png", rgb=(255, 0, 0))
    after = write_image("after.png", rgb=(0, 0, 255))
    out = tmp_path / "comparison.gif"

    result = runner.invoke(
        app,
        [
            "export",
            "gif",
            "--before",
            str(before),
            "--after",
            str(after),
            "--style",
            "toggle",
            "--out",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert out.read_bytes().startswith(b"GIF8")
    assert "12 frames" in result.output


def test_preview_command(tmp_path: Path, write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    out = tmp_path / "preview.png"

    result = runner.invoke(
        app,
        [
            "preview",
            "--before",
            str(before),
            "--after",
            str(after),
            "--container-width",
            "400",
            "--container-height",
            "300",
            "--out",
            str(out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert out.exists()


def test_align_viz_command(tmp_path: Path, write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    out = tmp_path / "alignment_check.png"

    result = runner.invoke(
        app,
        ["align", "viz", "--before", str(before), "--after", str(after), "--out", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert out.exists()
