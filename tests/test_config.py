from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from poseproof.config import (
    AnimationStyle,
    ExportFormat,
    GifExportOptions,
    PngExportOptions,
    aspect_ratio_for,
    export_filename,
    gif_dimensions,
    normalize_format_value,
    panel_dimensions,
)


def test_aspect_ratios() -> None:
    assert aspect_ratio_for("1:1") == 1.0
    assert aspect_ratio_for(ExportFormat.portrait) == pytest.approx(0.8)
    assert aspect_ratio_for("9:16") == pytest.approx(0.5625)


def test_panel_dimensions_per_format() -> None:
    assert panel_dimensions("1:1", 1080) == (1080, 1080)
    assert panel_dimensions("4:5", 1080) == (1080, 1350)
    assert panel_dimensions("9:16", 1080) == (1080, 1920)
    assert panel_dimensions("9:16", 1440) == (1440, 2560)


def test_gif_dimensions() -> None:
    assert gif_dimensions("1:1") == (540, 540)
    assert gif_dimensions("4:5") == (540, 675)
    assert gif_dimensions("9:16") == (540, 960)


def test_normalize_format_value_rejects_unknown() -> None:
    assert normalize_format_value(ExportFormat.story) == "9:16"
    with pytest.raises(ValueError, match="Unsupported export format"):
        normalize_format_value("16:9")


def test_png_options_validate_resolution() -> None:
    options = PngExportOptions(format="4:5", resolution=2160, include_labels=True)
    assert options.panel_size() == (2160, 2700)
    assert options.as_summary()["canvas"] == "4320x2700"
    with pytest.raises(ValidationError):
        PngExportOptions(resolution=720)


def test_gif_options_duration_bounds() -> None:
    options = GifExportOptions(format="9:16", animation_style="crossfade", duration=0.5)
    assert options.animation_style is AnimationStyle.crossfade
    assert options.frame_size() == (540, 960)
    assert options.encoder_workers == 2
    assert options.encoding_timeout_s == 60.0
    with pytest.raises(ValidationError):
        GifExportOptions(duration=0.4)
    with pytest.raises(ValidationError):
        GifExportOptions(duration=10.5)


def test_export_filename_uses_safe_iso_timestamp() -> None:
    moment = datetime(2026, 1, 31, 9, 15, 0, 123000, tzinfo=timezone.utc)
    assert export_filename("poseproof-export", "png", now=moment) == (
        "poseproof-export-2026-01-31T09-15-00-123Z.png"
    )
    assert export_filename("poseproof-slider", ".gif", now=moment).endswith("-123Z.gif")
