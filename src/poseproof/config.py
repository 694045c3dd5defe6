from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

GIF_WIDTH = 540
GIF_ENCODER_WORKERS = 2
GIF_ENCODING_TIMEOUT_S = 60.0
MIN_GIF_DURATION_S = 0.5
MAX_GIF_DURATION_S = 10.0


class ExportFormat(str, Enum):
    square = "1:1"
    portrait = "4:5"
    story = "9:16"


class ExportResolution(IntEnum):
    hd = 1080
    qhd = 1440
    uhd = 2160


class AnimationStyle(str, Enum):
    slider = "slider"
    crossfade = "crossfade"
    toggle = "toggle"


_ASPECT_RATIOS: dict[ExportFormat, float] = {
    ExportFormat.square: 1.0,
    ExportFormat.portrait: 4 / 5,
    ExportFormat.story: 9 / 16,
}


def aspect_ratio_for(export_format: ExportFormat | str) -> float:
    """Width / height of one half of a side-by-side export."""
    return _ASPECT_RATIOS[ExportFormat(normalize_format_value(export_format))]


def panel_dimensions(export_format: ExportFormat | str, resolution: int) -> tuple[int, int]:
    """Half-width and height in pixels of a PNG export panel."""
    if resolution <= 0:
        raise ValueError(f"resolution must be > 0, got: {resolution}")
    fmt = ExportFormat(normalize_format_value(export_format))
    if fmt is ExportFormat.square:
        return resolution, resolution
    if fmt is ExportFormat.portrait:
        return resolution, round(resolution * 1.25)
    return resolution, round(resolution * 16 / 9)


def gif_dimensions(export_format: ExportFormat | str, width: int = GIF_WIDTH) -> tuple[int, int]:
    return width, round(width / aspect_ratio_for(export_format))


def export_filename(prefix: str, extension: str, *, now: datetime | None = None) -> str:
    """``<prefix>-2026-01-31T09-15-00-123Z.<ext>``: an ISO UTC timestamp made filename safe."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    stamp = moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"
    return f"{prefix}-{stamp}.{extension.lstrip('.')}"


def normalize_format_value(export_format: Any) -> str:
    if isinstance(export_format, ExportFormat):
        return export_format.value
    value = str(export_format.value) if hasattr(export_format, "value") else str(export_format)
    valid_values = {member.value for member in ExportFormat}
    if value not in valid_values:
        valid = ", ".join(member.value for member in ExportFormat)
        raise ValueError(f"Unsupported export format '{value}'. Expected one of: {valid}")
    return value


class PngExportOptions(BaseModel):
    format: ExportFormat = Field(default=ExportFormat.square, description="Panel aspect ratio")
    resolution: int = Field(default=ExportResolution.hd, description="Half-panel width in pixels")
    include_labels: bool = False

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, value: int) -> int:
        valid_values = {member.value for member in ExportResolution}
        if int(value) not in valid_values:
            valid = ", ".join(str(member.value) for member in ExportResolution)
            raise ValueError(f"Unsupported resolution {value}. Expected one of: {valid}")
        return int(value)

    def panel_size(self) -> tuple[int, int]:
        return panel_dimensions(self.format, self.resolution)

    def as_summary(self) -> dict[str, str]:
        width, height = self.panel_size()
        return {
            "format": self.format.value,
            "resolution": str(self.resolution),
            "canvas": f"{width * 2}x{height}",
            "labels": str(self.include_labels),
        }


class GifExportOptions(BaseModel):
    format: ExportFormat = Field(default=ExportFormat.square, description="Frame aspect ratio")
    animation_style: AnimationStyle = AnimationStyle.slider
    duration: float = Field(
        default=2.0,
        ge=MIN_GIF_DURATION_S,
        le=MAX_GIF_DURATION_S,
        description="Animation duration in seconds (ignored by toggle)",
    )
    include_labels: bool = False
    width: int = Field(default=GIF_WIDTH, gt=0)
    encoder_workers: int = Field(default=GIF_ENCODER_WORKERS, ge=1)
    encoding_timeout_s: float = Field(default=GIF_ENCODING_TIMEOUT_S, gt=0)

    def frame_size(self) -> tuple[int, int]:
        return gif_dimensions(self.format, self.width)

    def as_summary(self) -> dict[str, str]:
        width, height = self.frame_size()
        return {
            "format": self.format.value,
            "style": self.animation_style.value,
            "duration": f"{self.duration:g}s",
            "frame": f"{width}x{height}",
            "labels": str(self.include_labels),
        }
