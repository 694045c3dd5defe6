"""Per-frame renderers and frame schedules for the animated comparison.

All three styles share one ``AlignmentResult`` computed for the full frame, so
the subject never shifts between frames. Renderers are pure functions of the
frame index and draw into a caller-owned surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from poseproof.alignment.calculator import AlignmentResult
from poseproof.config import AnimationStyle
from poseproof.render.composite import label_metrics
from poseproof.render.raster import (
    LabelAlign,
    WHITE,
    check_surface,
    draw_image,
    draw_label,
    draw_wipe_line,
    fill,
)

SLIDER_FRAME_COUNT = 30
CROSSFADE_FRAME_COUNT = 24
TOGGLE_DELAYS_MS = (800, 800, 800, 800, 0, 800, 800, 800, 800, 800, 0, 800)
TOGGLE_AFTER_START = 0.4
TOGGLE_AFTER_END = 0.9

FrameRenderer = Callable[..., None]


@dataclass(frozen=True)
class AnimationSchedule:
    frame_count: int
    delays_ms: tuple[int, ...]

    @property
    def total_ms(self) -> int:
        return sum(self.delays_ms)


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def frame_progress(frame_index: int, total_frames: int) -> float:
    if total_frames <= 1:
        return 0.0
    return frame_index / (total_frames - 1)


def _uniform_schedule(frame_count: int, duration_s: float) -> AnimationSchedule:
    delay = round(duration_s * 1000 / frame_count)
    return AnimationSchedule(frame_count=frame_count, delays_ms=(delay,) * frame_count)


def build_schedule(style: AnimationStyle | str, duration_s: float) -> AnimationSchedule:
    """Frame count and per-frame delays; toggle uses a fixed 8 s cadence."""
    style = AnimationStyle(style)
    if style is AnimationStyle.slider:
        return _uniform_schedule(SLIDER_FRAME_COUNT, duration_s)
    if style is AnimationStyle.crossfade:
        return _uniform_schedule(CROSSFADE_FRAME_COUNT, duration_s)
    return AnimationSchedule(frame_count=len(TOGGLE_DELAYS_MS), delays_ms=TOGGLE_DELAYS_MS)


def _draw_frame_label(surface: np.ndarray, text: str, align: LabelAlign) -> None:
    width = surface.shape[1]
    font_size, padding = label_metrics(width)
    if align == "left":
        x = float(padding)
    elif align == "right":
        x = float(width - padding)
    else:
        x = width / 2
    draw_label(surface, text, x=x, y=padding, font_size=font_size, align=align)


def render_slider_frame(
    surface: np.ndarray,
    before_img: np.ndarray,
    after_img: np.ndarray,
    alignment: AlignmentResult,
    frame_index: int,
    total_frames: int,
    include_labels: bool = False,
) -> None:
    check_surface(surface)
    height, width = surface.shape[:2]
    progress = frame_progress(frame_index, total_frames)
    wipe_x = progress * width

    fill(surface, WHITE)
    draw_image(surface, after_img, alignment.after)
    draw_image(surface, before_img, alignment.before, clip=(round(wipe_x), 0, width, height))
    draw_wipe_line(surface, wipe_x)

    if include_labels:
        if progress < 0.5:
            _draw_frame_label(surface, "After", "left")
        else:
            _draw_frame_label(surface, "Before", "right")


def render_crossfade_frame(
    surface: np.ndarray,
    before_img: np.ndarray,
    after_img: np.ndarray,
    alignment: AlignmentResult,
    frame_index: int,
    total_frames: int,
    include_labels: bool = False,
) -> None:
    check_surface(surface)
    eased = ease_in_out_cubic(frame_progress(frame_index, total_frames))

    fill(surface, WHITE)
    draw_image(surface, before_img, alignment.before, alpha=1 - eased)
    draw_image(surface, after_img, alignment.after, alpha=eased)

    if include_labels:
        _draw_frame_label(surface, "Before" if eased < 0.5 else "After", "center")


def toggle_shows_after(frame_index: int, total_frames: int) -> bool:
    progress = frame_progress(frame_index, total_frames)
    return TOGGLE_AFTER_START <= progress < TOGGLE_AFTER_END


def render_toggle_frame(
    surface: np.ndarray,
    before_img: np.ndarray,
    after_img: np.ndarray,
    alignment: AlignmentResult,
    frame_index: int,
    total_frames: int,
    include_labels: bool = False,
) -> None:
    check_surface(surface)
    fill(surface, WHITE)
    if toggle_shows_after(frame_index, total_frames):
        draw_image(surface, after_img, alignment.after)
        label = "After"
    else:
        draw_image(surface, before_img, alignment.before)
        label = "Before"
    if include_labels:
        _draw_frame_label(surface, label, "center")


FRAME_RENDERERS: dict[AnimationStyle, FrameRenderer] = {
    AnimationStyle.slider: render_slider_frame,
    AnimationStyle.crossfade: render_crossfade_frame,
    AnimationStyle.toggle: render_toggle_frame,
}


def renderer_for(style: AnimationStyle | str) -> FrameRenderer:
    return FRAME_RENDERERS[AnimationStyle(style)]
