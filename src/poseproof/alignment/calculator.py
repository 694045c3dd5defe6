"""Shared before/after alignment.

``calculate_aligned_draw_params`` is the one place draw geometry is derived.
PNG export, GIF export and the preview renderer all call it so that the same
inputs always produce the same rectangles on every surface.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from poseproof.alignment.geometry import (
    CENTER_FALLBACK_X,
    SHOULDER_ANCHOR_FALLBACK_Y,
    DrawRect,
    anchor_x,
    anchor_y,
    body_height,
    cover_fit,
    is_head_cropped,
)
from poseproof.landmarks.pose import PhotoRef

logger = logging.getLogger(__name__)

MIN_BODY_SCALE = 0.65
MAX_BODY_SCALE = 1.60
MIN_HEADROOM_RATIO = 0.05
MAX_HEADROOM_RATIO = 0.20
MIN_OVERFLOW = 1.15
MAX_HORIZONTAL_CROP = 0.2


@dataclass(frozen=True)
class AlignmentResult:
    before: DrawRect
    after: DrawRect
    used_shoulder_anchor: bool = False
    top_crop_offset: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "before": self.before.as_dict(),
            "after": self.after.as_dict(),
            "used_shoulder_anchor": self.used_shoulder_anchor,
            "top_crop_offset": self.top_crop_offset,
        }


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def body_scale_for(before: PhotoRef, after: PhotoRef) -> float:
    before_height = body_height(before.landmarks)
    after_height = body_height(after.landmarks)
    raw_scale = before_height / after_height if after_height > 0 else 1.0
    return clamp(raw_scale, MIN_BODY_SCALE, MAX_BODY_SCALE)


def _resolve_anchor_ys(before: PhotoRef, after: PhotoRef) -> tuple[bool, float, float]:
    use_shoulder = is_head_cropped(before.landmarks) or is_head_cropped(after.landmarks)
    if use_shoulder:
        before_y = anchor_y(before.landmarks, "shoulder")
        after_y = anchor_y(after.landmarks, "shoulder")
        return (
            True,
            SHOULDER_ANCHOR_FALLBACK_Y if before_y is None else before_y,
            SHOULDER_ANCHOR_FALLBACK_Y if after_y is None else after_y,
        )
    # neither head is cropped, so both noses are visible
    return False, anchor_y(before.landmarks, "nose"), anchor_y(after.landmarks, "nose")


def _clamp_for_head_visibility(
    draw_y: float,
    scaled_height: float,
    target_height: float,
    head_y: float,
) -> float:
    head_on_canvas = draw_y + head_y * scaled_height
    min_head_on_canvas = target_height * MIN_HEADROOM_RATIO
    if head_on_canvas < min_head_on_canvas:
        draw_y = min_head_on_canvas - head_y * scaled_height
    # never leave blank canvas above the image
    return min(0.0, draw_y)


def _equalize_top_crop(before_y: float, after_y: float) -> tuple[float, float, float]:
    before_crop = max(0.0, -before_y)
    after_crop = max(0.0, -after_y)
    max_crop = max(before_crop, after_crop)
    if before_crop < max_crop:
        before_y -= max_crop - before_crop
    if after_crop < max_crop:
        after_y -= max_crop - after_crop
    return before_y, after_y, max_crop


def _horizontal_offset(center_x: float, scaled_width: float, target_width: float) -> float:
    draw_x = target_width / 2 - center_x * scaled_width
    max_crop = scaled_width * MAX_HORIZONTAL_CROP
    return clamp(draw_x, -(scaled_width - target_width) - max_crop, max_crop)


def calculate_aligned_draw_params(
    before: PhotoRef,
    after: PhotoRef,
    target_width: float,
    target_height: float,
) -> AlignmentResult:
    if target_width <= 0 or target_height <= 0:
        raise ValueError(
            f"target size must be positive, got: {target_width}x{target_height}"
        )

    use_shoulder, before_anchor_y, after_anchor_y = _resolve_anchor_ys(before, after)

    # Phase 1: body scale, applied to the after image only
    body_scale = body_scale_for(before, after)

    # Phase 2: cover fit + overflow normalization
    before_fit = cover_fit(before.width, before.height, target_width, target_height)
    after_fit = cover_fit(after.width, after.height, target_width, target_height)
    before_overflow = before_fit.height / target_height
    after_overflow = after_fit.height / target_height
    target_overflow = max(before_overflow, after_overflow, MIN_OVERFLOW)

    before_scale = target_overflow / before_overflow if before_overflow < target_overflow else 1.0
    after_scale = target_overflow / after_overflow if after_overflow < target_overflow else 1.0

    before_width = before_fit.width * before_scale
    before_height = before_fit.height * before_scale
    after_width = after_fit.width * after_scale * body_scale
    after_height = after_fit.height * after_scale * body_scale

    # Phase 3: vertical placement on a shared anchor row
    before_anchor_at_top = before_anchor_y * before_height
    after_anchor_at_top = after_anchor_y * after_height
    target_anchor_row = clamp(
        min(before_anchor_at_top, after_anchor_at_top),
        target_height * MIN_HEADROOM_RATIO,
        target_height * MAX_HEADROOM_RATIO,
    )
    before_y = target_anchor_row - before_anchor_at_top
    after_y = target_anchor_row - after_anchor_at_top

    top_crop_offset = 0.0
    if use_shoulder:
        before_y, after_y, top_crop_offset = _equalize_top_crop(before_y, after_y)
    else:
        before_y = _clamp_for_head_visibility(before_y, before_height, target_height, before_anchor_y)
        after_y = _clamp_for_head_visibility(after_y, after_height, target_height, after_anchor_y)

    # Phase 4: shoulder centres on the horizontal midpoint
    before_center_x = anchor_x(before.landmarks)
    after_center_x = anchor_x(after.landmarks)
    before_x = _horizontal_offset(
        CENTER_FALLBACK_X if before_center_x is None else before_center_x,
        before_width,
        target_width,
    )
    after_x = _horizontal_offset(
        CENTER_FALLBACK_X if after_center_x is None else after_center_x,
        after_width,
        target_width,
    )

    logger.debug(
        "alignment: body_scale=%.4f overflow=%.4f anchor_row=%.2f shoulder=%s",
        body_scale,
        target_overflow,
        target_anchor_row,
        use_shoulder,
    )

    return AlignmentResult(
        before=DrawRect(x=before_x, y=before_y, width=before_width, height=before_height),
        after=DrawRect(x=after_x, y=after_y, width=after_width, height=after_height),
        used_shoulder_anchor=use_shoulder,
        top_crop_offset=top_crop_offset,
    )
