from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from poseproof.alignment.calculator import AlignmentResult
from poseproof.alignment.geometry import DrawRect
from poseproof.render.raster import WHITE, check_surface, draw_image, draw_label, fill

LABEL_FONT_RATIO = 0.04
LABEL_PADDING_RATIO = 1.5


@dataclass(frozen=True)
class CompositeLayout:
    """Final geometry of a side-by-side comparison.

    ``before`` and ``after`` are in half-panel coordinates; the after image is
    drawn with an additional ``half_width`` shift on the shared surface.
    """

    half_width: int
    height: int
    before: DrawRect
    after: DrawRect
    horizontal_trim: float = 0.0

    @property
    def width(self) -> int:
        return self.half_width * 2


def plan_side_by_side(
    alignment: AlignmentResult,
    panel_width: float,
    panel_height: float,
    aspect_ratio: float,
) -> CompositeLayout:
    """Crop the aligned pair to the visible content height, keeping the aspect ratio.

    Whatever blank band sits below the shorter image is cut off, then the
    half width is recomputed from the new height and both images are shifted
    left by half the removed width so they stay centred.
    """
    if panel_width <= 0 or panel_height <= 0:
        raise ValueError(f"panel size must be positive, got: {panel_width}x{panel_height}")
    if aspect_ratio <= 0:
        raise ValueError(f"aspect_ratio must be > 0, got: {aspect_ratio}")

    visible_height = round(min(alignment.before.bottom, alignment.after.bottom, panel_height))
    visible_height = max(1, visible_height)
    final_half_width = max(1, round(visible_height * aspect_ratio))
    trim = (panel_width - final_half_width) / 2

    return CompositeLayout(
        half_width=final_half_width,
        height=visible_height,
        before=alignment.before.shifted(dx=-trim),
        after=alignment.after.shifted(dx=-trim),
        horizontal_trim=trim,
    )


def label_metrics(width: float) -> tuple[int, int]:
    font_size = max(1, round(width * LABEL_FONT_RATIO))
    return font_size, round(font_size * LABEL_PADDING_RATIO)


def draw_side_by_side(
    surface: np.ndarray,
    before_img: np.ndarray,
    after_img: np.ndarray,
    layout: CompositeLayout,
    *,
    include_labels: bool = False,
    origin: tuple[float, float] = (0.0, 0.0),
) -> None:
    """Paint the comparison into ``surface``.

    ``origin`` is the top-left corner of the comparison on the surface; exports
    use ``(0, 0)``, the preview centres the comparison in its container.
    """
    check_surface(surface)
    ox, oy = origin
    half = layout.half_width
    height = layout.height

    fill(surface, WHITE)
    left_clip = (round(ox), round(oy), round(ox + half), round(oy + height))
    right_clip = (round(ox + half), round(oy), round(ox + 2 * half), round(oy + height))

    draw_image(surface, before_img, layout.before.shifted(dx=ox, dy=oy), clip=left_clip)
    draw_image(surface, after_img, layout.after.shifted(dx=ox + half, dy=oy), clip=right_clip)

    if include_labels:
        font_size, padding = label_metrics(half)
        draw_label(surface, "Before", x=ox + half / 2, y=oy + padding, font_size=font_size)
        draw_label(surface, "After", x=ox + half * 1.5, y=oy + padding, font_size=font_size)
