from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import numpy as np

from poseproof.alignment.calculator import AlignmentResult, calculate_aligned_draw_params
from poseproof.alignment.debug_log import maybe_log_alignment
from poseproof.config import PngExportOptions, aspect_ratio_for, export_filename
from poseproof.io.image_loader import ImageSource, encode_png, load_image_pair
from poseproof.landmarks.pose import Landmarks
from poseproof.render.composite import draw_side_by_side, plan_side_by_side
from poseproof.render.raster import new_surface

logger = logging.getLogger(__name__)

PNG_FILENAME_PREFIX = "poseproof-export"

PostProcess = Callable[[np.ndarray], None]


@dataclass(frozen=True)
class ExportResult:
    data: bytes
    filename: str
    width: int
    height: int
    alignment: AlignmentResult


def render_side_by_side(
    before: ImageSource,
    after: ImageSource,
    options: PngExportOptions,
    *,
    before_landmarks: Landmarks | None = None,
    after_landmarks: Landmarks | None = None,
    post_process: PostProcess | None = None,
) -> tuple[np.ndarray, AlignmentResult]:
    """Decode, align and composite the pair into a new RGB surface."""
    before_img, after_img = load_image_pair(before, after)
    before_ref = before_img.photo_ref(before_landmarks)
    after_ref = after_img.photo_ref(after_landmarks)

    panel_width, panel_height = options.panel_size()
    alignment = calculate_aligned_draw_params(before_ref, after_ref, panel_width, panel_height)
    maybe_log_alignment(
        before=before_ref,
        after=after_ref,
        target_width=panel_width,
        target_height=panel_height,
        result=alignment,
        source="png",
    )

    layout = plan_side_by_side(alignment, panel_width, panel_height, aspect_ratio_for(options.format))
    surface = new_surface(layout.width, layout.height)
    draw_side_by_side(
        surface,
        before_img.image_rgb,
        after_img.image_rgb,
        layout,
        include_labels=options.include_labels,
    )
    if post_process is not None:
        post_process(surface)
    return surface, alignment


def export_png(
    before: ImageSource,
    after: ImageSource,
    options: PngExportOptions | None = None,
    *,
    before_landmarks: Landmarks | None = None,
    after_landmarks: Landmarks | None = None,
    post_process: PostProcess | None = None,
    now: datetime | None = None,
) -> ExportResult:
    opts = options or PngExportOptions()
    logger.info("PNG export: %s", opts.as_summary())
    surface, alignment = render_side_by_side(
        before,
        after,
        opts,
        before_landmarks=before_landmarks,
        after_landmarks=after_landmarks,
        post_process=post_process,
    )
    height, width = surface.shape[:2]
    data = encode_png(surface)
    filename = export_filename(PNG_FILENAME_PREFIX, "png", now=now)
    logger.info("PNG export complete: %s (%dx%d, %d bytes)", filename, width, height, len(data))
    return ExportResult(
        data=data,
        filename=filename,
        width=width,
        height=height,
        alignment=alignment,
    )
