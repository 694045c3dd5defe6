"""Animated before/after export.

One alignment is computed for the full frame and shared by every frame. Frames
are rendered one at a time into a single surface and handed straight to the
encoder, so only one frame buffer is live here regardless of frame count.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Literal, Protocol

import numpy as np

from poseproof.alignment.calculator import calculate_aligned_draw_params
from poseproof.alignment.debug_log import maybe_log_alignment
from poseproof.config import GifExportOptions, export_filename
from poseproof.errors import EncoderError, EncoderTimeoutError
from poseproof.export.encoder import GifEncoder
from poseproof.io.image_loader import ImageSource, load_image_pair
from poseproof.landmarks.pose import Landmarks
from poseproof.render.animation import build_schedule, renderer_for
from poseproof.render.raster import new_surface

logger = logging.getLogger(__name__)

GIF_FILENAME_PREFIX = "poseproof"
FRAMES_PHASE_WEIGHT = 0.5
TIMEOUT_MESSAGE = "GIF encoding timeout - encoder may have failed to initialize"

ProgressStatus = Literal["frames", "encoding"]
ProgressCallback = Callable[[float, ProgressStatus], None]


class FrameEncoder(Protocol):
    def on(self, event: str, callback: Callable[..., Any]) -> Any: ...

    def add_frame(self, raster: np.ndarray, delay_ms: int) -> None: ...

    def render(self) -> None: ...

    def abort(self) -> None: ...


EncoderFactory = Callable[[int, int, int], FrameEncoder]


@dataclass(frozen=True)
class GifExportResult:
    data: bytes
    filename: str
    width: int
    height: int
    frame_count: int
    file_size: int


def _default_encoder(width: int, height: int, workers: int) -> FrameEncoder:
    return GifEncoder(width, height, workers=workers)


def _await_encoding(
    encoder: FrameEncoder,
    timeout_s: float,
    on_progress: ProgressCallback | None,
) -> bytes:
    done = threading.Event()
    outcome: dict[str, Any] = {}

    def _finished(data: bytes) -> None:
        outcome["data"] = data
        done.set()

    def _failed(exc: BaseException) -> None:
        outcome["error"] = exc
        done.set()

    def _progress(fraction: float) -> None:
        if on_progress is not None:
            on_progress(FRAMES_PHASE_WEIGHT + fraction * (1 - FRAMES_PHASE_WEIGHT), "encoding")

    encoder.on("finished", _finished)
    encoder.on("error", _failed)
    encoder.on("progress", _progress)

    try:
        encoder.render()
    except Exception as exc:
        raise EncoderError(f"GIF encoding failed: {exc}") from exc

    if not done.wait(timeout_s):
        encoder.abort()
        raise EncoderTimeoutError(TIMEOUT_MESSAGE)
    if "error" in outcome:
        error = outcome["error"]
        raise EncoderError(f"GIF encoding failed: {error}") from error
    return outcome["data"]


def export_gif(
    before: ImageSource,
    after: ImageSource,
    options: GifExportOptions | None = None,
    *,
    before_landmarks: Landmarks | None = None,
    after_landmarks: Landmarks | None = None,
    on_progress: ProgressCallback | None = None,
    post_process: Callable[[np.ndarray], None] | None = None,
    encoder_factory: EncoderFactory | None = None,
    now: datetime | None = None,
) -> GifExportResult:
    opts = options or GifExportOptions()
    width, height = opts.frame_size()
    logger.info("GIF export: %s", opts.as_summary())

    before_img, after_img = load_image_pair(before, after)
    before_ref = before_img.photo_ref(before_landmarks)
    after_ref = after_img.photo_ref(after_landmarks)
    alignment = calculate_aligned_draw_params(before_ref, after_ref, width, height)
    maybe_log_alignment(
        before=before_ref,
        after=after_ref,
        target_width=width,
        target_height=height,
        result=alignment,
        source="gif",
    )

    schedule = build_schedule(opts.animation_style, opts.duration)
    render_frame = renderer_for(opts.animation_style)
    encoder = (encoder_factory or _default_encoder)(width, height, opts.encoder_workers)
    logger.info("Generating %d frames (%d ms total)", schedule.frame_count, schedule.total_ms)

    surface = new_surface(width, height)
    try:
        for idx, delay_ms in enumerate(schedule.delays_ms):
            if on_progress is not None:
                on_progress(idx / schedule.frame_count * FRAMES_PHASE_WEIGHT, "frames")
            render_frame(
                surface,
                before_img.image_rgb,
                after_img.image_rgb,
                alignment,
                idx,
                schedule.frame_count,
                opts.include_labels,
            )
            if post_process is not None:
                post_process(surface)
            encoder.add_frame(surface, delay_ms)
    except BaseException:
        encoder.abort()
        raise
    del surface

    data = _await_encoding(encoder, opts.encoding_timeout_s, on_progress)
    filename = export_filename(f"{GIF_FILENAME_PREFIX}-{opts.animation_style.value}", "gif", now=now)
    logger.info(
        "GIF export complete: %s (%d frames, %.2f MB)",
        filename,
        schedule.frame_count,
        len(data) / 1024 / 1024,
    )
    return GifExportResult(
        data=data,
        filename=filename,
        width=width,
        height=height,
        frame_count=schedule.frame_count,
        file_size=len(data),
    )
