from __future__ import annotations

import io
import threading
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest
from PIL import Image

from conftest import build_pose
from poseproof.config import GifExportOptions
from poseproof.errors import EncoderError, EncoderTimeoutError
from poseproof.export.gif_export import TIMEOUT_MESSAGE, export_gif


class StalledEncoder:
    """Accepts frames but never reports completion."""

    def __init__(self, width: int, height: int, workers: int) -> None:
        self.size = (width, height)
        self.workers = workers
        self.frames: list[tuple[tuple[int, ...], int]] = []
        self.aborted = False
        self.listeners: dict[str, list[Callable[..., Any]]] = {}

    def on(self, event: str, callback: Callable[..., Any]) -> "StalledEncoder":
        self.listeners.setdefault(event, []).append(callback)
        return self

    def add_frame(self, raster: np.ndarray, delay_ms: int) -> None:
        self.frames.append((raster.shape, delay_ms))

    def render(self) -> None:
        pass

    def abort(self) -> None:
        self.aborted = True


class FailingEncoder(StalledEncoder):
    def render(self) -> None:
        def _fail() -> None:
            for callback in self.listeners.get("error", []):
                callback(RuntimeError("palette worker crashed"))

        threading.Thread(target=_fail).start()


def test_export_gif_toggle(write_image: Callable[..., Path]) -> None:
    before = write_image("before.png", width=120, height=160, rgb=(255, 0, 0))
    after = write_image("after.png", width=120, height=160, rgb=(0, 0, 255))
    progress: list[tuple[float, str]] = []

    result = export_gif(
        before,
        after,
        GifExportOptions(format="1:1", animation_style="toggle", include_labels=True),
        before_landmarks=build_pose(),
        after_landmarks=build_pose(),
        on_progress=lambda fraction, status: progress.append((fraction, status)),
    )

    assert result.data.startswith(b"GIF8")
    assert (result.width, result.height) == (540, 540)
    assert result.frame_count == 12
    assert result.file_size == len(result.data)
    assert result.filename.startswith("poseproof-toggle-")
    assert result.filename.endswith(".gif")

    with Image.open(io.BytesIO(result.data)) as gif:
        assert gif.size == (540, 540)
        assert gif.info.get("loop") == 0

    frame_updates = [fraction for fraction, status in progress if status == "frames"]
    encoding_updates = [fraction for fraction, status in progress if status == "encoding"]
    assert frame_updates[0] == 0.0
    assert max(frame_updates) < 0.5
    assert encoding_updates
    assert min(encoding_updates) >= 0.5
    assert encoding_updates[-1] == pytest.approx(1.0)


def test_export_gif_hands_every_frame_to_encoder(write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    created: list[StalledEncoder] = []

    def _factory(width: int, height: int, workers: int) -> StalledEncoder:
        encoder = StalledEncoder(width, height, workers)
        created.append(encoder)
        return encoder

    with pytest.raises(EncoderTimeoutError, match=TIMEOUT_MESSAGE):
        export_gif(
            before,
            after,
            GifExportOptions(format="4:5", animation_style="slider", encoding_timeout_s=0.05),
            encoder_factory=_factory,
        )

    encoder = created[0]
    assert encoder.size == (540, 675)
    assert encoder.workers == 2
    assert len(encoder.frames) == 30
    assert {shape for shape, _ in encoder.frames} == {(675, 540, 3)}
    assert {delay for _, delay in encoder.frames} == {67}
    assert encoder.aborted


def test_export_gif_surfaces_encoder_errors(write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")

    with pytest.raises(EncoderError, match="palette worker crashed"):
        export_gif(
            before,
            after,
            GifExportOptions(animation_style="crossfade"),
            encoder_factory=FailingEncoder,
        )


def test_export_gif_applies_post_process_to_each_frame(write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    calls: list[tuple[int, ...]] = []

    with pytest.raises(EncoderTimeoutError):
        export_gif(
            before,
            after,
            GifExportOptions(animation_style="crossfade", encoding_timeout_s=0.01),
            post_process=lambda surface: calls.append(surface.shape),
            encoder_factory=StalledEncoder,
        )

    assert len(calls) == 24


def test_export_gif_aborts_encoder_when_a_frame_fails(write_image: Callable[..., Path]) -> None:
    before = write_image("before.png")
    after = write_image("after.png")
    created: list[StalledEncoder] = []

    def _factory(width: int, height: int, workers: int) -> StalledEncoder:
        encoder = StalledEncoder(width, height, workers)
        created.append(encoder)
        return encoder

    def _broken_watermark(surface: np.ndarray) -> None:
        if len(created[0].frames) == 3:
            raise RuntimeError("watermark asset missing")

    with pytest.raises(RuntimeError, match="watermark asset missing"):
        export_gif(
            before,
            after,
            GifExportOptions(animation_style="slider"),
            post_process=_broken_watermark,
            encoder_factory=_factory,
        )

    assert len(created[0].frames) == 3
    assert created[0].aborted
