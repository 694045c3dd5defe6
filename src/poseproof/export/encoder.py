"""Animated GIF encoder with a bounded worker pool.

Frames are palettized on the pool as soon as they are added; ``render`` then
assembles the palettized frames on a background thread and reports through
event callbacks, in the manner of a browser worker-based encoder:

``start``     rendering began
``progress``  fraction in ``[0, 1]``
``finished``  encoded bytes
``error``     the exception that stopped the render
``abort``     ``abort()`` was honoured
"""

from __future__ import annotations

import io
import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Any, Callable

import numpy as np
from PIL import Image

from poseproof.errors import EncoderError

logger = logging.getLogger(__name__)

ENCODER_EVENTS = ("start", "progress", "finished", "error", "abort")
PALETTE_COLORS = 256


def palettize(raster: np.ndarray, colors: int = PALETTE_COLORS) -> Image.Image:
    return Image.fromarray(raster).quantize(
        colors=colors,
        method=Image.Quantize.MEDIANCUT,
        dither=Image.Dither.FLOYDSTEINBERG,
    )


class GifEncoder:
    def __init__(
        self,
        width: int,
        height: int,
        *,
        workers: int = 2,
        colors: int = PALETTE_COLORS,
        loop: int = 0,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"GIF size must be positive, got: {width}x{height}")
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got: {workers}")
        self.width = width
        self.height = height
        self.colors = colors
        self.loop = loop
        self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gif-encode")
        self._frames: list[Future[Image.Image]] = []
        self._delays: list[int] = []
        self._listeners: dict[str, list[Callable[..., Any]]] = {name: [] for name in ENCODER_EVENTS}
        self._aborted = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def on(self, event: str, callback: Callable[..., Any]) -> GifEncoder:
        if event not in self._listeners:
            valid = ", ".join(ENCODER_EVENTS)
            raise ValueError(f"Unsupported encoder event '{event}'. Expected one of: {valid}")
        self._listeners[event].append(callback)
        return self

    def _emit(self, event: str, *args: Any) -> None:
        for callback in self._listeners[event]:
            callback(*args)

    def add_frame(self, raster: np.ndarray, delay_ms: int) -> None:
        """Queue a copy of ``raster``; the caller may reuse or drop its buffer right away."""
        if self._thread is not None:
            raise EncoderError("Cannot add frames after render() has started")
        expected = (self.height, self.width, 3)
        if raster.shape != expected:
            raise EncoderError(f"Frame shape {raster.shape} does not match encoder size {expected}")
        frame = np.array(raster, dtype=np.uint8, copy=True)
        self._frames.append(self._pool.submit(palettize, frame, self.colors))
        self._delays.append(max(0, int(delay_ms)))

    def render(self) -> None:
        if not self._frames:
            raise EncoderError("No frames were added to the GIF encoder")
        if self._thread is not None:
            raise EncoderError("render() was already called")
        self._thread = threading.Thread(target=self._run, name="gif-render", daemon=True)
        self._thread.start()

    def abort(self) -> None:
        self._aborted.set()
        for future in self._frames:
            future.cancel()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            self._emit("start")
            total = len(self._frames)
            images: list[Image.Image] = []
            for idx, future in enumerate(self._frames):
                if self._aborted.is_set():
                    break
                images.append(future.result())
                self._emit("progress", (idx + 1) / (total + 1))
            if self._aborted.is_set():
                logger.info("GIF render aborted after %d/%d frames", len(images), total)
                self._emit("abort")
                return

            buffer = io.BytesIO()
            images[0].save(
                buffer,
                format="GIF",
                save_all=True,
                append_images=images[1:],
                duration=self._delays,
                loop=self.loop,
            )
            data = buffer.getvalue()
            self._emit("progress", 1.0)
            logger.debug("GIF encoded: %d frames, %d bytes", total, len(data))
            self._emit("finished", data)
        except CancelledError:
            self._emit("abort")
        except Exception as exc:
            logger.exception("GIF render failed")
            self._emit("error", exc)
        finally:
            self._pool.shutdown(wait=False, cancel_futures=True)
