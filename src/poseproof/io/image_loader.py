from __future__ import annotations

import base64
import binascii
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from poseproof.errors import ImageDecodeError
from poseproof.landmarks.pose import Landmarks, PhotoRef

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tif", ".tiff"}


@dataclass(frozen=True)
class LoadedImage:
    label: str
    image_rgb: np.ndarray

    @property
    def width(self) -> int:
        return int(self.image_rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self.image_rgb.shape[0])

    def photo_ref(self, landmarks: Landmarks | None = None) -> PhotoRef:
        return PhotoRef(width=self.width, height=self.height, landmarks=landmarks)


ImageSource = Union[str, Path, bytes, bytearray, LoadedImage]


def _normalize_path(path: str | Path) -> Path:
    image_path = Path(path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file does not exist: {image_path}")
    if not image_path.is_file():
        raise ValueError(f"Image path is not a file: {image_path}")
    if image_path.suffix.lower() not in SUPPORTED_IMAGE_EXTENSIONS:
        supported = ", ".join(sorted(SUPPORTED_IMAGE_EXTENSIONS))
        raise ValueError(
            f"Unsupported image extension '{image_path.suffix}'. Supported: {supported}"
        )
    return image_path


def _decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep or ";base64" not in header:
        raise ImageDecodeError("Only base64 data URLs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError("Data URL payload is not valid base64") from exc


def decode_image_bytes(data: bytes, *, label: str = "<bytes>") -> LoadedImage:
    if not data:
        raise ImageDecodeError(f"Image data is empty: {label}")
    buffer = np.frombuffer(bytes(data), dtype=np.uint8)
    image_bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image_bgr is None or image_bgr.size == 0:
        raise ImageDecodeError(f"Failed to decode image: {label}")
    image_rgb = cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)
    return LoadedImage(label=label, image_rgb=image_rgb)


def load_image(source: ImageSource) -> LoadedImage:
    """Decode a file path, raw bytes or ``data:`` URL into an RGB uint8 array."""
    if isinstance(source, LoadedImage):
        return source
    if isinstance(source, (bytes, bytearray)):
        return decode_image_bytes(bytes(source))
    if isinstance(source, str) and source.startswith("data:"):
        return decode_image_bytes(_decode_data_url(source), label="<data-url>")

    image_path = _normalize_path(source)
    loaded = decode_image_bytes(image_path.read_bytes(), label=str(image_path))
    logger.debug("Loaded %s (%dx%d)", image_path, loaded.width, loaded.height)
    return loaded


def load_image_pair(before: ImageSource, after: ImageSource) -> tuple[LoadedImage, LoadedImage]:
    """Decode both photos concurrently; the first failure propagates."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="image-load") as pool:
        before_future = pool.submit(load_image, before)
        after_future = pool.submit(load_image, after)
        return before_future.result(), after_future.result()


def save_png(path: str | Path, image_rgb: np.ndarray) -> Path:
    out_path = Path(path)
    if out_path.suffix.lower() != ".png":
        raise ValueError(f"Output file must be a .png file: {out_path}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    ok = cv2.imwrite(str(out_path), cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR))
    if not ok:
        raise RuntimeError(f"Failed to write PNG to: {out_path}")
    return out_path


def encode_png(image_rgb: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".png", cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR))
    if not ok:
        raise RuntimeError("Failed to encode PNG")
    return buffer.tobytes()
