from __future__ import annotations

import base64
from pathlib import Path
from typing import Callable

import cv2
import numpy as np
import pytest

from conftest import solid_image
from poseproof.errors import ImageDecodeError
from poseproof.io.image_loader import (
    decode_image_bytes,
    encode_png,
    load_image,
    load_image_pair,
    save_png,
)


def test_load_image_returns_rgb(write_image: Callable[..., Path]) -> None:
    path = write_image("before.png", width=30, height=20, rgb=(255, 0, 0))

    loaded = load_image(path)

    assert (loaded.width, loaded.height) == (30, 20)
    assert loaded.image_rgb.shape == (20, 30, 3)
    assert tuple(loaded.image_rgb[5, 5]) == (255, 0, 0)
    assert loaded.photo_ref().width == 30


def test_load_image_from_bytes_and_data_url() -> None:
    data = encode_png(solid_image(8, 6, (10, 200, 30)))
    data_url = "data:image/png;base64," + base64.b64encode(data).decode("ascii")

    from_bytes = load_image(data)
    from_url = load_image(data_url)

    assert np.array_equal(from_bytes.image_rgb, from_url.image_rgb)
    assert tuple(from_url.image_rgb[0, 0]) == (10, 200, 30)


def test_load_image_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="does not exist"):
        load_image(tmp_path / "missing.jpg")

    text_file = tmp_path / "notes.txt"
    text_file.write_text("hello", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported image extension"):
        load_image(text_file)

    corrupt = tmp_path / "corrupt.jpg"
    corrupt.write_bytes(b"not really a jpeg")
    with pytest.raises(ImageDecodeError, match="Failed to decode image"):
        load_image(corrupt)

    with pytest.raises(ImageDecodeError, match="empty"):
        decode_image_bytes(b"")
    with pytest.raises(ImageDecodeError, match="base64"):
        load_image("data:image/png,rawpixels")
    with pytest.raises(ImageDecodeError, match="not valid base64"):
        load_image("data:image/png;base64,@@@")


def test_load_image_pair_keeps_order(write_image: Callable[..., Path]) -> None:
    before_path = write_image("before.png", width=12, height=16, rgb=(255, 0, 0))
    after_path = write_image("after.jpg", width=16, height=12, rgb=(0, 0, 255))

    before, after = load_image_pair(before_path, after_path)

    assert (before.width, before.height) == (12, 16)
    assert (after.width, after.height) == (16, 12)


def test_load_image_pair_propagates_failure(
    tmp_path: Path, write_image: Callable[..., Path]
) -> None:
    before_path = write_image("before.png")
    with pytest.raises(FileNotFoundError):
        load_image_pair(before_path, tmp_path / "missing.png")


def test_save_png_round_trip(tmp_path: Path) -> None:
    image = solid_image(10, 10, (1, 2, 3))
    out = save_png(tmp_path / "nested" / "out.png", image)
    assert out.exists()
    restored = cv2.cvtColor(cv2.imread(str(out)), cv2.COLOR_BGR2RGB)
    assert np.array_equal(restored, image)
    with pytest.raises(ValueError, match=".png"):
        save_png(tmp_path / "out.jpg", image)
