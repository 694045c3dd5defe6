from __future__ import annotations

from pathlib import Path
from typing import Callable

import cv2
import numpy as np
import pytest

from poseproof.landmarks.pose import (
    LEFT_HIP,
    LEFT_SHOULDER,
    NOSE,
    POSE_LANDMARK_COUNT,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    Landmark,
)


def build_pose(
    *,
    nose_y: float = 0.12,
    shoulder_y: float = 0.25,
    hip_y: float = 0.57,
    center_x: float = 0.5,
    nose_visibility: float = 0.95,
    shoulder_visibility: float = 0.95,
    hip_visibility: float = 0.95,
) -> list[Landmark | None]:
    points: list[Landmark | None] = [
        Landmark(x=0.5, y=0.5, visibility=0.0) for _ in range(POSE_LANDMARK_COUNT)
    ]
    points[NOSE] = Landmark(x=center_x, y=nose_y, visibility=nose_visibility)
    points[LEFT_SHOULDER] = Landmark(x=center_x - 0.1, y=shoulder_y, visibility=shoulder_visibility)
    points[RIGHT_SHOULDER] = Landmark(x=center_x + 0.1, y=shoulder_y, visibility=shoulder_visibility)
    points[LEFT_HIP] = Landmark(x=center_x - 0.08, y=hip_y, visibility=hip_visibility)
    points[RIGHT_HIP] = Landmark(x=center_x + 0.08, y=hip_y, visibility=hip_visibility)
    return points


def solid_image(width: int, height: int, rgb: tuple[int, int, int]) -> np.ndarray:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[...] = rgb
    return image


@pytest.fixture
def make_pose() -> Callable[..., list[Landmark | None]]:
    return build_pose


@pytest.fixture
def write_image(tmp_path: Path) -> Callable[..., Path]:
    def _write(
        name: str,
        width: int = 120,
        height: int = 160,
        rgb: tuple[int, int, int] = (200, 40, 40),
    ) -> Path:
        path = tmp_path / name
        image_bgr = cv2.cvtColor(solid_image(width, height, rgb), cv2.COLOR_RGB2BGR)
        assert cv2.imwrite(str(path), image_bgr)
        return path

    return _write
