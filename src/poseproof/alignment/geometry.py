"""Sizing and landmark-derived quantities used by the alignment calculator.

Every function here is total: missing poses, short arrays and low-confidence
points resolve to documented fallback constants instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from poseproof.landmarks.pose import (
    LEFT_HIP,
    LEFT_SHOULDER,
    NOSE,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    VISIBILITY_THRESHOLD,
    Landmarks,
    is_full_pose,
    is_visible,
    landmark_at,
)

logger = logging.getLogger(__name__)

HEAD_CROPPED_THRESHOLD = 0.02
NO_POSE_BODY_HEIGHT = 0.5
TORSO_FALLBACK_BODY_HEIGHT = 0.35
SHOULDER_ANCHOR_FALLBACK_Y = 0.25
CENTER_FALLBACK_X = 0.5

AnchorKind = Literal["nose", "shoulder"]


@dataclass(frozen=True)
class DrawRect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def shifted(self, dx: float = 0.0, dy: float = 0.0) -> DrawRect:
        return DrawRect(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def cover_fit(src_width: float, src_height: float, dst_width: float, dst_height: float) -> DrawRect:
    if src_width <= 0 or src_height <= 0:
        logger.debug("cover_fit: missing source size %sx%s, using target box", src_width, src_height)
        return DrawRect(x=0.0, y=0.0, width=float(dst_width), height=float(dst_height))

    src_aspect = src_width / src_height
    dst_aspect = dst_width / dst_height
    if src_aspect > dst_aspect:
        # wider than the box: fit height, overflow width
        height = float(dst_height)
        width = dst_height * src_aspect
        return DrawRect(x=(dst_width - width) / 2, y=0.0, width=width, height=height)

    width = float(dst_width)
    height = dst_width / src_aspect
    return DrawRect(x=0.0, y=(dst_height - height) / 2, width=width, height=height)


def _pair_center(landmarks: Landmarks | None, left_idx: int, right_idx: int, axis: str) -> float | None:
    if not is_full_pose(landmarks):
        return None
    left = landmark_at(landmarks, left_idx)
    right = landmark_at(landmarks, right_idx)
    has_left = is_visible(left, VISIBILITY_THRESHOLD)
    has_right = is_visible(right, VISIBILITY_THRESHOLD)
    if has_left and has_right:
        return (getattr(left, axis) + getattr(right, axis)) / 2
    if has_left:
        return float(getattr(left, axis))
    if has_right:
        return float(getattr(right, axis))
    return None


def shoulder_center_y(landmarks: Landmarks | None) -> float | None:
    return _pair_center(landmarks, LEFT_SHOULDER, RIGHT_SHOULDER, "y")


def hip_center_y(landmarks: Landmarks | None) -> float | None:
    return _pair_center(landmarks, LEFT_HIP, RIGHT_HIP, "y")


def anchor_x(landmarks: Landmarks | None) -> float | None:
    return _pair_center(landmarks, LEFT_SHOULDER, RIGHT_SHOULDER, "x")


def anchor_y(landmarks: Landmarks | None, kind: AnchorKind) -> float | None:
    if kind == "shoulder":
        return shoulder_center_y(landmarks)
    if kind == "nose":
        nose = landmark_at(landmarks, NOSE)
        return float(nose.y) if is_visible(nose) else None
    raise ValueError(f"Unsupported anchor kind '{kind}'. Expected one of: nose, shoulder")


def is_head_cropped(landmarks: Landmarks | None) -> bool:
    nose = landmark_at(landmarks, NOSE)
    if not is_visible(nose):
        return True
    return nose.y < HEAD_CROPPED_THRESHOLD


def shoulder_to_hip_height(landmarks: Landmarks | None) -> float:
    shoulder_y = shoulder_center_y(landmarks)
    hip_y = hip_center_y(landmarks)
    if shoulder_y is None or hip_y is None:
        return TORSO_FALLBACK_BODY_HEIGHT
    return abs(hip_y - shoulder_y)


def body_height(landmarks: Landmarks | None) -> float:
    """Normalized nose-to-hip extent used as the subject-scale proxy.

    Fallback ladder, first match wins:

    1. no usable pose (absent or fewer than 33 points) -> ``0.5``
    2. nose invisible or cropped -> shoulder-to-hip distance (``0.35`` if unavailable)
    3. no visible hip -> ``0.5``
    4. ``|hip_center_y - nose_y|``
    """
    if not is_full_pose(landmarks):
        return NO_POSE_BODY_HEIGHT
    if is_head_cropped(landmarks):
        return shoulder_to_hip_height(landmarks)
    hip_y = hip_center_y(landmarks)
    if hip_y is None:
        return NO_POSE_BODY_HEIGHT
    return abs(hip_y - landmarks[NOSE].y)
