from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

POSE_LANDMARK_COUNT = 33
VISIBILITY_THRESHOLD = 0.5

NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_HIP = 23
RIGHT_HIP = 24
ALIGNMENT_INDICES = (NOSE, LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP)


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0


Landmarks = Sequence[Optional[Landmark]]


@dataclass(frozen=True)
class PhotoRef:
    width: float
    height: float
    landmarks: Landmarks | None = None


def landmark_at(landmarks: Landmarks | None, index: int) -> Landmark | None:
    if not landmarks or index < 0 or index >= len(landmarks):
        return None
    return landmarks[index]


def is_visible(landmark: Landmark | None, threshold: float = VISIBILITY_THRESHOLD) -> bool:
    if landmark is None:
        return False
    return float(landmark.visibility) >= threshold


def is_full_pose(landmarks: Landmarks | None) -> bool:
    return landmarks is not None and len(landmarks) >= POSE_LANDMARK_COUNT


def _landmark_from_mapping(item: Mapping[str, Any]) -> Landmark:
    return Landmark(
        x=float(item.get("x", 0.0)),
        y=float(item.get("y", 0.0)),
        z=float(item.get("z", 0.0)),
        visibility=float(item.get("visibility", 0.0)),
    )


def landmarks_from_payload(payload: Any) -> list[Landmark | None] | None:
    """Convert detector output (list of dicts / 4-tuples) into ``Landmark`` objects.

    Entries that cannot be interpreted become ``None`` so positions stay stable;
    the alignment code treats them as invisible.
    """
    if payload is None:
        return None
    if isinstance(payload, Mapping):
        payload = payload.get("landmarks")
        if payload is None:
            return None
    if not isinstance(payload, (list, tuple)):
        raise ValueError(f"Landmark payload must be a list, got: {type(payload).__name__}")

    out: list[Landmark | None] = []
    for item in payload:
        if isinstance(item, Landmark):
            out.append(item)
        elif isinstance(item, Mapping):
            try:
                out.append(_landmark_from_mapping(item))
            except (TypeError, ValueError):
                out.append(None)
        elif isinstance(item, (list, tuple)) and len(item) >= 2:
            values = list(item) + [0.0] * (4 - len(item))
            try:
                out.append(Landmark(*(float(value) for value in values[:4])))
            except (TypeError, ValueError):
                out.append(None)
        else:
            out.append(None)
    return out


def _missing_landmarks_message(path: Path) -> str:
    return (
        f"Landmarks file not found: {path}\n"
        "Provide a JSON list of 33 {x, y, z, visibility} points, "
        'or an object with a "landmarks" key.'
    )


def load_landmarks_json(path: str | Path) -> list[Landmark | None] | None:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(_missing_landmarks_message(resolved))
    try:
        payload = json.loads(resolved.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Landmarks file is not valid JSON: {resolved}") from exc
    return landmarks_from_payload(payload)


def landmarks_to_payload(landmarks: Landmarks | None) -> list[dict[str, float] | None] | None:
    if landmarks is None:
        return None
    return [
        None
        if landmark is None
        else {
            "x": landmark.x,
            "y": landmark.y,
            "z": landmark.z,
            "visibility": landmark.visibility,
        }
        for landmark in landmarks
    ]
