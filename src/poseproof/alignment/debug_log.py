"""Opt-in alignment debug log.

Enable with ``POSEPROOF_DEBUG_ALIGNMENT=true``. Each export appends one entry
(inputs, landmark summary, resulting geometry) to a JSON array file so that runs
can be diffed side by side.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from poseproof.alignment.calculator import AlignmentResult
from poseproof.landmarks.pose import (
    LEFT_HIP,
    LEFT_SHOULDER,
    NOSE,
    RIGHT_HIP,
    RIGHT_SHOULDER,
    Landmarks,
    PhotoRef,
    landmark_at,
)

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "POSEPROOF_DEBUG_ALIGNMENT"
DEFAULT_LOG_PATH = Path("debug") / "alignment-log.json"
MAX_LOG_ENTRIES = 50

_SUMMARY_POINTS = {
    "nose": NOSE,
    "left_shoulder": LEFT_SHOULDER,
    "right_shoulder": RIGHT_SHOULDER,
    "left_hip": LEFT_HIP,
    "right_hip": RIGHT_HIP,
}


def is_alignment_debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in {"1", "true", "yes"}


def summarize_landmarks(landmarks: Landmarks | None) -> dict[str, Any] | None:
    if landmarks is None:
        return None
    summary: dict[str, Any] = {"count": len(landmarks)}
    for name, idx in _SUMMARY_POINTS.items():
        point = landmark_at(landmarks, idx)
        if point is not None:
            summary[name] = {"x": point.x, "y": point.y, "visibility": point.visibility}
    return summary


def build_log_entry(
    *,
    before: PhotoRef,
    after: PhotoRef,
    target_width: float,
    target_height: float,
    result: AlignmentResult,
    source: str,
    timestamp: str | None = None,
) -> dict[str, Any]:
    return {
        "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
        "source": source,
        "input": {
            "before_image": {"width": before.width, "height": before.height},
            "after_image": {"width": after.width, "height": after.height},
            "target_width": target_width,
            "target_height": target_height,
            "before_landmarks": summarize_landmarks(before.landmarks),
            "after_landmarks": summarize_landmarks(after.landmarks),
        },
        "result": result.as_dict(),
    }


def append_log_entry(path: str | Path, entry: dict[str, Any]) -> Path:
    log_path = Path(path)
    entries: list[dict[str, Any]] = []
    if log_path.exists():
        try:
            loaded = json.loads(log_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Alignment debug log is corrupt, starting a new one: %s", log_path)
            loaded = []
        if isinstance(loaded, list):
            entries = loaded
    entries.append(entry)
    entries = entries[-MAX_LOG_ENTRIES:]
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
    return log_path


def maybe_log_alignment(
    *,
    before: PhotoRef,
    after: PhotoRef,
    target_width: float,
    target_height: float,
    result: AlignmentResult,
    source: str,
    log_path: str | Path = DEFAULT_LOG_PATH,
) -> Path | None:
    if not is_alignment_debug_enabled():
        return None
    entry = build_log_entry(
        before=before,
        after=after,
        target_width=target_width,
        target_height=target_height,
        result=result,
        source=source,
    )
    written = append_log_entry(log_path, entry)
    logger.info("Alignment debug entry written to %s", written)
    return written
