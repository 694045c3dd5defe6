from __future__ import annotations

from dataclasses import dataclass, field

from poseproof.alignment.calculator import (
    MAX_BODY_SCALE,
    MAX_HEADROOM_RATIO,
    MIN_BODY_SCALE,
    MIN_HEADROOM_RATIO,
    AlignmentResult,
)
from poseproof.alignment.geometry import SHOULDER_ANCHOR_FALLBACK_Y, anchor_y
from poseproof.landmarks.pose import Landmarks

HEADROOM_TOLERANCE = 0.01
SCALE_TOLERANCE = 0.05
NOSE_ANCHOR_FALLBACK_Y = 0.1


@dataclass(frozen=True)
class ValidationConstraints:
    max_anchor_delta_px: float = 2.0
    min_headroom: float = MIN_HEADROOM_RATIO
    max_headroom: float = MAX_HEADROOM_RATIO
    min_body_scale: float = MIN_BODY_SCALE
    max_body_scale: float = MAX_BODY_SCALE


@dataclass
class ValidationResult:
    passed: bool
    before_anchor_row: float
    after_anchor_row: float
    anchor_delta: float
    headroom_ratio: float
    applied_scale: float
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _anchor_ratio(landmarks: Landmarks | None, use_shoulder: bool) -> float:
    if use_shoulder:
        value = anchor_y(landmarks, "shoulder")
        return SHOULDER_ANCHOR_FALLBACK_Y if value is None else value
    value = anchor_y(landmarks, "nose")
    return NOSE_ANCHOR_FALLBACK_Y if value is None else value


def validate_alignment(
    result: AlignmentResult,
    before_landmarks: Landmarks | None,
    after_landmarks: Landmarks | None,
    target_height: float,
    constraints: ValidationConstraints | None = None,
) -> ValidationResult:
    """Check a computed alignment against the headroom, anchor and scale rules.

    Anchor rows that differ by more than the tolerance, and headroom below the
    minimum, are errors. Headroom above the maximum is only a warning: the
    head-visibility clamp may legitimately push an image down.
    """
    opts = constraints or ValidationConstraints()
    errors: list[str] = []
    warnings: list[str] = []
    use_shoulder = result.used_shoulder_anchor

    before_row = result.before.y + _anchor_ratio(before_landmarks, use_shoulder) * result.before.height
    after_row = result.after.y + _anchor_ratio(after_landmarks, use_shoulder) * result.after.height
    delta = abs(before_row - after_row)
    if delta > opts.max_anchor_delta_px:
        message = f"Anchor alignment delta {delta:.2f}px exceeds maximum {opts.max_anchor_delta_px}px"
        if use_shoulder:
            # shoulder mode equalizes the top crop, so anchor rows may differ
            warnings.append(message)
        else:
            errors.append(message)

    headroom = min(before_row, after_row) / target_height
    if headroom < opts.min_headroom - HEADROOM_TOLERANCE:
        errors.append(
            f"Headroom {headroom * 100:.1f}% is below minimum {opts.min_headroom * 100:.0f}%"
        )
    if headroom > opts.max_headroom + HEADROOM_TOLERANCE:
        warnings.append(
            f"Headroom {headroom * 100:.1f}% exceeds expected maximum {opts.max_headroom * 100:.0f}%"
        )

    applied_scale = result.after.height / result.before.height if result.before.height > 0 else 0.0
    low = opts.min_body_scale * (1 - SCALE_TOLERANCE)
    high = opts.max_body_scale * (1 + SCALE_TOLERANCE)
    if not low <= applied_scale <= high:
        errors.append(
            f"Applied scale {applied_scale:.3f} outside [{opts.min_body_scale}, {opts.max_body_scale}]"
        )

    if not use_shoulder and (result.before.y > 0 or result.after.y > 0):
        errors.append("Blank space above image: nose-anchored offsets must be <= 0")

    return ValidationResult(
        passed=not errors,
        before_anchor_row=before_row,
        after_anchor_row=after_row,
        anchor_delta=delta,
        headroom_ratio=headroom,
        applied_scale=applied_scale,
        errors=errors,
        warnings=warnings,
    )
