from __future__ import annotations

from pathlib import Path

from poseproof.alignment.calculator import MAX_HEADROOM_RATIO, MIN_HEADROOM_RATIO, AlignmentResult
from poseproof.alignment.geometry import DrawRect
from poseproof.alignment.validation import ValidationResult, validate_alignment
from poseproof.landmarks.pose import ALIGNMENT_INDICES, PhotoRef, is_visible, landmark_at

PANEL_COLORS = {"before": "#1f77b4", "after": "#d62728"}


def _landmark_points(photo: PhotoRef, rect: DrawRect) -> tuple[list[float], list[float]]:
    xs: list[float] = []
    ys: list[float] = []
    for idx in ALIGNMENT_INDICES:
        point = landmark_at(photo.landmarks, idx)
        if is_visible(point):
            xs.append(rect.x + point.x * rect.width)
            ys.append(rect.y + point.y * rect.height)
    return xs, ys


def save_alignment_plot(
    result: AlignmentResult,
    before: PhotoRef,
    after: PhotoRef,
    target_width: float,
    target_height: float,
    output_path: str | Path,
) -> ValidationResult:
    """Write a two-panel QA figure of the draw rectangles against the target panel.

    Each panel shows the image extent, the visible alignment landmarks, the
    headroom band and the resolved anchor rows. Returns the validation that the
    figure title summarises.
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from matplotlib.patches import Rectangle

    out_path = Path(output_path)
    if out_path.suffix.lower() != ".png":
        raise ValueError(f"Output file must be a .png file: {out_path}")
    out_path.parent.mkdir(parents=True, exist_ok=True)

    validation = validate_alignment(result, before.landmarks, after.landmarks, target_height)
    anchor_rows = {
        "before": validation.before_anchor_row,
        "after": validation.after_anchor_row,
    }

    fig, axes = plt.subplots(1, 2, figsize=(12, 6), sharex=True, sharey=True)
    for axis, name, photo, rect in (
        (axes[0], "before", before, result.before),
        (axes[1], "after", after, result.after),
    ):
        color = PANEL_COLORS[name]
        axis.add_patch(
            Rectangle((rect.x, rect.y), rect.width, rect.height, fill=False, ec=color, lw=1.5)
        )
        axis.add_patch(
            Rectangle((0, 0), target_width, target_height, fill=False, ec="black", lw=1.0, ls="--")
        )
        axis.axhspan(
            target_height * MIN_HEADROOM_RATIO,
            target_height * MAX_HEADROOM_RATIO,
            color="#2ca02c",
            alpha=0.12,
            label="headroom band",
        )
        axis.axhline(anchor_rows[name], color="#ff7f0e", lw=1.2, label="anchor row")
        xs, ys = _landmark_points(photo, rect)
        axis.scatter(xs, ys, s=18, c=color, alpha=0.8)
        axis.set_title(f"{name.title()} ({rect.width:.0f}x{rect.height:.0f})")

    pad_x = target_width * 0.6
    pad_y = target_height * 0.6
    for axis in axes:
        axis.set_xlim(-pad_x, target_width + pad_x)
        axis.set_ylim(target_height + pad_y, -pad_y)
        axis.set_aspect("equal")
        axis.grid(alpha=0.15)
        axis.set_xlabel("x (pixel)")
    axes[0].set_ylabel("y (pixel)")
    axes[1].legend(loc="lower right", fontsize=8)

    status = "PASS" if validation.passed else "FAIL"
    anchor_kind = "shoulder" if result.used_shoulder_anchor else "nose"
    fig.suptitle(
        f"{status} | anchor={anchor_kind} delta={validation.anchor_delta:.2f}px "
        f"headroom={validation.headroom_ratio * 100:.1f}% scale={validation.applied_scale:.3f}"
    )
    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close(fig)
    return validation
