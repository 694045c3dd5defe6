from __future__ import annotations

import numpy as np
import pytest

from conftest import solid_image
from poseproof.alignment.calculator import AlignmentResult
from poseproof.alignment.geometry import DrawRect
from poseproof.config import AnimationStyle
from poseproof.render.animation import (
    TOGGLE_DELAYS_MS,
    build_schedule,
    ease_in_out_cubic,
    frame_progress,
    render_crossfade_frame,
    render_slider_frame,
    render_toggle_frame,
    renderer_for,
    toggle_shows_after,
)
from poseproof.render.raster import new_surface

RED = (255, 0, 0)
BLUE = (0, 0, 255)
FULL_FRAME = AlignmentResult(
    before=DrawRect(x=0.0, y=0.0, width=100.0, height=100.0),
    after=DrawRect(x=0.0, y=0.0, width=100.0, height=100.0),
)


def _render(renderer, frame_index: int, total_frames: int, include_labels: bool = False) -> np.ndarray:
    surface = new_surface(100, 100)
    renderer(
        surface,
        solid_image(20, 20, RED),
        solid_image(20, 20, BLUE),
        FULL_FRAME,
        frame_index,
        total_frames,
        include_labels,
    )
    return surface


def test_schedules_per_style() -> None:
    slider = build_schedule(AnimationStyle.slider, 2.0)
    assert slider.frame_count == 30
    assert set(slider.delays_ms) == {67}

    crossfade = build_schedule("crossfade", 3.0)
    assert crossfade.frame_count == 24
    assert set(crossfade.delays_ms) == {125}


@pytest.mark.parametrize("duration", [0.5, 2.0, 10.0])
def test_toggle_schedule_ignores_duration(duration: float) -> None:
    schedule = build_schedule("toggle", duration)
    assert schedule.frame_count == 12
    assert schedule.delays_ms == TOGGLE_DELAYS_MS
    assert schedule.delays_ms[4] == 0
    assert schedule.delays_ms[10] == 0
    assert schedule.total_ms == 8000


def test_easing_curve() -> None:
    assert ease_in_out_cubic(0.0) == 0.0
    assert ease_in_out_cubic(0.25) == pytest.approx(0.0625)
    assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
    assert ease_in_out_cubic(0.75) == pytest.approx(0.9375)
    assert ease_in_out_cubic(1.0) == pytest.approx(1.0)


def test_single_frame_sequence_uses_zero_progress() -> None:
    assert frame_progress(0, 1) == 0.0
    assert frame_progress(0, 0) == 0.0
    assert frame_progress(5, 11) == pytest.approx(0.5)


def test_slider_wipes_from_before_to_after() -> None:
    first = _render(render_slider_frame, 0, 3)
    middle = _render(render_slider_frame, 1, 3)
    last = _render(render_slider_frame, 2, 3)

    assert tuple(first[50, 50]) == RED
    assert tuple(middle[50, 10]) == BLUE
    assert tuple(middle[50, 90]) == RED
    assert tuple(middle[50, 50]) == (255, 255, 255)
    assert tuple(last[50, 50]) == BLUE


def test_slider_line_casts_shadow_to_the_left() -> None:
    middle = _render(render_slider_frame, 1, 3)
    assert middle[50, 46, 2] < 255
    assert tuple(middle[50, 75]) == RED


def test_crossfade_blends_eased_opacity() -> None:
    first = _render(render_crossfade_frame, 0, 3)
    middle = _render(render_crossfade_frame, 1, 3)
    last = _render(render_crossfade_frame, 2, 3)

    assert tuple(first[50, 50]) == RED
    assert tuple(last[50, 50]) == BLUE
    assert np.allclose(middle[50, 50].astype(int), [128, 64, 191], atol=2)


def test_toggle_window() -> None:
    shown = [toggle_shows_after(idx, 12) for idx in range(12)]
    assert shown == [False] * 5 + [True] * 5 + [False] * 2
    assert tuple(_render(render_toggle_frame, 0, 12)[50, 50]) == RED
    assert tuple(_render(render_toggle_frame, 6, 12)[50, 50]) == BLUE


@pytest.mark.parametrize("style", list(AnimationStyle))
def test_labels_only_touch_top_band(style: AnimationStyle) -> None:
    renderer = renderer_for(style)
    plain = _render(renderer, 0, 12)
    labelled = _render(renderer, 0, 12, include_labels=True)
    assert not np.array_equal(plain, labelled)
    assert np.array_equal(plain[40:], labelled[40:])
