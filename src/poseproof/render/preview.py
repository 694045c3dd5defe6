from __future__ import annotations

import logging

import numpy as np

from poseproof.alignment.calculator import AlignmentResult, calculate_aligned_draw_params
from poseproof.config import ExportFormat, aspect_ratio_for
from poseproof.errors import SurfaceError
from poseproof.landmarks.pose import PhotoRef
from poseproof.render.composite import CompositeLayout, draw_side_by_side, plan_side_by_side
from poseproof.render.raster import check_surface, new_surface

logger = logging.getLogger(__name__)


class PreviewRenderer:
    """Interactive side-by-side preview.

    Uses the same calculator and ``plan_side_by_side`` as the PNG export, so a
    container whose fitted panel equals an export panel yields the exact same
    layout.
    """

    def __init__(self, export_format: ExportFormat | str, *, include_labels: bool = False) -> None:
        self.export_format = ExportFormat(export_format)
        self.aspect_ratio = aspect_ratio_for(self.export_format)
        self.include_labels = include_labels

    def fit_panel(self, container_width: float, container_height: float) -> tuple[int, int]:
        """Half width and height of the largest 2×aspect box inside the container."""
        if container_width <= 0 or container_height <= 0:
            raise ValueError(
                f"container size must be positive, got: {container_width}x{container_height}"
            )
        side_by_side_aspect = self.aspect_ratio * 2
        if container_width / container_height > side_by_side_aspect:
            height = float(container_height)
            width = height * side_by_side_aspect
        else:
            width = float(container_width)
            height = width / side_by_side_aspect
        return max(1, round(width / 2)), max(1, round(height))

    def align(
        self,
        before: PhotoRef,
        after: PhotoRef,
        container_width: float,
        container_height: float,
    ) -> tuple[AlignmentResult, CompositeLayout]:
        half_width, height = self.fit_panel(container_width, container_height)
        alignment = calculate_aligned_draw_params(before, after, half_width, height)
        layout = plan_side_by_side(alignment, half_width, height, self.aspect_ratio)
        return alignment, layout

    def render(
        self,
        surface: np.ndarray,
        before_img: np.ndarray,
        after_img: np.ndarray,
        layout: CompositeLayout,
    ) -> None:
        """Draw into ``surface``, centring the comparison when the surface is larger."""
        check_surface(surface)
        surface_height, surface_width = surface.shape[:2]
        if surface_width < layout.width or surface_height < layout.height:
            raise SurfaceError(
                f"Preview surface {surface_width}x{surface_height} is smaller than "
                f"layout {layout.width}x{layout.height}"
            )
        origin = ((surface_width - layout.width) // 2, (surface_height - layout.height) // 2)
        draw_side_by_side(
            surface,
            before_img,
            after_img,
            layout,
            include_labels=self.include_labels,
            origin=origin,
        )

    def render_to_array(
        self,
        before_img: np.ndarray,
        after_img: np.ndarray,
        before: PhotoRef,
        after: PhotoRef,
        container_width: float,
        container_height: float,
    ) -> tuple[np.ndarray, CompositeLayout]:
        _, layout = self.align(before, after, container_width, container_height)
        surface = new_surface(layout.width, layout.height)
        self.render(surface, before_img, after_img, layout)
        logger.debug("preview rendered at %dx%d", layout.width, layout.height)
        return surface, layout
