"""Drawing primitives over RGB ``uint8`` numpy surfaces.

A surface is an ``(height, width, 3)`` array owned by the caller. Photos are
placed with an affine warp into a clip box, so a ``DrawRect`` that overflows
the box is cropped exactly the way a canvas clip would crop it.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from poseproof.alignment.geometry import DrawRect
from poseproof.errors import SurfaceError

ClipBox = tuple[int, int, int, int]
LabelAlign = Literal["left", "center", "right"]

WHITE = (255, 255, 255)
LABEL_FILL = (255, 255, 255, 242)
LABEL_SHADOW = (0, 0, 0, 153)
LABEL_SHADOW_BLUR = 8
LABEL_SHADOW_OFFSET = (0, 2)
WIPE_LINE_WIDTH = 4
WIPE_SHADOW_ALPHA = 0.3
WIPE_SHADOW_BLUR = 8
WIPE_SHADOW_OFFSET_X = -2
FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")

_ANCHORS: dict[str, str] = {"left": "lt", "center": "mt", "right": "rt"}


def new_surface(width: int, height: int, color: tuple[int, int, int] = WHITE) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise SurfaceError(f"Surface size must be positive, got: {width}x{height}")
    try:
        surface = np.empty((int(height), int(width), 3), dtype=np.uint8)
    except MemoryError as exc:
        raise SurfaceError(f"Failed to allocate {width}x{height} surface") from exc
    surface[...] = color
    return surface


def check_surface(surface: np.ndarray) -> np.ndarray:
    if not isinstance(surface, np.ndarray) or surface.ndim != 3 or surface.shape[2] != 3:
        shape = getattr(surface, "shape", None)
        raise SurfaceError(f"Surface must be an (H, W, 3) array, got shape: {shape}")
    if surface.dtype != np.uint8:
        raise SurfaceError(f"Surface must be uint8, got: {surface.dtype}")
    return surface


def fill(surface: np.ndarray, color: tuple[int, int, int] = WHITE) -> None:
    surface[...] = color


def _resolve_clip(surface: np.ndarray, clip: ClipBox | None) -> ClipBox | None:
    height, width = surface.shape[:2]
    if clip is None:
        return 0, 0, width, height
    x0, y0, x1, y1 = clip
    x0, y0 = max(0, int(x0)), max(0, int(y0))
    x1, y1 = min(width, int(x1)), min(height, int(y1))
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def _build_placement_matrix(scale_x: float, scale_y: float, tx: float, ty: float) -> np.ndarray:
    # pixel-centre convention: source pixel centres land on the continuous rect
    return np.asarray(
        [
            [scale_x, 0.0, tx + 0.5 * scale_x - 0.5],
            [0.0, scale_y, ty + 0.5 * scale_y - 0.5],
        ],
        dtype=np.float64,
    )


def _prepare_source(image_rgb: np.ndarray, rect: DrawRect) -> np.ndarray:
    src_h, src_w = image_rgb.shape[:2]
    out_w = max(1, round(rect.width))
    out_h = max(1, round(rect.height))
    if out_w < src_w or out_h < src_h:
        # warpAffine has no area filter; shrink first to avoid aliasing
        return cv2.resize(image_rgb, (out_w, out_h), interpolation=cv2.INTER_AREA)
    return image_rgb


def draw_image(
    surface: np.ndarray,
    image_rgb: np.ndarray,
    rect: DrawRect,
    *,
    clip: ClipBox | None = None,
    alpha: float = 1.0,
) -> None:
    """Draw ``image_rgb`` stretched onto ``rect`` (surface coordinates), inside ``clip``."""
    box = _resolve_clip(surface, clip)
    if box is None or alpha <= 0 or rect.width <= 0 or rect.height <= 0:
        return
    x0, y0, x1, y1 = box

    source = _prepare_source(image_rgb, rect)
    src_h, src_w = source.shape[:2]
    matrix = _build_placement_matrix(
        rect.width / src_w,
        rect.height / src_h,
        rect.x - x0,
        rect.y - y0,
    )
    region = surface[y0:y1, x0:x1]
    warped = cv2.warpAffine(
        source,
        matrix,
        (x1 - x0, y1 - y0),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )
    cover = _coverage_mask(rect, box)
    if alpha >= 1:
        region[cover] = warped[cover]
        return
    blended = region[cover].astype(np.float32) * (1.0 - alpha) + warped[cover].astype(np.float32) * alpha
    region[cover] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def _coverage_mask(rect: DrawRect, box: ClipBox) -> np.ndarray:
    # a pixel belongs to the image when its centre lies inside the rect
    x0, y0, x1, y1 = box
    cols = np.arange(x0, x1, dtype=np.float64) + 0.5
    rows = np.arange(y0, y1, dtype=np.float64) + 0.5
    col_mask = (cols >= rect.x) & (cols < rect.right)
    row_mask = (rows >= rect.y) & (rows < rect.bottom)
    return row_mask[:, np.newaxis] & col_mask[np.newaxis, :]


@lru_cache(maxsize=32)
def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(size))
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size=size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _text_layer(
    size: tuple[int, int],
    text: str,
    origin: tuple[float, float],
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    anchor: str,
    color: tuple[int, int, int, int],
    blur: float = 0.0,
) -> Image.Image:
    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).text(origin, text, font=font, anchor=anchor, fill=255)
    if blur > 0:
        mask = mask.filter(ImageFilter.GaussianBlur(blur / 2))
    layer = Image.new("RGBA", size, color[:3] + (0,))
    layer.putalpha(mask.point(lambda value: round(value * color[3] / 255)))
    return layer


def draw_label(
    surface: np.ndarray,
    text: str,
    *,
    x: float,
    y: float,
    font_size: int,
    align: LabelAlign = "center",
    color: tuple[int, int, int, int] = LABEL_FILL,
    shadow: tuple[int, int, int, int] = LABEL_SHADOW,
    shadow_blur: float = LABEL_SHADOW_BLUR,
    shadow_offset: tuple[int, int] = LABEL_SHADOW_OFFSET,
) -> None:
    """Draw ``text`` with its top edge at ``y``; ``x`` is the left, centre or right edge."""
    if align not in _ANCHORS:
        valid = ", ".join(_ANCHORS)
        raise ValueError(f"Unsupported label align '{align}'. Expected one of: {valid}")
    anchor = _ANCHORS[align]
    font = load_font(font_size)

    probe = ImageDraw.Draw(Image.new("L", (1, 1)))
    left, top, right, bottom = probe.textbbox((x, y), text, font=font, anchor=anchor)
    margin = int(shadow_blur * 2 + max(abs(shadow_offset[0]), abs(shadow_offset[1]))) + 1
    box = _resolve_clip(
        surface,
        (int(left) - margin, int(top) - margin, int(right) + margin + 1, int(bottom) + margin + 1),
    )
    if box is None:
        return
    x0, y0, x1, y1 = box
    size = (x1 - x0, y1 - y0)

    patch = Image.fromarray(np.ascontiguousarray(surface[y0:y1, x0:x1])).convert("RGBA")
    shadow_origin = (x - x0 + shadow_offset[0], y - y0 + shadow_offset[1])
    patch.alpha_composite(_text_layer(size, text, shadow_origin, font, anchor, shadow, shadow_blur))
    patch.alpha_composite(_text_layer(size, text, (x - x0, y - y0), font, anchor, color))
    surface[y0:y1, x0:x1] = np.asarray(patch.convert("RGB"))


def draw_wipe_line(
    surface: np.ndarray,
    x: float,
    *,
    line_width: int = WIPE_LINE_WIDTH,
    color: tuple[int, int, int] = WHITE,
) -> None:
    """Full-height vertical line centred on ``x`` with a soft shadow to its left."""
    width = surface.shape[1]
    margin = WIPE_SHADOW_BLUR * 2 + abs(WIPE_SHADOW_OFFSET_X) + line_width
    x0 = max(0, int(np.floor(x)) - margin)
    x1 = min(width, int(np.ceil(x)) + margin + 1)
    if x1 <= x0:
        return

    half = line_width / 2
    columns = np.arange(x0, x1, dtype=np.float32) + 0.5
    shadow_columns = columns - WIPE_SHADOW_OFFSET_X
    shadow_mask = ((shadow_columns >= x - half) & (shadow_columns <= x + half)).astype(np.float32)
    shadow_mask = cv2.GaussianBlur(
        shadow_mask.reshape(1, -1), (0, 0), sigmaX=WIPE_SHADOW_BLUR / 2
    ).reshape(-1)

    band = surface[:, x0:x1].astype(np.float32)
    band *= 1.0 - (shadow_mask * WIPE_SHADOW_ALPHA)[np.newaxis, :, np.newaxis]
    line_mask = (columns >= x - half) & (columns <= x + half)
    band[:, line_mask] = color
    surface[:, x0:x1] = np.clip(np.rint(band), 0, 255).astype(np.uint8)
