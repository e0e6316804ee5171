"""
Canvas compositor: turns the customization state into the two cart
artifacts.

* print image   - fixed-width crop of the aperture content only, filters
                  baked in, JPEG. This is what gets printed.
* preview image - the frame exactly as it is on screen (border colour,
                  texture, image at its live position), PNG.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from framecraft import config
from framecraft.errors import GeometryUnavailableError, RenderError
from framecraft.filters import apply_filter, compute_filter
from framecraft.imaging import color_to_rgb, image_to_data_uri
from framecraft.layout import Rect
from framecraft.transform import clamp

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)
TEXTURE_TINTS = {"wood": (101, 67, 33)}
DEFAULT_TEXTURE_TINT = (153, 153, 153)


@dataclass(frozen=True)
class CartArtifacts:
    print_image: Optional[str]
    preview_image: Optional[str]


def print_canvas_size(frame_size, width=config.PRINT_WIDTH):
    frame_w, frame_h = frame_size.dimensions
    return width, int(round(width * frame_h / frame_w))


def draw_image(canvas, source, dest, clip=None, descriptor=None):
    """
    Draw `source` scaled into the `dest` rectangle of `canvas`, clipped to
    `clip` (and the canvas bounds). Only the visible region is resampled.
    The filter applies to the drawn pixels only.
    """
    canvas_h, canvas_w = canvas.shape[:2]
    visible = dest.intersect(Rect(0, 0, canvas_w, canvas_h))
    if clip is not None:
        visible = visible.intersect(clip)
    if visible.is_empty or dest.is_empty:
        return canvas

    x1, y1 = int(round(visible.x)), int(round(visible.y))
    x2, y2 = int(round(visible.right)), int(round(visible.bottom))
    if x2 <= x1 or y2 <= y1:
        return canvas

    src = source
    src_h, src_w = src.shape[:2]
    # Heavy downscale: pre-shrink with area averaging to avoid aliasing.
    if dest.width < src_w / 2 and dest.height < src_h / 2:
        src = cv2.resize(src, (max(1, int(round(dest.width))), max(1, int(round(dest.height)))),
                         interpolation=cv2.INTER_AREA)
        src_h, src_w = src.shape[:2]

    sx = dest.width / src_w
    sy = dest.height / src_h
    matrix = np.float32([
        [sx, 0, dest.x - x1 + 0.5 * (sx - 1)],
        [0, sy, dest.y - y1 + 0.5 * (sy - 1)],
    ])
    patch = cv2.warpAffine(src, matrix, (x2 - x1, y2 - y1), flags=cv2.INTER_LINEAR,
                           borderMode=cv2.BORDER_REPLICATE)
    canvas[y1:y2, x1:x2] = apply_filter(patch, descriptor)
    return canvas


def apply_texture(canvas, region, texture):
    """Speckle the frame face for textured finishes. Seeded so renders repeat."""
    if texture == "smooth":
        return canvas
    tint = np.array(TEXTURE_TINTS.get(texture, DEFAULT_TEXTURE_TINT), dtype=np.float32)
    x1, y1 = int(region.x), int(region.y)
    x2, y2 = int(region.right), int(region.bottom)
    face = canvas[y1:y2, x1:x2].astype(np.float32)

    rng = np.random.default_rng(7)
    grid = np.zeros(face.shape[:2], dtype=bool)
    grid[::3, ::3] = rng.random(grid[::3, ::3].shape) > 0.6
    face[grid] = face[grid] * 0.7 + tint * 0.3
    canvas[y1:y2, x1:x2] = face.astype(np.uint8)
    return canvas


class CanvasCompositor:

    def __init__(self, print_width=config.PRINT_WIDTH):
        self.print_width = print_width

    # --- Print-ready crop ---
    def render_print_array(self, state, source=None):
        if state.image is None:
            raise RenderError("No image to render")
        if source is None:
            source = state.image.decode()

        canvas_w, canvas_h = print_canvas_size(state.frame_size, self.print_width)
        canvas = np.full((canvas_h, canvas_w, 3), WHITE, dtype=np.uint8)

        img_h, img_w = source.shape[:2]
        img_ar = img_w / img_h
        canvas_ar = canvas_w / canvas_h

        # 1. Cover-fit base size
        if img_ar > canvas_ar:
            base_h = canvas_h
            base_w = base_h * img_ar
        else:
            base_w = canvas_w
            base_h = base_w / img_ar

        # 2. On-screen geometry scaled about the aperture centre, one scale for
        #    both axes, so the aperture window covers the canvas.
        scaled_w, scaled_h, offset_x, offset_y = base_w, base_h, 0.0, 0.0
        viewport = state.viewport
        if viewport is not None and viewport.is_measurable and state.zoom:
            scale = max(canvas_w / viewport.width, canvas_h / viewport.height)
            scaled_w = img_w * state.zoom * scale
            scaled_h = img_h * state.zoom * scale
            offset_x = state.position.x * scale
            offset_y = state.position.y * scale
            # Zoom floor capped by MAX_FIT_ZOOM can leave a tiny image short.
            grow = max(1.0, canvas_w / scaled_w, canvas_h / scaled_h)
            scaled_w, scaled_h = scaled_w * grow, scaled_h * grow

        # 3. Never pan past the image edge
        offset_x = clamp(offset_x, max(0.0, (scaled_w - canvas_w) / 2.0))
        offset_y = clamp(offset_y, max(0.0, (scaled_h - canvas_h) / 2.0))

        draw_x = canvas_w / 2.0 - scaled_w / 2.0 + offset_x
        draw_y = canvas_h / 2.0 - scaled_h / 2.0 + offset_y

        # 4. Filters + draw
        descriptor = compute_filter(state.adjustments)
        return draw_image(canvas, source, Rect(draw_x, draw_y, scaled_w, scaled_h), descriptor=descriptor)

    def render_print(self, state, source=None):
        canvas = self.render_print_array(state, source)
        return image_to_data_uri(canvas, fmt="JPEG", quality=config.PRINT_JPEG_QUALITY)

    # --- Live preview snapshot ---
    def render_preview_array(self, state, layout, source=None):
        """Rasterize the frame exactly as laid out on screen."""
        if layout is None or not layout.is_measurable or layout.image_rect is None:
            raise GeometryUnavailableError("Frame preview geometry unavailable")
        if state.image is None:
            raise RenderError("No image to render")
        if source is None:
            source = state.image.decode()

        frame_box = Rect(0, 0, layout.frame_width, layout.frame_height)
        canvas = np.full((layout.frame_height, layout.frame_width, 3),
                         color_to_rgb(state.frame_color), dtype=np.uint8)
        apply_texture(canvas, frame_box, state.frame_texture)

        ap = layout.aperture
        ax1, ay1 = int(round(ap.x)), int(round(ap.y))
        ax2, ay2 = int(round(ap.right)), int(round(ap.bottom))
        canvas[ay1:ay2, ax1:ax2] = WHITE

        descriptor = compute_filter(state.adjustments)
        return draw_image(canvas, source, layout.image_rect, clip=ap, descriptor=descriptor)

    def render_preview(self, state, layout, source=None):
        canvas = self.render_preview_array(state, layout, source)
        return image_to_data_uri(canvas, fmt="PNG")

    # --- Cart composition ---
    async def _decode(self, state):
        if state.image is None:
            raise RenderError("No image to render")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, state.image.decode)

    async def capture_print(self, state):
        async def render():
            return self.render_print(state, await self._decode(state))

        def original():
            return state.image.data_uri if state.image is not None else None

        return await render_or_fallback(render, original, "print image")

    async def capture_preview(self, state, layout):
        async def render():
            if layout is None or not layout.is_measurable:
                raise GeometryUnavailableError("Frame preview geometry unavailable")
            return self.render_preview(state, layout, await self._decode(state))

        return await render_or_fallback(render, None, "preview image")

    async def compose_for_cart(self, state, layout):
        """
        Produce both artifacts. Never raises: a failed preview falls back to
        the print image, a failed print falls back to the original upload.
        """
        print_image, preview_image = await asyncio.gather(
            self.capture_print(state),
            self.capture_preview(state, layout),
        )
        logger.info(f"Captured cart images (print: {bool(print_image)}, preview: {bool(preview_image)})")
        return CartArtifacts(print_image=print_image, preview_image=preview_image or print_image)


async def render_or_fallback(render, fallback, label):
    """
    Await `render()`; on any failure log it and return `fallback` (called if
    callable). Shared by every compositor output path.
    """
    try:
        return await render()
    except GeometryUnavailableError as e:
        logger.warning(f"{label}: {e}, using fallback")
    except Exception as e:
        logger.error(f"Error creating {label}: {e}")
    return fallback() if callable(fallback) else fallback
