from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from framecraft import config
from framecraft.state import Viewport


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self):
        return self.x + self.width

    @property
    def bottom(self):
        return self.y + self.height

    @property
    def is_empty(self):
        return self.width <= 0 or self.height <= 0

    def intersect(self, other) -> "Rect":
        x1, y1 = max(self.x, other.x), max(self.y, other.y)
        x2, y2 = min(self.right, other.right), min(self.bottom, other.bottom)
        return Rect(x1, y1, max(0.0, x2 - x1), max(0.0, y2 - y1))


@dataclass(frozen=True)
class PreviewLayout:
    """
    Geometry of the frame preview as it is currently shown: the frame box,
    its border, the aperture inside it and where the image sits on screen.
    """
    frame_width: int
    frame_height: int
    border_width: int
    aperture: Rect
    image_rect: Optional[Rect] = None

    @property
    def viewport(self) -> Viewport:
        return Viewport(self.aperture.width, self.aperture.height)

    @property
    def is_measurable(self) -> bool:
        return self.frame_width > 0 and self.frame_height > 0 and not self.aperture.is_empty


def border_width_for(frame_size, frame_width, compact=False):
    """Border = frame breadth / declared width, with a floor so it stays visible."""
    frame_height = frame_width / frame_size.aspect_ratio
    breadth = min(frame_width, frame_height)
    border = round(breadth / frame_size.border_divisor)
    floor = config.MIN_BORDER_WIDTH_COMPACT if compact else config.MIN_BORDER_WIDTH
    return max(border, floor)


def compute_preview_layout(frame_size, preview_width, image_size=None, zoom=None,
                           position=None, compact=False) -> PreviewLayout:
    frame_w = int(preview_width)
    frame_h = int(round(preview_width / frame_size.aspect_ratio))
    border = border_width_for(frame_size, frame_w, compact=compact)
    aperture = Rect(border, border, frame_w - 2 * border, frame_h - 2 * border)

    image_rect = None
    if image_size is not None and zoom:
        img_w, img_h = image_size
        draw_w, draw_h = img_w * zoom, img_h * zoom
        cx = aperture.x + aperture.width / 2.0 + (position.x if position else 0.0)
        cy = aperture.y + aperture.height / 2.0 + (position.y if position else 0.0)
        image_rect = Rect(cx - draw_w / 2.0, cy - draw_h / 2.0, draw_w, draw_h)

    return PreviewLayout(frame_w, frame_h, border, aperture, image_rect)
