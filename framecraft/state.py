"""
Customization state for one product-configuration session.

Everything here is plain data. Engines receive a CustomizationState instance
and mutate it; nothing in the package keeps a module-level state object.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Optional, Tuple

from framecraft import config
from framecraft.imaging import decode_image, to_data_uri

ADJUSTMENT_NAMES = ("brightness", "contrast", "highlights", "shadows", "vibrance")


@dataclass(frozen=True)
class FrameSize:
    size: str = config.DEFAULT_FRAME_SIZE
    orientation: str = config.DEFAULT_ORIENTATION

    def __post_init__(self):
        if self.size not in config.FRAME_SIZES:
            raise ValueError(f"Unknown frame size: {self.size}")
        if self.orientation not in config.ORIENTATIONS:
            raise ValueError(f"Unknown orientation: {self.orientation}")

    @property
    def is_landscape(self) -> bool:
        return self.orientation == "landscape"

    @property
    def dimensions(self) -> Tuple[int, int]:
        """Declared (width, height) with the long side following orientation."""
        a, b = (int(v) for v in self.size.split("x"))
        long_side, short_side = max(a, b), min(a, b)
        if self.is_landscape:
            return long_side, short_side
        return short_side, long_side

    @property
    def aspect_ratio(self) -> float:
        w, h = self.dimensions
        return w / h

    @property
    def border_divisor(self) -> int:
        # Border is the frame breadth divided by the declared width.
        return self.dimensions[0]

    @property
    def price(self) -> int:
        return config.PRICES.get(self.size, config.DEFAULT_PRICE)

    @property
    def key(self) -> str:
        return f"{self.size}-{self.orientation}"

    def to_dict(self):
        return {"size": self.size, "orientation": self.orientation}


@dataclass
class Adjustments:
    brightness: int = 100
    contrast: int = 100
    highlights: int = 100
    shadows: int = 100
    vibrance: int = 100

    def set(self, name, value):
        if name not in ADJUSTMENT_NAMES:
            raise KeyError(f"Unknown adjustment: {name}")
        setattr(self, name, max(0, min(200, int(value))))

    def to_dict(self):
        return asdict(self)


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self):
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Viewport:
    """Live size of the image container (the frame aperture) in screen pixels."""
    width: float
    height: float

    @property
    def is_measurable(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class ImageHandle:
    """Encoded upload plus its natural size. Replaced wholesale on re-upload."""
    data: bytes = field(repr=False)
    mime_type: str
    width: int
    height: int
    filename: Optional[str] = None

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)

    def decode(self):
        return decode_image(self.data)


@dataclass
class RoomSlider:
    current_index: int = 0
    images: List[str] = field(default_factory=list)
    frame_size_key: Optional[str] = None
    is_active: bool = False

    def activate(self, frame_size_key, images):
        self.frame_size_key = frame_size_key
        self.images = list(images)
        self.current_index = 0
        self.is_active = True

    def reset(self):
        self.current_index = 0
        self.images = []
        self.frame_size_key = None
        self.is_active = False

    def go_to(self, index):
        if not self.is_active or index < 0 or index >= len(self.images):
            return False
        self.current_index = index
        return True

    def next(self):
        return self.go_to(self.current_index + 1)

    def previous(self):
        return self.go_to(self.current_index - 1)


@dataclass
class CustomizationState:
    image: Optional[ImageHandle] = None
    frame_size: FrameSize = field(default_factory=FrameSize)
    frame_color: str = config.DEFAULT_FRAME_COLOR
    frame_texture: str = config.DEFAULT_FRAME_TEXTURE
    price: int = config.DEFAULT_PRICE
    adjustments: Adjustments = field(default_factory=Adjustments)
    zoom: Optional[float] = None
    position: Position = field(default_factory=Position)
    viewport: Optional[Viewport] = None
    room_slider: RoomSlider = field(default_factory=RoomSlider)

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def set_image(self, handle: ImageHandle, zoom: float):
        self.image = handle
        self.zoom = zoom
        self.position = Position()

    def set_frame_size(self, frame_size: FrameSize):
        self.frame_size = frame_size
        self.price = frame_size.price
        self.position = Position()

    def snapshot(self):
        """JSON-friendly view of the configuration (no raster data)."""
        return {
            "frameSize": self.frame_size.to_dict(),
            "frameColor": self.frame_color,
            "frameTexture": self.frame_texture,
            "adjustments": self.adjustments.to_dict(),
            "zoom": self.zoom,
            "position": self.position.to_dict(),
            "price": self.price,
        }
