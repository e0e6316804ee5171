import io
import os

import numpy as np
import pytest
from PIL import Image

from framecraft.cart import Cart
from framecraft.session import FramingSession
from framecraft.state import CustomizationState, ImageHandle, Viewport
from framecraft.upload import read_image


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000.0


def image_bytes(width, height, color=(200, 120, 60), fmt="PNG"):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def solid(width, height, color):
    return np.full((height, width, 3), color, dtype=np.uint8)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def png_bytes():
    return image_bytes(300, 400)


@pytest.fixture
def loaded_state():
    """State holding a real 300x400 solid red image."""
    state = CustomizationState()
    state.image = read_image(image_bytes(300, 400, (255, 0, 0)), "image/png", "red.png")
    return state


@pytest.fixture
def square_state():
    """State with a 1000x1000 image in a 260x380 aperture, no pixel data needed."""
    state = CustomizationState()
    state.image = ImageHandle(data=b"", mime_type="image/png", width=1000, height=1000)
    state.viewport = Viewport(260, 380)
    state.zoom = 0.5
    return state


@pytest.fixture
def room_root(tmp_path):
    root = tmp_path / "rooms"
    for folder in ("13X19 PORTRAIT", "13X10  PORTRAIT"):
        os.makedirs(root / folder)
        for i in range(1, 6):
            (root / folder / f"{i}.jpg").write_bytes(image_bytes(800, 600, (180, 180, 180), fmt="JPEG"))
    return str(root)


@pytest.fixture
def session(tmp_path, clock, room_root):
    return FramingSession(cart=Cart(str(tmp_path / "cart.json")), room_root=room_root, clock=clock)


@pytest.fixture
def make_image():
    return image_bytes


@pytest.fixture
def make_array():
    return solid
