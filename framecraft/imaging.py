import base64
import binascii
import io
import logging

import cv2
import numpy as np
from PIL import Image, ImageColor

from framecraft.errors import ImageDecodeError

logger = logging.getLogger(__name__)


def decode_image(data):
    """
    Decode encoded raster bytes into an RGB uint8 array.
    Raises ImageDecodeError for empty or corrupt input.
    """
    if not data:
        raise ImageDecodeError("No image data")
    file_bytes = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(file_bytes, cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise ImageDecodeError("Image data could not be decoded")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def encode_image(image_rgb, fmt="PNG", quality=None):
    """Encode an RGB array to bytes with Pillow."""
    pil_img = Image.fromarray(np.ascontiguousarray(image_rgb, dtype=np.uint8))
    buf = io.BytesIO()
    if fmt.upper() == "JPEG":
        pil_img.save(buf, format="JPEG", quality=quality or 95)
    else:
        pil_img.save(buf, format="PNG")
    return buf.getvalue()


def to_data_uri(data, mime_type):
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def from_data_uri(uri):
    """Split a base64 data URI into (bytes, mime_type)."""
    if not uri or not uri.startswith("data:") or ";base64," not in uri:
        raise ImageDecodeError("Not a base64 data URI")
    header, payload = uri.split(",", 1)
    mime_type = header[5:].split(";", 1)[0]
    try:
        return base64.b64decode(payload, validate=True), mime_type
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 payload: {e}") from e


def image_to_data_uri(image_rgb, fmt="PNG", quality=None):
    mime = "image/jpeg" if fmt.upper() == "JPEG" else "image/png"
    return to_data_uri(encode_image(image_rgb, fmt=fmt, quality=quality), mime)


def color_to_rgb(color, default=(139, 69, 19)):
    """Resolve a CSS colour name or hex string; unknown values fall back to teak."""
    if not color:
        return default
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        logger.warning(f"Unknown frame colour {color!r}, using default")
        return default
    return tuple(int(c) for c in rgb[:3])
