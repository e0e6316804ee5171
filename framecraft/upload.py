import asyncio
import logging

from framecraft import config
from framecraft.errors import ImageDecodeError, UnsupportedImageError
from framecraft.imaging import decode_image
from framecraft.state import ImageHandle

logger = logging.getLogger(__name__)


def calculate_required_zoom(img_width, img_height, frame_width, frame_height, cover=False):
    """
    Zoom that makes the image width fill the frame width, clamped to [0.1, 5.0].
    With cover=True the larger of the width and height ratios is used so the
    image covers both axes.
    """
    if not img_width or not img_height or not frame_width or not frame_height:
        logger.warning("Invalid dimensions for zoom calculation")
        return 1.0

    zoom = frame_width / img_width
    if cover:
        zoom = max(zoom, frame_height / img_height)
    return max(min(zoom, config.MAX_FIT_ZOOM), config.MIN_FIT_ZOOM)


def validate_upload(data, mime_type):
    if not mime_type or not mime_type.startswith("image/"):
        raise UnsupportedImageError(f"Invalid file type: {mime_type}")
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise UnsupportedImageError("File too large")


def read_image(data, mime_type, filename=None):
    """Decode an upload and wrap it in an ImageHandle with its natural size."""
    image = decode_image(data)
    h, w = image.shape[:2]
    if w == 0 or h == 0:
        raise ImageDecodeError("Invalid image dimensions")
    return ImageHandle(data=bytes(data), mime_type=mime_type, width=w, height=h, filename=filename)


class UploadEngine:
    """
    Accepts an upload, decodes it off the event loop and commits the fitted
    result to the session state. Nothing is committed on failure.
    """

    def __init__(self, state, on_committed=None):
        self.state = state
        self.on_committed = on_committed

    def initial_zoom(self, handle):
        viewport = self.state.viewport
        if viewport is None or not viewport.is_measurable:
            # No layout yet: fit against the declared frame width instead.
            frame_w, frame_h = self.state.frame_size.dimensions
            return calculate_required_zoom(handle.width, handle.height, frame_w, frame_h)
        return calculate_required_zoom(handle.width, handle.height, viewport.width, viewport.height)

    def commit(self, handle):
        zoom = self.initial_zoom(handle)
        self.state.set_image(handle, zoom)
        logger.info(f"Uploaded: {handle.width}x{handle.height}, zoom {zoom:.3f}")
        if self.on_committed is not None:
            self.on_committed(handle)
        return handle

    async def handle_upload(self, data, mime_type, filename=None):
        """
        Returns True once the image is committed, False if the upload was
        rejected or could not be decoded.
        """
        try:
            validate_upload(data, mime_type)
        except UnsupportedImageError as e:
            logger.error(str(e))
            return False

        loop = asyncio.get_running_loop()
        try:
            handle = await loop.run_in_executor(None, read_image, data, mime_type, filename)
        except ImageDecodeError as e:
            logger.error(f"Failed to load image: {e}")
            return False

        self.commit(handle)
        return True
