class FramingError(Exception):
    """Base class for everything the framing engine raises."""


class UnsupportedImageError(FramingError):
    """Upload was not an image (or exceeded the size limit)."""


class ImageDecodeError(FramingError):
    """Raster bytes could not be decoded."""


class GeometryUnavailableError(FramingError):
    """Live preview geometry is missing or has no area."""


class RenderError(FramingError):
    """Drawing the composite failed."""
