from dataclasses import dataclass

import numpy as np

from framecraft import config


@dataclass(frozen=True)
class FilterDescriptor:
    brightness_factor: float = 1.0
    contrast_percent: float = 100.0
    saturate_percent: float = 100.0

    @property
    def is_identity(self):
        return (self.brightness_factor == 1.0 and self.contrast_percent == 100
                and self.saturate_percent == 100)

    def css(self):
        """Live CSS filter expression for the on-screen preview element."""
        return (f"brightness({self.brightness_factor:g}) "
                f"contrast({self.contrast_percent:g}%) "
                f"saturate({self.saturate_percent:g}%)")


def compute_filter(adjustments, epsilon=config.BRIGHTNESS_EPSILON):
    """
    Collapse the five adjustment sliders into one filter descriptor.
    Brightness, highlights and shadows combine multiplicatively and are
    floored at epsilon so the render never goes fully black.
    """
    combined = (adjustments.brightness / 100.0) * (adjustments.highlights / 100.0) * (adjustments.shadows / 100.0)
    return FilterDescriptor(
        brightness_factor=max(epsilon, combined),
        contrast_percent=float(adjustments.contrast),
        saturate_percent=float(adjustments.vibrance),
    )


def _saturate_matrix(s):
    return np.array([
        [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
    ], dtype=np.float32)


def apply_filter(image_rgb, descriptor):
    """
    Bake a filter descriptor into an RGB uint8 array using the CSS
    filter-effects primitives in order: brightness, contrast, saturate.
    Each primitive clamps to [0, 1] like the browser does.
    """
    if descriptor is None or descriptor.is_identity:
        return image_rgb

    img = image_rgb.astype(np.float32) / 255.0

    # 1. Brightness (linear multiply)
    img = np.clip(img * descriptor.brightness_factor, 0.0, 1.0)

    # 2. Contrast about mid-grey
    c = descriptor.contrast_percent / 100.0
    if c != 1.0:
        img = np.clip((img - 0.5) * c + 0.5, 0.0, 1.0)

    # 3. Saturation colour matrix
    s = descriptor.saturate_percent / 100.0
    if s != 1.0:
        img = np.clip(img @ _saturate_matrix(s).T, 0.0, 1.0)

    return np.round(img * 255.0).astype(np.uint8)
