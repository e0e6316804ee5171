import numpy as np
import pytest

from framecraft.filters import FilterDescriptor, apply_filter, compute_filter
from framecraft.state import Adjustments


def test_defaults_are_identity():
    descriptor = compute_filter(Adjustments())
    assert descriptor.is_identity
    assert descriptor.css() == "brightness(1) contrast(100%) saturate(100%)"


def test_brightness_family_combines_multiplicatively():
    descriptor = compute_filter(Adjustments(brightness=150, highlights=120, shadows=50))
    assert descriptor.brightness_factor == pytest.approx(1.5 * 1.2 * 0.5)


def test_contrast_and_saturate_pass_through():
    descriptor = compute_filter(Adjustments(contrast=37, vibrance=180))
    assert descriptor.contrast_percent == 37
    assert descriptor.saturate_percent == 180


@pytest.mark.parametrize("name", ["brightness", "highlights", "shadows"])
def test_brightness_factor_never_decreases(name):
    factors = []
    for value in range(0, 201, 10):
        adj = Adjustments()
        adj.set(name, value)
        factors.append(compute_filter(adj).brightness_factor)
    assert factors == sorted(factors)
    assert min(factors) > 0


def test_zero_brightness_is_floored():
    descriptor = compute_filter(Adjustments(brightness=0, highlights=0))
    assert descriptor.brightness_factor == pytest.approx(0.05)


def test_floored_brightness_never_renders_black():
    image = np.full((4, 4, 3), 200, dtype=np.uint8)
    out = apply_filter(image, compute_filter(Adjustments(brightness=0)))
    assert (out == 10).all()


def test_identity_filter_returns_input():
    image = np.zeros((2, 2, 3), dtype=np.uint8)
    assert apply_filter(image, FilterDescriptor()) is image
    assert apply_filter(image, None) is image


def test_zero_saturation_is_greyscale():
    image = np.zeros((1, 1, 3), dtype=np.uint8)
    image[0, 0] = (255, 0, 0)
    out = apply_filter(image, FilterDescriptor(saturate_percent=0))
    assert out[0, 0].tolist() == [54, 54, 54]


def test_zero_contrast_is_mid_grey():
    image = np.array([[[0, 90, 255]]], dtype=np.uint8)
    out = apply_filter(image, FilterDescriptor(contrast_percent=0))
    assert out[0, 0].tolist() == [128, 128, 128]
