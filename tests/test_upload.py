import asyncio

import pytest

from framecraft.errors import UnsupportedImageError
from framecraft.state import CustomizationState, Position, Viewport
from framecraft.upload import UploadEngine, calculate_required_zoom, validate_upload


def test_fit_zoom_matches_container_width():
    assert calculate_required_zoom(2000, 3000, 400, 600) == pytest.approx(0.2)


def test_cover_zoom_fills_both_axes():
    assert calculate_required_zoom(2000, 3000, 400, 700, cover=True) == pytest.approx(700 / 3000)


def test_fit_zoom_is_clamped():
    assert calculate_required_zoom(10, 10, 1000, 1000) == 5.0
    assert calculate_required_zoom(100000, 10, 100, 10) == 0.1


def test_invalid_dimensions_fall_back_to_one():
    assert calculate_required_zoom(0, 100, 400, 600) == 1.0
    assert calculate_required_zoom(100, 100, 0, 600) == 1.0


def test_non_image_upload_is_rejected():
    with pytest.raises(UnsupportedImageError):
        validate_upload(b"%PDF-1.4", "application/pdf")


def test_upload_commits_fitted_image(make_image):
    committed = []
    state = CustomizationState(viewport=Viewport(400, 600))
    state.position = Position(30, 30)
    engine = UploadEngine(state, on_committed=committed.append)

    ok = asyncio.run(engine.handle_upload(make_image(2000, 3000), "image/png", "tall.png"))

    assert ok
    assert (state.image.width, state.image.height) == (2000, 3000)
    assert state.zoom == pytest.approx(0.2)
    assert state.position == Position(0, 0)
    assert committed == [state.image]


def test_upload_without_layout_uses_declared_frame(make_image):
    state = CustomizationState()
    engine = UploadEngine(state)
    assert asyncio.run(engine.handle_upload(make_image(20, 30), "image/png"))
    assert state.zoom == pytest.approx(13 / 20)


def test_corrupt_upload_commits_nothing():
    state = CustomizationState(viewport=Viewport(400, 600))
    engine = UploadEngine(state)
    assert not asyncio.run(engine.handle_upload(b"definitely not an image", "image/jpeg"))
    assert state.image is None
    assert state.zoom is None


def test_wrong_mime_type_commits_nothing(make_image):
    state = CustomizationState()
    engine = UploadEngine(state)
    assert not asyncio.run(engine.handle_upload(make_image(10, 10), "text/plain"))
    assert state.image is None
