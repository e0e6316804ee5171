import asyncio

import pytest

from framecraft.filters import FilterDescriptor
from framecraft.state import FrameSize, Position
from framecraft.transform import OVERLAY_TASK, min_zoom


def record(session, *events):
    seen = []
    for event in events:
        session.subscribe(event, lambda payload, event=event: seen.append((event, payload)))
    return seen


def upload(session, data):
    assert asyncio.run(session.upload(data, "image/png", "photo.png"))


def test_new_session_has_measured_viewport(session):
    assert session.state.viewport.is_measurable
    assert (session.state.viewport.width, session.state.viewport.height) == (356, 550)
    assert session.state.price == 349
    assert not session.can_add_to_cart


def test_unknown_event_is_rejected(session):
    with pytest.raises(ValueError):
        session.subscribe("price_changed", lambda payload: None)


def test_upload_fits_image_and_schedules_refresh(session, png_bytes):
    seen = record(session, "image_changed")
    upload(session, png_bytes)

    assert session.state.zoom == pytest.approx(min_zoom(session.state))
    assert session.state.position == Position(0, 0)
    assert seen[0][0] == "image_changed"
    assert session.debouncer.pending() == [OVERLAY_TASK]
    assert session.can_add_to_cart


def test_room_previews_refresh_after_quiet_period(session, png_bytes, clock):
    upload(session, png_bytes)
    clock.advance(400)
    assert session.tick() == []
    clock.advance(200)
    assert session.tick() == [OVERLAY_TASK]

    assert len(session.room_previews) == 5
    assert [p.overlaid for p in session.room_previews] == [True, True, True, True, False]
    slider = session.state.room_slider
    assert slider.is_active and slider.frame_size_key == "13x19-portrait"
    assert len(slider.images) == 5


def test_refresh_uses_latest_state(session, png_bytes, clock):
    upload(session, png_bytes)
    session.set_adjustment("brightness", 150)
    clock.advance(300)
    session.handle_gesture({"type": "zoom_in"})
    # The zoom rescheduled the shared refresh at the shorter transform delay.
    clock.advance(250)
    assert session.tick() == [OVERLAY_TASK]
    assert session.tick() == []


def test_frame_size_change(session, png_bytes):
    upload(session, png_bytes)
    session.state.position = Position(5, 5)
    seen = record(session, "frame_size_changed")

    assert session.set_frame_size("13x10", "portrait")
    assert not session.set_frame_size("13x10", "portrait")

    assert seen == [("frame_size_changed", FrameSize("13x10", "portrait"))]
    assert session.state.price == 299
    assert session.state.position == Position(0, 0)
    assert not session.state.room_slider.is_active
    assert session.state.zoom >= min_zoom(session.state)


def test_frame_size_change_cancels_snap_back(session, png_bytes):
    upload(session, png_bytes)
    session.handle_gesture({"type": "mousedown", "x": 0, "y": 0})
    session.handle_gesture({"type": "mousemove", "x": 200, "y": 0})
    session.handle_gesture({"type": "mouseup"})
    assert session.transform.snap is not None

    session.set_frame_size("13x10")
    assert session.transform.snap is None
    assert session.transform.display_position() == Position(0, 0)
    layout = session.live_layout()
    assert layout.image_rect.x + layout.image_rect.width / 2 == pytest.approx(layout.aperture.x + layout.aperture.width / 2)


def test_frame_size_change_ends_drag(session, png_bytes):
    upload(session, png_bytes)
    session.handle_gesture({"type": "mousedown", "x": 0, "y": 0})
    session.set_orientation("landscape")
    assert not session.transform.is_dragging
    assert not session.handle_gesture({"type": "mousemove", "x": 50, "y": 0})
    assert session.state.position == Position(0, 0)


def test_orientation_change_remeasures_viewport(session):
    before = session.state.viewport
    session.set_orientation("landscape")
    assert session.state.viewport.width > session.state.viewport.height
    assert session.state.viewport != before


def test_frame_colour_accepts_display_names(session):
    seen = record(session, "color_changed")
    assert session.set_frame_color("Walnut")
    assert session.state.frame_color == "#5C4033"
    assert not session.set_frame_color("#5C4033")
    assert seen == [("color_changed", "#5C4033")]


def test_unknown_texture_is_rejected(session):
    with pytest.raises(ValueError):
        session.set_frame_texture("velvet")
    assert session.set_frame_texture("wood")


def test_adjustment_notifies_with_filter(session):
    seen = record(session, "adjustment_changed")
    session.set_adjustment("contrast", 140)
    session.set_adjustment("contrast", 140)
    assert seen == [("adjustment_changed", FilterDescriptor(1.0, 140.0, 100.0))]
    assert session.reset_adjustments()
    assert session.state.adjustments.contrast == 100


def test_gestures_emit_one_transform_per_frame(session, png_bytes):
    upload(session, png_bytes)
    seen = record(session, "transform_changed")
    zoom = session.state.zoom
    session.handle_gesture({"type": "zoom_in"})
    session.handle_gesture({"type": "wheel", "delta_y": -3})
    session.tick()
    assert len(seen) == 1
    assert seen[0][1]["zoom"] == pytest.approx(zoom + 0.1 + 0.08)


def test_larger_viewport_raises_zoom_floor(session, png_bytes):
    upload(session, png_bytes)
    session.set_viewport((900, 900))
    assert session.state.zoom == pytest.approx(3.0)


def test_refresh_without_image_clears_previews(session):
    assert session.refresh_room_previews() == []
    assert not session.state.room_slider.is_active


def test_add_to_cart(session, png_bytes):
    assert asyncio.run(session.add_to_cart()) is None
    upload(session, png_bytes)
    item = asyncio.run(session.add_to_cart())

    assert item["printImage"].startswith("data:image/jpeg;base64,")
    assert item["previewImage"].startswith("data:image/png;base64,")
    assert item["frameSize"] == {"size": "13x19", "orientation": "portrait"}
    assert session.cart.count == 1
