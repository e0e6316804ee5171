import pytest

from framecraft.state import Adjustments, CustomizationState, FrameSize, Position, RoomSlider


def test_frame_size_dimensions_follow_orientation():
    assert FrameSize("13x19", "portrait").dimensions == (13, 19)
    assert FrameSize("13x19", "landscape").dimensions == (19, 13)
    assert FrameSize("13x10", "portrait").dimensions == (10, 13)
    assert FrameSize("13x10", "landscape").dimensions == (13, 10)


def test_frame_size_rejects_unknown_values():
    with pytest.raises(ValueError):
        FrameSize("8x10", "portrait")
    with pytest.raises(ValueError):
        FrameSize("13x19", "diagonal")


def test_frame_size_key_and_price():
    assert FrameSize().key == "13x19-portrait"
    assert FrameSize().price == 349
    assert FrameSize("13x10", "landscape").price == 299


def test_adjustments_clamp_to_slider_range():
    adj = Adjustments()
    adj.set("brightness", 250)
    adj.set("contrast", -5)
    assert adj.brightness == 200
    assert adj.contrast == 0
    with pytest.raises(KeyError):
        adj.set("exposure", 120)


def test_default_state():
    state = CustomizationState()
    assert not state.has_image
    assert state.frame_size == FrameSize("13x19", "portrait")
    assert state.frame_color == "black"
    assert state.frame_texture == "smooth"
    assert state.price == 349
    assert state.zoom is None


def test_frame_size_change_reprices_and_recenters():
    state = CustomizationState()
    state.position = Position(40, -12)
    state.set_frame_size(FrameSize("13x10", "portrait"))
    assert state.price == 299
    assert state.position == Position(0, 0)


def test_snapshot_is_json_friendly():
    snap = CustomizationState().snapshot()
    assert snap["frameSize"] == {"size": "13x19", "orientation": "portrait"}
    assert snap["adjustments"]["vibrance"] == 100
    assert snap["position"] == {"x": 0.0, "y": 0.0}


def test_room_slider_navigation():
    slider = RoomSlider()
    assert not slider.next()
    slider.activate("13x19-portrait", ["a", "b", "c"])
    assert slider.next() and slider.current_index == 1
    assert not slider.go_to(3)
    assert slider.go_to(2)
    assert not slider.next()
    slider.reset()
    assert not slider.is_active and slider.images == []
