"""
Interactive zoom/pan for the uploaded image.

Mouse, touch, wheel and zoom-button input is first normalised into two
abstract gestures (PanGesture, ZoomGesture). The TransformEngine applies
them to the session state with one shared clamp/damp rule.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from framecraft import config
from framecraft.state import Position
from framecraft.upload import calculate_required_zoom

logger = logging.getLogger(__name__)

OVERLAY_TASK = "room_overlay"


class DragMode(enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class PanGesture:
    phase: str  # "start" | "move" | "end"
    x: float = 0.0
    y: float = 0.0
    damping: float = config.MOUSE_DAMPING


@dataclass(frozen=True)
class ZoomGesture:
    delta: float


class GestureNormalizer:
    """Maps raw device events onto PanGesture / ZoomGesture."""

    ZOOM_BUTTONS = {
        "zoom_in": config.ZOOM_STEP,
        "zoom_out": -config.ZOOM_STEP,
        "precision_zoom_in": config.PRECISION_ZOOM_STEP,
        "precision_zoom_out": -config.PRECISION_ZOOM_STEP,
    }

    def __init__(self, touch_primary=False):
        self.touch_primary = touch_primary

    def normalize(self, event) -> Optional[object]:
        """
        Args:
            event: dict with a 'type' key. Mouse events carry 'x'/'y', touch
                   events carry 'touches' (list of (x, y)), wheel events carry
                   'delta_y'.
        Returns:
            A gesture, or None when the event has no meaning for the engine.
        """
        kind = event.get("type")

        if kind in ("mousedown", "mousemove", "mouseup"):
            phase = {"mousedown": "start", "mousemove": "move", "mouseup": "end"}[kind]
            return PanGesture(phase, float(event.get("x", 0.0)), float(event.get("y", 0.0)),
                              config.MOUSE_DAMPING)

        if kind in ("touchstart", "touchmove"):
            touches = event.get("touches") or []
            # No pinch state: anything but a single contact is ignored.
            if len(touches) != 1:
                return None
            x, y = touches[0]
            phase = "start" if kind == "touchstart" else "move"
            return PanGesture(phase, float(x), float(y), config.TOUCH_DAMPING)

        if kind in ("touchend", "touchcancel"):
            return PanGesture("end", damping=config.TOUCH_DAMPING)

        if kind == "wheel":
            delta_y = event.get("delta_y", 0)
            if delta_y == 0:
                return None
            step = config.WHEEL_ZOOM_STEP
            return ZoomGesture(-step if delta_y > 0 else step)

        if kind in self.ZOOM_BUTTONS:
            step = self.ZOOM_BUTTONS[kind]
            if self.touch_primary:
                step /= 2.0
            return ZoomGesture(step)

        return None


def resist(value, limit, damping):
    """Clamp to [-limit, limit], letting the excess through scaled by damping."""
    if value > limit:
        return limit + (value - limit) * damping
    if value < -limit:
        return -limit + (value + limit) * damping
    return value


def clamp(value, limit):
    return max(min(value, limit), -limit)


def min_zoom(state) -> float:
    """Smallest zoom at which the image still covers the aperture. Never cached."""
    if state.image is None:
        return config.MIN_FIT_ZOOM
    viewport = state.viewport
    if viewport is not None and viewport.is_measurable:
        frame_w, frame_h = viewport.width, viewport.height
    else:
        frame_w, frame_h = state.frame_size.dimensions
    return calculate_required_zoom(state.image.width, state.image.height, frame_w, frame_h, cover=True)


def max_offset(state, zoom=None) -> Tuple[float, float]:
    """Largest |position| per axis that keeps the aperture filled."""
    if state.image is None or state.viewport is None:
        return 0.0, 0.0
    zoom = state.zoom if zoom is None else zoom
    if not zoom:
        return 0.0, 0.0
    scaled_w = state.image.width * zoom
    scaled_h = state.image.height * zoom
    return (max(0.0, (scaled_w - state.viewport.width) / 2.0),
            max(0.0, (scaled_h - state.viewport.height) / 2.0))


def pan_edges(state, tolerance=0.5):
    """Aperture edges with more of the photo hidden behind them."""
    mx, my = max_offset(state)
    pos = state.position
    edges = []
    if pos.y < my - tolerance:
        edges.append("top")
    if pos.y > -my + tolerance:
        edges.append("bottom")
    if pos.x < mx - tolerance:
        edges.append("left")
    if pos.x > -mx + tolerance:
        edges.append("right")
    return edges


def clamp_position(state) -> bool:
    """Hard-clamp the position into bounds. Returns True if it moved."""
    mx, my = max_offset(state)
    x, y = clamp(state.position.x, mx), clamp(state.position.y, my)
    if x == state.position.x and y == state.position.y:
        return False
    state.position = Position(x, y)
    return True


def enforce_zoom_floor(state) -> bool:
    """Raise zoom to the current minimum if it has fallen below it."""
    if state.image is None:
        return False
    floor = min_zoom(state)
    if state.zoom is None or state.zoom < floor:
        state.zoom = floor
        clamp_position(state)
        return True
    return False


def _ease_out_cubic(t):
    return 1.0 - (1.0 - t) ** 3


@dataclass(frozen=True)
class SnapAnimation:
    start: Position
    end: Position
    duration_ms: float = config.SNAP_DURATION_MS

    def position_at(self, elapsed_ms) -> Position:
        if self.duration_ms <= 0 or elapsed_ms >= self.duration_ms:
            return self.end
        t = _ease_out_cubic(max(0.0, elapsed_ms) / self.duration_ms)
        return Position(self.start.x + (self.end.x - self.start.x) * t,
                        self.start.y + (self.end.y - self.start.y) * t)


class TransformEngine:
    """
    Idle/Dragging state machine over normalised gestures.

    Position updates land on the state in arrival order; the visual update is
    coalesced through the frame scheduler. Every change schedules a debounced
    room-overlay refresh.
    """

    def __init__(self, state, debouncer=None, frame_scheduler=None, on_frame=None,
                 on_settled=None, clock=None):
        self.state = state
        self.debouncer = debouncer
        self.frame_scheduler = frame_scheduler
        self.on_frame = on_frame
        self.on_settled = on_settled
        self._clock = clock or time.monotonic
        self.mode = DragMode.IDLE
        self._start = (0.0, 0.0)
        self.snap = None
        self.snap_started_at = None

    @property
    def is_dragging(self):
        return self.mode is DragMode.DRAGGING

    def handle(self, gesture) -> bool:
        if gesture is None or not self.state.has_image:
            return False
        if isinstance(gesture, ZoomGesture):
            return self._zoom(gesture.delta)
        if gesture.phase == "start":
            return self._pan_start(gesture)
        if gesture.phase == "move":
            return self._pan_move(gesture)
        if gesture.phase == "end":
            return self._pan_end()
        return False

    # --- Pan ---
    def _pan_start(self, g):
        self.mode = DragMode.DRAGGING
        self._start = (g.x - self.state.position.x, g.y - self.state.position.y)
        self.snap = None
        return True

    def _pan_move(self, g):
        if not self.is_dragging:
            return False
        raw_x = g.x - self._start[0]
        raw_y = g.y - self._start[1]
        mx, my = max_offset(self.state)
        self.state.position = Position(resist(raw_x, mx, g.damping), resist(raw_y, my, g.damping))
        self._request_frame()
        self._schedule_refresh()
        return True

    def _pan_end(self):
        if not self.is_dragging:
            return False
        self.mode = DragMode.IDLE
        self.snap_to_bounds()
        self._schedule_refresh()
        return True

    def snap_to_bounds(self):
        """Settle an out-of-bounds position back inside, recording the animation."""
        before = self.state.position
        if not clamp_position(self.state):
            return False
        self.snap = SnapAnimation(start=before, end=self.state.position)
        self.snap_started_at = self._clock()
        logger.debug(f"Snap back from ({before.x:.1f}, {before.y:.1f})")
        self._request_frame()
        return True

    def cancel_motion(self):
        """Drop any drag or snap in flight; the state was replaced underneath it."""
        self.mode = DragMode.IDLE
        self.snap = None
        self.snap_started_at = None

    def display_position(self):
        """Position to draw right now, following any running snap animation."""
        if self.snap is None:
            return self.state.position
        elapsed = (self._clock() - self.snap_started_at) * 1000.0
        if elapsed >= self.snap.duration_ms:
            self.snap = None
            return self.state.position
        return self.snap.position_at(elapsed)

    # --- Zoom ---
    def _zoom(self, delta):
        current = self.state.zoom if self.state.zoom is not None else min_zoom(self.state)
        if delta > 0:
            return self._apply_zoom(min(current + delta, config.MAX_ZOOM))
        return self._apply_zoom(current + delta)

    def set_zoom(self, zoom):
        """Direct zoom assignment (slider), clamped to [min_zoom, MAX_ZOOM]."""
        if not self.state.has_image:
            return False
        return self._apply_zoom(min(float(zoom), config.MAX_ZOOM))

    def _apply_zoom(self, new_zoom):
        # Floor is recomputed from the live aperture on every change.
        new_zoom = max(new_zoom, min_zoom(self.state))
        if new_zoom == self.state.zoom:
            return False
        self.state.zoom = new_zoom
        clamp_position(self.state)
        self._request_frame()
        self._schedule_refresh()
        return True

    def reset_view(self):
        if not self.state.has_image:
            return False
        self.state.zoom = min_zoom(self.state)
        self.state.position = Position()
        self.snap = None
        self._request_frame()
        self._schedule_refresh()
        return True

    # --- Scheduling ---
    def _request_frame(self):
        if self.frame_scheduler is not None and self.on_frame is not None:
            self.frame_scheduler.request(self.on_frame)

    def _schedule_refresh(self):
        if self.debouncer is not None and self.on_settled is not None:
            self.debouncer.schedule(OVERLAY_TASK, self.on_settled, config.TRANSFORM_REFRESH_MS)
