"""
FramingSession: one customer's customization flow.

Owns the state, the debouncer and the frame scheduler, and routes UI input
through the engines. UI code subscribes to change notifications instead of
reading engine internals.
"""
import logging
from collections import defaultdict

from framecraft import config
from framecraft.cart import Cart, build_cart_item
from framecraft.compositor import CanvasCompositor
from framecraft.errors import FramingError
from framecraft.filters import compute_filter
from framecraft.layout import compute_preview_layout
from framecraft.room_overlay import RoomOverlayRenderer, load_room_photos
from framecraft.scheduler import Debouncer, FrameScheduler
from framecraft.state import CustomizationState, FrameSize, Viewport
from framecraft.transform import (OVERLAY_TASK, GestureNormalizer, TransformEngine,
                                  clamp_position, enforce_zoom_floor)
from framecraft.upload import UploadEngine

logger = logging.getLogger(__name__)

EVENTS = (
    "frame_size_changed",
    "color_changed",
    "texture_changed",
    "adjustment_changed",
    "image_changed",
    "transform_changed",
)


class FramingSession:

    def __init__(self, state=None, cart=None, renderer=None, compositor=None,
                 preview_width=config.PREVIEW_WIDTH, compact=False, touch_primary=False,
                 room_root=None, clock=None):
        self.state = state or CustomizationState()
        self.cart = cart if cart is not None else Cart()
        self.renderer = renderer or RoomOverlayRenderer()
        self.compositor = compositor or CanvasCompositor()
        self.preview_width = preview_width
        self.compact = compact
        self.room_root = room_root
        self.room_previews = []

        self.debouncer = Debouncer(clock)
        self.frame_scheduler = FrameScheduler()
        self.normalizer = GestureNormalizer(touch_primary=touch_primary)
        self.upload_engine = UploadEngine(self.state, on_committed=self._on_image_committed)
        self.transform = TransformEngine(
            self.state,
            debouncer=self.debouncer,
            frame_scheduler=self.frame_scheduler,
            on_frame=self._on_frame,
            on_settled=self.refresh_room_previews,
            clock=clock,
        )
        self._observers = defaultdict(list)

        self.state.price = self.state.frame_size.price
        self.set_viewport(self._measure_viewport())

    # --- Notifications ---
    def subscribe(self, event, callback):
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._observers[event].append(callback)
        return callback

    def _emit(self, event, payload=None):
        for callback in list(self._observers.get(event, [])):
            callback(payload)

    # --- Layout ---
    def _measure_viewport(self):
        layout = compute_preview_layout(self.state.frame_size, self.preview_width, compact=self.compact)
        return layout.viewport

    def set_viewport(self, viewport):
        """Record a new aperture size. Zoom floor and bounds follow it immediately."""
        if isinstance(viewport, tuple):
            viewport = Viewport(*viewport)
        self.state.viewport = viewport
        if self.state.has_image and viewport is not None and viewport.is_measurable:
            if not enforce_zoom_floor(self.state):
                clamp_position(self.state)

    def live_layout(self):
        image = self.state.image
        return compute_preview_layout(
            self.state.frame_size,
            self.preview_width,
            image_size=(image.width, image.height) if image is not None else None,
            zoom=self.state.zoom,
            position=self.transform.display_position(),
            compact=self.compact,
        )

    @property
    def filter_descriptor(self):
        return compute_filter(self.state.adjustments)

    @property
    def can_add_to_cart(self):
        return self.state.has_image

    # --- Input ---
    async def upload(self, data, mime_type, filename=None):
        return await self.upload_engine.handle_upload(data, mime_type, filename)

    def _on_image_committed(self, handle):
        self.transform.cancel_motion()
        enforce_zoom_floor(self.state)
        self._emit("image_changed", handle)
        self._schedule_refresh(config.UPLOAD_REFRESH_MS)

    def set_frame_size(self, size, orientation=None):
        orientation = orientation or self.state.frame_size.orientation
        frame_size = FrameSize(size, orientation)
        if frame_size == self.state.frame_size:
            return False
        self.state.set_frame_size(frame_size)
        self.state.room_slider.reset()
        self.transform.cancel_motion()
        self.set_viewport(self._measure_viewport())
        logger.info(f"Frame size changed to {frame_size.key} (price {self.state.price})")
        self._emit("frame_size_changed", frame_size)
        self._schedule_refresh(config.FRAME_REFRESH_MS)
        return True

    def set_orientation(self, orientation):
        return self.set_frame_size(self.state.frame_size.size, orientation)

    def set_frame_color(self, color):
        color = config.FRAME_COLORS.get(color, color)
        if color == self.state.frame_color:
            return False
        self.state.frame_color = color
        self._emit("color_changed", color)
        self._schedule_refresh(config.FRAME_REFRESH_MS)
        return True

    def set_frame_texture(self, texture):
        if texture not in config.FRAME_TEXTURES:
            raise ValueError(f"Unknown frame texture: {texture}")
        if texture == self.state.frame_texture:
            return False
        self.state.frame_texture = texture
        self._emit("texture_changed", texture)
        self._schedule_refresh(config.FRAME_REFRESH_MS)
        return True

    def set_adjustment(self, name, value):
        before = getattr(self.state.adjustments, name, None)
        self.state.adjustments.set(name, value)
        if getattr(self.state.adjustments, name) == before:
            return False
        self._emit("adjustment_changed", self.filter_descriptor)
        self._schedule_refresh(config.ADJUSTMENT_REFRESH_MS)
        return True

    def reset_adjustments(self):
        changed = False
        for name in self.state.adjustments.to_dict():
            changed = self.set_adjustment(name, 100) or changed
        return changed

    def handle_gesture(self, event):
        """Accepts a raw device event dict or an already normalised gesture."""
        gesture = self.normalizer.normalize(event) if isinstance(event, dict) else event
        return self.transform.handle(gesture)

    def set_zoom(self, zoom):
        return self.transform.set_zoom(zoom)

    def reset_view(self):
        return self.transform.reset_view()

    def _on_frame(self):
        self._emit("transform_changed", {
            "zoom": self.state.zoom,
            "position": self.transform.display_position().to_dict(),
        })

    # --- Scheduling ---
    def _schedule_refresh(self, delay_ms):
        self.debouncer.schedule(OVERLAY_TASK, self.refresh_room_previews, delay_ms)

    def tick(self, now=None):
        """Drive timers: run due debounced work, then at most one visual frame."""
        ran = self.debouncer.poll(now)
        self.frame_scheduler.tick()
        return ran

    # --- Outputs ---
    def refresh_room_previews(self):
        """Recompose every room preview from the current state."""
        if not self.state.has_image:
            self.room_previews = []
            self.state.room_slider.reset()
            return self.room_previews
        try:
            preview = self.compositor.render_preview_array(self.state, self.live_layout())
        except FramingError as e:
            logger.warning(f"Room previews not refreshed: {e}")
            return self.room_previews

        photos = load_room_photos(self.state.frame_size, self.room_root)
        self.room_previews = self.renderer.render(preview, self.state.frame_size, photos)
        self.state.room_slider.activate(self.state.frame_size.key,
                                        [r.path for r in self.room_previews])
        return self.room_previews

    async def compose_for_cart(self):
        return await self.compositor.compose_for_cart(self.state, self.live_layout())

    async def add_to_cart(self):
        if not self.can_add_to_cart:
            logger.warning("Add to cart ignored: no image uploaded")
            return None
        artifacts = await self.compose_for_cart()
        return self.cart.add(build_cart_item(self.state, artifacts))
