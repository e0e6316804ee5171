"""
Room overlay renderer: draws the captured frame preview onto the reference
room photos so the customer can see the frame on a wall.

Placement rectangles are hand-tuned per (frame key, photo index) and live in
data/room_coordinates.json, authored against an 800x600 reference canvas.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import numpy as np
import requests

from framecraft import config
from framecraft.compositor import draw_image
from framecraft.errors import ImageDecodeError
from framecraft.imaging import decode_image, encode_image, from_data_uri, to_data_uri
from framecraft.layout import Rect

logger = logging.getLogger(__name__)


def room_folder_name(size, orientation):
    # The 13x10 portrait set was published with a double space in its folder name.
    if size == "13x10" and orientation == "portrait":
        return "13X10  PORTRAIT"
    return f"{size.upper()} {orientation.upper()}"


def room_photo_paths(frame_size, root=None, count=config.ROOM_PHOTO_COUNT):
    root = config.ROOM_PREVIEW_DIR if root is None else root
    folder = room_folder_name(frame_size.size, frame_size.orientation)
    return [f"{root}/{folder}/{i}.jpg" for i in range(1, count + 1)]


@dataclass(frozen=True)
class OverlayTable:
    reference_size: Tuple[int, int]
    photos_per_set: int
    excluded_index: int
    placements: Dict[str, Dict[int, Tuple[int, int, int, int]]]
    fallback_positions: Tuple[Tuple[float, float], ...]

    @classmethod
    def from_dict(cls, data):
        ref_w, ref_h = data["reference_size"]
        count = int(data["photos_per_set"])
        placements = {}
        for key, entries in data.get("placements", {}).items():
            parsed = {}
            for index, rect in entries.items():
                index = int(index)
                x1, y1, x2, y2 = rect
                if not 0 <= index < count:
                    raise ValueError(f"{key}: photo index {index} outside set of {count}")
                if not (0 <= x1 < x2 <= ref_w and 0 <= y1 < y2 <= ref_h):
                    raise ValueError(f"{key}[{index}]: rectangle {rect} outside {ref_w}x{ref_h}")
                parsed[index] = (x1, y1, x2, y2)
            placements[key] = parsed
        fallbacks = tuple(tuple(p) for p in data.get("fallback_positions", [])) or ((0.4, 0.3),)
        return cls((ref_w, ref_h), count, int(data["excluded_index"]), placements, fallbacks)

    def placement_for(self, frame_key, index) -> Optional[Tuple[int, int, int, int]]:
        return self.placements.get(frame_key, {}).get(index)


@lru_cache(maxsize=4)
def load_overlay_table(path=config.ROOM_COORDINATES_PATH) -> OverlayTable:
    with open(path, "r", encoding="utf-8") as f:
        table = OverlayTable.from_dict(json.load(f))
    logger.info(f"Loaded room overlay coordinates for {len(table.placements)} frame sets")
    return table


@dataclass(frozen=True)
class RoomPreview:
    index: int
    path: str
    data: bytes
    mime_type: str
    overlaid: bool

    @property
    def data_uri(self):
        return to_data_uri(self.data, self.mime_type)


class RoomOverlayRenderer:

    def __init__(self, table=None):
        self.table = table or load_overlay_table()

    def destination_rect(self, frame_key, index, photo_size, overlay_size) -> Rect:
        """
        Where the frame goes on a photo of `photo_size` (w, h). Hand-tuned
        rectangles scale from the reference canvas to this photo's own size;
        anything else gets a proportional preset cycled by index.
        """
        photo_w, photo_h = photo_size
        placement = self.table.placement_for(frame_key, index)
        if placement is not None:
            ref_w, ref_h = self.table.reference_size
            sx, sy = photo_w / ref_w, photo_h / ref_h
            x1, y1, x2, y2 = placement
            return Rect(x1 * sx, y1 * sy, (x2 - x1) * sx, (y2 - y1) * sy)

        overlay_w, overlay_h = overlay_size
        frame_scale = min(0.3, 350 / min(photo_w, photo_h))
        width = photo_w * frame_scale
        height = width * (overlay_h / overlay_w)
        fx, fy = self.table.fallback_positions[index % len(self.table.fallback_positions)]
        return Rect(photo_w * fx, photo_h * fy, width, height)

    def render(self, preview, frame_size, photos) -> List[RoomPreview]:
        """
        Args:
            preview: frame preview as an RGB array or a data URI.
            frame_size: FrameSize the preview was captured for.
            photos: ordered list of (path, encoded bytes or None).
        Returns:
            One RoomPreview per available photo. The excluded index and any
            photo that fails to decode are returned untouched.
        """
        if isinstance(preview, str):
            preview_bytes, _ = from_data_uri(preview)
            preview = decode_image(preview_bytes)
        overlay_h, overlay_w = preview.shape[:2]

        results = []
        for index, (path, data) in enumerate(photos):
            if data is None:
                continue
            mime = _mime_for(path)
            if index == self.table.excluded_index:
                results.append(RoomPreview(index, path, data, mime, overlaid=False))
                continue
            try:
                room = decode_image(data)
            except ImageDecodeError as e:
                logger.warning(f"Skipping overlay for {path}: {e}")
                results.append(RoomPreview(index, path, data, mime, overlaid=False))
                continue

            h, w = room.shape[:2]
            rect = self.destination_rect(frame_size.key, index, (w, h), (overlay_w, overlay_h))
            canvas = np.ascontiguousarray(room)
            draw_image(canvas, preview, rect)
            encoded = encode_image(canvas, fmt="JPEG", quality=config.ROOM_JPEG_QUALITY)
            results.append(RoomPreview(index, path, encoded, "image/jpeg", overlaid=True))

        logger.info(f"Applied frame overlay to {sum(r.overlaid for r in results)} of {len(photos)} room images")
        return results


def _mime_for(path):
    ext = os.path.splitext(path)[1].lower()
    return {".png": "image/png", ".webp": "image/webp"}.get(ext, "image/jpeg")


def load_room_photos(frame_size, root=None):
    """Read the reference set for a frame size. Missing files come back as None."""
    photos = []
    for path in room_photo_paths(frame_size, root):
        try:
            with open(path, "rb") as f:
                photos.append((path, f.read()))
        except OSError:
            logger.warning(f"Failed to load room preview image: {path}")
            photos.append((path, None))
    return photos


def ensure_room_photos(frame_size, root=None, base_url=None):
    """
    Download any missing reference photos from base_url. Does nothing when
    no base URL is configured. Returns the number of files fetched.
    """
    base_url = config.ROOM_BASE_URL if base_url is None else base_url
    if not base_url:
        return 0
    root = config.ROOM_PREVIEW_DIR if root is None else root
    fetched = 0
    for path in room_photo_paths(frame_size, root):
        if os.path.exists(path):
            continue
        os.makedirs(os.path.dirname(path), exist_ok=True)
        relative = os.path.relpath(path, root).replace(os.sep, "/")
        url = f"{base_url.rstrip('/')}/{quote(relative)}"
        response = requests.get(url, stream=True, timeout=30)
        response.raise_for_status()
        # Stream to a side file so an interrupted download never looks complete.
        partial = path + ".part"
        try:
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
            os.replace(partial, path)
        except Exception:
            if os.path.exists(partial):
                os.remove(partial)
            logger.error(f"Download of room photo {relative} failed")
            raise
        fetched += 1
        logger.info(f"Downloaded room photo {relative}")
    return fetched
