"""
Shopping cart persisted as a JSON list of item records.
Items carry both captured images as data URIs, so the cart is self-contained.
"""
import json
import logging
import os
import time
from datetime import datetime, timezone

from framecraft import config
from framecraft.errors import ImageDecodeError
from framecraft.imaging import from_data_uri

logger = logging.getLogger(__name__)


def build_cart_item(state, artifacts, now=None):
    """Cart record for the current configuration and its captured images."""
    now = time.time() if now is None else now
    print_image = artifacts.print_image
    item = {
        "id": int(now * 1000),
        "printImage": print_image,
        "previewImage": artifacts.preview_image or print_image,
        "orderDate": datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
        "timestamp": int(now * 1000),
    }
    item.update(state.snapshot())
    return item


class Cart:

    def __init__(self, path=None):
        self.path = config.CART_PATH if path is None else path
        self.items = self._load()

    def _load(self):
        if not self.path or not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                items = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading cart: {e}")
            return []
        if not isinstance(items, list):
            logger.error("Error loading cart: expected a list of items")
            return []
        return items

    def _save(self):
        if not self.path:
            return
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        # Replace the file in one step so a failed write keeps the last good cart.
        pending = self.path + ".tmp"
        try:
            with open(pending, "w", encoding="utf-8") as f:
                json.dump(self.items, f)
            os.replace(pending, self.path)
        except Exception:
            if os.path.exists(pending):
                os.remove(pending)
            raise

    def add(self, item):
        self.items.append(item)
        try:
            self._save()
        except Exception:
            self.items.pop()
            raise
        logger.info(f"Added to cart: {item['frameSize']['size']} {item['frameSize']['orientation']}, "
                    f"{len(self.items)} item(s)")
        return item

    def remove(self, index):
        if index < 0 or index >= len(self.items):
            raise IndexError(f"No cart item at position {index}")
        item = self.items.pop(index)
        self._save()
        return item

    def clear(self):
        self.items = []
        self._save()

    @property
    def count(self):
        return len(self.items)

    @property
    def total(self):
        return sum(item.get("price", 0) for item in self.items)

    def print_ready_images(self):
        """Print artifacts in order, with the frame details the print shop needs."""
        return [
            {
                "orderIndex": i + 1,
                "printImage": item.get("printImage"),
                "frameSize": item.get("frameSize"),
                "frameColor": item.get("frameColor"),
                "frameTexture": item.get("frameTexture"),
            }
            for i, item in enumerate(self.items)
        ]

    def export_print_images(self, directory):
        """Write each print image as order_{n}_{size}_{color}.jpg. Returns the paths written."""
        os.makedirs(directory, exist_ok=True)
        written = []
        for entry in self.print_ready_images():
            size = entry["frameSize"]["size"] if entry["frameSize"] else "unknown"
            filename = f"order_{entry['orderIndex']}_{size}_{entry['frameColor']}.jpg"
            try:
                data, _ = from_data_uri(entry["printImage"])
            except ImageDecodeError as e:
                logger.error(f"Skipping {filename}: {e}")
                continue
            path = os.path.join(directory, filename)
            with open(path, "wb") as f:
                f.write(data)
            written.append(path)
        logger.info(f"Exported {len(written)} print image(s) to {directory}")
        return written
