import os

# Increment to force Streamlit to discard cached room photos and coordinates.
APP_VERSION = "2.3.0"
CACHE_SALT = "V2.3.0-ROOM-OVERLAY"

LOG_LEVEL = os.environ.get("FRAMECRAFT_LOG_LEVEL", "INFO").upper()

# --- FRAME CATALOGUE ---
FRAME_SIZES = ("13x19", "13x10")
ORIENTATIONS = ("portrait", "landscape")
DEFAULT_FRAME_SIZE = "13x19"
DEFAULT_ORIENTATION = "portrait"
PRICES = {"13x19": 349, "13x10": 299}
DEFAULT_PRICE = 349

FRAME_COLORS = {
    "Black": "black",
    "White": "white",
    "Walnut": "#5C4033",
    "Teak": "#8B4513",
    "Gold": "#C9A227",
}
DEFAULT_FRAME_COLOR = "black"
FRAME_TEXTURES = ("smooth", "wood", "matte")
DEFAULT_FRAME_TEXTURE = "smooth"

# --- ZOOM & PAN ---
MIN_FIT_ZOOM = 0.1
MAX_FIT_ZOOM = 5.0
MAX_ZOOM = 3.0
ZOOM_STEP = 0.1
PRECISION_ZOOM_STEP = 0.02
WHEEL_ZOOM_STEP = 0.08
MOUSE_DAMPING = 0.1
TOUCH_DAMPING = 0.15
SNAP_DURATION_MS = 200

# --- OVERLAY DEBOUNCE (ms) ---
UPLOAD_REFRESH_MS = 500
TRANSFORM_REFRESH_MS = 200
ADJUSTMENT_REFRESH_MS = 800
FRAME_REFRESH_MS = 300

# --- RENDERING ---
PRINT_WIDTH = 1200
PRINT_JPEG_QUALITY = 95
ROOM_JPEG_QUALITY = 90
BRIGHTNESS_EPSILON = 0.05
MIN_BORDER_WIDTH = 8
MIN_BORDER_WIDTH_COMPACT = 6
PREVIEW_WIDTH = int(os.environ.get("FRAMECRAFT_PREVIEW_WIDTH", "420"))
MAX_UPLOAD_BYTES = 50 * 1024 * 1024

# --- ROOM PREVIEWS ---
ROOM_PREVIEW_DIR = os.environ.get("FRAMECRAFT_ROOM_DIR", "room-preview-images")
ROOM_BASE_URL = os.environ.get("FRAMECRAFT_ROOM_BASE_URL", "")
ROOM_PHOTO_COUNT = 5
ROOM_EXCLUDED_INDEX = 4
ROOM_COORDINATES_PATH = os.path.join(os.path.dirname(__file__), "data", "room_coordinates.json")

# --- CART ---
CART_PATH = os.environ.get("FRAMECRAFT_CART_PATH", os.path.join(".framecraft", "cart.json"))
EXPORT_DIR = os.environ.get("FRAMECRAFT_EXPORT_DIR", os.path.join(".framecraft", "prints"))
