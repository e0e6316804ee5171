import streamlit as st
import numpy as np
import asyncio
import logging
import requests
import cv2
from PIL import Image

from streamlit_image_coordinates import streamlit_image_coordinates
from streamlit_image_comparison import image_comparison

from framecraft import config
from framecraft.cart import Cart
from framecraft.errors import FramingError
from framecraft.imaging import from_data_uri
from framecraft.room_overlay import ensure_room_photos
from framecraft.session import FramingSession
from framecraft.state import ADJUSTMENT_NAMES, FrameSize
from framecraft.transform import pan_edges

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO),
                    format='%(asctime)s - %(levelname)s - %(message)s')
# Quiet chatter from image/network libraries
logging.getLogger("PIL").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

PAN_MARGIN = 40
PAN_STEP = 0.1  # fraction of the aperture per edge click


# --- CONFIGURATION & STYLES ---
def setup_page():
    st.set_page_config(
        page_title="Frame Studio",
        page_icon="🖼️",
        layout="wide",
        initial_sidebar_state="expanded"
    )

def setup_styles():
    st.markdown("""
        <style>
        @import url('https://fonts.googleapis.com/css2?family=Roboto:wght@300;400;500;700&display=swap');

        :root {
            --primary: #8B4513;
            --bg-nav: #FFFFFF;
            --text-main: #2C3E50;
        }

        html, body, [class*="css"] {
            font-family: 'Roboto', sans-serif;
            color: var(--text-main);
        }

        #MainMenu {visibility: hidden;}
        footer {visibility: hidden;}

        section[data-testid="stSidebar"] {
            background-color: var(--bg-nav);
            border-right: 1px solid #EAEAEA;
        }

        div.stButton > button {
            background: linear-gradient(135deg, #8B4513 0%, #A0522D 100%);
            color: white;
            border: none;
            border-radius: 30px;
            padding: 0.6rem 0.8rem;
            font-weight: 500;
            width: 100%;
            text-transform: uppercase;
            font-size: 0.80rem;
            white-space: nowrap;
        }
        div.stButton > button:hover {
            transform: translateY(-2px);
        }

        h1, h2, h3 {
            font-weight: 700;
            color: #1A1A1A;
        }

        .price-tag {
            font-size: 1.6rem;
            font-weight: 700;
            color: var(--primary);
        }
        </style>
    """, unsafe_allow_html=True)


# --- SESSION ---
def initialize_session_state():
    """One FramingSession per browser session, plus UI-only flags."""
    defaults = {
        "upload_name": None,
        "render_id": 0,
        "show_comparison": False,
        "last_click": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value

    if "framing" not in st.session_state:
        session = FramingSession(cart=Cart(config.CART_PATH))

        def bump(_payload):
            st.session_state["render_id"] += 1

        for event in ("frame_size_changed", "color_changed", "texture_changed",
                      "adjustment_changed", "image_changed", "transform_changed"):
            session.subscribe(event, bump)
        st.session_state["framing"] = session
    return st.session_state["framing"]


@st.cache_resource
def bootstrap_room_photos(frame_key, salt=config.CACHE_SALT):
    size, orientation = frame_key.split("-")
    return ensure_room_photos(FrameSize(size, orientation))


# --- UI COMPONENTS ---
def render_sidebar(session):
    state = session.state
    with st.sidebar:
        st.title("🖼️ Frame Studio")
        st.caption(f"App Version: {config.APP_VERSION}")

        # 1. Upload
        uploaded_file = st.file_uploader("Upload your photo", type=["jpg", "png", "jpeg", "webp"])
        if uploaded_file is not None and st.session_state["upload_name"] != uploaded_file.name:
            with st.spinner("Loading image..."):
                ok = asyncio.run(session.upload(uploaded_file.getvalue(), uploaded_file.type,
                                                uploaded_file.name))
            if ok:
                st.session_state["upload_name"] = uploaded_file.name
                st.toast("📸 Photo loaded")
            else:
                st.error("That file could not be read as an image. Please try another photo.")

        st.divider()

        # 2. Frame
        st.subheader("Frame")
        size = st.radio("Size", config.FRAME_SIZES, horizontal=True,
                        index=config.FRAME_SIZES.index(state.frame_size.size))
        orientation = st.radio("Orientation", config.ORIENTATIONS, horizontal=True,
                               index=config.ORIENTATIONS.index(state.frame_size.orientation),
                               format_func=str.title)
        session.set_frame_size(size, orientation)

        color_names = list(config.FRAME_COLORS)
        current = next((n for n, v in config.FRAME_COLORS.items() if v == state.frame_color), color_names[0])
        color_name = st.selectbox("Colour", color_names, index=color_names.index(current))
        session.set_frame_color(color_name)

        texture = st.selectbox("Finish", config.FRAME_TEXTURES,
                               index=config.FRAME_TEXTURES.index(state.frame_texture),
                               format_func=str.title)
        session.set_frame_texture(texture)

        # 3. Adjustments
        if state.has_image:
            st.divider()
            st.subheader("Adjustments")
            for name in ADJUSTMENT_NAMES:
                value = st.slider(name.title(), 0, 200, getattr(state.adjustments, name), key=f"adj_{name}")
                session.set_adjustment(name, value)
            if st.button("↺ Reset Adjustments"):
                session.reset_adjustments()
                for name in ADJUSTMENT_NAMES:
                    st.session_state.pop(f"adj_{name}", None)
                st.rerun()
            st.session_state["show_comparison"] = st.toggle("Compare with original",
                                                            value=st.session_state["show_comparison"])

        st.divider()

        # 4. Price & cart
        st.markdown(f"<div class='price-tag'>₹{state.price}</div>", unsafe_allow_html=True)
        if st.button("🛒 Add to Cart", disabled=not session.can_add_to_cart):
            with st.spinner("Preparing your print..."):
                item = asyncio.run(session.add_to_cart())
            if item is not None:
                st.toast(f"Added to cart ({session.cart.count} item(s))")

        render_cart(session.cart)


def render_cart(cart):
    if cart.count == 0:
        return
    st.subheader(f"Cart · {cart.count} item(s) · ₹{cart.total}")
    for i, item in enumerate(cart.items):
        c1, c2 = st.columns([3, 1], vertical_alignment="center")
        with c1:
            try:
                preview, _ = from_data_uri(item.get("previewImage"))
                st.image(preview, caption=f"{item['frameSize']['size']} {item['frameSize']['orientation']}",
                         width=120)
            except FramingError:
                st.caption(f"Item {i + 1}")
        with c2:
            if st.button("🗑️", key=f"remove_{item['id']}", help="Remove"):
                cart.remove(i)
                st.rerun()

    for entry in cart.print_ready_images():
        try:
            data, _ = from_data_uri(entry["printImage"])
        except FramingError:
            continue
        st.download_button(
            f"⬇️ Print {entry['orderIndex']}",
            data=data,
            file_name=f"order_{entry['orderIndex']}_{entry['frameSize']['size']}_{entry['frameColor']}.jpg",
            mime="image/jpeg",
            key=f"dl_{entry['orderIndex']}",
        )
    if st.button("📦 Export Print Files"):
        written = cart.export_print_images(config.EXPORT_DIR)
        st.toast(f"Saved {len(written)} print file(s) to {config.EXPORT_DIR}")
    if st.button("Clear Cart"):
        cart.clear()
        st.rerun()


def overlay_pan_controls(image, layout, edges):
    """Draws semi-transparent pan arrows on the aperture edges that can still pan."""
    if not edges:
        return image
    overlay = image.copy()
    color = (255, 255, 255)
    thickness = 2
    ap = layout.aperture
    x1, y1 = int(ap.x), int(ap.y)
    x2, y2 = int(ap.right), int(ap.bottom)
    center_x, center_y = (x1 + x2) // 2, (y1 + y2) // 2
    reach = PAN_MARGIN - 10

    arrows = {
        "top": ((center_x, y1 + reach), (center_x, y1 + 8)),
        "bottom": ((center_x, y2 - reach), (center_x, y2 - 8)),
        "left": ((x1 + reach, center_y), (x1 + 8, center_y)),
        "right": ((x2 - reach, center_y), (x2 - 8, center_y)),
    }
    for edge in edges:
        start, end = arrows[edge]
        cv2.arrowedLine(overlay, start, end, color, thickness, tipLength=0.5)

    alpha = 0.6
    cv2.addWeighted(overlay, alpha, image, 1 - alpha, 0, image)
    return image


def pan_from_click(session, layout, click):
    """Clicks near an aperture edge become a short drag through the transform engine."""
    x, y = click["x"], click["y"]
    ap = layout.aperture
    edges = pan_edges(session.state)
    step_x = ap.width * PAN_STEP
    step_y = ap.height * PAN_STEP
    dx = dy = 0.0
    if y < ap.y + PAN_MARGIN and "top" in edges:
        dy = step_y
    elif y > ap.bottom - PAN_MARGIN and "bottom" in edges:
        dy = -step_y
    elif x < ap.x + PAN_MARGIN and "left" in edges:
        dx = step_x
    elif x > ap.right - PAN_MARGIN and "right" in edges:
        dx = -step_x
    if dx == 0 and dy == 0:
        return False
    session.handle_gesture({"type": "mousedown", "x": x, "y": y})
    session.handle_gesture({"type": "mousemove", "x": x + dx, "y": y + dy})
    session.handle_gesture({"type": "mouseup", "x": x + dx, "y": y + dy})
    return True


def render_zoom_controls(session):
    """Render zoom controls below the frame."""
    state = session.state
    ratio = [3, 0.8, 0.8, 1.2, 0.8, 0.8, 3]
    cols = st.columns(ratio, vertical_alignment="center")

    with cols[1]:
        if st.button("➖", help="Zoom Out", use_container_width=True):
            session.handle_gesture({"type": "zoom_out"})
            st.rerun()
    with cols[2]:
        if st.button("−", help="Fine Zoom Out", use_container_width=True):
            session.handle_gesture({"type": "precision_zoom_out"})
            st.rerun()
    with cols[3]:
        st.markdown(
            f"""
            <div style='
                text-align: center;
                font-weight: bold;
                background-color: #f0f2f6;
                color: #31333F;
                padding: 6px 10px;
                border-radius: 4px;
                border: 1px solid #dcdcdc;
            '>
                {int((state.zoom or 0) * 100)}%
            </div>
            """,
            unsafe_allow_html=True
        )
    with cols[4]:
        if st.button("+", help="Fine Zoom In", use_container_width=True):
            session.handle_gesture({"type": "precision_zoom_in"})
            st.rerun()
    with cols[5]:
        if st.button("➕", help="Zoom In", use_container_width=True):
            session.handle_gesture({"type": "zoom_in"})
            st.rerun()

    if state.position.x != 0 or state.position.y != 0:
        r_col1, r_col2, r_col3 = st.columns([4, 2, 4])
        with r_col2:
            if st.button("🎯 Reset View", use_container_width=True):
                session.reset_view()
                st.rerun()


@st.fragment(run_every=0.5)
def render_room_previews(session):
    """Polls the debounced overlay refresh and shows the room slider."""
    session.tick()
    slider = session.state.room_slider
    previews = session.room_previews
    if not slider.is_active or not previews:
        if session.debouncer.pending():
            st.caption("Updating room previews...")
        return

    st.subheader("🛋️ See it on your wall")
    current = previews[min(slider.current_index, len(previews) - 1)]
    st.image(current.data, use_container_width=True)

    c1, c2, c3 = st.columns([1, 2, 1], vertical_alignment="center")
    with c1:
        if st.button("◀", key="room_prev", disabled=slider.current_index == 0):
            slider.previous()
            st.rerun(scope="fragment")
    with c2:
        st.caption(f"Room {slider.current_index + 1} of {len(previews)}")
    with c3:
        if st.button("▶", key="room_next", disabled=slider.current_index >= len(previews) - 1):
            slider.next()
            st.rerun(scope="fragment")


def main():
    setup_page()
    setup_styles()
    session = initialize_session_state()

    # Fetch reference room photos once per frame size if a source is configured
    try:
        bootstrap_room_photos(session.state.frame_size.key)
    except requests.RequestException as e:
        logger.error(f"Room photo download failed: {e}")
        st.warning("Room previews are unavailable right now.")

    render_sidebar(session)
    session.tick()

    state = session.state
    if not state.has_image:
        st.markdown("## Welcome to Frame Studio")
        col1, col2, col3 = st.columns([1, 2, 1])
        with col2:
            st.info("👈 Upload a photo in the sidebar to start framing.")
        return

    left, right = st.columns([3, 2])
    with left:
        # 1. Compose the live frame
        layout = session.live_layout()
        try:
            framed = session.compositor.render_preview_array(state, layout)
        except FramingError as e:
            st.warning(f"⚠️ Rendering issue: {e}")
            return

        if st.session_state["show_comparison"]:
            plain = state.image.decode()
            adjusted = session.compositor.render_print_array(state)
            image_comparison(
                img1=Image.fromarray(cv2.resize(plain, (adjusted.shape[1], adjusted.shape[0]),
                                                interpolation=cv2.INTER_AREA)),
                img2=Image.fromarray(adjusted),
                label1="Original",
                label2="Your Print",
                width=layout.frame_width,
                starting_position=50,
                show_labels=True,
                make_responsive=True,
                in_memory=True
            )
        else:
            # 2. Interactive display; edge clicks pan
            display = overlay_pan_controls(np.ascontiguousarray(framed, dtype=np.uint8), layout,
                                          pan_edges(state))
            canvas_key = f"frame_{st.session_state['render_id']}"
            value = streamlit_image_coordinates(Image.fromarray(display), key=canvas_key,
                                                width=layout.frame_width)
            if value is not None and value != st.session_state["last_click"]:
                st.session_state["last_click"] = value
                if pan_from_click(session, layout, value):
                    st.rerun()

        # 3. Zoom
        render_zoom_controls(session)

    with right:
        render_room_previews(session)


if __name__ == "__main__":
    main()
