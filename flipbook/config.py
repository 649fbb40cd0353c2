# config.py

import math
from typing import Dict, Optional

# --- Theme Configuration ---
THEMES: Dict[str, Dict[str, str]] = {
    "dark": {
        "bg": "#2E2E2E",
        "fg": "#FFFFFF",
        "canvas_bg": "#3A3A3A",
        "highlight": "#3F51B5",
        "btn_bg": "#4A4A4A",
        "placeholder_bg": "#505050",
        "placeholder_fg": "#C8C8C8",
        "error_fg": "#FF8A80",
    },
}

# --- Rendering ---
# Pages are rasterized at this multiple of their native size so they stay
# crisp on high density displays.
RENDER_OVERSAMPLING: float = 2.0

# Upper bound on cached pages. None keeps every page for the session; a number
# evicts resolved pages furthest from the current page first.
CACHE_SIZE_LIMIT: Optional[int] = None

# --- Page turn animation ---
TURN_DURATION_MS: float = 650.0

# Frame clock interval for the animation driver (~60 fps)
FRAME_INTERVAL_MS: int = 16

# How often the UI thread drains finished renders
RESULT_POLL_MS: int = 50

# Maximum rotation of the turning page about its hinge
MAX_TURN_ANGLE: float = math.pi * 0.45

# Counter-rotation of the page underneath at the start of a turn
BACK_PAGE_TILT: float = 0.06

# Perspective strength used when projecting rotated pages (Matrix4 entry 3,2)
PERSPECTIVE: float = 0.001

# Shading drawn on the turning page, all scaled by eased progress
HINGE_SHADE_OPACITY: float = 0.6
HINGE_SHADE_EXTENT: float = 0.6
CURL_WIDTH_FRACTION: float = 0.25
CURL_OPACITY: float = 0.25

# Show the neighbouring page underneath the current one while idle
SHOW_IDLE_PEEK: bool = False
