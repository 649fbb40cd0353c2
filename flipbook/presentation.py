# presentation.py
"""
Maps viewer state plus cached pages to a description of what to draw.

Everything here is a pure function of its inputs: the shading and curl
overlays depend only on the eased progress, never on page identity, so they
are rebuilt for every animation sample.
"""
import enum
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from flipbook.config import SHOW_IDLE_PEEK
from flipbook.page_cache import CacheEntry, EntryState
from flipbook.pdf_model import RenderedPage
from flipbook.transition import ViewerState, ease_in_out, turn_geometry, Direction


class Hinge(enum.Enum):
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PageImage:
    """A page bitmap fitted into the viewport, or a placeholder for it."""
    page_index: int
    rect: Rect
    status: EntryState
    page: Optional[RenderedPage] = None

    @property
    def is_placeholder(self) -> bool:
        return self.page is None


@dataclass(frozen=True)
class Shade:
    """Darkening from the hinge edge, fading out `extent` of the way across."""
    side: Hinge
    opacity: float
    extent: float


@dataclass(frozen=True)
class Curl:
    """Highlight band at the edge opposite the hinge, fading top to bottom."""
    side: Hinge
    width: float
    opacity: float


@dataclass(frozen=True)
class Layer:
    image: PageImage
    angle: float = 0.0
    hinge: Hinge = Hinge.CENTER
    shade: Optional[Shade] = None
    curl: Optional[Curl] = None


@dataclass(frozen=True)
class DrawPlan:
    viewport: Tuple[int, int]
    layers: Tuple[Layer, ...]
    active: bool = False
    progress: float = 0.0

    @property
    def front(self) -> Optional[Layer]:
        return self.layers[-1] if self.layers else None


def fit_rect(content_w: float, content_h: float, viewport_w: float, viewport_h: float) -> Rect:
    """Largest rect with the content's aspect ratio that fits, centered."""
    if content_w <= 0 or content_h <= 0 or viewport_w <= 0 or viewport_h <= 0:
        return Rect(0.0, 0.0, max(viewport_w, 0.0), max(viewport_h, 0.0))
    scale = min(viewport_w / content_w, viewport_h / content_h)
    w, h = content_w * scale, content_h * scale
    return Rect((viewport_w - w) / 2, (viewport_h - h) / 2, w, h)


def page_image(page_index: int, snapshot: Mapping[int, CacheEntry],
               viewport: Tuple[int, int]) -> PageImage:
    vw, vh = viewport
    entry = snapshot.get(page_index)
    if entry is None:
        return PageImage(page_index, Rect(0.0, 0.0, vw, vh), EntryState.NOT_REQUESTED)
    if entry.is_ready:
        rect = fit_rect(entry.page.width, entry.page.height, vw, vh)
        return PageImage(page_index, rect, entry.state, entry.page)
    return PageImage(page_index, Rect(0.0, 0.0, vw, vh), entry.state)


def peek_page(current_page: int, page_count: Optional[int],
              direction: Direction = Direction.FORWARD) -> Optional[int]:
    """The neighbour in the direction of the last turn; nothing past either end."""
    if page_count is None:
        return None
    candidate = current_page + direction.sign
    if 0 <= candidate < page_count:
        return candidate
    return None


def compute_drawable(state: ViewerState, snapshot: Mapping[int, CacheEntry],
                     viewport: Tuple[int, int], page_count: Optional[int] = None,
                     show_idle_peek: bool = SHOW_IDLE_PEEK) -> DrawPlan:
    t = state.transition
    if not t.active:
        layers = []
        peek = (peek_page(state.current_page, page_count, state.last_direction)
                if show_idle_peek else None)
        if peek is not None:
            layers.append(Layer(page_image(peek, snapshot, viewport)))
        layers.append(Layer(page_image(state.current_page, snapshot, viewport)))
        return DrawPlan(viewport, tuple(layers))

    p = ease_in_out(t.progress)
    geo = turn_geometry(t.direction, p)
    hinge = Hinge.LEFT if t.direction is Direction.FORWARD else Hinge.RIGHT
    trailing = Hinge.RIGHT if hinge is Hinge.LEFT else Hinge.LEFT

    back = Layer(page_image(t.target_page, snapshot, viewport), angle=geo.back_angle)
    front = Layer(
        page_image(t.source_page, snapshot, viewport),
        angle=geo.front_angle,
        hinge=hinge,
        shade=Shade(hinge, geo.shade_opacity, geo.shade_extent),
        curl=Curl(trailing, viewport[0] * geo.curl_width_fraction, geo.curl_opacity),
    )
    return DrawPlan(viewport, (back, front), active=True, progress=p)
