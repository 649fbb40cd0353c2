import math

import pytest

from flipbook.compositor import Compositor, perspective_coeffs
from flipbook.page_cache import CacheEntry, EntryState
from flipbook.pdf_model import RenderedPage
from flipbook.presentation import compute_drawable
from flipbook.transition import Direction, TransitionState, ViewerState


def white_page(index, width=200, height=300):
    page = RenderedPage(index, width, height, b"\xff" * (width * height * 3))
    return CacheEntry(index, EntryState.READY, page)


def test_zero_angle_perspective_is_identity():
    assert perspective_coeffs(0.0, 50.0, 100.0) == pytest.approx((1, 0, 0, 0, 1, 0, 0, 0))


def test_hinge_column_stays_put():
    a, b, c, d, e, f, g, h = perspective_coeffs(0.7, 0.0, 150.0)
    # a point on the hinge maps to itself
    x, y = 0.0, 40.0
    w = g * x + h * y + 1
    assert (a * x + b * y + c) / w == pytest.approx(0.0)
    assert (d * x + e * y + f) / w == pytest.approx(40.0)


def test_rotated_page_is_foreshortened():
    a, b, c, d, e, f, g, h = perspective_coeffs(math.pi / 4, 0.0, 150.0)
    # an output pixel 100px from the hinge samples further into the page
    x, y = 100.0, 150.0
    assert (a * x + c) / (g * x + 1) > 100.0


def test_idle_frame_has_viewport_size_and_page_pixels():
    plan = compute_drawable(ViewerState(), {0: white_page(0)}, (400, 300))
    img = Compositor().compose(plan)
    assert img.size == (400, 300)
    assert img.mode == "RGB"
    assert img.getpixel((200, 150)) == (255, 255, 255)
    # letterbox keeps the canvas colour
    assert img.getpixel((10, 150)) == (0x3A, 0x3A, 0x3A)


def test_placeholder_is_drawn_for_missing_page():
    plan = compute_drawable(ViewerState(), {}, (200, 100))
    img = Compositor().compose(plan)
    assert img.getpixel((2, 2)) == (0x50, 0x50, 0x50)


def test_turn_frame_shades_hinge_side():
    state = ViewerState(current_page=0, transition=TransitionState(
        active=True, direction=Direction.FORWARD, progress=0.5, source_page=0, target_page=1))
    snapshot = {0: white_page(0, 300, 300), 1: white_page(1, 300, 300)}
    img = Compositor().compose(compute_drawable(state, snapshot, (300, 300)))
    near_hinge = img.getpixel((2, 150))
    assert near_hinge[0] < 255
    assert img.size == (300, 300)


def test_scaled_pages_are_reused_between_frames():
    compositor = Compositor()
    plan = compute_drawable(ViewerState(), {0: white_page(0)}, (400, 300))
    compositor.compose(plan)
    compositor.compose(plan)
    assert len(compositor._scaled) == 1
    compositor.clear()
    assert compositor._scaled == {}


def test_scaled_pages_stay_bounded_while_resizing():
    compositor = Compositor()
    snapshot = {0: white_page(0)}
    for step in range(50):
        compositor.compose(compute_drawable(ViewerState(), snapshot, (300 + step, 200 + step)))
    assert len(compositor._scaled) == 1


def test_pages_no_longer_drawn_are_released():
    compositor = Compositor()
    first = white_page(0)
    compositor.compose(compute_drawable(ViewerState(), {0: first}, (400, 300)))
    compositor.compose(compute_drawable(ViewerState(current_page=1), {1: white_page(1)}, (400, 300)))
    assert all(page is not first.page for page, _ in compositor._scaled.values())
    assert [key[0] for key in compositor._scaled] == [1]


def test_backward_turn_hinges_on_right_edge():
    state = ViewerState(current_page=1, transition=TransitionState(
        active=True, direction=Direction.BACKWARD, progress=0.5, source_page=1, target_page=0))
    snapshot = {0: white_page(0, 300, 300), 1: white_page(1, 300, 300)}
    img = Compositor().compose(compute_drawable(state, snapshot, (300, 300)))

    near_hinge = img.getpixel((297, 150))
    assert 150 < near_hinge[0] < 230
    # the page underneath shows through on the trailing side
    assert img.getpixel((5, 150)) == (255, 255, 255)
    # the hinge column is not foreshortened, so the page still reaches the top edge
    assert img.getpixel((297, 2))[0] > 0x3A
    assert img.getpixel((297, 2))[0] < 255
