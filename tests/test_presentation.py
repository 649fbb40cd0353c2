import pytest

from flipbook.page_cache import CacheEntry, EntryState
from flipbook.pdf_model import RenderedPage
from flipbook.presentation import Hinge, Rect, compute_drawable, fit_rect
from flipbook.transition import Direction, TransitionState, ViewerState


def ready(index, width=200, height=300):
    return CacheEntry(index, EntryState.READY, RenderedPage(index, width, height, b""))


def active(direction, progress, source, target):
    return ViewerState(current_page=source, transition=TransitionState(
        active=True, direction=direction, progress=progress, source_page=source, target_page=target))


def test_fit_rect_preserves_aspect_and_centers():
    assert fit_rect(200, 300, 400, 300) == Rect(100.0, 0.0, 200.0, 300.0)
    assert fit_rect(400, 100, 200, 200) == Rect(0.0, 75.0, 200.0, 50.0)


def test_idle_plan_is_single_flat_page():
    plan = compute_drawable(ViewerState(current_page=1), {1: ready(1)}, (400, 300))
    assert not plan.active
    assert len(plan.layers) == 1
    layer = plan.front
    assert layer.image.page_index == 1
    assert not layer.image.is_placeholder
    assert layer.angle == 0.0
    assert layer.shade is None and layer.curl is None
    assert layer.image.rect == Rect(100.0, 0.0, 200.0, 300.0)


@pytest.mark.parametrize("entry, status", [
    (None, EntryState.NOT_REQUESTED),
    (CacheEntry(0, EntryState.PENDING), EntryState.PENDING),
    (CacheEntry(0, EntryState.FAILED, reason="decode error"), EntryState.FAILED),
])
def test_idle_plan_shows_placeholder_until_ready(entry, status):
    snapshot = {0: entry} if entry else {}
    plan = compute_drawable(ViewerState(), snapshot, (400, 300))
    image = plan.front.image
    assert image.is_placeholder
    assert image.status is status
    assert image.rect == Rect(0.0, 0.0, 400, 300)


def test_idle_peek_is_off_by_default():
    snapshot = {0: ready(0), 1: ready(1)}
    plan = compute_drawable(ViewerState(), snapshot, (400, 300), page_count=5)
    assert [l.image.page_index for l in plan.layers] == [0]

    peek = compute_drawable(ViewerState(), snapshot, (400, 300), page_count=5, show_idle_peek=True)
    assert [l.image.page_index for l in peek.layers] == [1, 0]

    # nothing lies past the last page in the forward direction
    last = compute_drawable(ViewerState(current_page=4), snapshot, (400, 300),
                            page_count=5, show_idle_peek=True)
    assert [l.image.page_index for l in last.layers] == [4]


def test_idle_peek_follows_last_turn_direction():
    snapshot = {i: ready(i) for i in range(5)}
    state = ViewerState(current_page=2, last_direction=Direction.BACKWARD)
    plan = compute_drawable(state, snapshot, (400, 300), page_count=5, show_idle_peek=True)
    assert [l.image.page_index for l in plan.layers] == [1, 2]

    first = ViewerState(current_page=0, last_direction=Direction.BACKWARD)
    plan = compute_drawable(first, snapshot, (400, 300), page_count=5, show_idle_peek=True)
    assert [l.image.page_index for l in plan.layers] == [0]


def test_forward_turn_hinges_on_left_edge():
    snapshot = {0: ready(0), 1: ready(1)}
    plan = compute_drawable(active(Direction.FORWARD, 0.5, 0, 1), snapshot, (400, 300))
    assert plan.active
    back, front = plan.layers
    assert back.image.page_index == 1
    assert back.hinge is Hinge.CENTER
    assert back.angle > 0
    assert front.image.page_index == 0
    assert front.hinge is Hinge.LEFT
    assert front.angle > 0
    assert front.shade.side is Hinge.LEFT
    assert front.curl.side is Hinge.RIGHT
    assert front.shade.opacity == pytest.approx(0.3)
    assert front.shade.extent == pytest.approx(0.6)
    assert front.curl.width == pytest.approx(400 * 0.25 * 0.5)


def test_backward_turn_mirrors_forward():
    snapshot = {1: ready(1), 2: ready(2)}
    fwd = compute_drawable(active(Direction.FORWARD, 0.3, 1, 2), snapshot, (400, 300))
    back = compute_drawable(active(Direction.BACKWARD, 0.3, 2, 1), snapshot, (400, 300))
    assert back.front.hinge is Hinge.RIGHT
    assert back.front.curl.side is Hinge.LEFT
    assert back.front.angle == pytest.approx(-fwd.front.angle)
    assert back.layers[0].angle == pytest.approx(-fwd.layers[0].angle)
    assert back.front.shade.opacity == pytest.approx(fwd.front.shade.opacity)


def test_turn_uses_eased_progress():
    snapshot = {0: ready(0), 1: ready(1)}
    early = compute_drawable(active(Direction.FORWARD, 0.1, 0, 1), snapshot, (400, 300))
    assert early.progress < 0.1
    assert early.front.shade.opacity == pytest.approx(0.6 * early.progress)


def test_missing_target_does_not_block_turn():
    plan = compute_drawable(active(Direction.FORWARD, 0.7, 0, 1), {0: ready(0)}, (400, 300))
    back, front = plan.layers
    assert back.image.is_placeholder
    assert not front.image.is_placeholder


def test_overlays_depend_only_on_progress():
    a = compute_drawable(active(Direction.FORWARD, 0.4, 0, 1), {0: ready(0)}, (400, 300))
    b = compute_drawable(active(Direction.FORWARD, 0.4, 2, 3), {2: ready(2), 3: ready(3)}, (400, 300))
    assert a.front.shade == b.front.shade
    assert a.front.curl == b.front.curl
