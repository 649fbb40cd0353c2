# transition.py
"""
Page turn state machine.

A turn is either idle or active with a direction, a linear progress value in
[0, 1] and the source/target pages. Progress is advanced by a frame clock and
never waits for page renders. The visible page changes only when a turn
completes.
"""
import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from flipbook.config import (BACK_PAGE_TILT, CURL_OPACITY, CURL_WIDTH_FRACTION,
                             HINGE_SHADE_EXTENT, HINGE_SHADE_OPACITY,
                             MAX_TURN_ANGLE, TURN_DURATION_MS)

logger = logging.getLogger(__name__)


class Direction(enum.Enum):
    FORWARD = 1
    BACKWARD = -1

    @property
    def sign(self) -> int:
        return self.value


@dataclass(frozen=True)
class TransitionState:
    active: bool = False
    direction: Optional[Direction] = None
    progress: float = 0.0
    source_page: Optional[int] = None
    target_page: Optional[int] = None


IDLE = TransitionState()


@dataclass(frozen=True)
class ViewerState:
    current_page: int = 0
    transition: TransitionState = IDLE
    # direction of the last completed turn, used for the idle underlay
    last_direction: Direction = Direction.FORWARD


@dataclass(frozen=True)
class TurnGeometry:
    """Visual parameters of a turn at one eased progress sample."""
    front_angle: float
    back_angle: float
    shade_opacity: float
    shade_extent: float
    curl_width_fraction: float
    curl_opacity: float


def _cubic(a: float, b: float, m: float) -> float:
    return 3 * a * (1 - m) ** 2 * m + 3 * b * (1 - m) * m ** 2 + m ** 3


def ease_in_out(t: float) -> float:
    """Cubic Bezier (0.42, 0, 0.58, 1): slow at both ends, fastest mid-turn."""
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0
    # fixed-depth bisection keeps the curve monotone
    lo, hi = 0.0, 1.0
    for _ in range(40):
        mid = (lo + hi) / 2
        if _cubic(0.42, 0.58, mid) < t:
            lo = mid
        else:
            hi = mid
    return _cubic(0.0, 1.0, (lo + hi) / 2)


def turn_geometry(direction: Direction, eased: float) -> TurnGeometry:
    p = min(max(eased, 0.0), 1.0)
    return TurnGeometry(
        front_angle=direction.sign * MAX_TURN_ANGLE * p,
        back_angle=direction.sign * BACK_PAGE_TILT * (1 - p),
        shade_opacity=HINGE_SHADE_OPACITY * p,
        shade_extent=HINGE_SHADE_EXTENT,
        curl_width_fraction=CURL_WIDTH_FRACTION * p,
        curl_opacity=CURL_OPACITY * p,
    )


class PageTurner:
    """
    Owns the ViewerState and drives page turns.

    on_turn_started(target_page) fires when a turn is accepted, typically to
    prefetch the target. on_turn_finished(final_state) fires with the last
    active state (progress 1.0) just before the machine returns to idle.
    """
    def __init__(self, page_count: int, current_page: int = 0,
                 duration_ms: float = TURN_DURATION_MS,
                 on_turn_started: Optional[Callable[[int], None]] = None,
                 on_turn_finished: Optional[Callable[[TransitionState], None]] = None):
        if duration_ms <= 0:
            raise ValueError("duration_ms must be positive")
        self.page_count = page_count
        self.duration_ms = duration_ms
        self.on_turn_started = on_turn_started
        self.on_turn_finished = on_turn_finished
        self._state = ViewerState(current_page=current_page)
        self._elapsed_ms = 0.0

    @property
    def state(self) -> ViewerState:
        return self._state

    @property
    def current_page(self) -> int:
        return self._state.current_page

    @property
    def transition(self) -> TransitionState:
        return self._state.transition

    @property
    def is_active(self) -> bool:
        return self._state.transition.active

    @property
    def eased_progress(self) -> float:
        return ease_in_out(self._state.transition.progress)

    def geometry(self) -> Optional[TurnGeometry]:
        t = self._state.transition
        if not t.active:
            return None
        return turn_geometry(t.direction, ease_in_out(t.progress))

    def target_for(self, direction: Direction) -> Optional[int]:
        """The page a turn in this direction would land on, or None if out of range."""
        target = self._state.current_page + direction.sign
        if 0 <= target < self.page_count:
            return target
        return None

    def request_turn(self, direction: Direction) -> bool:
        if self.is_active:
            logger.debug("Turn %s rejected: a turn is already running", direction.name)
            return False
        target = self.target_for(direction)
        if target is None:
            logger.debug("Turn %s rejected at page %d", direction.name, self.current_page)
            return False

        self._elapsed_ms = 0.0
        self._state = replace(self._state, transition=TransitionState(
            active=True,
            direction=direction,
            progress=0.0,
            source_page=self.current_page,
            target_page=target,
        ))
        if self.on_turn_started:
            self.on_turn_started(target)
        return True

    def advance(self, dt_ms: float) -> bool:
        """
        Moves the active turn forward by dt_ms of wall-clock time.
        Returns True if the turn completed during this step.
        """
        t = self._state.transition
        if not t.active or dt_ms <= 0:
            return False

        self._elapsed_ms += dt_ms
        progress = min(max(self._elapsed_ms / self.duration_ms, t.progress), 1.0)
        t = replace(t, progress=progress)
        if progress < 1.0:
            self._state = replace(self._state, transition=t)
            return False

        self._state = replace(self._state, transition=t)
        if self.on_turn_finished:
            self.on_turn_finished(t)
        self._state = ViewerState(current_page=t.target_page, transition=IDLE,
                                  last_direction=t.direction)
        return True

    def reset(self, page_count: int, current_page: int = 0):
        """Starts over for a newly opened document."""
        self.page_count = page_count
        self._elapsed_ms = 0.0
        self._state = ViewerState(current_page=current_page)
