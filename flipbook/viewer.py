# viewer.py
import logging
import queue
from typing import Callable, Optional, Tuple, Union

from flipbook.config import CACHE_SIZE_LIMIT, SHOW_IDLE_PEEK, TURN_DURATION_MS
from flipbook.page_cache import EntryState, PageCache
from flipbook.pdf_model import PDFModel
from flipbook.presentation import DrawPlan, compute_drawable, peek_page
from flipbook.renderer import RenderScheduler
from flipbook.transition import Direction, PageTurner, ViewerState

logger = logging.getLogger(__name__)


class Viewer:
    """
    Toolkit independent viewer session.

    Owns the open document, its page cache, the render scheduler and the page
    turn state machine. The UI feeds it frame ticks and drains finished renders
    through poll_results(); every new DrawPlan is passed to on_draw_plan_changed.
    """
    def __init__(self, on_draw_plan_changed: Optional[Callable[[DrawPlan], None]] = None,
                 viewport: Tuple[int, int] = (800, 600),
                 duration_ms: float = TURN_DURATION_MS,
                 cache_size_limit: Optional[int] = CACHE_SIZE_LIMIT,
                 show_idle_peek: bool = SHOW_IDLE_PEEK,
                 document_factory: Callable[..., object] = PDFModel):
        self.on_draw_plan_changed = on_draw_plan_changed
        self.viewport = viewport
        self.duration_ms = duration_ms
        self.cache_size_limit = cache_size_limit
        self.show_idle_peek = show_idle_peek
        self.document_factory = document_factory

        self.document = None
        self.cache: Optional[PageCache] = None
        self.scheduler: Optional[RenderScheduler] = None
        self.turner: Optional[PageTurner] = None
        self.result_queue: queue.Queue = queue.Queue()

    @property
    def is_open(self) -> bool:
        return self.document is not None

    @property
    def page_count(self) -> int:
        return self.turner.page_count if self.turner else 0

    @property
    def state(self) -> Optional[ViewerState]:
        return self.turner.state if self.turner else None

    @property
    def current_page(self) -> int:
        return self.turner.current_page if self.turner else 0

    def open(self, source: Union[str, bytes], name: Optional[str] = None):
        """Opens a document, replacing the current one. Raises OpenError."""
        self.close()
        document = self.document_factory(source, name=name)

        self.document = document
        self.result_queue = queue.Queue()
        self.cache = PageCache(document, max_entries=self.cache_size_limit)
        self.scheduler = RenderScheduler(self.cache, self.result_queue)
        self.turner = PageTurner(document.page_count, duration_ms=self.duration_ms,
                                 on_turn_started=self.scheduler.prefetch)
        self.scheduler.ensure_visible(0)
        self._prefetch_peek()
        self.emit()

    def close(self):
        """Releases the document. Safe to call repeatedly."""
        if self.document is None:
            return
        self.scheduler.stop()
        self.cache.invalidate_all()
        self.document.close()
        self.document = None
        self.cache = None
        self.scheduler = None
        self.turner = None

    def request_turn(self, direction: Direction) -> bool:
        if self.turner is None:
            return False
        accepted = self.turner.request_turn(direction)
        if accepted:
            self.emit()
        return accepted

    def tick(self, dt_ms: float) -> bool:
        """Advances a running turn. Returns True when the turn completes."""
        if self.turner is None or not self.turner.is_active:
            return False
        completed = self.turner.advance(dt_ms)
        if completed:
            page = self.turner.current_page
            logger.debug("Turned to page %d", page)
            self.cache.set_focus(page)
            self.scheduler.ensure_visible(page)
            self._prefetch_peek()
        self.emit()
        return completed

    def poll_results(self) -> int:
        """Drains finished renders and redraws if one of them is on screen."""
        drained, visible = 0, False
        shown = self._shown_pages()
        while True:
            try:
                entry = self.result_queue.get_nowait()
            except queue.Empty:
                break
            drained += 1
            visible = visible or entry.page_index in shown
        if visible:
            self.emit()
        return drained

    def retry_current(self) -> bool:
        """Re-renders the current page if its last render failed."""
        if self.cache is None:
            return False
        page = self.current_page
        if self.cache.state(page) is not EntryState.FAILED:
            return False
        self.scheduler.retry(page)
        return True

    def set_viewport(self, width: int, height: int):
        if (width, height) != self.viewport:
            self.viewport = (width, height)
            self.emit()

    def draw_plan(self) -> Optional[DrawPlan]:
        if self.turner is None:
            return None
        return compute_drawable(self.turner.state, self.cache.snapshot(), self.viewport,
                                page_count=self.page_count, show_idle_peek=self.show_idle_peek)

    def emit(self):
        plan = self.draw_plan()
        if plan is not None and self.on_draw_plan_changed:
            self.on_draw_plan_changed(plan)

    def _shown_pages(self):
        if self.turner is None:
            return set()
        t = self.turner.transition
        if t.active:
            return {t.source_page, t.target_page}
        pages = {self.turner.current_page}
        if self.show_idle_peek:
            pages.add(peek_page(self.turner.current_page, self.page_count,
                                self.turner.state.last_direction))
        return pages

    def _prefetch_peek(self):
        if not self.show_idle_peek:
            return
        peek = peek_page(self.turner.current_page, self.page_count,
                         self.turner.state.last_direction)
        if peek is not None:
            self.scheduler.prefetch(peek)
