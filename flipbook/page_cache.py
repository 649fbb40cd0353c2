# page_cache.py
import enum
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from flipbook.config import CACHE_SIZE_LIMIT, RENDER_OVERSAMPLING
from flipbook.errors import OutOfRangeRequest, RenderError
from flipbook.pdf_model import RenderedPage

logger = logging.getLogger(__name__)


class EntryState(enum.Enum):
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class CacheEntry:
    page_index: int
    state: EntryState
    page: Optional[RenderedPage] = None
    reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (EntryState.READY, EntryState.FAILED)

    @property
    def is_ready(self) -> bool:
        return self.state is EntryState.READY

    @property
    def is_failed(self) -> bool:
        return self.state is EntryState.FAILED


def _resolved(entry: CacheEntry) -> Future:
    fut: Future = Future()
    fut.set_result(entry)
    return fut


class PageCache:
    """
    Maps page indices to rendered bitmaps.

    Every index goes NotRequested -> Pending -> Ready | Failed exactly once.
    Callers asking for a Pending page share the in-flight Future instead of
    starting another render, so a page is never decoded twice concurrently.
    Ready and Failed entries are kept until invalidate_all(); only an explicit
    retry() re-renders a Failed page.
    """
    def __init__(self, document, oversampling: float = RENDER_OVERSAMPLING,
                 max_entries: Optional[int] = CACHE_SIZE_LIMIT):
        self.document = document
        self.oversampling = oversampling
        self.max_entries = max_entries
        self.focus_page = 0

        self._lock = threading.Lock()
        self._entries: Dict[int, CacheEntry] = {}
        self._inflight: Dict[int, Future] = {}
        # Bumped by invalidate_all so renders started earlier are not stored
        self._generation = 0

    @property
    def page_count(self) -> int:
        return self.document.page_count if self.document else 0

    def get_or_render(self, page_index: int, timeout: Optional[float] = None) -> CacheEntry:
        """Returns the terminal entry for page_index, rendering it if needed."""
        fut, owner, generation = self._claim(page_index, retry=False)
        if owner:
            self._render(page_index, fut, generation)
        return fut.result(timeout)

    def retry(self, page_index: int, timeout: Optional[float] = None) -> CacheEntry:
        """Re-attempts rasterization of a Failed page."""
        fut, owner, generation = self._claim(page_index, retry=True)
        if owner:
            self._render(page_index, fut, generation)
        return fut.result(timeout)

    def future(self, page_index: int) -> Optional[Future]:
        """The in-flight or resolved future for page_index, None if never requested."""
        with self._lock:
            if page_index in self._inflight:
                return self._inflight[page_index]
            entry = self._entries.get(page_index)
        return _resolved(entry) if entry is not None else None

    def entry(self, page_index: int) -> CacheEntry:
        with self._lock:
            entry = self._entries.get(page_index)
        return entry or CacheEntry(page_index, EntryState.NOT_REQUESTED)

    def state(self, page_index: int) -> EntryState:
        return self.entry(page_index).state

    def snapshot(self) -> Mapping[int, CacheEntry]:
        """Read-only copy of every known entry."""
        with self._lock:
            return MappingProxyType(dict(self._entries))

    def invalidate_all(self):
        """Drops every entry. Used only when the document is replaced or closed."""
        with self._lock:
            self._entries.clear()
            self._inflight.clear()
            self._generation += 1
        logger.debug("Page cache invalidated")

    def set_focus(self, page_index: int):
        """Sets the page that eviction keeps closest."""
        self.focus_page = page_index
        with self._lock:
            self._evict_locked()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, page_index: int) -> bool:
        with self._lock:
            return page_index in self._entries

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _claim(self, page_index: int, retry: bool) -> Tuple[Future, bool, int]:
        with self._lock:
            if not 0 <= page_index < self.page_count:
                raise OutOfRangeRequest(page_index, self.page_count)
            if page_index in self._inflight:
                return self._inflight[page_index], False, self._generation
            entry = self._entries.get(page_index)
            if entry is not None and entry.is_terminal and not (retry and entry.is_failed):
                logger.debug("Cache hit for page %d (%s)", page_index, entry.state.value)
                return _resolved(entry), False, self._generation

            fut: Future = Future()
            fut.set_running_or_notify_cancel()
            self._inflight[page_index] = fut
            self._entries[page_index] = CacheEntry(page_index, EntryState.PENDING)
            return fut, True, self._generation

    def _target_size(self, page_index: int) -> Tuple[int, int]:
        rect = self.document.get_page_size(page_index)
        return (max(1, int(rect.width * self.oversampling)),
                max(1, int(rect.height * self.oversampling)))

    def _render(self, page_index: int, fut: Future, generation: int):
        try:
            width, height = self._target_size(page_index)
            page = self.document.rasterize(page_index, width, height)
            entry = CacheEntry(page_index, EntryState.READY, page=page)
        except RenderError as e:
            logger.warning("Rendering error on page %d: %s", page_index, e.reason)
            entry = CacheEntry(page_index, EntryState.FAILED, reason=e.reason)
        except Exception as e:
            # Any decode failure stays local to this page
            logger.exception("Unexpected error rendering page %d", page_index)
            entry = CacheEntry(page_index, EntryState.FAILED, reason=str(e))

        with self._lock:
            if generation == self._generation:
                self._entries[page_index] = entry
                self._inflight.pop(page_index, None)
                self._evict_locked()
        fut.set_result(entry)

    def _evict_locked(self):
        if self.max_entries is None or len(self._entries) <= self.max_entries:
            return
        candidates = sorted(
            (i for i, e in self._entries.items() if e.is_terminal),
            key=lambda i: abs(i - self.focus_page),
            reverse=True,
        )
        for page_index in candidates:
            if len(self._entries) <= self.max_entries:
                break
            if abs(page_index - self.focus_page) <= 1:
                # never evict the visible page or its turn neighbours
                break
            del self._entries[page_index]
            logger.debug("Evicted page %d", page_index)
