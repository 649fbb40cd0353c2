# renderer.py
import logging
import queue
import threading
from concurrent.futures import Future
from typing import Dict, Optional

from flipbook.errors import OutOfRangeRequest
from flipbook.page_cache import EntryState, PageCache

logger = logging.getLogger(__name__)

VISIBLE = "visible"
PREFETCH = "prefetch"
RETRY = "retry"


class _RenderJob:
    __slots__ = ("page_index", "kind", "future", "superseded")

    def __init__(self, page_index: int, kind: str):
        self.page_index = page_index
        self.kind = kind
        self.future: Future = Future()
        self.superseded = False


class RenderWorker(threading.Thread):
    """
    A worker thread that renders PDF pages in the background.
    Finished cache entries are posted to result_queue for the UI thread.
    """
    def __init__(self, cache: PageCache, result_queue: queue.Queue,
                 lock: Optional[threading.RLock] = None):
        super().__init__(daemon=True, name="flipbook-render")
        self.cache = cache
        self.result_queue = result_queue
        # shared with the scheduler so a job is never revived and dropped at once
        self.lock = lock or threading.RLock()
        self.render_queue: queue.Queue = queue.Queue()
        self.start()

    def run(self):
        while True:
            job = self.render_queue.get()
            if job is None:  # Sentinel value to stop the thread
                break
            with self.lock:
                if job.superseded:
                    job.future.cancel()
                started = job.future.set_running_or_notify_cancel()
            if not started:
                logger.debug("Dropped queued render of page %d", job.page_index)
                continue
            try:
                if job.kind == RETRY:
                    entry = self.cache.retry(job.page_index)
                else:
                    entry = self.cache.get_or_render(job.page_index)
            except OutOfRangeRequest as e:
                job.future.set_exception(e)
                continue
            job.future.set_result(entry)
            self.result_queue.put(entry)

    def submit(self, job: _RenderJob):
        """Adds a page rendering request to the queue."""
        self.render_queue.put(job)

    def stop(self):
        """Stops the worker thread."""
        self.render_queue.put(None)


class RenderScheduler:
    """
    Issues on-demand and speculative renders against a PageCache.

    Requests for a page that is already pending, resolved or queued return the
    existing future. A prefetch that has not started yet is dropped when a
    newer prefetch replaces it.
    """
    def __init__(self, cache: PageCache, result_queue: Optional[queue.Queue] = None):
        self.cache = cache
        self.result_queue = result_queue if result_queue is not None else queue.Queue()
        # reentrant: cancelling a job runs _forget on the same thread
        self._lock = threading.RLock()
        self.worker = RenderWorker(cache, self.result_queue, self._lock)
        self._queued: Dict[int, _RenderJob] = {}

    def ensure_visible(self, page_index: int) -> Future:
        """Requests page_index for immediate display."""
        return self._schedule(page_index, VISIBLE)

    def prefetch(self, page_index: int) -> Future:
        """Fire-and-forget request to render page_index ahead of need."""
        return self._schedule(page_index, PREFETCH)

    def retry(self, page_index: int) -> Future:
        """Schedules a fresh render of a failed page."""
        if self.cache.state(page_index) is not EntryState.FAILED:
            return self.ensure_visible(page_index)
        return self._schedule(page_index, RETRY)

    def stop(self):
        """Drops queued requests and stops the worker after its current render."""
        with self._lock:
            for job in self._queued.values():
                job.superseded = True
        self.worker.stop()

    def _schedule(self, page_index: int, kind: str) -> Future:
        if not 0 <= page_index < self.cache.page_count:
            raise OutOfRangeRequest(page_index, self.cache.page_count)

        with self._lock:
            if kind != RETRY:
                existing = self.cache.future(page_index)
                if existing is not None:
                    return existing
            queued = self._queued.get(page_index)
            if queued is not None and not queued.future.done():
                queued.superseded = False
                if kind != PREFETCH and queued.kind == PREFETCH:
                    queued.kind = kind
                return queued.future

            if kind == PREFETCH:
                for other in self._queued.values():
                    if other.kind == PREFETCH and not other.future.running():
                        other.superseded = True
            job = _RenderJob(page_index, kind)
            self._queued[page_index] = job
            job.future.add_done_callback(lambda _f, i=page_index, j=job: self._forget(i, j))

        logger.debug("Scheduled %s render of page %d", kind, page_index)
        self.worker.submit(job)
        return job.future

    def _forget(self, page_index: int, job: _RenderJob):
        with self._lock:
            if self._queued.get(page_index) is job:
                del self._queued[page_index]
