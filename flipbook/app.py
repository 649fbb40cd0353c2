# app.py
import logging
import os
import sys
import time
from tkinter import filedialog, messagebox

from flipbook.compositor import Compositor
from flipbook.config import FRAME_INTERVAL_MS, RESULT_POLL_MS
from flipbook.errors import OpenError
from flipbook.page_cache import EntryState
from flipbook.presentation import DrawPlan
from flipbook.transition import Direction
from flipbook.view import View
from flipbook.viewer import Viewer

logger = logging.getLogger(__name__)


class PdfApplication(View):
    """
    The main application class for the page turning viewer.
    Acts as the controller: drives the frame clock, drains finished renders
    and paints every DrawPlan the viewer produces.
    """
    def __init__(self, path: str = None):
        super().__init__()

        self.viewer = Viewer(on_draw_plan_changed=self._on_draw_plan_changed)
        self.compositor = Compositor(self.theme)
        self._last_tick = None

        self._bind_app_events()
        self._check_result_queue()

        if path:
            self.after(100, lambda: self.load_pdf(path))

    def _bind_app_events(self):
        self.protocol("WM_DELETE_WINDOW", self._on_closing)
        self.bind("<Control-o>", lambda e: self.open_pdf())

    def _on_closing(self):
        self.viewer.close()
        self.destroy()

    def open_pdf(self):
        path = filedialog.askopenfilename(filetypes=[("PDF files", "*.pdf")])
        if path:
            self.load_pdf(path)

    def load_pdf(self, path: str):
        self.compositor.clear()
        self.error_message = None
        self._sync_viewport()
        try:
            self.viewer.open(path)
        except OpenError as e:
            logger.error("%s", e)
            self.page_count = 0
            self.show_error("Failed to open PDF")
            messagebox.showerror("Error", str(e))
            return
        self.page_count = self.viewer.page_count
        self.current_page = 0
        self._refresh_status()

    def _sync_viewport(self):
        w, h = self.canvas.winfo_width(), self.canvas.winfo_height()
        if w > 1 and h > 1:
            self.viewer.set_viewport(w, h)

    def _check_result_queue(self):
        try:
            if self.viewer.poll_results():
                self._refresh_status()
        finally:
            self.after(RESULT_POLL_MS, self._check_result_queue)

    def _tick(self):
        now = time.monotonic()
        dt_ms = (now - self._last_tick) * 1000.0
        self._last_tick = now
        if self.viewer.tick(dt_ms):
            self.current_page = self.viewer.current_page
            self._refresh_status()
        if self.viewer.turner and self.viewer.turner.is_active:
            self.after(FRAME_INTERVAL_MS, self._tick)
        else:
            self._last_tick = None

    def _start_turn(self, direction: Direction):
        if not self.viewer.request_turn(direction):
            return
        if self._last_tick is None:
            self._last_tick = time.monotonic()
            self.after(FRAME_INTERVAL_MS, self._tick)

    def _on_draw_plan_changed(self, plan: DrawPlan):
        self.show_frame(self.compositor.compose(plan))

    def _refresh_status(self):
        self.current_page = self.viewer.current_page
        failed = self.viewer.cache is not None and \
            self.viewer.cache.state(self.viewer.current_page) is EntryState.FAILED
        filename = os.path.basename(self.viewer.document.filepath) if self.viewer.document else None
        self.update_statusbar(filename, failed=failed)

    def prev_page(self):
        self._start_turn(Direction.BACKWARD)

    def next_page(self):
        self._start_turn(Direction.FORWARD)

    def retry_page(self):
        self.viewer.retry_current()
        self._refresh_status()

    def _on_resize(self, event=None):
        if event is not None and event.width > 1 and event.height > 1:
            self.viewer.set_viewport(event.width, event.height)


def run(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    app = PdfApplication(argv[0] if argv else None)
    app.mainloop()
