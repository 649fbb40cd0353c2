import threading
from types import SimpleNamespace

import fitz
import pytest

from flipbook.errors import OutOfRangeRequest, RenderError
from flipbook.pdf_model import RenderedPage


class FakeDocument:
    """In-process stand-in for PDFModel that counts rasterize calls."""

    def __init__(self, page_count=5, size=(100, 150), failing=(), gate=None):
        self.page_count = page_count
        self.size = size
        self.failing = set(failing)
        self.gate = gate
        self.started = threading.Event()
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def get_page_size(self, page_num):
        if not 0 <= page_num < self.page_count:
            raise OutOfRangeRequest(page_num, self.page_count)
        return SimpleNamespace(width=self.size[0], height=self.size[1])

    def rasterize(self, page_num, width_px, height_px):
        with self._lock:
            self.calls.append((page_num, width_px, height_px))
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if page_num in self.failing:
            raise RenderError(page_num, "decode error")
        return RenderedPage(page_num, width_px, height_px, bytes(width_px * height_px * 3))

    def calls_for(self, page_num):
        return [c for c in self.calls if c[0] == page_num]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_doc():
    return FakeDocument()


@pytest.fixture
def pdf_bytes():
    doc = fitz.open()
    for i in range(5):
        page = doc.new_page(width=200, height=300)
        page.insert_text((20, 40), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data
