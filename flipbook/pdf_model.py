# pdf_model.py
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Union

import fitz  # PyMuPDF
from PIL import Image

from flipbook.errors import OpenError, OutOfRangeRequest, RenderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedPage:
    """RGB samples for one rasterized page plus its pixel size."""
    page_index: int
    width: int
    height: int
    samples: bytes

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGB", (self.width, self.height), self.samples)


class PDFModel:
    """
    The Model class responsible for handling the PDF document.
    It encapsulates all interactions with the PyMuPDF (fitz) library.
    """
    def __init__(self, source: Union[str, bytes], name: Optional[str] = None):
        try:
            if isinstance(source, (bytes, bytearray)):
                self.doc: Optional[fitz.Document] = fitz.open(stream=bytes(source), filetype="pdf")
                self.filepath = name or "<memory>"
            else:
                self.doc = fitz.open(source)
                self.filepath = str(source)
        except Exception as e:
            raise OpenError(f"Failed to open {name or source!r}: {e}") from e

        if self.doc.page_count == 0:
            self.doc.close()
            raise OpenError(f"{self.filepath} has no pages")

        self.page_count = self.doc.page_count
        # fitz documents are not safe to use from several threads at once
        self._lock = threading.Lock()
        logger.info("Opened %s (%d pages)", self.filepath, self.page_count)

    @classmethod
    def open(cls, source: Union[str, bytes], name: Optional[str] = None) -> "PDFModel":
        return cls(source, name=name)

    @property
    def closed(self) -> bool:
        return self.doc is None

    def check_index(self, page_num: int):
        if not 0 <= page_num < self.page_count:
            raise OutOfRangeRequest(page_num, self.page_count)

    def get_page_size(self, page_num: int) -> fitz.Rect:
        """Returns the dimensions of a specific page in points."""
        self.check_index(page_num)
        with self._lock:
            if self.doc is None:
                raise RenderError(page_num, "document is closed")
            return self.doc.load_page(page_num).rect

    def rasterize(self, page_num: int, width_px: int, height_px: int) -> RenderedPage:
        """Renders a page so that it fills exactly width_px x height_px."""
        self.check_index(page_num)
        if width_px <= 0 or height_px <= 0:
            raise RenderError(page_num, f"invalid target size {width_px}x{height_px}")
        with self._lock:
            if self.doc is None:
                raise RenderError(page_num, "document is closed")
            try:
                page = self.doc.load_page(page_num)
                rect = page.rect
                mat = fitz.Matrix(width_px / rect.width, height_px / rect.height)
                pix = page.get_pixmap(matrix=mat, alpha=False)
            except Exception as e:
                raise RenderError(page_num, str(e)) from e
        return RenderedPage(page_num, pix.width, pix.height, bytes(pix.samples))

    def close(self):
        """Closes the PDF document."""
        if self.doc:
            with self._lock:
                self.doc.close()
                self.doc = None
            logger.info("Closed %s", self.filepath)
