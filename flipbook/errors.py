# errors.py


class FlipbookError(Exception):
    """Base class for all viewer errors."""


class OpenError(FlipbookError):
    """The document could not be opened. Fatal to the viewer session."""


class RenderError(FlipbookError):
    """A single page failed to rasterize."""

    def __init__(self, page_index: int, reason: str):
        super().__init__(f"page {page_index}: {reason}")
        self.page_index = page_index
        self.reason = reason


class OutOfRangeRequest(FlipbookError):
    """A page index outside [0, page_count) was requested."""

    def __init__(self, page_index: int, page_count: int):
        super().__init__(f"page {page_index} is outside [0, {page_count})")
        self.page_index = page_index
        self.page_count = page_count
