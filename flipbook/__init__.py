"""Page-turning PDF viewer with a coalescing page render cache."""

__version__ = "0.1.0"
