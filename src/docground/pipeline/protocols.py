"""Interfaces of the external collaborators the engine drives.

The renderer and OCR engine are black boxes to the layout engine. Any
object with these methods can be plugged into the orchestrator; the
shipped implementations are :class:`PDFRenderer` (PyMuPDF) and
:class:`TesseractOCR` (pytesseract).
"""

from typing import Any, Protocol

from docground.models import OCRPageResult, PageRender


class PageSource(Protocol):
    """Renders pages and exposes their native text tokens."""

    def open(self, source_path: str) -> int:
        """Open the source and return its page count.

        Raises DocumentLoadError when the file cannot be opened at all.
        """

    def render_page(self, page_number: int) -> PageRender:
        """Render one 1-indexed page. Raises PageLoadError on failure."""

    def close(self) -> None:
        """Release the underlying document."""


class OCREngine(Protocol):
    """Recognizes text in a rendered page image."""

    def recognize(self, image: Any) -> OCRPageResult:
        """Run OCR on a page image. Raises OCREngineError on failure."""
