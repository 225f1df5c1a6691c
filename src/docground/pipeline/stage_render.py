"""PDF Rendering Stage - Rasterize pages and read the native text layer.

This is the first stage of every page unit of work.
Uses PyMuPDF (fitz) for rendering and word-level text extraction.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
from PIL import Image

from docground.config import settings
from docground.errors import DocumentLoadError, PageLoadError
from docground.models import PageRender, Token, TokenSource
from docground.transform import pixel_edges_to_box

logger = logging.getLogger(__name__)


def extract_native_tokens(
    words: list[tuple],
    page_width: float,
    page_height: float,
    page_number: int,
) -> list[Token]:
    """Convert PyMuPDF word tuples into normalized native tokens.

    Args:
        words: Output of ``page.get_text("words")``: tuples of
            (x0, y0, x1, y1, text, block_no, line_no, word_no) in points.
        page_width: Page width in points.
        page_height: Page height in points.
        page_number: 1-indexed page number.

    Returns:
        Tokens with empty text or out-of-page geometry removed.
    """
    tokens = []
    for word in words:
        x0, y0, x1, y1, text = word[:5]
        text = (text or "").strip()
        if not text:
            continue

        box = pixel_edges_to_box(x0, y0, x1, y1, page_width, page_height)
        if box is None:
            continue

        tokens.append(
            Token(
                text=text,
                box=box,
                confidence=1.0,
                source=TokenSource.NATIVE,
                page_number=page_number,
            )
        )
    return tokens


class PDFRenderer:
    """Renders PDF pages to images and extracts native tokens.

    MuPDF documents are not safe for concurrent use, so all access to the
    open document is serialized. OCR, the expensive part of a page, runs
    outside the lock.
    """

    def __init__(self, dpi: Optional[int] = None):
        """Initialize renderer.

        Args:
            dpi: Rendering DPI (default from settings)
        """
        self.dpi = dpi or settings.render_dpi
        self._pdf_doc = None
        self._lock = threading.Lock()

    def open(self, source_path: str) -> int:
        """Open a PDF and return its page count."""
        pdf_path = Path(source_path)
        if not pdf_path.exists():
            raise DocumentLoadError(f"PDF not found: {pdf_path}")

        try:
            pdf_doc = fitz.open(str(pdf_path))
        except (RuntimeError, ValueError) as e:
            raise DocumentLoadError(f"Cannot open {pdf_path}: {e}") from e

        if pdf_doc.needs_pass:
            pdf_doc.close()
            raise DocumentLoadError(f"PDF is encrypted: {pdf_path}")

        with self._lock:
            previous, self._pdf_doc = self._pdf_doc, pdf_doc
        if previous is not None:
            previous.close()

        page_count = len(pdf_doc)
        logger.info("Opened %s (%d pages)", pdf_path.name, page_count)
        return page_count

    def render_page(self, page_number: int) -> PageRender:
        """Render a single 1-indexed page.

        Args:
            page_number: 1-indexed page number

        Returns:
            PageRender with pixel size, native tokens and a PIL image
        """
        with self._lock:
            if self._pdf_doc is None:
                raise PageLoadError(page_number, "no document is open")
            try:
                pdf_page = self._pdf_doc[page_number - 1]

                # Calculate zoom factor for target DPI (PDF base is 72 DPI)
                zoom = self.dpi / 72.0
                matrix = fitz.Matrix(zoom, zoom)
                pixmap = pdf_page.get_pixmap(matrix=matrix, alpha=False)
                image = Image.frombytes(
                    "RGB", (pixmap.width, pixmap.height), pixmap.samples
                )

                words = pdf_page.get_text("words")
                page_width = pdf_page.rect.width
                page_height = pdf_page.rect.height
            except (RuntimeError, ValueError, IndexError) as e:
                raise PageLoadError(page_number, str(e)) from e

        if page_width <= 0 or page_height <= 0:
            raise PageLoadError(page_number, "page has an empty media box")

        native_tokens = extract_native_tokens(
            words, page_width, page_height, page_number
        )
        logger.debug(
            "Rendered page %d at %dx%d with %d native tokens",
            page_number,
            pixmap.width,
            pixmap.height,
            len(native_tokens),
        )

        return PageRender(
            page_number=page_number,
            pixel_width=pixmap.width,
            pixel_height=pixmap.height,
            native_tokens=native_tokens,
            image=image,
        )

    def close(self) -> None:
        """Close the open document, if any."""
        with self._lock:
            if self._pdf_doc is not None:
                self._pdf_doc.close()
                self._pdf_doc = None
