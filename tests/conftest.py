"""Pytest configuration and fixtures."""

import threading
import time
from collections import Counter
from typing import Optional

import pytest

from docground.errors import DocumentLoadError, PageLoadError
from docground.models import (
    BlockType,
    NormalizedBox,
    OCRPageResult,
    OCRWord,
    PageRender,
    PixelBox,
    Token,
    TokenSource,
)

# Pixel size of every page rendered by FakePageSource
PAGE_WIDTH_PX = 1000
PAGE_HEIGHT_PX = 1400


def build_token(
    text: str,
    left: float,
    top: float,
    width: float = 0.05,
    height: float = 0.02,
    page_number: int = 1,
    confidence: float = 1.0,
    source: TokenSource = TokenSource.NATIVE,
    type_hint: Optional[BlockType] = None,
) -> Token:
    return Token(
        text=text,
        box=NormalizedBox(left=left, top=top, right=left + width, bottom=top + height),
        confidence=confidence,
        source=source,
        page_number=page_number,
        type_hint=type_hint,
    )


def build_row(page_number: int = 1, count: int = 12, top: float = 0.4) -> list[Token]:
    """One row of clean native words that never triggers OCR."""
    return [
        build_token(f"word{i:02d}", 0.1 + i * 0.07, top, page_number=page_number)
        for i in range(count)
    ]


class FakePageSource:
    """In-memory page source with per-page delays and load failures."""

    def __init__(
        self,
        pages: dict[int, list[Token]],
        delays: Optional[dict[int, float]] = None,
        failures: Optional[dict[int, int]] = None,
        open_error: Optional[Exception] = None,
    ):
        self.pages = pages
        self.delays = delays or {}
        self.failures = dict(failures or {})
        self.open_error = open_error
        self.render_calls: Counter = Counter()
        self.completion_order: list[int] = []
        self.opened_path = None
        self.closed = False
        self._lock = threading.Lock()

    def open(self, source_path: str) -> int:
        if self.open_error is not None:
            raise self.open_error
        self.opened_path = source_path
        return len(self.pages)

    def render_page(self, page_number: int) -> PageRender:
        time.sleep(self.delays.get(page_number, 0.0))
        with self._lock:
            self.render_calls[page_number] += 1
            if self.failures.get(page_number, 0) > 0:
                self.failures[page_number] -= 1
                raise PageLoadError(page_number, "corrupt page object")
            self.completion_order.append(page_number)

        return PageRender(
            page_number=page_number,
            pixel_width=PAGE_WIDTH_PX,
            pixel_height=PAGE_HEIGHT_PX,
            native_tokens=self.pages[page_number],
            image=f"image-{page_number}",
        )

    def close(self) -> None:
        self.closed = True


class FakeOCREngine:
    """OCR engine returning a fixed result or raising a fixed error."""

    def __init__(
        self,
        result: Optional[OCRPageResult] = None,
        error: Optional[Exception] = None,
    ):
        self.result = result
        self.error = error
        self.images: list = []
        self._lock = threading.Lock()

    def recognize(self, image) -> OCRPageResult:
        with self._lock:
            self.images.append(image)
        if self.error is not None:
            raise self.error
        return self.result


def build_ocr_result(count: int = 12, confidence: float = 90.0) -> OCRPageResult:
    """A row of recognized words in the pixel space of FakePageSource."""
    words = [
        OCRWord(
            text="recognized",
            confidence=confidence,
            bbox=PixelBox(x=100 + i * 70, y=560, width=50, height=28),
        )
        for i in range(count)
    ]
    return OCRPageResult(
        image_width=PAGE_WIDTH_PX,
        image_height=PAGE_HEIGHT_PX,
        words=words,
        text=" ".join(w.text for w in words),
        confidence=confidence,
    )


@pytest.fixture
def make_token():
    """Factory for tokens in normalized page coordinates."""
    return build_token


@pytest.fixture
def make_row():
    """Factory for a row of clean native tokens."""
    return build_row


@pytest.fixture
def make_source():
    """Factory for in-memory page sources."""
    return FakePageSource


@pytest.fixture
def make_ocr_engine():
    """Factory for fake OCR engines."""
    return FakeOCREngine


@pytest.fixture
def ocr_result():
    """OCR output with one clean row of twelve words."""
    return build_ocr_result()


@pytest.fixture
def missing_document_error():
    return DocumentLoadError("PDF not found: missing.pdf")


@pytest.fixture
def output_dir(tmp_path):
    """Create a temporary output directory."""
    out_dir = tmp_path / "output"
    out_dir.mkdir()
    return out_dir
