"""Page Orchestration - Run every page through the engine and assemble a Document.

Each page is an independent unit of work on a thread pool:

    render → channel arbitration (OCR at most once) → lines → blocks → regions

Completed pages are collected in a per-run accumulator keyed by page number
and sorted before assembly, so completion order never leaks into the
result. Channel and page failures degrade single pages; only a document
that cannot be opened aborts the run.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Optional

from docground.config import settings
from docground.errors import OCREngineError, PageLoadError, RunCancelled
from docground.models import (
    Document,
    DocumentMetrics,
    ExtractionMethod,
    ExtractionResult,
    Page,
    PageRender,
    ProcessingStatus,
    Token,
)
from docground.pipeline.protocols import OCREngine, PageSource
from docground.pipeline.stage_arbiter import ArbiterDecision, ChannelArbiter
from docground.pipeline.stage_blocks import BlockClusterer
from docground.pipeline.stage_lines import LineClusterer
from docground.pipeline.stage_ocr import ocr_result_to_tokens
from docground.pipeline.stage_project import ChunkProjector, build_extraction_result
from docground.pipeline.stage_regions import SemanticRegionClassifier

logger = logging.getLogger(__name__)

# Progress milestones (percent)
PROGRESS_OPENED = 10.0
PROGRESS_PAGES_SPAN = 80.0
PROGRESS_DONE = 100.0

# How often the collector wakes up to notice a cancellation (seconds)
CANCEL_POLL_INTERVAL = 0.1


class ProgressTracker:
    """Forwards a non-decreasing percentage in [0, 100] to a callback."""

    def __init__(self, callback: Optional[Callable[[float], None]] = None):
        self.callback = callback
        self.last = 0.0
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Start a new run from 0%."""
        with self._lock:
            self.last = 0.0

    def emit(self, percent: float) -> None:
        percent = min(max(percent, 0.0), 100.0)
        with self._lock:
            if percent < self.last:
                return
            self.last = percent
        if self.callback is not None:
            self.callback(percent)


class RunAccumulator:
    """Per-run collection of finished pages and OCR outcomes.

    Pages are keyed by page number; the run is complete when every page has
    been committed, either reconstructed or failed.
    """

    def __init__(self, total_pages: int):
        self.total_pages = total_pages
        self._pages: dict[int, Page] = {}
        self._ocr_outcomes: dict[int, object] = {}
        self._lock = threading.Lock()

    @property
    def completed_count(self) -> int:
        with self._lock:
            return len(self._pages)

    @property
    def is_complete(self) -> bool:
        return self.completed_count == self.total_pages

    def commit(self, page: Page) -> int:
        """Store a finished page and return the number of completed pages."""
        with self._lock:
            if page.page_number in self._pages:
                raise ValueError(f"Page {page.page_number} committed twice")
            self._pages[page.page_number] = page
            return len(self._pages)

    def pages(self) -> list[Page]:
        """Committed pages sorted by page number."""
        with self._lock:
            return [self._pages[n] for n in sorted(self._pages)]

    def ocr_once(self, page_number: int, request: Callable[[], list[Token]]) -> list[Token]:
        """Run ``request`` the first time a page asks for OCR in this run.

        Later calls for the same page replay the first outcome, including a
        failure, instead of invoking the OCR engine again.
        """
        with self._lock:
            cached = self._ocr_outcomes.get(page_number)

        if cached is None:
            try:
                cached = list(request())
            except OCREngineError as e:
                cached = e
            with self._lock:
                self._ocr_outcomes[page_number] = cached

        if isinstance(cached, OCREngineError):
            raise cached
        return list(cached)

    @property
    def ocr_request_count(self) -> int:
        with self._lock:
            return len(self._ocr_outcomes)


class PageOrchestrator:
    """Drives the per-page pipeline concurrently and assembles the result."""

    def __init__(
        self,
        page_source: PageSource,
        ocr_engine: Optional[OCREngine] = None,
        arbiter: Optional[ChannelArbiter] = None,
        line_clusterer: Optional[LineClusterer] = None,
        native_line_clusterer: Optional[LineClusterer] = None,
        block_clusterer: Optional[BlockClusterer] = None,
        region_classifier: Optional[SemanticRegionClassifier] = None,
        projector: Optional[ChunkProjector] = None,
        max_workers: Optional[int] = None,
        page_retries: Optional[int] = None,
        progress_callback: Optional[Callable[[float], None]] = None,
    ):
        """Initialize orchestrator.

        Args:
            page_source: Render collaborator (e.g. PDFRenderer).
            ocr_engine: OCR collaborator; None disables the OCR channel.
            arbiter: Channel arbiter (default thresholds from settings).
            line_clusterer: Line clustering stage for OCR tokens.
            native_line_clusterer: Line clustering stage for native tokens
                (default: native-grade thresholds of ``line_clusterer``).
            block_clusterer: Block clustering stage.
            region_classifier: Semantic region stage.
            projector: Chunk projection stage.
            max_workers: Pages processed in parallel (default from settings).
            page_retries: Extra attempts for a page that fails to load.
            progress_callback: Receives a non-decreasing percentage.
        """
        self.page_source = page_source
        self.ocr_engine = ocr_engine
        self.arbiter = arbiter or ChannelArbiter()
        self.line_clusterer = line_clusterer or LineClusterer()
        self.native_line_clusterer = native_line_clusterer or LineClusterer(
            self.line_clusterer.config.native_grade()
        )
        self.block_clusterer = block_clusterer or BlockClusterer()
        self.region_classifier = region_classifier or SemanticRegionClassifier()
        self.projector = projector or ChunkProjector()
        self.max_workers = max_workers or settings.max_workers
        self.page_retries = (
            page_retries if page_retries is not None else settings.page_retries
        )
        self.progress = ProgressTracker(progress_callback)
        self._cancel_event = threading.Event()

    # Cancellation

    def cancel(self) -> None:
        """Abandon the current run; committed pages are kept intact."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise RunCancelled()

    # Per-page work

    def reconstruct_page(
        self,
        page_number: int,
        decision: ArbiterDecision,
        width_px: int = 0,
        height_px: int = 0,
    ) -> Page:
        """Cluster the selected tokens of one page into the page IR."""
        clusterer = self.line_clusterer if decision.used_ocr else self.native_line_clusterer
        lines = clusterer.cluster(decision.tokens, page_number)
        blocks = self.block_clusterer.cluster(lines, page_number)
        regions = self.region_classifier.classify(blocks, page_number)

        return Page(
            page_number=page_number,
            width_px=width_px,
            height_px=height_px,
            tokens=decision.tokens,
            lines=lines,
            blocks=blocks,
            regions=regions,
            coverage=decision.coverage,
            status=(
                ProcessingStatus.DEGRADED
                if decision.coverage.degraded
                else ProcessingStatus.COMPLETE
            ),
        )

    def _ocr_request(
        self, render: PageRender, accumulator: RunAccumulator
    ) -> Optional[Callable[[], list[Token]]]:
        if self.ocr_engine is None or render.image is None:
            return None

        def fetch() -> list[Token]:
            try:
                result = self.ocr_engine.recognize(render.image)
            except OCREngineError:
                raise
            except Exception as e:
                raise OCREngineError(f"OCR engine crashed: {e}") from e
            return ocr_result_to_tokens(
                result,
                render.page_number,
                min_confidence=self.arbiter.config.ocr_min_confidence,
            )

        def request() -> list[Token]:
            self._check_cancelled()
            return accumulator.ocr_once(render.page_number, fetch)

        return request

    def process_page(self, page_number: int, accumulator: RunAccumulator) -> Page:
        """Run one page end to end.

        Load failures are retried ``page_retries`` times and then reported
        as a failed page. Raises RunCancelled if the run is cancelled.
        """
        last_error: Optional[PageLoadError] = None

        for attempt in range(self.page_retries + 1):
            self._check_cancelled()
            try:
                render = self.page_source.render_page(page_number)
            except PageLoadError as e:
                last_error = e
                logger.warning("Page %d failed to load (attempt %d): %s", page_number, attempt + 1, e)
                continue

            decision = self.arbiter.decide(
                render.native_tokens, self._ocr_request(render, accumulator)
            )
            self._check_cancelled()
            return self.reconstruct_page(
                page_number,
                decision,
                width_px=render.pixel_width,
                height_px=render.pixel_height,
            )

        return Page.failed(page_number, str(last_error))

    # Document assembly

    def build_document(
        self,
        source_path: str,
        page_count: int,
        pages: list[Page],
        processing_time: float = 0.0,
    ) -> Document:
        """Assemble pages (any order) into a Document sorted by page number."""
        pages = sorted(pages, key=lambda p: p.page_number)

        methods = sorted(
            {
                p.coverage.method
                for p in pages
                if p.coverage.method != ExtractionMethod.NONE
            },
            key=lambda m: m.value,
        )
        metrics = DocumentMetrics(
            total_words=sum(len(p.tokens) for p in pages),
            total_lines=sum(len(p.lines) for p in pages),
            total_blocks=sum(len(p.blocks) for p in pages),
            overall_coverage=(
                sum(p.coverage.coverage_percent for p in pages) / len(pages)
                if pages
                else 0.0
            ),
            extraction_methods=methods,
            processing_time=processing_time,
            failed_pages=[p.page_number for p in pages if p.is_failed],
            degraded_pages=[p.page_number for p in pages if p.is_degraded],
        )

        return Document(
            source_path=str(source_path),
            page_count=page_count,
            pages=pages,
            metrics=metrics,
        )

    def run(self, source_path: str) -> ExtractionResult:
        """Process a whole document.

        Args:
            source_path: Path handed to the page source.

        Returns:
            ExtractionResult with the document IR, chunks, text and markdown.

        Raises:
            DocumentLoadError: If the source cannot be opened.
            RunCancelled: If cancel() was called; carries committed pages.
        """
        self._cancel_event.clear()
        self.progress.reset()
        started = time.monotonic()

        page_count = self.page_source.open(source_path)
        self.progress.emit(PROGRESS_OPENED)
        accumulator = RunAccumulator(page_count)

        try:
            self._collect(accumulator)
        finally:
            self.page_source.close()

        if self.cancelled:
            logger.info("Run cancelled after %d/%d pages", accumulator.completed_count, page_count)
            raise RunCancelled(accumulator.pages())

        document = self.build_document(
            source_path,
            page_count,
            accumulator.pages(),
            processing_time=time.monotonic() - started,
        )
        result = build_extraction_result(document, self.projector)

        logger.info(
            "Processed %d pages: %d blocks, %d chunks, %d failed, %d degraded",
            page_count,
            document.metrics.total_blocks,
            len(result.chunks),
            len(document.metrics.failed_pages),
            len(document.metrics.degraded_pages),
        )
        self.progress.emit(PROGRESS_DONE)
        return result

    def _collect(self, accumulator: RunAccumulator) -> None:
        total = accumulator.total_pages
        if total == 0:
            return

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        futures: dict[Future, int] = {
            executor.submit(self.process_page, page_number, accumulator): page_number
            for page_number in range(1, total + 1)
        }
        pending = set(futures)

        try:
            while pending and not accumulator.is_complete and not self.cancelled:
                done, pending = wait(
                    pending, timeout=CANCEL_POLL_INTERVAL, return_when=FIRST_COMPLETED
                )
                for future in sorted(done, key=futures.get):
                    if self.cancelled:
                        break
                    try:
                        page = future.result()
                    except RunCancelled:
                        continue
                    except Exception as e:
                        page_number = futures[future]
                        logger.exception("Page %d failed unexpectedly", page_number)
                        page = Page.failed(page_number, f"Page {page_number}: {e}")
                    completed = accumulator.commit(page)
                    self.progress.emit(
                        PROGRESS_OPENED + PROGRESS_PAGES_SPAN * completed / total
                    )
        finally:
            # In-flight OCR of a cancelled run is abandoned, not awaited
            executor.shutdown(wait=not self.cancelled, cancel_futures=True)
