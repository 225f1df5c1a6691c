"""Pipeline stages for layout reconstruction.

Per-page stages (no shared state between pages):
1. stage_render - PDF page to image plus native text tokens
2. stage_arbiter - Choose native or OCR tokens (stage_ocr on demand)
3. stage_lines - Tokens to lines
4. stage_blocks - Lines to blocks
5. stage_regions - Header/footer/main-content regions

Document-level:
6. stage_project - Chunks, text, markdown, legacy chunks, search
7. orchestrator - Concurrent page execution and document assembly

Each stage is independent and can be run separately or
orchestrated through PageOrchestrator.
"""

from .orchestrator import PageOrchestrator, ProgressTracker, RunAccumulator
from .stage_arbiter import ArbiterDecision, ChannelArbiter
from .stage_blocks import BlockClusterer
from .stage_lines import LineClusterer
from .stage_ocr import TesseractOCR, ocr_result_to_tokens
from .stage_project import (
    ChunkProjector,
    build_extraction_result,
    from_legacy_chunk,
    render_markdown,
    render_text,
    search_chunks,
    to_legacy_chunk,
    to_legacy_chunks,
)
from .stage_regions import SemanticRegionClassifier
from .stage_render import PDFRenderer

__all__ = [
    # Render
    "PDFRenderer",
    # OCR
    "TesseractOCR",
    "ocr_result_to_tokens",
    # Arbitration
    "ArbiterDecision",
    "ChannelArbiter",
    # Clustering
    "LineClusterer",
    "BlockClusterer",
    "SemanticRegionClassifier",
    # Projection
    "ChunkProjector",
    "build_extraction_result",
    "from_legacy_chunk",
    "render_markdown",
    "render_text",
    "search_chunks",
    "to_legacy_chunk",
    "to_legacy_chunks",
    # Orchestration
    "PageOrchestrator",
    "ProgressTracker",
    "RunAccumulator",
]
