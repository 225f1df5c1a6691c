"""Chunk Projection Stage - Flatten the page IR into consumer formats.

The Chunk is the single canonical output unit. Plain text, markdown and
legacy pixel-geometry chunks are all derived from chunks or pages by pure
functions, so no second chunk representation is ever maintained.
"""

import logging
from typing import Iterable, Optional

from docground.models import (
    Block,
    BlockType,
    Chunk,
    ChunkType,
    CoverageMetrics,
    Document,
    ExtractionMetadata,
    ExtractionResult,
    Grounding,
    LegacyChunk,
    Page,
)
from docground.transform import to_normalized, to_pixel

logger = logging.getLogger(__name__)


CHUNK_TYPE_MAP = {
    BlockType.PARAGRAPH: ChunkType.TEXT,
    BlockType.HEADING: ChunkType.TITLE,
    BlockType.LIST: ChunkType.LIST,
    BlockType.TABLE: ChunkType.TABLE,
    BlockType.IMAGE: ChunkType.FIGURE,
    BlockType.LINE: ChunkType.TEXT,
    BlockType.FOOTER: ChunkType.FOOTER,
    BlockType.HEADER: ChunkType.HEADER,
    BlockType.FORM_FIELD: ChunkType.FORM_FIELD,
    BlockType.SIGNATURE: ChunkType.FIGURE,
    BlockType.LOGO: ChunkType.FIGURE,
    BlockType.CAPTION: ChunkType.CAPTION,
}

PROCESSING_PIPELINE = [
    "pdf_render",
    "channel_arbitration",
    "line_clustering",
    "block_clustering",
    "semantic_regions",
    "chunk_projection",
]


def chunk_type_for(block_type: BlockType) -> ChunkType:
    """Map a block type to its chunk type, defaulting to text."""
    return CHUNK_TYPE_MAP.get(block_type, ChunkType.TEXT)


class ChunkProjector:
    """Projects reconstructed pages into flat chunks."""

    def project_block(self, block: Block, page: Page) -> Chunk:
        region = page.region_for_block(block.id)
        return Chunk(
            id=block.id,
            text=block.text.strip(),
            chunk_type=chunk_type_for(block.block_type),
            groundings=[Grounding(page=page.page_number, box=block.box)],
            confidence=block.confidence,
            semantic_role=region.region_type.value if region else None,
        )

    def project_page(self, page: Page) -> list[Chunk]:
        """One chunk per non-blank block, in reading order."""
        return [
            self.project_block(block, page)
            for block in sorted(page.blocks, key=lambda b: b.reading_order)
            if block.text.strip()
        ]

    def project(self, pages: Iterable[Page]) -> list[Chunk]:
        """Chunks for all pages, in page then reading order.

        Block ids embed the page number, so chunk ids stay unique across a
        run regardless of which order pages finished in.
        """
        chunks = []
        for page in sorted(pages, key=lambda p: p.page_number):
            chunks.extend(self.project_page(page))
        return chunks


def render_text(pages: Iterable[Page]) -> str:
    """Whole-document plain text: blocks separated by blank lines."""
    parts = []
    for page in sorted(pages, key=lambda p: p.page_number):
        for block in sorted(page.blocks, key=lambda b: b.reading_order):
            text = block.text.strip()
            if text:
                parts.append(text)
    return "\n\n".join(parts)


def render_markdown(chunks: Iterable[Chunk]) -> str:
    """Markdown rendering of chunks in the given order."""
    parts = []
    for chunk in chunks:
        if chunk.chunk_type == ChunkType.TITLE:
            parts.append(f"# {chunk.text}")
        elif chunk.chunk_type == ChunkType.HEADER:
            parts.append(f"## {chunk.text}")
        elif chunk.chunk_type == ChunkType.LIST:
            parts.append("\n".join(f"- {item}" for item in chunk.text.split("\n")))
        else:
            parts.append(chunk.text)
    return "\n\n".join(parts)


def to_legacy_chunk(chunk: Chunk, page_width: float, page_height: float) -> LegacyChunk:
    """Pixel-geometry view of a chunk's first grounding."""
    grounding = chunk.groundings[0]
    return LegacyChunk(
        id=chunk.id,
        text=chunk.text,
        page_number=grounding.page,
        geometry=to_pixel(grounding.box, page_width, page_height),
    )


def from_legacy_chunk(
    legacy: LegacyChunk,
    page_width: float,
    page_height: float,
    confidence: float = 0.8,
) -> Chunk:
    """Lift a legacy pixel chunk into a grounded text chunk."""
    return Chunk(
        id=legacy.id,
        text=legacy.text,
        chunk_type=ChunkType.TEXT,
        groundings=[
            Grounding(
                page=legacy.page_number,
                box=to_normalized(legacy.geometry, page_width, page_height),
            )
        ],
        confidence=confidence,
    )


def to_legacy_chunks(chunks: Iterable[Chunk], document: Document) -> list[LegacyChunk]:
    """Legacy view of all chunks, using each page's rendered pixel size."""
    sizes = {p.page_number: (p.width_px, p.height_px) for p in document.pages}
    legacy = []
    for chunk in chunks:
        width, height = sizes.get(chunk.page_number, (0, 0))
        if width <= 0 or height <= 0:
            logger.warning("No pixel size for page %d; skipping %s", chunk.page_number, chunk.id)
            continue
        legacy.append(to_legacy_chunk(chunk, width, height))
    return legacy


def search_chunks(chunks: Iterable[Chunk], query: str) -> dict[int, list[Chunk]]:
    """Case-insensitive substring search, grouped by page number.

    An empty query matches every chunk.
    """
    needle = query.strip().lower()
    groups: dict[int, list[Chunk]] = {}
    for chunk in chunks:
        if needle and needle not in chunk.text.lower():
            continue
        groups.setdefault(chunk.page_number, []).append(chunk)
    return dict(sorted(groups.items()))


def build_extraction_result(
    document: Document,
    projector: Optional[ChunkProjector] = None,
) -> ExtractionResult:
    """Assemble chunks, text, markdown and metadata for a document."""
    projector = projector or ChunkProjector()
    chunks = projector.project(document.pages)

    method_coverage: dict[str, float] = {}
    live_pages = [p for p in document.pages if not p.is_failed]
    for page in live_pages:
        method = page.coverage.method.value
        method_coverage[method] = method_coverage.get(method, 0.0) + page.coverage.coverage_percent
    if live_pages:
        method_coverage = {
            method: total / len(live_pages) for method, total in method_coverage.items()
        }

    quality_score = (
        100.0 * sum(c.confidence for c in chunks) / len(chunks) if chunks else 0.0
    )

    metadata = ExtractionMetadata(
        page_count=document.page_count,
        word_count=document.metrics.total_words,
        has_text=bool(chunks),
        coverage_metrics=CoverageMetrics(
            overall_coverage=document.metrics.overall_coverage,
            method_coverage=method_coverage,
            quality_score=quality_score,
        ),
        processing_pipeline=list(PROCESSING_PIPELINE),
    )

    return ExtractionResult(
        document=document,
        chunks=chunks,
        text=render_text(document.pages),
        markdown=render_markdown(chunks),
        metadata=metadata,
    )
