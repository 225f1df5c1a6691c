"""Document-level IR models."""

from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import Field

from .base import BaseIRModel, ExtractionMethod
from .chunk import Chunk
from .page import Page


class DocumentMetrics(BaseIRModel):
    """Aggregate statistics over all pages of a run."""

    total_words: int = 0
    total_lines: int = 0
    total_blocks: int = 0
    overall_coverage: float = Field(default=0.0, ge=0.0, le=100.0)
    extraction_methods: list[ExtractionMethod] = Field(default_factory=list)
    processing_time: float = Field(default=0.0, ge=0.0, description="Seconds")
    failed_pages: list[int] = Field(default_factory=list)
    degraded_pages: list[int] = Field(default_factory=list)


class Document(BaseIRModel):
    """
    Top-level reconstructed document.

    Pages are sorted by page number and gap-free; failed pages are present
    with status FAILED.
    """

    source_path: str = Field(..., description="Original file path")
    page_count: int = Field(..., ge=0)
    pages: list[Page] = Field(default_factory=list)
    metrics: DocumentMetrics = Field(default_factory=DocumentMetrics)

    @property
    def source_filename(self) -> str:
        return Path(self.source_path).name

    @property
    def is_complete(self) -> bool:
        """Every page either completed or permanently failed."""
        return len(self.pages) == self.page_count

    def get_page(self, page_number: int) -> Optional[Page]:
        for page in self.pages:
            if page.page_number == page_number:
                return page
        return None


class CoverageMetrics(BaseIRModel):
    """Run-level coverage and quality summary."""

    overall_coverage: float = Field(default=0.0, ge=0.0, le=100.0)
    method_coverage: dict[str, float] = Field(default_factory=dict)
    quality_score: float = Field(default=0.0, ge=0.0, le=100.0)


class ExtractionMetadata(BaseIRModel):
    """Descriptive metadata attached to an extraction result."""

    processed_at: datetime = Field(default_factory=datetime.utcnow)
    extraction_mode: str = Field(default="enhanced_ocr")
    page_count: int = 0
    word_count: int = 0
    has_text: bool = False
    coverage_metrics: CoverageMetrics = Field(default_factory=CoverageMetrics)
    processing_pipeline: list[str] = Field(default_factory=list)


class ExtractionResult(BaseIRModel):
    """Everything handed to the UI/search layer for one run."""

    document: Document
    chunks: list[Chunk] = Field(default_factory=list)
    text: str = ""
    markdown: str = ""
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)
