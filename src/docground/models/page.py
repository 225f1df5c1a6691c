"""Page-level IR models."""

from typing import Any, Optional

from pydantic import Field

from .base import (
    BaseIRModel,
    ExtractionMethod,
    NormalizedBox,
    ProcessingStatus,
    RegionType,
)
from .block import Block, Line, Token


class PageRender(BaseIRModel):
    """What the render collaborator returns for one page."""

    page_number: int = Field(..., ge=1, description="1-indexed page number")
    pixel_width: int = Field(..., gt=0)
    pixel_height: int = Field(..., gt=0)
    native_tokens: list[Token] = Field(default_factory=list)
    image: Optional[Any] = Field(
        None, exclude=True, description="Raster image handed to the OCR engine"
    )


class Coverage(BaseIRModel):
    """How many tokens each channel produced and how many were kept."""

    native_token_count: int = Field(default=0, ge=0)
    ocr_token_count: int = Field(default=0, ge=0)
    reconciled_token_count: int = Field(default=0, ge=0)
    coverage_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    method: ExtractionMethod = Field(default=ExtractionMethod.NONE)
    degraded: bool = Field(
        default=False,
        description="OCR was needed but failed or was unavailable; native-only result",
    )


class SemanticRegion(BaseIRModel):
    """Coarse header/footer/main-content area referencing blocks by id."""

    id: str
    region_type: RegionType
    box: NormalizedBox
    confidence: float = Field(..., ge=0.0, le=1.0)
    block_ids: list[str] = Field(default_factory=list)


class Page(BaseIRModel):
    """
    Single reconstructed page.

    Failed pages keep their slot in the document with zero coverage and an
    error message instead of being omitted.
    """

    page_number: int = Field(..., ge=1, description="1-indexed page number")
    width_px: int = Field(default=0, ge=0)
    height_px: int = Field(default=0, ge=0)

    tokens: list[Token] = Field(default_factory=list)
    lines: list[Line] = Field(default_factory=list)
    blocks: list[Block] = Field(default_factory=list)
    regions: list[SemanticRegion] = Field(default_factory=list)
    coverage: Coverage = Field(default_factory=Coverage)

    status: ProcessingStatus = Field(default=ProcessingStatus.COMPLETE)
    error_message: Optional[str] = None

    @property
    def is_failed(self) -> bool:
        return self.status == ProcessingStatus.FAILED

    @property
    def is_degraded(self) -> bool:
        return self.status == ProcessingStatus.DEGRADED

    def region_for_block(self, block_id: str) -> Optional[SemanticRegion]:
        """First region that references the given block."""
        for region in self.regions:
            if block_id in region.block_ids:
                return region
        return None

    @classmethod
    def failed(cls, page_number: int, error: str) -> "Page":
        """Placeholder for a page that could not be loaded."""
        return cls(
            page_number=page_number,
            status=ProcessingStatus.FAILED,
            error_message=error,
        )
