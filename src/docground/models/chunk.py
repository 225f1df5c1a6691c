"""Chunk IR models for UI highlighting and search."""

from typing import Optional

from pydantic import Field

from .base import BaseIRModel, ChunkType, NormalizedBox, PixelBox


class Grounding(BaseIRModel):
    """Location of a chunk's source region on a page."""

    page: int = Field(..., ge=1, description="1-indexed page number")
    box: NormalizedBox


class Chunk(BaseIRModel):
    """
    Flat, externally consumed text unit.

    Chunks are created from blocks by the projector:
    - One chunk per block with non-blank text
    - Ids are unique across a run
    - Never mutated after projection
    """

    id: str
    text: str
    chunk_type: ChunkType = Field(default=ChunkType.TEXT)
    groundings: list[Grounding] = Field(..., min_length=1)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    semantic_role: Optional[str] = Field(
        None, description="Free-form tag such as the enclosing region type"
    )

    @property
    def page_number(self) -> int:
        """Page of the first grounding."""
        return self.groundings[0].page


class LegacyChunk(BaseIRModel):
    """Pixel-geometry chunk view for consumers predating groundings."""

    id: str
    text: str
    page_number: int = Field(..., ge=1)
    geometry: PixelBox
