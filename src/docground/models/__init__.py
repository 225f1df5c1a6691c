"""IR (Intermediate Representation) models for layout reconstruction.

This module defines the Pydantic models that flow between pipeline stages.
All models are frozen once built and support JSON serialization.

Key Design Principles:
1. Normalized geometry is the single source of truth; pixel and percent
   boxes are views produced by ``docground.transform``
2. Producer to consumer handoffs are immutable
3. Page numbers are 1-indexed everywhere

Model Hierarchy:
- Document → Pages → Blocks → Lines → Tokens
- Page → SemanticRegions (reference blocks by id)
- ExtractionResult → Chunks (projected from blocks)
"""

from .base import (
    BaseIRModel,
    BlockType,
    ChunkType,
    ExtractionMethod,
    NormalizedBox,
    PercentBox,
    PixelBox,
    ProcessingStatus,
    RegionType,
    TokenSource,
)
from .block import (
    Block,
    Line,
    OCRPageResult,
    OCRWord,
    Token,
)
from .chunk import (
    Chunk,
    Grounding,
    LegacyChunk,
)
from .document import (
    CoverageMetrics,
    Document,
    DocumentMetrics,
    ExtractionMetadata,
    ExtractionResult,
)
from .page import (
    Coverage,
    Page,
    PageRender,
    SemanticRegion,
)

__all__ = [
    # Base types
    "BaseIRModel",
    "BlockType",
    "ChunkType",
    "ExtractionMethod",
    "NormalizedBox",
    "PercentBox",
    "PixelBox",
    "ProcessingStatus",
    "RegionType",
    "TokenSource",
    # Tokens, lines, blocks
    "Token",
    "OCRWord",
    "OCRPageResult",
    "Line",
    "Block",
    # Page
    "Coverage",
    "Page",
    "PageRender",
    "SemanticRegion",
    # Chunk
    "Chunk",
    "Grounding",
    "LegacyChunk",
    # Document
    "CoverageMetrics",
    "Document",
    "DocumentMetrics",
    "ExtractionMetadata",
    "ExtractionResult",
]
