"""Token, line and block IR models."""

from typing import Optional

from pydantic import Field

from .base import (
    BaseIRModel,
    BlockType,
    NormalizedBox,
    PixelBox,
    TokenSource,
)


class Token(BaseIRModel):
    """Word-level positioned text fragment from one extraction channel."""

    text: str
    box: NormalizedBox
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    source: TokenSource
    page_number: int = Field(..., ge=1)
    type_hint: Optional[BlockType] = Field(
        None, description="Block type supplied by the channel, e.g. a detected table"
    )


class OCRWord(BaseIRModel):
    """Recognized text unit as returned by the OCR collaborator."""

    text: str
    confidence: float = Field(..., ge=0.0, le=100.0, description="Engine score 0-100")
    bbox: PixelBox


class OCRPageResult(BaseIRModel):
    """Raw OCR output for one rendered page, in pixel space.

    Engines may fill any of the three granularities; consumers prefer words,
    then lines, then the whole-page text.
    """

    image_width: int = Field(..., gt=0)
    image_height: int = Field(..., gt=0)
    words: list[OCRWord] = Field(default_factory=list)
    lines: list[OCRWord] = Field(default_factory=list)
    text: str = ""
    confidence: Optional[float] = Field(
        None, ge=0.0, le=100.0, description="Page-level mean score if available"
    )
    engine: str = "tesseract"


class Line(BaseIRModel):
    """Tokens sharing a visual row, in left-to-right order."""

    id: str
    page_number: int = Field(..., ge=1)
    tokens: list[Token] = Field(..., min_length=1)
    text: str
    box: NormalizedBox
    confidence: float = Field(..., ge=0.0, le=1.0)
    reading_order: int = Field(..., ge=0)

    @property
    def type_hint(self) -> Optional[BlockType]:
        """First explicit block type carried by any member token."""
        for token in self.tokens:
            if token.type_hint is not None:
                return token.type_hint
        return None


class Block(BaseIRModel):
    """
    Paragraph-like group of consecutive lines.

    Core unit of the IR. Chunks, regions and markdown are all projected from
    blocks.
    """

    id: str
    page_number: int = Field(..., ge=1)
    block_type: BlockType = Field(default=BlockType.PARAGRAPH)
    lines: list[Line] = Field(..., min_length=1)
    box: NormalizedBox
    confidence: float = Field(..., ge=0.0, le=1.0)
    reading_order: int = Field(..., ge=0)

    @property
    def text(self) -> str:
        """Line texts joined by newlines."""
        return "\n".join(line.text for line in self.lines)

    @property
    def word_count(self) -> int:
        return sum(len(line.tokens) for line in self.lines)
