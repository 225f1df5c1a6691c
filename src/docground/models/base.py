"""Base models and common types for the layout reconstruction engine."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class TokenSource(str, Enum):
    """Extraction channel a token came from."""

    NATIVE = "native"
    OCR = "ocr"


class BlockType(str, Enum):
    """Types of reconstructed blocks in a page."""

    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST = "list"
    TABLE = "table"
    IMAGE = "image"
    LINE = "line"
    FOOTER = "footer"
    HEADER = "header"
    FORM_FIELD = "form_field"
    SIGNATURE = "signature"
    LOGO = "logo"
    CAPTION = "caption"


class ChunkType(str, Enum):
    """Externally consumed chunk types."""

    TEXT = "text"
    TABLE = "table"
    FIGURE = "figure"
    TITLE = "title"
    HEADER = "header"
    FOOTER = "footer"
    LIST = "list"
    CAPTION = "caption"
    FORM_FIELD = "form_field"


class RegionType(str, Enum):
    """Coarse position-based page regions."""

    HEADER = "header"
    FOOTER = "footer"
    MAIN_CONTENT = "main_content"


class ExtractionMethod(str, Enum):
    """Channel finally used for a page."""

    PDF_NATIVE = "pdf_native"
    OCR_TESSERACT = "ocr_tesseract"
    NONE = "none"


class ProcessingStatus(str, Enum):
    """Status of page processing."""

    PENDING = "pending"
    COMPLETE = "complete"
    DEGRADED = "degraded"
    FAILED = "failed"


class BaseIRModel(BaseModel):
    """Base class for all IR models.

    IR models are frozen: stages hand them downstream by reference and never
    mutate them afterwards.
    """

    class Config:
        frozen = True
        from_attributes = True


class NormalizedBox(BaseIRModel):
    """Box in normalized page coordinates (0-1, top-left origin)."""

    left: float = Field(..., ge=0.0, le=1.0)
    top: float = Field(..., ge=0.0, le=1.0)
    right: float = Field(..., ge=0.0, le=1.0)
    bottom: float = Field(..., ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_edges(self) -> "NormalizedBox":
        if self.right < self.left or self.bottom < self.top:
            raise ValueError("Box edges are inverted; clamp before constructing")
        return self

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2


class PixelBox(BaseIRModel):
    """Box in pixel coordinates of a rendered page image."""

    x: float
    y: float
    width: float = Field(..., ge=0.0)
    height: float = Field(..., ge=0.0)

    @property
    def x2(self) -> float:
        """Right edge X coordinate."""
        return self.x + self.width

    @property
    def y2(self) -> float:
        """Bottom edge Y coordinate."""
        return self.y + self.height

    def rounded(self) -> "PixelBox":
        """Integer pixel view for drawing highlights."""
        return PixelBox(
            x=round(self.x),
            y=round(self.y),
            width=round(self.width),
            height=round(self.height),
        )


class PercentBox(BaseIRModel):
    """Box in percentages of page size, as used by overlay styling."""

    x: float = Field(..., ge=0.0, le=100.0)
    y: float = Field(..., ge=0.0, le=100.0)
    w: float = Field(..., ge=0.0, le=100.0)
    h: float = Field(..., ge=0.0, le=100.0)
