"""Configuration management for the layout reconstruction engine."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ArbiterConfig(BaseModel):
    """Thresholds deciding between the native and OCR channels.

    The quality multipliers (``ocr_avg_length_ratio``, ``ocr_count_ratio``)
    are uncalibrated defaults and should be tuned against real documents.
    """

    # OCR trigger heuristics on the native channel
    min_native_tokens: int = Field(default=10, ge=0)
    min_avg_text_length: float = Field(default=3.0, ge=0.0)
    fragmented_token_count: int = Field(
        default=50, description="Above this count, require at least one long token"
    )
    long_token_length: int = Field(default=20, ge=1)
    max_special_char_ratio: float = Field(default=0.10, ge=0.0, le=1.0)

    # OCR acceptance
    ocr_min_confidence: float = Field(default=0.30, ge=0.0, le=1.0)

    # OCR preference over native
    ocr_avg_length_ratio: float = Field(default=1.2, gt=0.0)
    ocr_count_ratio: float = Field(default=1.5, gt=0.0)


class LayoutConfig(BaseModel):
    """Geometric grouping thresholds, all in normalized page units (0-1)."""

    # Line clustering
    line_threshold: float = Field(default=0.012, gt=0.0)
    word_threshold: float = Field(default=0.03, gt=0.0)
    font_height_threshold: float = Field(default=0.005, gt=0.0)
    kerning_threshold: float = Field(
        default=0.01, ge=0.0, description="Gaps at or below this merge without a space"
    )
    max_line_chars: int = Field(default=500, ge=1)

    # Block clustering
    block_break_threshold: float = Field(default=0.03, gt=0.0)

    # Semantic regions
    header_band: float = Field(default=0.20, ge=0.0, le=1.0)
    footer_band: float = Field(default=0.80, ge=0.0, le=1.0)
    header_confidence: float = Field(default=0.70, ge=0.0, le=1.0)
    footer_confidence: float = Field(default=0.70, ge=0.0, le=1.0)
    main_content_confidence: float = Field(default=0.80, ge=0.0, le=1.0)

    def native_grade(self) -> "LayoutConfig":
        """Looser grouping suited to exact vector-text positions.

        Only the line and word thresholds change; everything else is kept
        from this config.
        """
        return self.model_copy(update={"line_threshold": 0.02, "word_threshold": 0.05})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Rendering
    render_dpi: int = 200
    max_workers: int = 8
    page_retries: int = 1

    # OCR
    enable_ocr: bool = True
    ocr_language: str = "eng"
    ocr_psm: int = 3
    ocr_oem: int = 3
    ocr_timeout: int = 0
    ocr_preprocess: bool = False

    # Layout reconstruction
    arbiter: ArbiterConfig = Field(default_factory=ArbiterConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"


settings = Settings()
