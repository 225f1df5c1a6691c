"""OCR Stage - Recognize text on a rendered page image.

Uses Tesseract OCR as the OCR channel. Produces word- and line-level boxes
with confidence scores in pixel space, and converts them into normalized
tokens preferring words over lines over whole-page text.
"""

import logging
from typing import Any, Optional

import cv2
import numpy as np
import pytesseract
from PIL import Image

from docground.config import settings
from docground.errors import OCREngineError
from docground.models import (
    OCRPageResult,
    OCRWord,
    PixelBox,
    Token,
    TokenSource,
)
from docground.transform import clamp_box, pixel_edges_to_box

logger = logging.getLogger(__name__)

# Tesseract data levels
LINE_LEVEL = 4
WORD_LEVEL = 5

# Whole-page fallback token spans the page minus a 5% margin
FULL_PAGE_MARGIN = 0.05
UNKNOWN_PAGE_CONFIDENCE = 0.5


def preprocess_for_ocr(image: np.ndarray) -> np.ndarray:
    """Apply preprocessing to improve OCR quality.

    Args:
        image: Grayscale image.

    Returns:
        Preprocessed image.
    """
    # Binarization using Otsu's method
    _, binary = cv2.threshold(
        image,
        0,
        255,
        cv2.THRESH_BINARY + cv2.THRESH_OTSU,
    )

    # Noise removal
    return cv2.fastNlMeansDenoising(binary, h=10)


class TesseractOCR:
    """OCR engine using Tesseract.

    Extracts word boxes, derived line boxes and page text in one call.
    """

    def __init__(
        self,
        language: Optional[str] = None,
        psm: Optional[int] = None,
        oem: Optional[int] = None,
        timeout: Optional[int] = None,
        preprocess: Optional[bool] = None,
        config: Optional[str] = None,
    ):
        """Initialize Tesseract OCR.

        Args:
            language: Tesseract language code(s), e.g., 'eng', 'eng+spa'.
            psm: Page segmentation mode (3 = fully automatic page layout).
            oem: OCR Engine mode (3 = default, based on what's available).
            timeout: Seconds before the tesseract process is killed (0 = none).
            preprocess: Binarize and denoise before recognition.
            config: Additional Tesseract config string.
        """
        self.language = language or settings.ocr_language
        self.psm = psm if psm is not None else settings.ocr_psm
        self.oem = oem if oem is not None else settings.ocr_oem
        self.timeout = timeout if timeout is not None else settings.ocr_timeout
        self.preprocess = (
            preprocess if preprocess is not None else settings.ocr_preprocess
        )
        self.config = config or ""

    def _build_config(self) -> str:
        """Build Tesseract configuration string."""
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}",
        ]
        if self.config:
            config_parts.append(self.config)
        return " ".join(config_parts)

    def _prepare_image(self, image: Any) -> Image.Image:
        if isinstance(image, np.ndarray):
            if len(image.shape) == 3:
                image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            pil_image = Image.fromarray(image)
        else:
            pil_image = image

        if self.preprocess:
            gray = np.asarray(pil_image.convert("L"))
            pil_image = Image.fromarray(preprocess_for_ocr(gray))
        return pil_image

    def recognize(self, image: Any) -> OCRPageResult:
        """Recognize a full page.

        Args:
            image: PIL image or numpy array (grayscale or BGR).

        Returns:
            OCRPageResult with words, lines and text in pixel space.

        Raises:
            OCREngineError: If tesseract is missing, errors or times out.
        """
        pil_image = self._prepare_image(image)
        width, height = pil_image.size

        try:
            data = pytesseract.image_to_data(
                pil_image,
                lang=self.language,
                config=self._build_config(),
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout,
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise OCREngineError(f"Tesseract failed: {e}") from e

        return parse_tesseract_data(data, width, height)


def parse_tesseract_data(data: dict, image_width: int, image_height: int) -> OCRPageResult:
    """Build an OCRPageResult from ``image_to_data`` dictionary output."""
    words = []
    line_members: dict[tuple, list[OCRWord]] = {}

    for i in range(len(data["text"])):
        if data["level"][i] != WORD_LEVEL:
            continue

        text = str(data["text"][i]).strip()
        conf = float(data["conf"][i])
        if not text or conf < 0:
            continue

        word = OCRWord(
            text=text,
            confidence=min(conf, 100.0),
            bbox=PixelBox(
                x=data["left"][i],
                y=data["top"][i],
                width=data["width"][i],
                height=data["height"][i],
            ),
        )
        words.append(word)

        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        line_members.setdefault(key, []).append(word)

    lines = [_merge_line(members) for members in line_members.values()]
    confidences = [w.confidence for w in words]

    return OCRPageResult(
        image_width=image_width,
        image_height=image_height,
        words=words,
        lines=lines,
        text="\n".join(line.text for line in lines),
        confidence=sum(confidences) / len(confidences) if confidences else None,
        engine="tesseract",
    )


def _merge_line(members: list[OCRWord]) -> OCRWord:
    x0 = min(w.bbox.x for w in members)
    y0 = min(w.bbox.y for w in members)
    x1 = max(w.bbox.x2 for w in members)
    y1 = max(w.bbox.y2 for w in members)
    return OCRWord(
        text=" ".join(w.text for w in members),
        confidence=sum(w.confidence for w in members) / len(members),
        bbox=PixelBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0),
    )


def _units_to_tokens(
    units: list[OCRWord],
    result: OCRPageResult,
    page_number: int,
    min_confidence: float,
) -> list[Token]:
    tokens = []
    for unit in units:
        text = unit.text.strip()
        confidence = unit.confidence / 100.0
        if not text or confidence <= min_confidence:
            continue

        box = pixel_edges_to_box(
            unit.bbox.x,
            unit.bbox.y,
            unit.bbox.x2,
            unit.bbox.y2,
            result.image_width,
            result.image_height,
        )
        if box is None:
            continue

        tokens.append(
            Token(
                text=text,
                box=box,
                confidence=confidence,
                source=TokenSource.OCR,
                page_number=page_number,
            )
        )
    return tokens


def ocr_result_to_tokens(
    result: OCRPageResult,
    page_number: int,
    min_confidence: float = 0.30,
) -> list[Token]:
    """Convert OCR output to normalized tokens.

    Word-level units are used when any survive filtering; otherwise
    line-level units; otherwise a single token holding the whole page text.

    Args:
        result: Raw OCR output in pixel space.
        page_number: 1-indexed page number.
        min_confidence: Units at or below this confidence (0-1) are dropped.

    Returns:
        Normalized OCR tokens.
    """
    tokens = _units_to_tokens(result.words, result, page_number, min_confidence)
    if tokens:
        return tokens

    tokens = _units_to_tokens(result.lines, result, page_number, min_confidence)
    if tokens:
        logger.debug("Page %d: using line-level OCR output", page_number)
        return tokens

    text = result.text.strip()
    if not text:
        return []

    logger.debug("Page %d: using whole-page OCR text", page_number)
    confidence = (
        result.confidence / 100.0
        if result.confidence is not None
        else UNKNOWN_PAGE_CONFIDENCE
    )
    return [
        Token(
            text=text,
            box=clamp_box(
                FULL_PAGE_MARGIN,
                FULL_PAGE_MARGIN,
                1.0 - FULL_PAGE_MARGIN,
                1.0 - FULL_PAGE_MARGIN,
            ),
            confidence=confidence,
            source=TokenSource.OCR,
            page_number=page_number,
        )
    ]
