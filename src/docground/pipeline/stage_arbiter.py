"""Channel Arbitration Stage - Choose between native and OCR tokens.

The native text layer is exact but may be missing (scans) or garbled
(broken font encodings, per-glyph fragments). OCR is always available but
noisy. The arbiter inspects the native tokens, requests OCR only when they
look unreliable, and keeps whichever channel looks more complete.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from docground.config import ArbiterConfig, settings
from docground.errors import OCREngineError
from docground.models import Coverage, ExtractionMethod, Token

logger = logging.getLogger(__name__)

# Characters that are neither word characters, whitespace nor common punctuation
SPECIAL_CHAR_PATTERN = re.compile(r"[^\w\s.,!?;:()\-'\"/&%$#@+=*]")


def avg_text_length(tokens: list[Token]) -> float:
    """Mean token text length, 0 for an empty list."""
    if not tokens:
        return 0.0
    return sum(len(t.text) for t in tokens) / len(tokens)


def special_char_ratio(tokens: list[Token]) -> float:
    """Share of characters in the token texts matching SPECIAL_CHAR_PATTERN."""
    total = sum(len(t.text) for t in tokens)
    if total == 0:
        return 0.0
    special = sum(len(SPECIAL_CHAR_PATTERN.findall(t.text)) for t in tokens)
    return special / total


@dataclass
class ArbiterDecision:
    """Outcome of channel arbitration for one page."""

    tokens: list[Token]
    coverage: Coverage
    used_ocr: bool = False
    ocr_requested: bool = False
    ocr_failed: bool = False
    reason: Optional[str] = None


class ChannelArbiter:
    """Selects the token set for a page from the native and OCR channels."""

    def __init__(self, config: Optional[ArbiterConfig] = None):
        """Initialize arbiter.

        Args:
            config: Thresholds; defaults to ``settings.arbiter``.
        """
        self.config = config or settings.arbiter

    def ocr_trigger(self, native: list[Token]) -> Optional[str]:
        """Return why OCR is needed for these native tokens, or None."""
        cfg = self.config

        if len(native) < cfg.min_native_tokens:
            return f"only {len(native)} native tokens"

        avg_length = avg_text_length(native)
        if avg_length < cfg.min_avg_text_length:
            return f"fragmented native text (avg length {avg_length:.2f})"

        if len(native) > cfg.fragmented_token_count and not any(
            len(t.text) > cfg.long_token_length for t in native
        ):
            return "many native tokens without any long token"

        ratio = special_char_ratio(native)
        if ratio > cfg.max_special_char_ratio:
            return f"unusual characters in native text (ratio {ratio:.2f})"

        return None

    def accept_ocr_tokens(self, tokens: list[Token]) -> list[Token]:
        """Drop low-confidence and blank OCR tokens."""
        return [
            t
            for t in tokens
            if t.confidence > self.config.ocr_min_confidence and t.text.strip()
        ]

    def prefers_ocr(self, ocr: list[Token], native: list[Token]) -> bool:
        """Whether the OCR token set looks more complete than the native one."""
        if not ocr:
            return False
        return (
            avg_text_length(ocr) > avg_text_length(native) * self.config.ocr_avg_length_ratio
            or len(ocr) > len(native) * self.config.ocr_count_ratio
        )

    def decide(
        self,
        native: list[Token],
        request_ocr: Optional[Callable[[], list[Token]]] = None,
    ) -> ArbiterDecision:
        """Pick the tokens for a page.

        Args:
            native: Native tokens, possibly empty.
            request_ocr: Zero-argument callable returning OCR tokens. May
                raise OCREngineError. None disables the OCR channel.

        Returns:
            ArbiterDecision with the selected tokens and coverage record.
        """
        reason = self.ocr_trigger(native)
        if reason is None:
            return ArbiterDecision(
                tokens=list(native),
                coverage=self._coverage(native, [], native, degraded=False),
            )

        if request_ocr is None:
            logger.debug("OCR needed but unavailable, keeping native: %s", reason)
            return ArbiterDecision(
                tokens=list(native),
                coverage=self._coverage(native, [], native, degraded=True),
                reason=reason,
            )

        logger.debug("Requesting OCR: %s", reason)
        try:
            ocr = self.accept_ocr_tokens(request_ocr())
        except OCREngineError as e:
            logger.warning("OCR failed, keeping %d native tokens: %s", len(native), e)
            return ArbiterDecision(
                tokens=list(native),
                coverage=self._coverage(native, [], native, degraded=True),
                ocr_requested=True,
                ocr_failed=True,
                reason=reason,
            )

        if self.prefers_ocr(ocr, native):
            logger.debug("OCR preferred: %d tokens vs %d native", len(ocr), len(native))
            return ArbiterDecision(
                tokens=ocr,
                coverage=self._coverage(native, ocr, ocr, degraded=False),
                used_ocr=True,
                ocr_requested=True,
                reason=reason,
            )

        return ArbiterDecision(
            tokens=list(native),
            coverage=self._coverage(native, ocr, native, degraded=False),
            ocr_requested=True,
            reason=reason,
        )

    @staticmethod
    def _coverage(
        native: list[Token],
        ocr: list[Token],
        selected: list[Token],
        degraded: bool,
    ) -> Coverage:
        best = max(len(native), len(ocr), len(selected))
        percent = 100.0 * len(selected) / best if best else 0.0

        if not selected:
            method = ExtractionMethod.NONE
        elif selected is ocr:
            method = ExtractionMethod.OCR_TESSERACT
        else:
            method = ExtractionMethod.PDF_NATIVE

        return Coverage(
            native_token_count=len(native),
            ocr_token_count=len(ocr),
            reconciled_token_count=len(selected),
            coverage_percent=percent,
            method=method,
            degraded=degraded,
        )
