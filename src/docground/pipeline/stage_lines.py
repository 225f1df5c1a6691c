"""Line Clustering Stage - Group tokens into visual lines.

Tokens are ordered into horizontal bands (top-to-bottom, left-to-right
within a band), then swept once: each token either extends the open line
or starts a new one. Lines are emitted in sweep order, which is the page
reading order.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from docground.config import LayoutConfig, settings
from docground.models import Line, NormalizedBox, Token
from docground.transform import union_boxes

logger = logging.getLogger(__name__)

WHITESPACE_RUN = re.compile(r"\s+")


def band_sort(tokens: list[Token], line_threshold: float) -> list[Token]:
    """Order tokens top-to-bottom, left-to-right.

    Tokens whose top edge lies within ``line_threshold`` of a band's first
    token share the band and are ordered by their left edge. Unlike a
    tolerance comparator this is a total order, so the result does not
    depend on input order beyond exact ties.
    """
    by_top = sorted(tokens, key=lambda t: (t.box.top, t.box.left, t.text))
    ordered: list[Token] = []
    band: list[Token] = []

    for token in by_top:
        if band and token.box.top - band[0].box.top >= line_threshold:
            ordered.extend(sorted(band, key=lambda t: (t.box.left, t.box.top)))
            band = []
        band.append(token)

    ordered.extend(sorted(band, key=lambda t: (t.box.left, t.box.top)))
    return ordered


@dataclass
class _OpenLine:
    """Mutable accumulator for the line being built."""

    tokens: list[Token] = field(default_factory=list)
    text: str = ""
    right: float = 0.0

    @property
    def reference(self) -> Token:
        return self.tokens[0]

    @property
    def last(self) -> Token:
        return self.tokens[-1]

    def add(self, token: Token, separator: str = "") -> None:
        self.text = f"{self.text}{separator}{token.text}" if self.tokens else token.text
        self.tokens.append(token)
        self.right = max(self.right, token.box.right)


class LineClusterer:
    """Groups a page's tokens into ordered lines."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        """Initialize clusterer.

        Args:
            config: Grouping thresholds; defaults to ``settings.layout``.
        """
        self.config = config or settings.layout

    def separator(self, gap: float) -> str:
        """Space between merged tokens unless they touch (kerning)."""
        return " " if gap > self.config.kerning_threshold else ""

    def joins(self, line: _OpenLine, token: Token) -> bool:
        """Whether ``token`` continues the open line."""
        cfg = self.config

        if abs(token.box.top - line.reference.box.top) >= cfg.line_threshold:
            return False

        gap = token.box.left - line.right
        if gap < 0 or gap >= cfg.word_threshold:
            return False

        if abs(token.box.height - line.last.box.height) >= cfg.font_height_threshold:
            return False

        merged_length = len(line.text) + len(self.separator(gap)) + len(token.text)
        return merged_length < cfg.max_line_chars

    def cluster(self, tokens: list[Token], page_number: Optional[int] = None) -> list[Line]:
        """Cluster tokens into lines.

        Args:
            tokens: Tokens of a single page in normalized coordinates.
            page_number: Page the lines belong to; taken from the tokens if
                omitted.

        Returns:
            Lines in reading order with ``reading_order`` 0..n-1.
        """
        if not tokens:
            return []

        page_number = page_number or tokens[0].page_number
        lines: list[Line] = []
        current: Optional[_OpenLine] = None

        for token in band_sort(tokens, self.config.line_threshold):
            if current is not None and self.joins(current, token):
                current.add(token, self.separator(token.box.left - current.right))
                continue

            if current is not None:
                lines.append(self._emit(current, page_number, len(lines)))
            current = _OpenLine()
            current.add(token)

        lines.append(self._emit(current, page_number, len(lines)))

        logger.debug("Page %d: %d tokens -> %d lines", page_number, len(tokens), len(lines))
        return lines

    @staticmethod
    def _emit(line: _OpenLine, page_number: int, index: int) -> Line:
        box: NormalizedBox = union_boxes(t.box for t in line.tokens)
        confidence = sum(t.confidence for t in line.tokens) / len(line.tokens)
        return Line(
            id=f"p{page_number:04d}-l{index:04d}",
            page_number=page_number,
            tokens=line.tokens,
            text=WHITESPACE_RUN.sub(" ", line.text).strip(),
            box=box,
            confidence=confidence,
            reading_order=index,
        )
