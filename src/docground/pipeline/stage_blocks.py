"""Block Clustering Stage - Group consecutive lines into paragraphs."""

import logging
from typing import Optional

from docground.config import LayoutConfig, settings
from docground.models import Block, BlockType, Line
from docground.transform import union_boxes

logger = logging.getLogger(__name__)


class BlockClusterer:
    """Splits an ordered line sequence into blocks at large vertical gaps."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        """Initialize clusterer.

        Args:
            config: Grouping thresholds; defaults to ``settings.layout``.
        """
        self.config = config or settings.layout

    def breaks(self, previous: Line, following: Line) -> bool:
        """Whether the gap between two consecutive lines starts a new block."""
        gap = following.box.top - previous.box.bottom
        return gap >= self.config.block_break_threshold

    def cluster(self, lines: list[Line], page_number: Optional[int] = None) -> list[Block]:
        """Cluster lines into blocks.

        Args:
            lines: Lines of one page in reading order.
            page_number: Page the blocks belong to; taken from the lines if
                omitted.

        Returns:
            Blocks in reading order with ``reading_order`` 0..n-1.
        """
        if not lines:
            return []

        page_number = page_number or lines[0].page_number
        groups: list[list[Line]] = [[lines[0]]]

        for line in lines[1:]:
            if self.breaks(groups[-1][-1], line):
                groups.append([line])
            else:
                groups[-1].append(line)

        blocks = [
            self._emit(group, page_number, index) for index, group in enumerate(groups)
        ]
        logger.debug("Page %d: %d lines -> %d blocks", page_number, len(lines), len(blocks))
        return blocks

    @staticmethod
    def _emit(group: list[Line], page_number: int, index: int) -> Block:
        # A type hint supplied by the channel always wins over the default
        block_type = next(
            (line.type_hint for line in group if line.type_hint is not None),
            BlockType.PARAGRAPH,
        )
        return Block(
            id=f"p{page_number:04d}-b{index:04d}",
            page_number=page_number,
            block_type=block_type,
            lines=group,
            box=union_boxes(line.box for line in group),
            confidence=sum(line.confidence for line in group) / len(group),
            reading_order=index,
        )
