"""Semantic Region Stage - Tag header, footer and main content by position.

This is a coarse position heuristic, not a layout model: the topmost block
is a header candidate, the bottommost a footer candidate, and blocks fully
inside the middle band form the main content.
"""

from typing import Optional

from docground.config import LayoutConfig, settings
from docground.models import Block, RegionType, SemanticRegion
from docground.transform import union_boxes


class SemanticRegionClassifier:
    """Assigns blocks of a page to header/footer/main-content regions."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or settings.layout

    def classify(self, blocks: list[Block], page_number: int) -> list[SemanticRegion]:
        """Build the regions for one page.

        Args:
            blocks: Blocks of the page in any order.
            page_number: 1-indexed page number, used for region ids.

        Returns:
            Zero to three regions: header, footer, main_content.
        """
        if not blocks:
            return []

        cfg = self.config
        ordered = sorted(blocks, key=lambda b: (b.box.top, b.reading_order))
        regions = []

        top_block = ordered[0]
        if top_block.box.top < cfg.header_band:
            regions.append(
                SemanticRegion(
                    id=f"p{page_number:04d}-header",
                    region_type=RegionType.HEADER,
                    box=top_block.box,
                    confidence=cfg.header_confidence,
                    block_ids=[top_block.id],
                )
            )

        bottom_block = ordered[-1]
        if bottom_block.box.bottom > cfg.footer_band:
            regions.append(
                SemanticRegion(
                    id=f"p{page_number:04d}-footer",
                    region_type=RegionType.FOOTER,
                    box=bottom_block.box,
                    confidence=cfg.footer_confidence,
                    block_ids=[bottom_block.id],
                )
            )

        main_blocks = [
            b
            for b in ordered
            if b.box.top > cfg.header_band and b.box.bottom < cfg.footer_band
        ]
        if main_blocks:
            regions.append(
                SemanticRegion(
                    id=f"p{page_number:04d}-main",
                    region_type=RegionType.MAIN_CONTENT,
                    box=union_boxes(b.box for b in main_blocks),
                    confidence=cfg.main_content_confidence,
                    block_ids=[b.id for b in main_blocks],
                )
            )

        return regions
