"""Coordinate transforms between normalized, pixel and percentage boxes.

Normalized boxes (0-1, top-left origin) are the stored form of all geometry.
Pixel and percentage boxes are views for rendering and highlighting. Every
function here returns renderable geometry: drifted or inverted values are
clamped instead of rejected.
"""

import math
from typing import Iterable, Optional

from docground.models import NormalizedBox, PercentBox, PixelBox

# Tolerance used when deciding whether raw input lies outside the page
INGEST_TOLERANCE = 1e-3


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return min(max(value, low), high)


def _check_dimensions(page_width: float, page_height: float) -> None:
    if page_width <= 0 or page_height <= 0:
        raise ValueError(
            f"Page dimensions must be positive, got {page_width}x{page_height}"
        )


def clamp_box(left: float, top: float, right: float, bottom: float) -> NormalizedBox:
    """Build a valid normalized box, clamping drift and inverted edges."""
    left = _clamp(left)
    top = _clamp(top)
    right = max(_clamp(right), left)
    bottom = max(_clamp(bottom), top)
    return NormalizedBox(left=left, top=top, right=right, bottom=bottom)


def sanitize_box(
    left: float,
    top: float,
    right: float,
    bottom: float,
    tolerance: float = INGEST_TOLERANCE,
) -> Optional[NormalizedBox]:
    """Validate raw normalized edges at token ingestion.

    Returns None for non-finite values, boxes with no area, or boxes that lie
    outside the page by more than ``tolerance``. Small drift is clamped.
    """
    edges = (left, top, right, bottom)
    if not all(math.isfinite(v) for v in edges):
        return None
    if right <= left or bottom <= top:
        return None
    if any(v < -tolerance or v > 1.0 + tolerance for v in edges):
        return None
    return clamp_box(left, top, right, bottom)


def to_pixel(box: NormalizedBox, page_width: float, page_height: float) -> PixelBox:
    """Convert a normalized box to pixel coordinates (unrounded)."""
    _check_dimensions(page_width, page_height)
    return PixelBox(
        x=box.left * page_width,
        y=box.top * page_height,
        width=box.width * page_width,
        height=box.height * page_height,
    )


def to_normalized(
    pixel_box: PixelBox, page_width: float, page_height: float
) -> NormalizedBox:
    """Convert a pixel box to normalized coordinates."""
    _check_dimensions(page_width, page_height)
    return clamp_box(
        pixel_box.x / page_width,
        pixel_box.y / page_height,
        pixel_box.x2 / page_width,
        pixel_box.y2 / page_height,
    )


def to_percent(box: NormalizedBox) -> PercentBox:
    """Convert a normalized box to percentages of the page size."""
    return PercentBox(
        x=_clamp(box.left * 100.0, 0.0, 100.0),
        y=_clamp(box.top * 100.0, 0.0, 100.0),
        w=_clamp(box.width * 100.0, 0.0, 100.0),
        h=_clamp(box.height * 100.0, 0.0, 100.0),
    )


def from_percent(percent_box: PercentBox) -> NormalizedBox:
    """Convert a percentage box back to normalized coordinates."""
    return clamp_box(
        percent_box.x / 100.0,
        percent_box.y / 100.0,
        (percent_box.x + percent_box.w) / 100.0,
        (percent_box.y + percent_box.h) / 100.0,
    )


def pixel_edges_to_box(
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    page_width: float,
    page_height: float,
) -> Optional[NormalizedBox]:
    """Normalize raw pixel edges from a collaborator, filtering anomalies."""
    _check_dimensions(page_width, page_height)
    return sanitize_box(
        x0 / page_width,
        y0 / page_height,
        x1 / page_width,
        y1 / page_height,
    )


def union_boxes(boxes: Iterable[NormalizedBox]) -> NormalizedBox:
    """Smallest box enclosing all given boxes."""
    boxes = list(boxes)
    if not boxes:
        raise ValueError("Cannot take the union of zero boxes")
    return NormalizedBox(
        left=min(b.left for b in boxes),
        top=min(b.top for b in boxes),
        right=max(b.right for b in boxes),
        bottom=max(b.bottom for b in boxes),
    )
