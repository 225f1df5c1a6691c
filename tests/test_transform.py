"""Tests for coordinate transforms."""

import math
import random

import pytest
from pydantic import ValidationError

from docground.models import NormalizedBox, PercentBox, PixelBox
from docground.transform import (
    clamp_box,
    from_percent,
    pixel_edges_to_box,
    sanitize_box,
    to_normalized,
    to_percent,
    to_pixel,
    union_boxes,
)


def random_box(rng: random.Random) -> NormalizedBox:
    left, right = sorted((rng.random(), rng.random()))
    top, bottom = sorted((rng.random(), rng.random()))
    return NormalizedBox(left=left, top=top, right=right, bottom=bottom)


class TestPixelConversion:
    """Tests for normalized <-> pixel conversion."""

    def test_to_pixel_scales_by_page_size(self):
        box = NormalizedBox(left=0.1, top=0.2, right=0.3, bottom=0.5)

        pixel = to_pixel(box, 1000, 2000)

        assert pixel.x == pytest.approx(100)
        assert pixel.y == pytest.approx(400)
        assert pixel.width == pytest.approx(200)
        assert pixel.height == pytest.approx(600)

    def test_round_trip_random_boxes(self):
        """Pixel conversion and back stays within 1e-9 for 1000 boxes."""
        rng = random.Random(20240611)

        for _ in range(1000):
            box = random_box(rng)
            width = rng.uniform(50, 5000)
            height = rng.uniform(50, 5000)

            back = to_normalized(to_pixel(box, width, height), width, height)

            assert back.left == pytest.approx(box.left, abs=1e-9)
            assert back.top == pytest.approx(box.top, abs=1e-9)
            assert back.right == pytest.approx(box.right, abs=1e-9)
            assert back.bottom == pytest.approx(box.bottom, abs=1e-9)

    def test_to_normalized_clamps_overflow(self):
        pixel = PixelBox(x=-5, y=10, width=1100, height=20)

        box = to_normalized(pixel, 1000, 100)

        assert box.left == 0.0
        assert box.right == 1.0

    def test_rounded_pixels(self):
        pixel = PixelBox(x=10.4, y=10.6, width=20.5, height=3.2)

        rounded = pixel.rounded()

        assert (rounded.x, rounded.y, rounded.height) == (10, 11, 3)

    @pytest.mark.parametrize("width,height", [(0, 100), (100, 0), (-1, 100)])
    def test_non_positive_page_size_rejected(self, width, height):
        box = NormalizedBox(left=0.1, top=0.1, right=0.2, bottom=0.2)

        with pytest.raises(ValueError):
            to_pixel(box, width, height)


class TestPercentConversion:
    """Tests for normalized <-> percent conversion."""

    def test_to_percent(self):
        box = NormalizedBox(left=0.1, top=0.25, right=0.52, bottom=0.3)

        percent = to_percent(box)

        assert percent.x == pytest.approx(10)
        assert percent.y == pytest.approx(25)
        assert percent.w == pytest.approx(42)
        assert percent.h == pytest.approx(5)

    def test_round_trip(self):
        rng = random.Random(7)

        for _ in range(200):
            box = random_box(rng)
            back = from_percent(to_percent(box))

            assert back.left == pytest.approx(box.left, abs=1e-9)
            assert back.bottom == pytest.approx(box.bottom, abs=1e-9)

    def test_from_percent_clamps_overflowing_width(self):
        box = from_percent(PercentBox(x=90, y=0, w=20, h=10))

        assert box.right == 1.0


class TestBoxValidation:
    """Tests for clamping and ingestion filtering."""

    def test_inverted_box_rejected_by_model(self):
        with pytest.raises(ValidationError):
            NormalizedBox(left=0.5, top=0.1, right=0.4, bottom=0.2)

    def test_clamp_box_small_drift(self):
        box = clamp_box(-0.0004, 0.2, 1.0003, 0.4)

        assert box.left == 0.0
        assert box.right == 1.0

    def test_clamp_box_inverted_edges(self):
        box = clamp_box(0.5, 0.5, 0.4, 0.45)

        assert box.right == box.left == 0.5
        assert box.bottom == box.top == 0.5

    def test_sanitize_rejects_non_finite(self):
        assert sanitize_box(math.nan, 0.1, 0.2, 0.3) is None
        assert sanitize_box(0.1, 0.1, math.inf, 0.3) is None

    def test_sanitize_rejects_empty_area(self):
        assert sanitize_box(0.2, 0.1, 0.2, 0.3) is None
        assert sanitize_box(0.1, 0.3, 0.2, 0.1) is None

    def test_sanitize_rejects_off_page(self):
        assert sanitize_box(0.9, 0.1, 1.2, 0.2) is None

    def test_sanitize_clamps_drift(self):
        box = sanitize_box(-0.0005, 0.1, 0.5, 1.0005)

        assert box is not None
        assert box.left == 0.0
        assert box.bottom == 1.0

    def test_pixel_edges_to_box(self):
        box = pixel_edges_to_box(72, 72, 144, 90, 612, 792)

        assert box.left == pytest.approx(72 / 612)
        assert box.bottom == pytest.approx(90 / 792)


class TestUnionBoxes:
    """Tests for bounding box union."""

    def test_union(self):
        boxes = [
            NormalizedBox(left=0.1, top=0.2, right=0.3, bottom=0.25),
            NormalizedBox(left=0.05, top=0.22, right=0.2, bottom=0.4),
        ]

        box = union_boxes(boxes)

        assert (box.left, box.top, box.right, box.bottom) == (0.05, 0.2, 0.3, 0.4)

    def test_union_of_nothing(self):
        with pytest.raises(ValueError):
            union_boxes([])
