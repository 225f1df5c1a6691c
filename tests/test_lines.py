"""Tests for line clustering."""

import random

import pytest

from docground.config import LayoutConfig
from docground.models import PercentBox, Token, TokenSource
from docground.pipeline.stage_lines import LineClusterer, band_sort
from docground.transform import from_percent, to_percent


@pytest.fixture
def clusterer():
    return LineClusterer(LayoutConfig())


def percent_token(text: str, x: float, y: float, w: float, h: float) -> Token:
    return Token(
        text=text,
        box=from_percent(PercentBox(x=x, y=y, w=w, h=h)),
        source=TokenSource.OCR,
        confidence=0.9,
        page_number=1,
    )


class TestBandSort:
    """Tests for reading-order sorting."""

    def test_small_vertical_jitter_shares_a_band(self, make_token):
        right = make_token("right", 0.5, 0.100)
        left = make_token("left", 0.1, 0.105)

        assert band_sort([right, left], 0.012) == [left, right]

    def test_separate_bands_top_to_bottom(self, make_token):
        lower = make_token("lower", 0.1, 0.3)
        upper = make_token("upper", 0.6, 0.1)

        assert band_sort([lower, upper], 0.012) == [upper, lower]


class TestLineClusterer:
    """Tests for grouping tokens into lines."""

    def test_adjacent_words_merge(self):
        clusterer = LineClusterer(LayoutConfig(word_threshold=0.05))
        tokens = [
            percent_token("Hello", 10, 10, 20, 5),
            percent_token("World", 32, 10, 20, 5),
        ]

        lines = clusterer.cluster(tokens)

        assert len(lines) == 1
        assert lines[0].text == "Hello World"
        box = to_percent(lines[0].box)
        assert box.x == pytest.approx(10)
        assert box.w == pytest.approx(42)
        assert box.y == pytest.approx(10)
        assert box.h == pytest.approx(5)

    def test_kerned_fragments_join_without_space(self, clusterer, make_token):
        tokens = [
            make_token("Wor", 0.10, 0.2, width=0.03),
            make_token("ld", 0.135, 0.2, width=0.02),
        ]

        lines = clusterer.cluster(tokens)

        assert [line.text for line in lines] == ["World"]

    def test_wide_gap_starts_new_line(self, clusterer, make_token):
        tokens = [
            make_token("Name", 0.1, 0.2),
            make_token("Amount", 0.6, 0.2),
        ]

        lines = clusterer.cluster(tokens)

        assert [line.text for line in lines] == ["Name", "Amount"]

    def test_font_height_change_starts_new_line(self, clusterer, make_token):
        tokens = [
            make_token("Title", 0.1, 0.2, height=0.04),
            make_token("body", 0.17, 0.2, height=0.02),
        ]

        lines = clusterer.cluster(tokens)

        assert len(lines) == 2

    def test_vertical_separation(self, clusterer, make_token):
        tokens = [
            make_token("second", 0.1, 0.3),
            make_token("first", 0.1, 0.1),
        ]

        lines = clusterer.cluster(tokens)

        assert [line.text for line in lines] == ["first", "second"]
        assert [line.reading_order for line in lines] == [0, 1]

    def test_line_length_cap(self, make_token):
        clusterer = LineClusterer(LayoutConfig(max_line_chars=12))
        tokens = [
            make_token("hello", 0.10, 0.2),
            make_token("world", 0.17, 0.2),
            make_token("again", 0.24, 0.2),
        ]

        lines = clusterer.cluster(tokens)

        assert [line.text for line in lines] == ["hello world", "again"]
        assert all(len(line.text) < 12 for line in lines)

    def test_whitespace_normalized(self, clusterer, make_token):
        lines = clusterer.cluster([make_token("  spaced   out ", 0.1, 0.2)])

        assert lines[0].text == "spaced out"

    def test_ids_confidence_and_box(self, clusterer, make_token):
        tokens = [
            make_token("alpha", 0.10, 0.2, page_number=3, confidence=0.8),
            make_token("beta", 0.17, 0.2, page_number=3, confidence=0.6),
        ]

        lines = clusterer.cluster(tokens, page_number=3)

        assert lines[0].id == "p0003-l0000"
        assert lines[0].page_number == 3
        assert lines[0].confidence == pytest.approx(0.7)
        assert lines[0].box.left == pytest.approx(0.10)
        assert lines[0].box.right == pytest.approx(0.22)

    def test_input_order_does_not_matter(self, clusterer, make_row):
        tokens = make_row(top=0.2) + make_row(top=0.5)
        shuffled = list(tokens)
        random.Random(11).shuffle(shuffled)

        expected = [line.text for line in clusterer.cluster(tokens)]
        actual = [line.text for line in clusterer.cluster(shuffled)]

        assert actual == expected
        assert len(expected) == 2

    def test_clustering_is_idempotent(self, clusterer, make_row):
        tokens = make_row()

        first = clusterer.cluster(tokens)
        second = clusterer.cluster(tokens)

        assert first == second

    def test_empty_input(self, clusterer):
        assert clusterer.cluster([]) == []

    def test_native_grade_config_is_looser(self):
        base = LayoutConfig(max_line_chars=40, block_break_threshold=0.05)
        native = base.native_grade()

        assert native.line_threshold > base.line_threshold
        assert native.word_threshold > base.word_threshold
        assert native.max_line_chars == 40
        assert native.block_break_threshold == 0.05
