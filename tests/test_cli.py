"""Tests for the command line interface and settings."""

import json
import logging
from unittest.mock import patch

import pytest
from rich.logging import RichHandler
from typer.testing import CliRunner

from docground.cli import app
from docground.config import Settings
from docground.log_utils import setup_logging

runner = CliRunner()


@pytest.fixture
def quiet_logging():
    with patch("docground.cli.setup_logging") as mock_setup:
        yield mock_setup


class TestProcessCommand:
    """Tests for the process and search commands."""

    def test_process_writes_outputs(self, make_source, make_row, output_dir, quiet_logging):
        source = make_source({1: make_row(), 2: make_row(page_number=2)})

        with patch("docground.cli.PDFRenderer", return_value=source):
            result = runner.invoke(
                app, ["process", "report.pdf", "--output-dir", str(output_dir), "--no-ocr"]
            )

        assert result.exit_code == 0, result.output
        assert source.opened_path == "report.pdf"
        payload = json.loads((output_dir / "report.json").read_text())
        assert [c["id"] for c in payload["chunks"]] == ["p0001-b0000", "p0002-b0000"]
        assert (output_dir / "report.md").read_text().startswith("word00")
        assert "word11" in (output_dir / "report.txt").read_text()
        quiet_logging.assert_called_once()

    def test_unopenable_document_exits_nonzero(
        self, make_source, missing_document_error, output_dir, quiet_logging
    ):
        source = make_source({}, open_error=missing_document_error)

        with patch("docground.cli.PDFRenderer", return_value=source):
            result = runner.invoke(
                app, ["process", "missing.pdf", "--output-dir", str(output_dir), "--no-ocr"]
            )

        assert result.exit_code == 1
        assert not (output_dir / "missing.json").exists()

    def test_search_processed_result(self, make_source, make_row, output_dir, quiet_logging):
        source = make_source({1: make_row()})
        with patch("docground.cli.PDFRenderer", return_value=source):
            runner.invoke(app, ["process", "report.pdf", "--output-dir", str(output_dir), "--no-ocr"])

        result = runner.invoke(app, ["search", str(output_dir / "report.json"), "WORD05"])

        assert result.exit_code == 0, result.output
        assert "1 matches on 1 pages" in result.output
        assert "p0001-b0000" in result.output

    def test_search_missing_result(self, tmp_path):
        result = runner.invoke(app, ["search", str(tmp_path / "none.json"), "query"])

        assert result.exit_code == 1


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        settings = Settings()

        assert settings.max_workers == 8
        assert settings.arbiter.ocr_min_confidence == 0.30
        assert settings.layout.block_break_threshold == 0.03

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_WORKERS", "2")
        monkeypatch.setenv("LAYOUT__LINE_THRESHOLD", "0.02")
        monkeypatch.setenv("ARBITER__OCR_COUNT_RATIO", "2.0")

        settings = Settings()

        assert settings.max_workers == 2
        assert settings.layout.line_threshold == 0.02
        assert settings.arbiter.ocr_count_ratio == 2.0


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_single_rich_handler(self, monkeypatch):
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)

        setup_logging("debug")
        setup_logging("info")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)
        assert root.level == logging.INFO
        assert logging.getLogger("PIL").level == logging.WARNING
