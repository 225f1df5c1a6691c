"""Logging setup for the CLI and library consumers."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("PIL", "fitz", "pytesseract")


def setup_logging(level: str = "INFO", console: Optional[Console] = None) -> None:
    """Configure the root logger with a rich console handler.

    Existing root handlers are removed so repeated calls do not duplicate
    output.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
