"""Logging setup shared by the CLI and importers.

Level comes from the LOG_LEVEL environment variable (default: WARNING).
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from .config import get_log_level

LOG_FORMAT = "%(name)s - %(message)s"


def setup_logging(console: Console | None = None, level: str | None = None) -> None:
    """Configure the root logger to render through rich."""
    log_level = (level or get_log_level()).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.WARNING))

    # Avoid duplicate handlers if called multiple times
    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)

    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="[%X]"))
    root_logger.addHandler(handler)
