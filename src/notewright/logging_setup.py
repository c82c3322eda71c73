from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def configure_logging(level: str = "INFO", log_dir: Path | None = None) -> Path | None:
    """Route package logs to stderr through rich and, optionally, to a rotating file."""

    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    ]
    handlers[0].setLevel(level.upper())

    log_path: Path | None = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "notewright.log"
        file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    package_logger = logging.getLogger("notewright")
    package_logger.handlers = handlers
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False
    return log_path
