"""
Logging configuration for the application.

``setup_logging`` configures the root logger once with a console handler
and an optional file handler. Each line carries the correlation id of
the request being served, or "-" outside of a request. Module loggers
are obtained with ``logging.getLogger(__name__)`` and inherit this
configuration.
"""

import logging
from pathlib import Path
from typing import Optional

from backend.app.core.observability import CorrelationIdFilter


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO"), case insensitive
        logfile: Optional path of a file to also log to
    """
    root = logging.getLogger()
    if root.handlers:
        # Already configured (tests, repeated app construction)
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(CorrelationIdFilter())
    root.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(CorrelationIdFilter())
        root.addHandler(file_handler)
