"""
Structured logging configuration for the whole service.
Call setup_logging() once at startup (main.py).
"""

import logging
import sys

from zapbot.config import LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure pipe-delimited logging to stdout for the 'zapbot' namespace."""
    root = logging.getLogger("zapbot")
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    root.setLevel(level)
    root.addHandler(handler)
