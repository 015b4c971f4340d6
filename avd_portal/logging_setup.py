from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the avd_portal logger tree. Safe to call more than once."""
    root_logger = logging.getLogger("avd_portal")
    root_logger.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates on re-init
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)
    return root_logger
