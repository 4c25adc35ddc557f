"""
Centralised logging bootstrap so that the editor, the document worker and the
API share one stream of log records.
"""

from __future__ import annotations

import logging
import os
import sys


def init_logger(level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger("tocedit")
    if logger.handlers:
        return logger
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


logger = init_logger(os.getenv("TE_LOG_LEVEL", "INFO").upper())
