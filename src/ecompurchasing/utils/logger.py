"""Centralized logging configuration."""

import logging
import sys
from datetime import datetime

from .config import Config


class MicrosecondFormatter(logging.Formatter):
    """Formatter printing asctime with six-digit microseconds."""

    def formatTime(self, record, datefmt=None):
        ct = datetime.fromtimestamp(record.created)
        s = ct.strftime(datefmt or "%Y-%m-%d %H:%M:%S")
        return f"{s}.{int(record.created % 1 * 1_000_000):06d}"


def setup_logger(name: str = "ecompurchasing") -> logging.Logger:
    """Set up and return a configured logger."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = MicrosecondFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d:%(funcName)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))

    return logger


logger = setup_logger()
