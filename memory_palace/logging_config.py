"""
Centralized logging configuration for Memory Palace.
"""

import logging
import sys
from typing import Optional

from memory_palace.config import get_log_level


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger with a stdout handler.

    Args:
        level: Log level name, uses the configured log_level if None
    """
    level = (level or get_log_level()).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format=LOG_FORMAT,
                        handlers=[logging.StreamHandler(sys.stdout)])
