"""
Logging Setup
=============
Root logger configuration for hosts embedding the extraction backend.
Importing the backend never configures logging; call configure_logging().
"""

import logging
from typing import Optional

from config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "google_genai")


def configure_logging(level: Optional[str] = None) -> int:
    """
    Configure root logging with the standard format.

    Args:
        level: Level name (DEBUG, INFO, ...); defaults to settings.LOG_LEVEL

    Returns:
        The numeric level applied
    """
    name = (level or settings.LOG_LEVEL).upper()
    numeric_level = getattr(logging, name, logging.INFO)

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return numeric_level
