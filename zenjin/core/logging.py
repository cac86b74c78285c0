"""
Loguru sink configuration.

Library modules only call ``logger``; sinks are configured once by the host
(the CLI does it in its entry point).
"""
from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Replace the default loguru sink with a single stderr sink."""
    logger.remove()
    if json:
        logger.add(sys.stderr, level=level.upper(), serialize=True)
    else:
        logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
