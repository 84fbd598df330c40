"""Logging configuration for indextree hosts."""

from __future__ import annotations

import sys
from typing import Optional

from loguru import logger

from indextree.config import load_settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure loguru with a single stderr sink.

    Without an explicit level, `app.log_level` from the settings is used.
    """
    if level is None:
        level = load_settings().app.log_level
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{level.icon} {name}: {message}")
