"""Logging facade exports.

Where: platform/logging/__init__.py
What: Re-export the application logger, setup helper, and custom Rich handler.
Why: Provide a single canonical import path for every module.
"""

from __future__ import annotations

from .config import DEFAULT_LOG_FILE, logger, setup_logger
from .handlers import SyncRichHandler

__all__ = [
    "DEFAULT_LOG_FILE",
    "SyncRichHandler",
    "logger",
    "setup_logger",
]
