"""Utility functions for markerlab."""

from .logging import (
    disable_logging,
    enable_logging,
    get_logger,
    set_log_level,
    setup_logger,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "set_log_level",
    "disable_logging",
    "enable_logging",
]
