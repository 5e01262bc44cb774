"""Shared utilities."""

from .logging import configure_logging, get_logger, set_verbose

__all__ = ["configure_logging", "get_logger", "set_verbose"]
