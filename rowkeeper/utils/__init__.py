"""
Utility helpers for rowkeeper (logging).
"""

from rowkeeper.utils.logging import ConsoleFormatter, JsonFormatter, configure_logging, get_logger

__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "get_logger"]
