"""Logging module for diagnostic output.

This module provides text and JSON formatters with trace context correlation.
"""

from mongoapm.observability.logging.manager import LoggerManager, get_logger
from mongoapm.observability.logging.structured import StructuredFormatter, TextFormatter

__all__ = ["LoggerManager", "StructuredFormatter", "TextFormatter", "get_logger"]
