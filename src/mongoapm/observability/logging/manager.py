"""Handler setup for the ``mongoapm`` logger tree.

Listener diagnostics are written to stdout by default, one line per
command event, or to a file when one is configured.
"""

import logging
import sys
from typing import Optional

from mongoapm.observability.config import LoggingConfig
from mongoapm.observability.logging.structured import StructuredFormatter, TextFormatter

ROOT_LOGGER_NAME = "mongoapm"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


class LoggerManager:
    """Attaches one handler to the ``mongoapm`` logger.

    While configured, records do not propagate to the root logger.

    Example:
        >>> manager = LoggerManager(LoggingConfig(level="DEBUG"))
        >>> manager.configure()
        >>> get_logger("monitoring").info("ready")
        >>> manager.shutdown()
    """

    def __init__(self, config: LoggingConfig) -> None:
        self.config = config
        self._handler: Optional[logging.Handler] = None

    def configure(self) -> None:
        """Install the handler. Calling this again has no effect."""
        if self._handler is not None:
            return

        handler = self._build_handler()
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(_level(self.config.level))
        root.addHandler(handler)
        root.propagate = False
        self._handler = handler

    def _build_handler(self) -> logging.Handler:
        if self.config.output_file:
            handler: logging.Handler = logging.FileHandler(self.config.output_file)
        else:
            handler = logging.StreamHandler(sys.stdout)

        if self.config.format == "json":
            formatter: logging.Formatter = StructuredFormatter(
                include_trace_context=self.config.trace_correlation
            )
        else:
            formatter = TextFormatter(include_trace_context=self.config.trace_correlation)
        handler.setFormatter(formatter)
        return handler

    def shutdown(self) -> None:
        """Remove and close the handler, restoring propagation."""
        handler, self._handler = self._handler, None
        if handler is None:
            return

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.removeHandler(handler)
        handler.close()
        root.propagate = True

    def get_logger(self, name: str) -> logging.Logger:
        return get_logger(name)

    def set_level(self, level: str) -> None:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(_level(level))

    @property
    def is_configured(self) -> bool:
        return self._handler is not None


def get_logger(name: str) -> logging.Logger:
    """Get a logger, prefixing ``name`` with ``mongoapm.`` when needed.

    Example:
        >>> get_logger("cli").name
        'mongoapm.cli'
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
