# -*- coding: utf-8 -*-
"""Logging Service Implementation.

Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

This module wires the stdlib logging tree for the invoker: console text
output is always on, JSON file output (python-json-logger, rotating) is
enabled through settings. Levels follow RFC 5424 names.
"""

# Standard
import logging
from logging.handlers import RotatingFileHandler
import os
from typing import Dict, Optional

# Third-Party
from pythonjsonlogger import jsonlogger

# First-Party
from grpcinvoker.config import settings
from grpcinvoker.models import LogLevel

# Create a text formatter
text_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Create a JSON formatter
json_formatter = jsonlogger.JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s")

# RFC 5424 levels without a stdlib counterpart map to the nearest one
_STDLIB_LEVELS: Dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.NOTICE: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ALERT: logging.CRITICAL,
    LogLevel.EMERGENCY: logging.CRITICAL,
}

# Global handlers will be created lazily
_file_handler: Optional[RotatingFileHandler] = None
_text_handler: Optional[logging.StreamHandler] = None


def _get_file_handler() -> RotatingFileHandler:
    """Get or create the file handler.

    Returns:
        RotatingFileHandler: The file handler for JSON logging.

    Raises:
        ValueError: If file logging is disabled or no log file specified.
    """
    global _file_handler  # pylint: disable=global-statement
    if _file_handler is None:
        if not settings.log_to_file or not settings.log_file:
            raise ValueError("File logging is disabled or no log file specified")

        if settings.log_folder:
            os.makedirs(settings.log_folder, exist_ok=True)
            log_path = os.path.join(settings.log_folder, settings.log_file)
        else:
            log_path = settings.log_file

        _file_handler = RotatingFileHandler(log_path, maxBytes=1024 * 1024, backupCount=5)
        _file_handler.setFormatter(json_formatter)
    return _file_handler


def _get_text_handler() -> logging.StreamHandler:
    """Get or create the console handler.

    Returns:
        logging.StreamHandler: The stream handler for console logging.
    """
    global _text_handler  # pylint: disable=global-statement
    if _text_handler is None:
        _text_handler = logging.StreamHandler()
        _text_handler.setFormatter(json_formatter if settings.log_format == "json" else text_formatter)
    return _text_handler


def to_stdlib_level(level: LogLevel) -> int:
    """Translate an RFC 5424 level into a stdlib logging level.

    Args:
        level: RFC 5424 level

    Returns:
        int: Matching ``logging`` level

    Examples:
        >>> import logging
        >>> to_stdlib_level(LogLevel.NOTICE) == logging.INFO
        True
        >>> to_stdlib_level(LogLevel.EMERGENCY) == logging.CRITICAL
        True
    """
    return _STDLIB_LEVELS[LogLevel(level)]


class LoggingService:
    """Invoker logging service.

    Hands out named loggers that share the console handler and, when
    enabled, the rotating JSON file handler.
    """

    def __init__(self, level: Optional[LogLevel] = None):
        """Initialize logging service.

        Args:
            level: Initial level, defaulting to ``settings.log_level``
        """
        self._level = level or LogLevel(settings.log_level.lower())
        self._loggers: Dict[str, logging.Logger] = {}

    @property
    def level(self) -> LogLevel:
        """Current minimum level."""
        return self._level

    async def initialize(self) -> None:
        """Attach handlers to the root logger.

        Examples:
            >>> import asyncio
            >>> service = LoggingService()
            >>> asyncio.run(service.initialize())
        """
        root = logging.getLogger()
        self._loggers[""] = root
        if _get_text_handler() not in root.handlers:
            root.addHandler(_get_text_handler())

        if settings.log_to_file and settings.log_file:
            try:
                root.addHandler(_get_file_handler())
                logging.info(f"File logging enabled: {settings.log_folder or '.'}/{settings.log_file}")
            except Exception as e:
                logging.warning(f"Failed to initialize file logging: {e}")
        else:
            logging.info("File logging disabled - logging to stdout/stderr only")

        logging.info("Logging service initialized")

    async def shutdown(self) -> None:
        """Flush and detach the handlers this service installed.

        Examples:
            >>> import asyncio
            >>> service = LoggingService()
            >>> asyncio.run(service.shutdown())
        """
        for handler in (_text_handler, _file_handler):
            if handler is not None:
                handler.flush()
        logging.info("Logging service shutdown")

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create logger instance.

        Args:
            name: Logger name

        Returns:
            Logger instance

        Examples:
            >>> service = LoggingService()
            >>> logger = service.get_logger('grpcinvoker.test')
            >>> import logging
            >>> isinstance(logger, logging.Logger)
            True
        """
        if name not in self._loggers:
            logger = logging.getLogger(name)

            # Records reach the root handlers once initialize() has run
            if "" not in self._loggers and _get_text_handler() not in logger.handlers:
                logger.addHandler(_get_text_handler())

            if "" not in self._loggers and settings.log_to_file and settings.log_file:
                try:
                    logger.addHandler(_get_file_handler())
                except Exception as e:
                    # Use module-level logging to avoid circular reference
                    logging.getLogger(__name__).warning(f"Failed to add file handler to logger {name}: {e}")

            logger.setLevel(to_stdlib_level(self._level))
            self._loggers[name] = logger

        return self._loggers[name]

    def set_level(self, level: LogLevel) -> None:
        """Set minimum log level for every logger handed out so far.

        Args:
            level: New log level

        Examples:
            >>> import logging
            >>> service = LoggingService()
            >>> logger = service.get_logger('grpcinvoker.level-test')
            >>> service.set_level(LogLevel.DEBUG)
            >>> logger.level == logging.DEBUG
            True
        """
        self._level = LogLevel(level)
        stdlib_level = to_stdlib_level(self._level)
        for logger in self._loggers.values():
            logger.setLevel(stdlib_level)
