"""
Logging Configuration for cellexpr.

Provides the debug logger used while parsing and building formulas.
Output goes to stderr and, when enabled, to a file in the log directory.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEBUG_LOGGER_NAME = "cellexpr.debug"
DEBUG_LOG_FILENAME = "cellexpr_debug.log"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


# Log directory priority:
# 1. CELLEXPR_LOG_DIR (explicit)
# 2. CWD/.cellexpr (fallback)
def _get_log_directory() -> Path:
    """Get the log directory path."""
    log_dir = os.getenv("CELLEXPR_LOG_DIR")
    if not log_dir:
        log_dir = str(Path.cwd() / ".cellexpr")
    return Path(log_dir)


def _debug_log_enabled() -> bool:
    """File logging is on only when CELLEXPR_DEBUG_LOG is set to a non-empty value."""
    value = os.getenv("CELLEXPR_DEBUG_LOG")
    return value is not None and value != ""


def _get_log_level() -> int:
    """Resolve CELLEXPR_LOG_LEVEL (name or number), defaulting to WARNING."""
    value = os.getenv("CELLEXPR_LOG_LEVEL", "WARNING").strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.WARNING


def _create_file_handler(log_filename: str) -> Optional[logging.FileHandler]:
    """
    Create a file handler for the specified log file.

    Args:
        log_filename: Name of the log file (e.g., 'cellexpr_debug.log')

    Returns:
        Configured FileHandler, or None if file logging is disabled
    """
    if not _debug_log_enabled():
        return None

    log_dir = _get_log_directory()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / log_filename, mode='a', encoding='utf-8')
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not open log file in {log_dir}: {e}")
        return None
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


class FlushingStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def _create_stderr_handler(level: int) -> logging.StreamHandler:
    """Create a stderr handler for console output with auto-flush."""
    handler = FlushingStreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


# Loggers that share the debug logger's handlers
_debug_logger_names = set()


def _share_handlers(logger: logging.Logger, handlers) -> None:
    for handler in handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)


def get_debug_logger() -> logging.Logger:
    """
    Get the debug logger for parser and builder operations.

    The stderr threshold follows CELLEXPR_LOG_LEVEL; the file handler (if
    enabled through CELLEXPR_DEBUG_LOG) always records DEBUG. Loggers set up
    with configure_logger_for_debug pick up new handlers after a reset.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(DEBUG_LOGGER_NAME)

    # Only configure once
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        file_handler = _create_file_handler(DEBUG_LOG_FILENAME)
        if file_handler:
            logger.addHandler(file_handler)

        logger.addHandler(_create_stderr_handler(_get_log_level()))

        for name in _debug_logger_names:
            _share_handlers(logging.getLogger(name), logger.handlers)

    return logger


def configure_logger_for_debug(logger_name: str) -> logging.Logger:
    """
    Configure a logger to also write to the debug logger's handlers.

    Args:
        logger_name: Name of the logger to configure (e.g., __name__)

    Returns:
        Configured logger instance
    """
    _debug_logger_names.add(logger_name)
    debug_logger = get_debug_logger()
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    _share_handlers(logger, debug_logger.handlers)
    return logger


def reset_debug_logger() -> None:
    """Close and detach the debug handlers so the next call reconfigures them."""
    logger = logging.getLogger(DEBUG_LOGGER_NAME)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
        for name in _debug_logger_names:
            logging.getLogger(name).removeHandler(handler)
