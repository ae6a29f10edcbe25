"""
Logging Configuration Module

This module configures log handlers for the MiFi Monitor CLI. Log output
goes to stderr (and optionally a file) so stdout stays clean JSON.

License: MIT
"""

import logging
import sys
from typing import List, Optional

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
STANDARD_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
# Watch mode logs from the poller threads, so debug output names the thread
DEBUG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s [%(threadName)s] %(funcName)s:%(lineno)d - %(message)s"

# HTTP library loggers: (level when debugging, level otherwise)
HTTP_LOGGER_LEVELS = {
    "urllib3": (logging.DEBUG, logging.WARNING),
    "urllib3.connectionpool": (logging.DEBUG, logging.ERROR),
    "requests": (logging.DEBUG, logging.WARNING),
}

_logging_configured = False


def _select_level(debug: bool, quiet: bool) -> int:
    if debug:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def _build_handlers(level: int, debug: bool, log_file: Optional[str]) -> List[logging.Handler]:
    formatter = logging.Formatter(DEBUG_FORMAT if debug else STANDARD_FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(debug: bool = False, quiet: bool = False, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the CLI application.

    Only the first call has an effect.

    Args:
        debug: If True, enable debug-level logging, HTTP libraries included
        quiet: If True, only show warnings and errors
        log_file: Optional path to log file for output
    """
    global _logging_configured

    if _logging_configured:
        return
    _logging_configured = True

    level = _select_level(debug, quiet)
    handlers = _build_handlers(level, debug, log_file)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name, (debug_level, normal_level) in HTTP_LOGGER_LEVELS.items():
        logging.getLogger(name).setLevel(debug_level if debug else normal_level)
    logging.getLogger("mifi-monitor").setLevel(level)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}, handlers={len(handlers)}")


def reset_logging() -> None:
    """Allow setup_logging to run again (used by tests)."""
    global _logging_configured
    _logging_configured = False
