"""Centralized logging for AudioFeed.

Four verbosity levels gate console output:
- QUIET (0): Warnings + errors
- NORMAL (1): Info + warnings + errors
- VERBOSE (2): Cache decisions, per-file skips, cover cache hits
- DEBUG (3): Everything including raw tag dumps

Usage:
    from audiofeed.core.logging import get_logger, set_verbosity

    logger = get_logger(__name__)
    set_verbosity(2)

    logger.verbose("Using cached feed (age: 12s)")
    logger.warning("Skipping file broken.mp3")

Every emitted record is also published on the LogBus.
"""

from __future__ import annotations

import sys
from enum import IntEnum

from audiofeed.core.errors import ConfigError
from audiofeed.core.log_bus import LogRecord, get_log_bus


class VerbosityLevel(IntEnum):
    """Verbosity levels for AudioFeed."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


_LEVEL_NAMES = {
    "quiet": VerbosityLevel.QUIET,
    "normal": VerbosityLevel.NORMAL,
    "verbose": VerbosityLevel.VERBOSE,
    "debug": VerbosityLevel.DEBUG,
}

_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: Verbosity level (0-3 or VerbosityLevel enum)
    """
    global _VERBOSITY
    _VERBOSITY = VerbosityLevel(int(level))


def get_verbosity() -> VerbosityLevel:
    """Get current verbosity level."""
    return _VERBOSITY


def apply_logging_level(level_name: str) -> VerbosityLevel:
    """Apply a resolved ``logging.level`` name to the global verbosity.

    Raises:
        ConfigError: If the name is not one of quiet, normal, verbose, debug.
    """
    try:
        level = _LEVEL_NAMES[level_name.strip().lower()]
    except KeyError:
        allowed = ", ".join(_LEVEL_NAMES)
        raise ConfigError(
            f"Invalid logging level {level_name!r}. Allowed values: {allowed}"
        ) from None
    set_verbosity(level)
    return level


def set_colors(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _USE_COLORS
    _USE_COLORS = enabled


class FeedLogger:
    """Logger with verbosity support."""

    COLORS = {
        "DEBUG": "\033[36m",
        "VERBOSE": "\033[34m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "RESET": "\033[0m",
    }

    def __init__(self, name: str) -> None:
        self.name = name

    def _format_message(self, level_name: str, message: str) -> str:
        tag = f"[{level_name.lower()}]"
        if _USE_COLORS and sys.stdout.isatty():
            tag = f"{self.COLORS[level_name]}{tag}{self.COLORS['RESET']}"
        return f"{tag} {message}"

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        if level > _VERBOSITY:
            return

        plain = f"[{level_name.lower()}] {message}"
        get_log_bus().publish(
            LogRecord(level_name=level_name, plain=plain, logger_name=self.name, message=message)
        )

        stream = sys.stderr if level_name in ("WARNING", "ERROR") else sys.stdout
        print(self._format_message(level_name, message), file=stream)

    def debug(self, message: str) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        """Log error message (always shown)."""
        self._log(VerbosityLevel.QUIET, "ERROR", message)


_LOGGERS: dict[str, FeedLogger] = {}


def get_logger(name: str = "audiofeed") -> FeedLogger:
    """Get logger instance for module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = FeedLogger(name)
    return _LOGGERS[name]
