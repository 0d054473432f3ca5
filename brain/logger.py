# brain/logger.py

"""
Logger module.

This module provides a logging utility for the brain package with colored console
output and config-based level selection. It's designed as a module-level utility
rather than a service for early availability and simplicity.
"""

import logging

import colorlog

from brain.config import brain_config

# Logging level constants for convenience
DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL

LEVEL_MAP = {
    "DEBUG": DEBUG,
    "INFO": INFO,
    "WARNING": WARNING,
    "ERROR": ERROR,
    "CRITICAL": CRITICAL,
}

CONSOLE_FORMAT = (
    "{light_black}{asctime}{reset} | {log_color}{levelname:<8}{reset} | "
    "{message_log_color}{name:<20} | {message}{reset} "
    "{light_black}- ({funcName} - {filename}:{lineno}){reset}"
)
PLAIN_FORMAT = (
    "{asctime} | {levelname:<8} | {name:<20} | {message} "
    "- ({funcName} - {filename}:{lineno})"
)
DATE_FORMAT = "%y-%m-%d %H:%M:%S"


def create_formatter(use_colors: bool = True) -> logging.Formatter:
    """
    Build the formatter used by brain handlers.

    Args:
        use_colors: Whether to use ANSI color codes (disable for file output)
    """
    if not use_colors:
        return logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT, style="{")

    return colorlog.ColoredFormatter(
        CONSOLE_FORMAT,
        datefmt=DATE_FORMAT,
        style="{",
        reset=True,
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "fg_bold_white,bg_bold_red",
        },
        secondary_log_colors={
            "message": {
                "DEBUG": "light_black",
                "INFO": "light_white",
                "WARNING": "yellow",
                "ERROR": "bold_red",
                "CRITICAL": "fg_bold_white,bg_bold_red",
            },
        },
    )


# Global configuration
_initialized = False
handler: logging.Handler = colorlog.StreamHandler()
root_logger: logging.Logger = logging.getLogger("brain")


def _initialize_logging() -> None:
    """Initialize the logging system (called lazily)."""
    global _initialized

    if _initialized:
        return

    handler.setFormatter(create_formatter())
    root_logger.addHandler(handler)

    _set_level_from_config()

    _initialized = True


def _set_level_from_config() -> None:
    """Set logging level based on the loaded configuration."""
    if brain_config.dev_mode:
        level = DEBUG
    else:
        level = LEVEL_MAP.get(brain_config.log_level.upper(), INFO)

    handler.setLevel(level)
    root_logger.setLevel(level)


def set_level(level: int) -> None:
    """
    Set the logging level.

    Args:
        level: Logging level (use constants like DEBUG, INFO, etc.)
    """
    _initialize_logging()
    handler.setLevel(level)
    root_logger.setLevel(level)


def get_logger(name: str | None = None, level: int | None = None) -> logging.Logger:
    """
    Get a logger with custom formatting.

    Args:
        name: Logger name (typically __name__ from calling module)
        level: Optional override for logging level

    Returns:
        Configured logger instance

    Usage:
        log = get_logger(__name__)
        log.info("Hello world!")
    """
    _initialize_logging()

    if level is not None:
        set_level(level)

    return logging.getLogger(name)


def add_file_handler(
    filepath: str, level: int | None = None, use_colors: bool = False
) -> logging.Handler:
    """
    Add a file handler to the brain logger.

    Args:
        filepath: Path to log file
        level: Optional logging level for file handler
        use_colors: Whether to include ANSI colors in file output
    """
    _initialize_logging()

    file_handler = logging.FileHandler(filepath, encoding="utf-8")
    file_handler.setFormatter(create_formatter(use_colors=use_colors))

    if level is not None:
        file_handler.setLevel(level)

    root_logger.addHandler(file_handler)
    return file_handler


def configure_logging(
    level: int | None = None,
    file_path: str | None = None,
    file_level: int | None = None,
) -> None:
    """
    Configure logging with console and optional file output.

    Args:
        level: Console logging level
        file_path: Optional file path for file logging
        file_level: Optional file logging level
    """
    if level is not None:
        set_level(level)

    if file_path:
        add_file_handler(file_path, file_level or level)
