"""
Central logging configuration for selfie_calendar.

Sets package logger levels and quiets chatty third-party loggers, with
environment overrides for troubleshooting.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

PACKAGE_LOGGER = "selfie_calendar"

# Third-party loggers kept at WARNING unless everything is reset to DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")

_LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
_LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def install_console_handler(level_name: Optional[str] = None) -> None:
    """Attach a colorized console handler to the root logger if none is present.

    ``SELFIE_DEBUG`` forces DEBUG regardless of ``level_name``.
    """
    if _truthy(os.environ.get("SELFIE_DEBUG")):
        level_name = "DEBUG"

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(_LOG_FORMAT, datefmt="%H:%M:%S", log_colors=_LOG_COLORS))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(PACKAGE_LOGGER).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for selfie_calendar.

    Args:
        debug_mode: Whether to enable debug logging for selfie_calendar modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        SELFIE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        SELFIE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = _truthy(os.getenv("SELFIE_DEBUG"))
    env_log_level = os.getenv("SELFIE_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    logger_config: dict[str, int] = {name: logging.WARNING for name in NOISY_LOGGERS}
    logger_config[PACKAGE_LOGGER] = logging.DEBUG if final_debug else logging.INFO

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for selfie_calendar modules")
        root_logger.debug("Logger levels: %s", get_logging_status())
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in (PACKAGE_LOGGER, *NOISY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
