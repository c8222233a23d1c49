"""
Central logging configuration for calexpand_lite.

Expansion runs inline with rendering, so per-occurrence debug output is
suppressed unless explicitly requested.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

# HH:MM:SS  LEVEL   logger.name: message
LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

LITE_MODULES = [
    "calexpand_lite",
    "calexpand_lite.lite_models",
    "calexpand_lite.lite_duration",
    "calexpand_lite.lite_rule_translator",
    "calexpand_lite.lite_occurrence_generator",
    "calexpand_lite.lite_override_resolver",
    "calexpand_lite.lite_expansion_service",
    "calexpand_lite.config_manager",
    "calexpand_lite.lite_datetime_utils",
    "calexpand_lite.__main__",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for calexpand_lite.

    Installs a colorized stderr handler when the root logger has none, and
    sets the package loggers to DEBUG or INFO.

    Args:
        debug_mode: Whether to enable debug logging for calexpand_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALEXPAND_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALEXPAND_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALEXPAND_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALEXPAND_LOG_LEVEL", "").upper()

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

    # Only add a handler if none exist to avoid duplicate output
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        root_logger.addHandler(handler)

    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logging.getLogger(module).setLevel(lite_level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calexpand_lite modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in LITE_MODULES:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
