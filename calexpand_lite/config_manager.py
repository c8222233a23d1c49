"""Configuration management for calexpand_lite."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10000

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


@dataclass(frozen=True)
class ExpansionConfig:
    """Configuration for occurrence generation and expansion.

    Passed explicitly into every generator and expansion call; nothing is
    read from module-level state.
    """

    # Safety valve bounding the candidate loop of a single rule
    max_iterations: int = DEFAULT_MAX_ITERATIONS

    # Search every day of a weekly stepping period against byDay instead of
    # only the period anchor
    weekly_day_search: bool = False

    # Emit every byMonthDay day of each monthly stepping period instead of
    # only the period anchor
    monthly_day_search: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> ExpansionConfig:
        """Extract expansion configuration from a settings object or dict.

        Args:
            settings: Configuration object or dict with expansion settings

        Returns:
            ExpansionConfig with values from settings or defaults
        """
        return cls(
            max_iterations=int(get_config_value(settings, "max_iterations", DEFAULT_MAX_ITERATIONS)),
            weekly_day_search=bool(get_config_value(settings, "weekly_day_search", False)),
            monthly_day_search=bool(get_config_value(settings, "monthly_day_search", False)),
        )


class ConfigManager:
    """Manages expansion configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.debug(
                "Failed to read .env file for defaults (continuing): %s",
                str(self.env_file_path),
                exc_info=True,
            )
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - CALEXPAND_MAX_ITERATIONS -> 'max_iterations' (positive int)
        - CALEXPAND_WEEKLY_DAY_SEARCH -> 'weekly_day_search' (bool)
        - CALEXPAND_MONTHLY_DAY_SEARCH -> 'monthly_day_search' (bool)

        Invalid values are logged and ignored. CALEXPAND_LOG_LEVEL and
        CALEXPAND_DEBUG are read by configure_lite_logging, not here.

        Returns:
            Configuration dictionary accepted by ExpansionConfig.from_settings
        """
        cfg: dict[str, Any] = {}

        max_iterations = os.environ.get("CALEXPAND_MAX_ITERATIONS")
        if max_iterations:
            try:
                value = int(max_iterations)
            except ValueError:
                value = 0
            if value > 0:
                cfg["max_iterations"] = value
            else:
                logger.warning("Invalid CALEXPAND_MAX_ITERATIONS=%r; ignoring", max_iterations)

        for env_key, cfg_key in (
            ("CALEXPAND_WEEKLY_DAY_SEARCH", "weekly_day_search"),
            ("CALEXPAND_MONTHLY_DAY_SEARCH", "monthly_day_search"),
        ):
            raw = os.environ.get(env_key)
            if not raw:
                continue
            normalized = raw.strip().lower()
            if normalized in _TRUTHY:
                cfg[cfg_key] = True
            elif normalized in _FALSY:
                cfg[cfg_key] = False
            else:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()

    def load_expansion_config(self) -> ExpansionConfig:
        """Load configuration and return it as an ExpansionConfig."""
        return ExpansionConfig.from_settings(self.load_full_config())


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
