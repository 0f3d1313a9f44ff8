"""Configuration management for selfie_calendar.

Configuration comes from an optional YAML/JSON file, then a ``.env`` file and
``SELFIE_*`` environment variables layered on top. Bad individual values fall
back to defaults with a warning; only an explicitly requested file that cannot
be read raises ``ConfigError``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

VALID_VIEWS = ("month", "week", "day")
DEFAULT_CONFIG_PATH = Path("selfie_calendar.yaml")


@dataclass
class Config:
    """Typed configuration for selfie_calendar.

    Fields:
        api_base_url: base URL of the REST backend (None to use a local snapshot)
        default_view: calendar view used to pick the window (month/week/day)
        event_color: color hint for event occurrences
        activity_done_color: color hint for activities with status "done"
        activity_pending_color: color hint for every other activity
        virtual_clock_path: JSON file persisting the time machine value
        request_timeout: HTTP timeout in seconds for store requests
        log_level: logging level name
    """

    api_base_url: str | None = None
    default_view: str = "month"
    event_color: str = "#2ecc70"
    activity_done_color: str = "#91ff00"
    activity_pending_color: str = "#ff6df3"
    virtual_clock_path: str | None = None
    request_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation."""
        if data is None:
            data = {}
        defaults = cls()

        def _text(key: str, default: str | None) -> str | None:
            raw = data.get(key, default)
            if raw is None:
                return default
            text = str(raw).strip()
            return text or default

        view = (_text("default_view", defaults.default_view) or defaults.default_view).lower()
        if view not in VALID_VIEWS:
            logger.warning("Config default_view=%r is not one of %s; using month", view, VALID_VIEWS)
            view = defaults.default_view

        timeout_raw = data.get("request_timeout", defaults.request_timeout)
        try:
            timeout = float(timeout_raw)
            if timeout <= 0:
                raise ValueError(timeout_raw)
        except (TypeError, ValueError):
            logger.warning(
                "Config request_timeout=%r is not a positive number; using default %s",
                timeout_raw,
                defaults.request_timeout,
            )
            timeout = defaults.request_timeout

        log_level = (_text("log_level", defaults.log_level) or defaults.log_level).upper()

        return cls(
            api_base_url=_text("api_base_url", None),
            default_view=view,
            event_color=_text("event_color", defaults.event_color) or defaults.event_color,
            activity_done_color=_text("activity_done_color", defaults.activity_done_color)
            or defaults.activity_done_color,
            activity_pending_color=_text("activity_pending_color", defaults.activity_pending_color)
            or defaults.activity_pending_color,
            virtual_clock_path=_text("virtual_clock_path", None),
            request_timeout=timeout,
            log_level=log_level,
        )

    def merged(self, overrides: dict[str, Any]) -> Config:
        """Return a new Config with ``overrides`` applied on top of this one."""
        base = asdict(self)
        base.update({k: v for k, v in overrides.items() if v is not None})
        return Config.from_dict(base)


def _load_yaml_or_json(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./selfie_calendar.yaml.

    Returns:
        Config with values from file (or defaults when the default file is absent)

    Raises:
        ConfigError: If an explicitly given file is missing, unparsable, or not a mapping
    """
    p = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_PATH
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        if path:
            raise ConfigError(f"Config file not found: {p}")
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    try:
        raw = _load_yaml_or_json(p)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to parse config file {p}: {exc}") from exc

    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ConfigError("Config file must contain a mapping at top level")

    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg


class ConfigManager:
    """Manages configuration from a config file, a .env file and environment variables."""

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
        """Build configuration overrides from environment variables.

        Recognizes:
        - SELFIE_API_BASE_URL -> 'api_base_url'
        - SELFIE_DEFAULT_VIEW -> 'default_view'
        - SELFIE_VIRTUAL_CLOCK_PATH -> 'virtual_clock_path'
        - SELFIE_REQUEST_TIMEOUT -> 'request_timeout' (float)
        - SELFIE_LOG_LEVEL -> 'log_level'

        Returns:
            Mapping of the keys present in the environment
        """
        cfg: dict[str, Any] = {}

        for env_key, cfg_key in (
            ("SELFIE_API_BASE_URL", "api_base_url"),
            ("SELFIE_DEFAULT_VIEW", "default_view"),
            ("SELFIE_VIRTUAL_CLOCK_PATH", "virtual_clock_path"),
            ("SELFIE_LOG_LEVEL", "log_level"),
        ):
            value = os.environ.get(env_key)
            if value:
                cfg[cfg_key] = value

        timeout = os.environ.get("SELFIE_REQUEST_TIMEOUT")
        if timeout:
            try:
                cfg["request_timeout"] = float(timeout)
            except ValueError:
                logger.warning("Invalid SELFIE_REQUEST_TIMEOUT=%r; ignoring", timeout)

        return cfg

    def load_full_config(self, path: str | Path | None = None) -> Config:
        """Load the config file, then apply .env and environment overrides.

        This is the main entry point for loading configuration.
        """
        base = load_config(path)
        self.load_env_file()
        return base.merged(self.build_config_from_env())
