"""Environment-driven configuration overrides for eventrotator."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from .config_loader import Config, _load_yaml

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages application configuration from a YAML file, environment variables and .env files."""

    def __init__(self, config_path: Path | None = None, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional YAML config path (defaults to ./eventrotator.yaml)
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.config_path = config_path or Path.cwd() / "eventrotator.yaml"
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
            logger.debug("Failed to read .env file (continuing): %s", self.env_file_path, exc_info=True)
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
        """Build a partial configuration mapping from environment variables.

        Recognizes:
        - EVENTROTATOR_ICS_URLS -> 'sources' (comma-separated)
        - EVENTROTATOR_MAX_EVENTS -> 'max_events'
        - EVENTROTATOR_REFRESH_INTERVAL -> 'refresh_interval_seconds'
        - EVENTROTATOR_WEB_HOST -> 'server_bind'
        - EVENTROTATOR_WEB_PORT -> 'server_port'
        - EVENTROTATOR_LOCAL_TIMEZONE -> 'local_timezone'
        - EVENTROTATOR_LOG_LEVEL -> 'log_level'
        """
        cfg: dict[str, Any] = {}

        urls = os.environ.get("EVENTROTATOR_ICS_URLS")
        if urls:
            cfg["sources"] = [u.strip() for u in urls.split(",") if u.strip()]

        int_keys = {
            "EVENTROTATOR_MAX_EVENTS": "max_events",
            "EVENTROTATOR_REFRESH_INTERVAL": "refresh_interval_seconds",
            "EVENTROTATOR_WEB_PORT": "server_port",
        }
        for env_key, cfg_key in int_keys.items():
            raw = os.environ.get(env_key)
            if not raw:
                continue
            try:
                cfg[cfg_key] = int(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)

        str_keys = {
            "EVENTROTATOR_WEB_HOST": "server_bind",
            "EVENTROTATOR_LOCAL_TIMEZONE": "local_timezone",
            "EVENTROTATOR_LOG_LEVEL": "log_level",
        }
        for env_key, cfg_key in str_keys.items():
            raw = os.environ.get(env_key)
            if raw:
                cfg[cfg_key] = raw

        return cfg

    def load_full_config(self) -> Config:
        """Load the YAML file, then apply .env and environment overrides.

        Returns:
            Config instance

        Raises:
            ValueError: If the config file's top level is not a mapping
        """
        self.load_env_file()

        data: dict[str, Any] = {}
        if self.config_path.exists():
            raw = _load_yaml(self.config_path)
            if not isinstance(raw, dict):
                raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
            data.update(raw)
            logger.info("Loaded configuration from %s", self.config_path)
        else:
            logger.debug("Config file %s not found; using defaults", self.config_path)

        env_cfg = self.build_config_from_env()
        if env_cfg:
            logger.debug("Environment overrides: %s", ", ".join(sorted(env_cfg)))
        data.update(env_cfg)
        return Config.from_dict(data)
