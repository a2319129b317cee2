"""eventrotator.core.config_loader

Config loader for eventrotator.

- Reads YAML with PyYAML (JSON files load too, JSON being a YAML subset).
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_HOST = "sundevilcentral.eoss.asu.edu"
DEFAULT_PUBLIC_RELAY = "https://r.jina.ai/http/"


@dataclass
class Config:
    """Typed configuration for eventrotator.

    Fields:
        sources: ordered list of ICS feed URLs
        max_events: cap on the number of occurrences in the timeline
        grace_minutes: minutes past an event's end during which it stays listed
        keywords: keyword filter; empty disables the filter
        refresh_interval_seconds: how often to refresh (60..1800)
        rotate_seconds: seconds each occurrence stays on screen
        upstream_host: host served by the same-origin relay
        relay_mount: path (or absolute URL) the relay is mounted at
        relay_base_url: base URL used to resolve a path-only relay mount server-side
            (None = this server on server_port, see `effective_relay_base_url`)
        use_relay: build same-origin relay candidates
        use_public_relay: build public read-only relay candidates
        public_relay: prefix of the public read-only relay
        display_timezone: IANA zone used to format ranges for display
        local_timezone: IANA zone used for floating wall-clock values (None = runtime zone)
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
    """

    sources: list[str] = field(default_factory=list)
    max_events: int = 25
    grace_minutes: int = 60
    keywords: list[str] = field(default_factory=list)
    refresh_interval_seconds: int = 300
    rotate_seconds: int = 6
    upstream_host: str = DEFAULT_UPSTREAM_HOST
    relay_mount: str = "/ics-proxy"
    relay_base_url: str | None = None
    use_relay: bool = True
    use_public_relay: bool = True
    public_relay: str = DEFAULT_PUBLIC_RELAY
    display_timezone: str = "America/Phoenix"
    local_timezone: str | None = None
    server_bind: str = "0.0.0.0"  # nosec: B104 - intentional default for kiosk deployments
    server_port: int = 8080
    log_level: str = "INFO"

    def effective_relay_base_url(self) -> str:
        """Base URL for server-side relay fetches.

        Follows `server_port` unless `relay_base_url` was set, so a port chosen
        after loading (``serve --port``) still points the relay back at us.
        """
        if self.relay_base_url:
            return self.relay_base_url
        return f"http://127.0.0.1:{self.server_port}"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int, sources and keywords are coerced
        to lists of strings, and out-of-range values are clamped with a warning.
        """
        if data is None:
            data = {}

        # Sources: accept legacy key `ics_sources` as well
        sources_raw = data.get("sources") if "sources" in data else data.get("ics_sources", [])
        sources = _coerce_str_list("sources", sources_raw)
        keywords = _coerce_str_list("keywords", data.get("keywords", []))

        def _coerce_int(key: str, default: int, minimum: int, maximum: int | None = None) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("%s %d below minimum; coercing to %d", key, value, minimum)
                return minimum
            if maximum is not None and value > maximum:
                logger.warning("%s %d above maximum; coercing to %d", key, value, maximum)
                return maximum
            return value

        def _coerce_bool(key: str, default: bool) -> bool:
            raw = data.get(key, default)
            if isinstance(raw, str):
                return raw.strip().lower() in ("1", "true", "yes", "on")
            return bool(raw)

        def _coerce_str(key: str, default: str) -> str:
            raw = data.get(key)
            return str(raw) if raw is not None else default

        local_tz = data.get("local_timezone")
        relay_base = data.get("relay_base_url")

        return cls(
            sources=sources,
            max_events=_coerce_int("max_events", 25, 1),
            grace_minutes=_coerce_int("grace_minutes", 60, 0),
            keywords=keywords,
            refresh_interval_seconds=_coerce_int("refresh_interval_seconds", 300, 60, 1800),
            rotate_seconds=_coerce_int("rotate_seconds", 6, 1),
            upstream_host=_coerce_str("upstream_host", DEFAULT_UPSTREAM_HOST),
            relay_mount=_coerce_str("relay_mount", "/ics-proxy").rstrip("/"),
            relay_base_url=str(relay_base).rstrip("/") if relay_base else None,
            use_relay=_coerce_bool("use_relay", True),
            use_public_relay=_coerce_bool("use_public_relay", True),
            public_relay=_coerce_str("public_relay", DEFAULT_PUBLIC_RELAY),
            display_timezone=_coerce_str("display_timezone", "America/Phoenix"),
            local_timezone=str(local_tz) if local_tz else None,
            server_bind=_coerce_str("server_bind", "0.0.0.0"),  # nosec: B104
            server_port=_coerce_int("server_port", 8080, 1, 65535),
            log_level=_coerce_str("log_level", "INFO").upper(),
        )


def _coerce_str_list(key: str, raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        logger.warning("Config `%s` is not a list; coercing to single-item list", key)
        return [raw] if raw.strip() else []
    if not isinstance(raw, (list, tuple)):
        logger.warning("Config `%s` is not a list; coercing to single-item list", key)
        return [str(raw)]
    return [str(item) for item in raw if item is not None and str(item).strip()]


def _load_yaml(path: Path) -> Any:
    """Load a YAML (or JSON) document; empty files load as an empty mapping."""
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    return loaded


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./eventrotator.yaml.

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "eventrotator.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = _load_yaml(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s (%d sources)", p, len(cfg.sources))
    return cfg
