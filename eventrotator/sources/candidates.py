"""Feed locator handling: stable source ids and ordered retrieval candidates."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import parse_qs, urlsplit

from ..calendar.models import FeedSource

if TYPE_CHECKING:
    from ..core.config_loader import Config

logger = logging.getLogger(__name__)

_WEBCAL_RE = re.compile(r"^webcal:", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_ICS_SUFFIX_RE = re.compile(r"\.ics$", re.IGNORECASE)


def looks_like_calendar(text: object) -> bool:
    """True when a response body is plausibly an iCalendar document."""
    return isinstance(text, str) and (
        text.startswith("BEGIN:VCALENDAR") or "\nBEGIN:VEVENT" in text
    )


def source_id_for(url: str) -> str:
    """Derive a stable identifier for a feed locator.

    Preference order: ``eid`` query parameter, ``uid`` query parameter, the
    file-name stem of the path, the host. Locators that do not parse as an
    absolute URL fall back to their last 32 characters.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return str(url)[-32:]

    query = parse_qs(parts.query)
    if query.get("eid", [""])[0]:
        return f"eid:{query['eid'][0]}"
    if query.get("uid", [""])[0]:
        return f"uid:{query['uid'][0]}"

    last = parts.path.split("/")[-1]
    return _ICS_SUFFIX_RE.sub("", last) or parts.netloc


def make_candidates(
    url: str,
    *,
    upstream_host: Optional[str] = None,
    relay_mount: str = "/ics-proxy",
    relay_base_url: str = "",
    use_relay: bool = True,
    public_relay: Optional[str] = "https://r.jina.ai/http/",
) -> list[str]:
    """Build the retrieval candidates for a feed, in priority order.

    1. same-origin relay: upstream scheme+host replaced by the relay mount
       (only for locators on ``upstream_host``)
    2. public read-only relay: ``public_relay`` + host/path?query
    3. the direct URL
    """
    if not url:
        return []

    https_url = _WEBCAL_RE.sub("https:", url)
    host_path = _SCHEME_RE.sub("", https_url)
    candidates: list[str] = []

    parts = urlsplit(https_url)
    if use_relay and upstream_host and parts.netloc.lower() == upstream_host.lower():
        tail = parts.path + (f"?{parts.query}" if parts.query else "")
        mount = relay_mount.rstrip("/")
        if not _SCHEME_RE.match(mount) and relay_base_url:
            mount = relay_base_url.rstrip("/") + mount
        candidates.append(f"{mount}{tail}")

    if public_relay:
        candidates.append(f"{public_relay}{host_path}")

    candidates.append(https_url)
    return candidates


def build_sources(
    urls: list[str],
    *,
    upstream_host: Optional[str] = None,
    relay_mount: str = "/ics-proxy",
    relay_base_url: str = "",
    use_relay: bool = True,
    public_relay: Optional[str] = "https://r.jina.ai/http/",
) -> list[FeedSource]:
    """Turn configured locators into FeedSources, skipping empty entries."""
    sources = []
    for url in urls or []:
        if not url:
            continue
        candidates = make_candidates(
            url,
            upstream_host=upstream_host,
            relay_mount=relay_mount,
            relay_base_url=relay_base_url,
            use_relay=use_relay,
            public_relay=public_relay,
        )
        sources.append(FeedSource(id=source_id_for(url), url=url, candidates=tuple(candidates)))
        logger.debug("Configured source %s with %d candidates", sources[-1].id, len(candidates))
    return sources


def sources_from_config(config: Config) -> list[FeedSource]:
    """Build FeedSources using the relay settings of a Config."""
    return build_sources(
        config.sources,
        upstream_host=config.upstream_host,
        relay_mount=config.relay_mount,
        relay_base_url=config.effective_relay_base_url(),
        use_relay=config.use_relay,
        public_relay=config.public_relay if config.use_public_relay else None,
    )
