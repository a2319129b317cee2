"""Same-origin relay for the upstream calendar host.

``GET <mount>/<path>?<query>`` is forwarded to ``https://<upstream_host>/<path>?<query>``
with browser-like headers. Calendar bodies are labelled ``text/calendar``;
anything else (usually an HTML error page) is passed through as plain text so
the client-side fallback can detect it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from aiohttp import web

from eventrotator.core.http_client import DEFAULT_BROWSER_HEADERS

logger = logging.getLogger(__name__)

RELAY_CACHE_CONTROL = "public, max-age=300"


def build_relay_target(upstream_host: str, tail: str, query_string: str) -> str:
    """Map an inbound relay path onto the upstream URL."""
    path = "/" + tail.lstrip("/")
    qs = f"?{query_string}" if query_string else ""
    return f"https://{upstream_host}{path}{qs}"


def register_relay_routes(
    app: Any,
    upstream_host: str,
    mount: str,
    client_provider: Callable[[], Any],
) -> None:
    """Register the relay route.

    Args:
        app: aiohttp web application
        upstream_host: Host the relay forwards to
        mount: Path prefix the relay is served under, e.g. ``/ics-proxy``
        client_provider: Coroutine function returning the httpx.AsyncClient to use
    """
    response_headers = {
        "Cache-Control": RELAY_CACHE_CONTROL,
        "Access-Control-Allow-Origin": "*",
    }
    relay_headers = {
        **DEFAULT_BROWSER_HEADERS,
        # some event hosts return HTML unless there's a referer
        "Referer": f"https://{upstream_host}/events",
    }

    async def relay(request: web.Request) -> web.Response:
        target = build_relay_target(upstream_host, request.match_info.get("tail", ""), request.query_string)
        client = await client_provider()
        try:
            upstream = await client.get(target, headers=relay_headers)
        except httpx.HTTPError as e:
            logger.warning("Relay fetch failed for %s: %s", target, e)
            return web.Response(
                status=502,
                text=f"Proxy error fetching {target}\n{e}",
                content_type="text/plain",
                charset="utf-8",
                headers=response_headers,
            )

        text = upstream.text
        upstream_type = upstream.headers.get("content-type", "")
        is_calendar = "text/calendar" in upstream_type.lower() or text.startswith("BEGIN:VCALENDAR")
        logger.debug(
            "Relayed %s -> %s (%s)", target, upstream.status_code, "calendar" if is_calendar else "text"
        )
        return web.Response(
            status=upstream.status_code,
            text=text,
            content_type="text/calendar" if is_calendar else "text/plain",
            charset="utf-8",
            headers=response_headers,
        )

    app.router.add_get(mount.rstrip("/") + "/{tail:.*}", relay)
    logger.debug("Relay mounted at %s -> https://%s", mount, upstream_host)
