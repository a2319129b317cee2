"""JSON API routes exposing the timeline, feed diagnostics and rotation state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from aiohttp import web

from eventrotator.calendar.models import Occurrence
from eventrotator.domain.formatting import format_range, plain_description

if TYPE_CHECKING:
    from eventrotator.api.server import TimelineService

logger = logging.getLogger(__name__)


def occurrence_to_api_model(occurrence: Optional[Occurrence], display_tz: str) -> Optional[dict[str, Any]]:
    """Serialize an occurrence for the display client."""
    if occurrence is None:
        return None
    model = occurrence.model_dump(mode="json")
    model["display_range"] = format_range(
        occurrence.start, occurrence.end, display_tz, all_day=occurrence.all_day
    )
    model["plain_description"] = plain_description(occurrence.description)
    return model


def register_api_routes(app: Any, service: TimelineService) -> None:
    """Register main API routes.

    Args:
        app: aiohttp web application
        service: TimelineService holding the published timeline
    """
    display_tz = service.config.display_timezone

    async def health_check(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def events(_request: web.Request) -> web.Response:
        latest = service.latest
        return web.json_response(
            {
                "events": [occurrence_to_api_model(o, display_tz) for o in latest.occurrences],
                "error": latest.error,
                "generated_at": latest.generated_at.isoformat(),
            }
        )

    async def status(_request: web.Request) -> web.Response:
        latest = service.latest
        return web.json_response(
            {
                "feeds": latest.status.model_dump(mode="json"),
                "stats": latest.stats.model_dump(mode="json"),
                "error": latest.error,
                "sources": [s.model_dump(mode="json") for s in service.sources],
            }
        )

    def _rotation_payload() -> dict[str, Any]:
        rotation = service.rotation
        return {
            "index": rotation.index,
            "playing": rotation.playing,
            "total": rotation.total,
            "error": rotation.error,
            "current": occurrence_to_api_model(rotation.current, display_tz),
        }

    async def rotation(_request: web.Request) -> web.Response:
        return web.json_response(_rotation_payload())

    async def toggle(_request: web.Request) -> web.Response:
        playing = service.rotation.toggle()
        logger.debug("Rotation %s", "resumed" if playing else "paused")
        return web.json_response(_rotation_payload())

    async def select(request: web.Request) -> web.Response:
        try:
            data = await request.json()
            index = int(data["index"])
        except (ValueError, KeyError, TypeError):
            return web.json_response({"error": "Body must be JSON with an integer 'index'"}, status=400)

        try:
            service.rotation.select(index)
        except IndexError as e:
            return web.json_response({"error": str(e)}, status=400)
        return web.json_response(_rotation_payload())

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/events", events)
    app.router.add_get("/api/status", status)
    app.router.add_get("/api/rotation", rotation)
    app.router.add_post("/api/rotation/toggle", toggle)
    app.router.add_post("/api/rotation/select", select)
