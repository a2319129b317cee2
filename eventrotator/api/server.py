"""aiohttp server: relay, timeline API, background refresh and rotation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from aiohttp import web

from eventrotator.calendar.models import TimelineResult
from eventrotator.core.config_loader import Config
from eventrotator.core.http_client import close_all_clients, get_shared_client
from eventrotator.domain.rotation import RotationState, Rotator
from eventrotator.domain.timeline import refresh_timeline
from eventrotator.sources.aggregator import SourceAggregator
from eventrotator.sources.candidates import sources_from_config

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class TimelineService:
    """Owns the published timeline and the rotation state for one server.

    Refresh cycles are numbered when they start. A finished cycle is only
    published when no newer cycle has been published already, so a slow
    cycle can never overwrite the result of a later one.
    """

    def __init__(
        self,
        config: Config,
        aggregator: Optional[SourceAggregator] = None,
        time_provider: Callable[[], datetime] = _now_utc,
    ) -> None:
        self.config = config
        self.sources = sources_from_config(config)
        self.aggregator = aggregator or SourceAggregator()
        self.time_provider = time_provider
        self.local_tz = ZoneInfo(config.local_timezone) if config.local_timezone else None
        self.rotation = RotationState()
        self.latest = TimelineResult()
        self._cycle_counter = 0
        self._published_cycle = 0
        self._lock = asyncio.Lock()

    async def refresh_once(self) -> TimelineResult:
        """Run one refresh cycle and publish it unless superseded."""
        self._cycle_counter += 1
        cycle = self._cycle_counter
        logger.debug("=== Starting refresh cycle %d (%d sources) ===", cycle, len(self.sources))

        result = await refresh_timeline(
            self.sources,
            self.aggregator,
            self.time_provider(),
            grace=timedelta(minutes=self.config.grace_minutes),
            keywords=self.config.keywords,
            max_events=self.config.max_events,
            local_tz=self.local_tz,
        )

        async with self._lock:
            if cycle < self._published_cycle:
                logger.debug("Discarding superseded refresh cycle %d", cycle)
                return result
            self._published_cycle = cycle
            self.latest = result
            self.rotation.apply(result)

        if result.error:
            logger.warning("Refresh cycle %d finished with error: %s", cycle, result.error)
        else:
            logger.info(
                "Refresh cycle %d complete - %d upcoming events (%d/%d feeds ok)",
                cycle,
                len(result.occurrences),
                len(result.status.ok),
                len(self.sources),
            )
        return result

    async def refresh_loop(self, stop_event: asyncio.Event) -> None:
        """Immediate refresh, then one refresh per interval until stopped."""
        interval = self.config.refresh_interval_seconds
        while not stop_event.is_set():
            try:
                await self.refresh_once()
            except Exception:
                logger.exception("Refresh loop unexpected error")
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=interval)


def make_app(service: TimelineService) -> web.Application:
    """Create the aiohttp application with relay and API routes."""
    from eventrotator.api.api_routes import register_api_routes
    from eventrotator.api.relay_routes import register_relay_routes

    app = web.Application()
    config = service.config
    if config.use_relay and not config.relay_mount.startswith(("http://", "https://")):
        register_relay_routes(
            app,
            upstream_host=config.upstream_host,
            mount=config.relay_mount,
            client_provider=lambda: get_shared_client("relay"),
        )
    register_api_routes(app, service)
    return app


async def _serve(config: Config, external_stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the server plus refresh and rotation tasks until signalled to stop."""
    service = TimelineService(config)
    app = make_app(service)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    await site.start()
    logger.info("Server started on %s:%d", config.server_bind, config.server_port)

    stop_event = external_stop_event or asyncio.Event()
    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    refresher = asyncio.create_task(service.refresh_loop(stop_event))
    rotator = Rotator(service.rotation, interval=config.rotate_seconds)
    rotator.start()

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await rotator.stop()
    refresher.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await refresher
    await runner.cleanup()
    await close_all_clients()
    logger.info("Server shutdown complete")


def start_server(config: Config) -> None:
    """Run the server in a fresh event loop; blocks until SIGINT/SIGTERM."""
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


def run_cycle(config: Config) -> dict[str, Any]:
    """Run one refresh cycle outside the server and return its JSON-ready dump."""

    async def _once() -> TimelineResult:
        try:
            return await TimelineService(config).refresh_once()
        finally:
            await close_all_clients()

    return asyncio.run(_once()).model_dump(mode="json")
