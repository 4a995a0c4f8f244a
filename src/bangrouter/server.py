"""
HTTP surface for bangrouter (aiohttp).

Routes:
    GET /                   redirect endpoint (``?q=...``) and help listing
    GET /api/stats          DayStats for ``?date=`` (default today), or a
                            list for ``?start=&end=`` (``&summary=1`` for one)
    GET /api/stats/overall  all-time DayStats
"""

import asyncio
import html
from datetime import date
from typing import Optional

from aiohttp import web

from .analytics.aggregator import UsageAggregator
from .analytics.writer import UsageLogger
from .commands.registry import CommandRegistry
from .resolver import Resolver, ResolutionAction
from .utils.errors import BangError, DateParseError, TemplateError
from .utils.logging import get_logger

logger = get_logger(__name__)

RESOLVER_KEY = web.AppKey("resolver", Resolver)
REGISTRY_KEY = web.AppKey("registry", CommandRegistry)
USAGE_LOGGER_KEY = web.AppKey("usage_logger", UsageLogger)
AGGREGATOR_KEY = web.AppKey("aggregator", UsageAggregator)


def client_address(request: web.Request) -> str:
    """First X-Forwarded-For entry when present, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.remote or ""


def render_help_page(registry: CommandRegistry) -> str:
    """HTML listing of every command and its subcommands."""
    parts = ["<h1>bangrouter command list</h1>", "<ul>"]

    for command in registry.list_commands():
        aliases = ""
        if command.aliases:
            aliases = f" (aliases: {html.escape(', '.join(command.aliases))})"
        requires = ", requires query" if command.requires_query else ""
        parts.append(
            f"<li><strong>{html.escape(command.name)}</strong>{aliases}{requires}"
            f" - {html.escape(command.description)}</li>"
        )

        if command.subcommands:
            parts.append("<ul>")
            for sub in command.subcommands:
                sub_aliases = ""
                if sub.aliases:
                    sub_aliases = f" (aliases: {html.escape(', '.join(sub.aliases))})"
                parts.append(
                    f"<li><strong>{html.escape(command.name)} {html.escape(sub.name)}</strong>"
                    f"{sub_aliases} - {html.escape(sub.description)}</li>"
                )
            parts.append("</ul>")

    parts.append("</ul>")
    return "".join(parts)


async def handle_redirect(request: web.Request) -> web.StreamResponse:
    """Resolve ``q`` and redirect, or list commands for help/list."""
    resolver = request.app[RESOLVER_KEY]
    query = request.query.get("q", "")

    try:
        resolution = resolver.resolve(
            query,
            user_agent=request.headers.get("User-Agent", ""),
            remote_addr=client_address(request),
        )
    except TemplateError:
        return web.Response(status=500, text="Internal Server Error")

    if resolution.action == ResolutionAction.HELP:
        return web.Response(
            text=render_help_page(request.app[REGISTRY_KEY]),
            content_type="text/html",
            charset="utf-8",
        )

    raise web.HTTPSeeOther(location=resolution.location)


def _error_response(error: BangError, status: int) -> web.Response:
    return web.json_response(error.to_dict(), status=status)


async def handle_stats(request: web.Request) -> web.Response:
    """Day, range or range-summary statistics."""
    aggregator = request.app[AGGREGATOR_KEY]
    start = request.query.get("start")
    end = request.query.get("end")

    try:
        if start and end:
            if request.query.get("summary") in ("1", "true"):
                stats = await aggregator.summarize_range(start, end)
                return web.json_response(stats.to_dict())
            days = await aggregator.date_range(start, end)
            return web.json_response([day.to_dict() for day in days])

        day = request.query.get("date") or date.today().isoformat()
        stats = await aggregator.day_stats(day)
        return web.json_response(stats.to_dict())
    except DateParseError as e:
        return _error_response(e, 400)
    except BangError as e:
        logger.error("stats_query_failed", error=e.message, code=e.code)
        return _error_response(e, 500)


async def handle_overall_stats(request: web.Request) -> web.Response:
    """All-time statistics."""
    aggregator = request.app[AGGREGATOR_KEY]
    try:
        stats = await aggregator.overall_stats()
    except BangError as e:
        logger.error("stats_query_failed", error=e.message, code=e.code)
        return _error_response(e, 500)
    return web.json_response(stats.to_dict())


async def _drain_usage(app: web.Application) -> None:
    await app[USAGE_LOGGER_KEY].drain()
    logger.info("usage_logger_drained")


def create_app(
    registry: CommandRegistry,
    usage_logger: UsageLogger,
    aggregator: UsageAggregator
) -> web.Application:
    """
    Build the web application.

    Args:
        registry: Commands to resolve against
        usage_logger: Usage recorder, drained on shutdown
        aggregator: Statistics source for the API
    """
    app = web.Application()
    app[REGISTRY_KEY] = registry
    app[USAGE_LOGGER_KEY] = usage_logger
    app[AGGREGATOR_KEY] = aggregator
    app[RESOLVER_KEY] = Resolver(registry, usage_logger)

    app.router.add_get("/", handle_redirect)
    app.router.add_get("/api/stats", handle_stats)
    app.router.add_get("/api/stats/overall", handle_overall_stats)
    app.on_shutdown.append(_drain_usage)
    return app


async def serve(app: web.Application, host: str = "0.0.0.0", port: int = 8080,
                stop: Optional[asyncio.Event] = None) -> None:
    """
    Run ``app`` until ``stop`` is set or the task is cancelled.

    Args:
        app: Application from ``create_app``
        host: Host to bind to
        port: Port to bind to
        stop: Optional event that ends serving
    """
    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info("server_started", host=host, port=port)
        await (stop or asyncio.Event()).wait()
    finally:
        await runner.cleanup()
        logger.info("server_stopped")


__all__ = [
    'create_app',
    'serve',
    'client_address',
    'render_help_page',
]
