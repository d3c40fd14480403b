"""aiohttp application: /auth, /groups, /refresh and /healthz endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aiohttp import web

from authgate.auth import extract_address, extract_credentials, parse_trusted_proxies
from authgate.config import get_setting
from authgate.errors import AccessDenied
from authgate.service import ConfigLoader, SecurityService
from authgate.watch import SourceWatcher

log = logging.getLogger(__name__)


async def healthz(request: web.Request) -> web.Response:
    return web.Response(text="ok")


async def auth(request: web.Request) -> web.Response:
    service: SecurityService = request.app["service"]
    credentials = extract_credentials(request.headers)
    address = extract_address(request.headers, request.remote, request.app["trusted_proxies"])
    if credentials is None or address is None:
        return web.Response(status=403, text="forbidden")

    user, password = credentials
    try:
        groups = service.authenticate(address, user, password)
    except AccessDenied as e:
        log.info("Denied %s from %s: %s", user, address, e)
        return web.Response(status=403, text=str(e))
    return web.Response(
        status=200,
        text="ok",
        headers={"X-Auth-User": user, "X-Auth-Groups": ",".join(sorted(groups))},
    )


async def groups(request: web.Request) -> web.Response:
    service: SecurityService = request.app["service"]
    user = request.match_info["user"]
    return web.json_response({"user": user, "groups": sorted(service.groups.get_groups(user))})


async def refresh(request: web.Request) -> web.Response:
    service: SecurityService = request.app["service"]
    identifier = request.match_info["identifier"]
    args = request.query.getall("arg", [])
    # reloads read files and must not stall the event loop
    response = await asyncio.to_thread(service.refresh, identifier, args)
    return web.json_response(
        {"status": response.status, "message": response.message},
        status=200 if response.ok else 400,
    )


async def _poll_sources(watcher: SourceWatcher, interval: float) -> None:
    """Periodically check policy source files for changes and refresh."""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(watcher.check)
        except Exception:
            log.warning("Source file check failed", exc_info=True)


def create_app(
    config: dict[str, Any], config_loader: ConfigLoader | None = None
) -> web.Application:
    """Build the app around a started SecurityService.

    Refreshes re-read configuration through ``config_loader``; without one
    they reuse ``config``.
    """
    app = web.Application()
    app["config"] = config
    app["trusted_proxies"] = parse_trusted_proxies(get_setting(config, "server.trusted_proxies"))

    service = SecurityService(config_loader or (lambda: config))
    service.start()
    app["service"] = service

    async def on_startup(app: web.Application) -> None:
        interval = get_setting(config, "admin.poll_interval_seconds", 0) or 0
        if interval > 0:
            watcher = SourceWatcher(service.dispatcher, service.policies)
            watcher.check()
            app["_source_poll_task"] = asyncio.create_task(_poll_sources(watcher, interval))

    async def on_cleanup(app: web.Application) -> None:
        task = app.get("_source_poll_task")
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        log.info("Shutting down: releasing loaded security data")
        # waits for in-flight refreshes so none republishes after shutdown
        await asyncio.to_thread(app["service"].shutdown)

    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)

    app.router.add_get("/auth", auth)
    app.router.add_get("/groups/{user}", groups)
    app.router.add_post("/refresh/{identifier}", refresh)
    app.router.add_get("/healthz", healthz)
    return app
