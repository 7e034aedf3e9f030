"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

import asyncio

from aiohttp import web

from selfpm.config import WebhooksConfig
from selfpm.utils.logging import get_logger
from selfpm.webhooks.dispatcher import WebhookDispatcher

log = get_logger(__name__)

GITHUB_EVENT_HEADER = "X-GitHub-Event"
GITHUB_SIGNATURE_HEADER = "X-Hub-Signature"
GITLAB_EVENT_HEADER = "X-Gitlab-Event"
GITLAB_TOKEN_HEADER = "X-Gitlab-Token"


class WebhookServer:
    """Receives provider webhooks and hands them to the dispatcher."""

    def __init__(self, config: WebhooksConfig, dispatcher: WebhookDispatcher) -> None:
        self._config = config
        self._dispatcher = dispatcher
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def _build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/github/{owner}/{name}", self._handle_github)
        app.router.add_post("/gitlab/{owner}/{name}", self._handle_gitlab)
        app.router.add_get("/health", self._handle_health)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_github(self, request: web.Request) -> web.Response:
        event_type = request.headers.get(GITHUB_EVENT_HEADER, "")
        if not event_type:
            return web.Response(status=400, text=f"Missing {GITHUB_EVENT_HEADER} header")

        body = await request.read()
        # The core is blocking; keep it off the event loop
        status = await asyncio.to_thread(
            self._dispatcher.github,
            request.match_info["owner"],
            request.match_info["name"],
            event_type,
            request.headers.get(GITHUB_SIGNATURE_HEADER, ""),
            body,
        )
        return web.Response(status=status)

    async def _handle_gitlab(self, request: web.Request) -> web.Response:
        event_type = request.headers.get(GITLAB_EVENT_HEADER, "")
        if not event_type:
            return web.Response(status=400, text=f"Missing {GITLAB_EVENT_HEADER} header")

        body = await request.read()
        status = await asyncio.to_thread(
            self._dispatcher.gitlab,
            request.match_info["owner"],
            request.match_info["name"],
            event_type,
            request.headers.get(GITLAB_TOKEN_HEADER, ""),
            body,
        )
        return web.Response(status=status)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="OK")
