"""HTTP control surface translating requests into firmware commands."""

from __future__ import annotations

import contextlib
import json
import logging
from typing import Any, Awaitable, Optional

from aiohttp import web

from .channel import NotConnectedError
from .codec import CodecError
from .commands import CommandPayloadError, FirmwareCommands, InvalidSideError
from .health import COMPONENT_API, HealthReporter

LOGGER = logging.getLogger(__name__)

NOT_CONNECTED_TEXT = "not connected"


class ControlApi:
    """aiohttp application exposing one route per firmware command."""

    def __init__(
        self,
        commands: FirmwareCommands,
        host: str,
        port: int,
        *,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._commands = commands
        self._host = host
        self._port = port
        self._health = health
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/hello", self._handle_hello)
        app.router.add_get("/variables", self._handle_variables)
        app.router.add_post("/alarm/{side}", self._handle_alarm)
        app.router.add_post("/alarm-clear", self._handle_alarm_clear)
        app.router.add_post("/settings", self._handle_settings)
        app.router.add_post(
            "/temperature-duration/{side}", self._handle_temperature_duration
        )
        app.router.add_post("/temperature/{side}", self._handle_temperature)
        app.router.add_post("/prime", self._handle_prime)
        app.router.add_get("/healthz", self._handle_health)
        return app

    async def start(self) -> None:
        """Bind the HTTP listener; OSError propagates when the bind fails."""

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        try:
            await self._site.start()
        except OSError:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            raise
        LOGGER.info("Control API listening on http://%s:%s", self._host, self._port)
        if self._health is not None:
            await self._health.update(COMPONENT_API, True, None)

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_hello(self, request: web.Request) -> web.Response:
        return await self._relay(self._commands.hello())

    async def _handle_variables(self, request: web.Request) -> web.Response:
        return await self._relay(self._commands.variables())

    async def _handle_alarm(self, request: web.Request) -> web.Response:
        settings = await _json_body(request)
        return await self._relay(
            self._commands.alarm(request.match_info["side"], settings)
        )

    async def _handle_alarm_clear(self, request: web.Request) -> web.Response:
        return await self._relay(self._commands.alarm_clear())

    async def _handle_settings(self, request: web.Request) -> web.Response:
        settings = await _json_body(request)
        return await self._relay(self._commands.settings(settings))

    async def _handle_temperature_duration(self, request: web.Request) -> web.Response:
        value = await request.text()
        return await self._relay(
            self._commands.temperature_duration(request.match_info["side"], value)
        )

    async def _handle_temperature(self, request: web.Request) -> web.Response:
        value = await request.text()
        return await self._relay(
            self._commands.temperature(request.match_info["side"], value)
        )

    async def _handle_prime(self, request: web.Request) -> web.Response:
        value = await request.text() if request.can_read_body else None
        return await self._relay(self._commands.prime(value))

    async def _handle_health(self, request: web.Request) -> web.Response:
        if self._health is None:
            return web.json_response({"status": "ok", "components": []})
        snapshot = await self._health.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)

    async def _relay(self, pending: Awaitable[str]) -> web.Response:
        try:
            result = await pending
        except NotConnectedError:
            return web.Response(status=503, text=NOT_CONNECTED_TEXT)
        except (InvalidSideError, CommandPayloadError, CodecError) as exc:
            return web.Response(status=400, text=str(exc))
        return web.Response(text=result)


async def _json_body(request: web.Request) -> Any:
    text = await request.text()
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise web.HTTPBadRequest(text=f"Invalid JSON: {exc}") from exc
