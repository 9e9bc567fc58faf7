"""Unix socket listener the firmware connects to for control commands."""

from __future__ import annotations

import asyncio
import logging
import stat
from pathlib import Path
from typing import Optional

from .channel import CommandChannel
from .health import COMPONENT_CONTROL_SOCKET, HealthReporter

LOGGER = logging.getLogger(__name__)


class ControlSocketListener:
    """Installs every accepted firmware connection into the command channel.

    Health tracks the listener, not the firmware: the socket is healthy while
    it is bound, whether or not firmware has connected yet. Whether a command
    can currently be relayed shows up per request as "not connected".
    """

    def __init__(
        self,
        path: Path,
        channel: CommandChannel,
        *,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._path = Path(path)
        self._channel = channel
        self._health = health
        self._server: Optional[asyncio.Server] = None
        self.connections_accepted = 0

    @property
    def path(self) -> Path:
        return self._path

    async def start(self) -> None:
        """Bind the socket; OSError propagates when the bind fails."""

        self._remove_stale_socket()
        self._server = await asyncio.start_unix_server(
            self._handle_connection, path=str(self._path)
        )
        LOGGER.info("Waiting for firmware control connection on %s", self._path)
        await self._report(True, "listening; awaiting firmware connection")

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        self._channel.close()
        await self._server.wait_closed()
        self._server = None
        await self._report(False, "stopped")

    def _remove_stale_socket(self) -> None:
        try:
            mode = self._path.stat().st_mode
        except FileNotFoundError:
            return
        if stat.S_ISSOCK(mode):
            LOGGER.debug("Removing stale control socket %s", self._path)
            self._path.unlink()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self.connections_accepted += 1
        LOGGER.info("New firmware control connection (#%d)", self.connections_accepted)
        self._channel.install(reader, writer)
        await self._report(
            True, f"listening; firmware connection #{self.connections_accepted} installed"
        )

    async def _report(self, healthy: bool, detail: str) -> None:
        if self._health is not None:
            await self._health.update(COMPONENT_CONTROL_SOCKET, healthy, detail)
