"""TCP listener accepting firmware telemetry exporter connections."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from ..config import TelemetryConfig
from ..health import COMPONENT_TELEMETRY, HealthReporter
from .archive import BatchArchive
from .batch import BatchItemDecoder
from .session import TelemetrySession

LOGGER = logging.getLogger(__name__)


class TelemetryServer:
    """Spawns one ``TelemetrySession`` per accepted connection."""

    def __init__(
        self,
        config: TelemetryConfig,
        *,
        archive: Optional[BatchArchive] = None,
        decoder: Optional[BatchItemDecoder] = None,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._config = config
        self._archive = archive or BatchArchive(config.archive_dir)
        self._decoder = decoder or BatchItemDecoder()
        self._health = health
        self._server: Optional[asyncio.Server] = None
        self._sessions: Set[TelemetrySession] = set()

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    @property
    def port(self) -> Optional[int]:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind the listening socket; OSError propagates when the bind fails."""

        self._server = await asyncio.start_server(
            self._handle_connection, self._config.host, self._config.port
        )
        LOGGER.info(
            "Telemetry listener on %s:%s (archive %s)",
            self._config.host,
            self.port,
            self._archive.directory,
        )
        await self._report(True, "listening")

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        for session in list(self._sessions):
            session.close()
        await self._server.wait_closed()
        self._server = None
        await self._report(False, "stopped")

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        session = TelemetrySession(
            reader,
            writer,
            archive=self._archive,
            decoder=self._decoder,
            idle_timeout=self._config.idle_timeout_seconds,
            chunk_size=self._config.read_chunk_bytes,
        )
        self._sessions.add(session)
        await self._report(True, f"sessions={self.active_sessions}")
        try:
            await session.run()
        finally:
            self._sessions.discard(session)
            if self._server is not None:
                await self._report(True, f"sessions={self.active_sessions}")

    async def _report(self, healthy: bool, detail: str) -> None:
        if self._health is not None:
            await self._health.update(COMPONENT_TELEMETRY, healthy, detail)
