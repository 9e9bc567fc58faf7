"""Main application entry-point for bedgate."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .api import ControlApi
from .channel import CommandChannel
from .commands import FirmwareCommands
from .config import GatewayConfig, load_config
from .control_socket import ControlSocketListener
from .health import HealthReporter
from .logging import configure_logging
from .telemetry import BatchArchive, BatchItemDecoder, RecordSink, TelemetryServer

LOGGER = logging.getLogger(__name__)


class GatewayStartupError(RuntimeError):
    """Raised when a required listener cannot be bound."""


class GatewayApp:
    """Coordinates gateway startup and shutdown.

    Three listeners are started in order: the firmware control socket, the
    telemetry listener and the HTTP control API. The gateway cannot do its
    job without any of them, so a failed bind stops whatever already started
    and raises ``GatewayStartupError`` instead of running degraded.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        record_sink: Optional[RecordSink] = None,
    ) -> None:
        self._config = config or load_config()
        self._health = HealthReporter()

        self.channel = CommandChannel(self._config.control.response_timeout_seconds)
        self.commands = FirmwareCommands(self.channel)
        self.control_listener = ControlSocketListener(
            self._config.control.socket_path, self.channel, health=self._health
        )
        self.telemetry = TelemetryServer(
            self._config.telemetry,
            archive=BatchArchive(self._config.telemetry.archive_dir),
            decoder=BatchItemDecoder(sink=record_sink),
            health=self._health,
        )
        self.api = ControlApi(
            self.commands,
            self._config.api.host,
            self._config.api.port,
            health=self._health,
        )
        self._started: List[Callable[[], Awaitable[None]]] = []
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def health(self) -> HealthReporter:
        return self._health

    async def run(self) -> None:
        """Start all listeners and serve until shutdown is requested."""

        self._shutdown_event = asyncio.Event()
        LOGGER.info("bedgate starting with config: %s", self._config.path)
        await self.start_services()

        try:
            LOGGER.info("bedgate active; awaiting shutdown signal")
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("bedgate received shutdown signal")
            raise
        finally:
            await self.stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def start_services(self) -> None:
        services = (
            ("control socket", self.control_listener.start, self.control_listener.stop),
            ("telemetry listener", self.telemetry.start, self.telemetry.stop),
            ("control API", self.api.start, self.api.stop),
        )
        for name, start, stop in services:
            try:
                await start()
            except OSError as exc:
                LOGGER.error("Failed to start %s: %s", name, exc)
                await self.stop_services()
                raise GatewayStartupError(f"Failed to start {name}: {exc}") from exc
            self._started.append(stop)

    async def stop_services(self) -> None:
        while self._started:
            stop = self._started.pop()
            try:
                await stop()
            except Exception as exc:
                LOGGER.warning("Error during shutdown: %s", exc, exc_info=True)

    @classmethod
    def start(cls, config: Optional[GatewayConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("bedgate received shutdown signal")
