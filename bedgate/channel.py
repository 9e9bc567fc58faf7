"""Single replaceable connection to the firmware control socket."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from . import constants

LOGGER = logging.getLogger(__name__)

COMMAND_TERMINATOR = b"\n\n"
_READ_SIZE = 4096


class NotConnectedError(RuntimeError):
    """Raised when a command is issued before the firmware has connected."""


@dataclass(slots=True)
class FirmwareConnection:
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter

    def close(self) -> None:
        self.writer.close()


class CommandChannel:
    """Serialises request/response exchanges over the firmware connection.

    The firmware replies with free-form text and no terminator, so a reply is
    everything received until the socket stays quiet for
    ``response_timeout`` seconds or reaches EOF. I/O failures are logged and
    yield whatever had been received so far.
    """

    def __init__(
        self, response_timeout: float = constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS
    ) -> None:
        self._response_timeout = response_timeout
        self._connection: Optional[FirmwareConnection] = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def install(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Replace the current firmware connection, closing the previous one."""

        previous = self._connection
        self._connection = FirmwareConnection(reader, writer)
        if previous is not None:
            LOGGER.info("Replacing firmware control connection")
            previous.close()

    def close(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            connection.close()

    async def execute(self, command: Union[bytes, str]) -> bytes:
        """Send one command and return the raw firmware response.

        Raises:
            NotConnectedError: No firmware connection has been installed.
        """

        if self._connection is None:
            raise NotConnectedError("firmware control socket not connected")

        if isinstance(command, str):
            command = command.encode("utf-8")

        async with self._lock:
            connection = self._connection
            if connection is None:
                raise NotConnectedError("firmware control socket not connected")
            return await self._exchange(connection, command + COMMAND_TERMINATOR)

    async def _exchange(self, connection: FirmwareConnection, message: bytes) -> bytes:
        try:
            connection.writer.write(message)
            await connection.writer.drain()
        except OSError as exc:
            LOGGER.warning("Failed to send command to firmware: %s", exc)
            return b""

        response = bytearray()
        while True:
            try:
                async with asyncio.timeout(self._response_timeout):
                    chunk = await connection.reader.read(_READ_SIZE)
            except TimeoutError:
                break
            except OSError as exc:
                LOGGER.warning("Failed to read firmware response: %s", exc)
                break
            if not chunk:
                break
            response.extend(chunk)

        LOGGER.debug(
            "Command %r answered with %d bytes",
            message.split(b"\n", 1)[0],
            len(response),
        )
        return bytes(response)
