"""Per-connection handling of the firmware telemetry stream."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from .. import codec, constants
from .archive import BatchArchive
from .batch import BatchItemDecoder
from .envelope import (
    PART_BATCH,
    PART_SESSION,
    Envelope,
    EnvelopeError,
    batch_ack,
    session_ack,
)

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    AWAITING_ENVELOPE = "awaiting_envelope"
    DISPATCHING = "dispatching"
    CLOSED = "closed"


@dataclass(slots=True)
class SessionStats:
    envelopes: int = 0
    sessions: int = 0
    batches: int = 0
    acks_sent: int = 0


class TelemetrySession:
    """Reads envelope records one at a time and acknowledges them in order.

    Batches are acknowledged before they are archived and decoded so the
    firmware can keep sending. The connection ends on EOF, on an idle
    timeout, or when the stream can no longer be framed; there is no attempt
    to resynchronise.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        archive: BatchArchive,
        decoder: BatchItemDecoder,
        idle_timeout: float = constants.DEFAULT_IDLE_TIMEOUT_SECONDS,
        chunk_size: int = constants.DEFAULT_READ_CHUNK_BYTES,
    ) -> None:
        self._writer = writer
        self._archive = archive
        self._decoder = decoder
        self._idle_timeout = idle_timeout
        self._frames = codec.FrameReader(
            reader, idle_timeout=idle_timeout, chunk_size=chunk_size
        )
        self._state = SessionState.AWAITING_ENVELOPE
        self.stats = SessionStats()
        self.peer = writer.get_extra_info("peername")

    @property
    def state(self) -> SessionState:
        return self._state

    def close(self) -> None:
        """Close the connection; a running ``run()`` returns once the read fails."""

        self._writer.close()

    async def run(self) -> None:
        LOGGER.info("Telemetry connection opened from %s", self.peer)
        try:
            await self._read_loop()
        except ConnectionError as exc:
            LOGGER.warning("Telemetry connection %s lost: %s", self.peer, exc)
        finally:
            self._state = SessionState.CLOSED
            self._writer.close()
            with contextlib.suppress(Exception):
                await self._writer.wait_closed()
            LOGGER.info(
                "Telemetry connection %s closed after %d records "
                "(%d sessions, %d batches, %d acks sent)",
                self.peer,
                self.stats.envelopes,
                self.stats.sessions,
                self.stats.batches,
                self.stats.acks_sent,
            )

    async def _read_loop(self) -> None:
        while True:
            self._state = SessionState.AWAITING_ENVELOPE
            try:
                frame = await self._frames.read_frame()
            except TimeoutError:
                LOGGER.warning(
                    "Telemetry connection %s idle for %.0fs; closing",
                    self.peer,
                    self._idle_timeout,
                )
                return
            except codec.TruncatedInput as exc:
                LOGGER.warning(
                    "Telemetry connection %s ended mid-record: %s", self.peer, exc
                )
                return
            except codec.MalformedInput as exc:
                LOGGER.warning(
                    "Undecodable record on telemetry connection %s; dropping it: %s",
                    self.peer,
                    exc,
                )
                return

            if frame is None:
                LOGGER.debug("Telemetry connection %s reached end of stream", self.peer)
                return

            value, raw = frame
            self._state = SessionState.DISPATCHING
            self.stats.envelopes += 1
            await self._dispatch(value, raw)

    async def _dispatch(self, value: Any, raw: bytes) -> None:
        try:
            envelope = Envelope.from_wire(value)
        except EnvelopeError as exc:
            LOGGER.warning("Ignoring telemetry record from %s: %s", self.peer, exc)
            return

        if envelope.part == PART_SESSION:
            await self._handle_session(envelope)
        elif envelope.part == PART_BATCH:
            await self._handle_batch(envelope, raw)
        else:
            LOGGER.warning(
                "Ignoring telemetry record with unknown part %r", envelope.part
            )

    async def _handle_session(self, envelope: Envelope) -> None:
        self.stats.sessions += 1
        LOGGER.info(
            "Firmware session from device %s (version %s, proto %s)",
            envelope.dev,
            envelope.version,
            envelope.proto,
        )
        await self._send(session_ack())

    async def _handle_batch(self, envelope: Envelope, raw: bytes) -> None:
        if envelope.id is None:
            LOGGER.warning("Ignoring batch record without an id from %s", self.peer)
            return

        batch_id = envelope.id
        await self._send(batch_ack(batch_id))
        self.stats.batches += 1

        if envelope.stream is None:
            LOGGER.warning("Batch %d arrived without a stream", batch_id)
            return

        LOGGER.info(
            "Received batch %d (%d stream bytes)", batch_id, len(envelope.stream)
        )
        await self._archive.persist(batch_id, raw)
        await self._decoder.decode(batch_id, envelope.stream)

    async def _send(self, message: Dict[str, Any]) -> None:
        self._writer.write(codec.encode(message))
        await self._writer.drain()
        self.stats.acks_sent += 1
