"""CBOR wire codec shared by the command socket and the telemetry stream.

Values are encoded and decoded with ``cbor2``. The telemetry stream carries
back-to-back CBOR items with no length prefix, so decoding runs over a
stream decoder that consumes exactly one item and reports where it ended.
cbor2 signals an item cut short by the end of input with ``CBORDecodeEOF``,
which is surfaced as ``TruncatedInput``; every other decode failure is
``MalformedInput``.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Optional, Tuple, Union

import cbor2

LOGGER = logging.getLogger(__name__)

Buffer = Union[bytes, bytearray]

_BREAK = 0xFF


class CodecError(Exception):
    """Base class for wire codec failures."""


class TruncatedInput(CodecError):
    """Raised when the input ends before a complete item has been read."""


class MalformedInput(CodecError):
    """Raised when the input is not a valid CBOR item."""


def encode(value: Any) -> bytes:
    """Encode ``value`` as a single CBOR item."""

    try:
        return cbor2.dumps(value)
    except cbor2.CBOREncodeError as exc:
        raise CodecError(f"Cannot encode {type(value).__name__}: {exc}") from exc


def to_hex_payload(value: Any) -> str:
    """Return the lowercase hex form of ``encode(value)`` used on the command socket."""

    return encode(value).hex()


def frame_length(data: Buffer, offset: int = 0) -> int:
    """Return the byte length of the complete item starting at ``offset``."""

    _, end = decode_from(data, offset)
    return end - offset


def decode_from(data: Buffer, offset: int = 0) -> Tuple[Any, int]:
    """Decode one item at ``offset`` and return it with the offset just past it."""

    if offset < len(data) and data[offset] == _BREAK:
        raise MalformedInput(f"unexpected break at offset {offset}")

    stream = io.BytesIO(data)
    stream.seek(offset)
    decoder = cbor2.CBORDecoder(stream)
    try:
        value = decoder.decode()
    except cbor2.CBORDecodeEOF as exc:
        raise TruncatedInput(f"item at offset {offset} is incomplete: {exc}") from exc
    except cbor2.CBORDecodeError as exc:
        raise MalformedInput(f"invalid item at offset {offset}: {exc}") from exc
    return value, stream.tell()


def decode(data: Buffer) -> Any:
    """Decode a buffer holding exactly one item."""

    value, end = decode_from(data)
    if end != len(data):
        raise MalformedInput(
            f"{len(data) - end} trailing bytes after item of {end} bytes"
        )
    return value


class FrameReader:
    """Incrementally read whole CBOR items from an asyncio stream.

    Bytes are buffered until the decoder stops reporting a truncated item,
    so an item split across TCP segments is reassembled and nothing past the
    item is consumed. Envelopes carry their batch as one byte string, so a
    retried decode of a partial envelope is a handful of map entries.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        *,
        idle_timeout: Optional[float] = None,
        chunk_size: int = 4096,
    ) -> None:
        self._reader = reader
        self._idle_timeout = idle_timeout
        self._chunk_size = chunk_size
        self._buffer = bytearray()

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    async def read_frame(self) -> Optional[Tuple[Any, bytes]]:
        """Return ``(value, raw_bytes)`` for the next item, or None on a clean EOF.

        Raises:
            TruncatedInput: The stream ended part way through an item.
            MalformedInput: The buffered bytes cannot form a valid item.
            TimeoutError: No bytes arrived within the idle timeout.
        """

        while True:
            if self._buffer:
                try:
                    value, length = decode_from(self._buffer)
                except TruncatedInput:
                    pass
                else:
                    raw = bytes(self._buffer[:length])
                    del self._buffer[:length]
                    return value, raw

            chunk = await self._read_chunk()
            if not chunk:
                if self._buffer:
                    raise TruncatedInput(
                        f"stream ended inside an item ({len(self._buffer)} bytes buffered)"
                    )
                return None
            self._buffer.extend(chunk)

    async def _read_chunk(self) -> bytes:
        async with asyncio.timeout(self._idle_timeout):
            return await self._reader.read(self._chunk_size)
