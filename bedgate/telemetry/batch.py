"""Decoding of the item stream carried inside a telemetry batch."""

from __future__ import annotations

import asyncio
import inspect
import logging
import reprlib
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, List, Mapping, Optional

from .. import codec
from .records import RecordDecodeError, SensorRecord, decode_sensor_record

LOGGER = logging.getLogger(__name__)

RecordSink = Callable[[int, int, SensorRecord], Awaitable[None] | None]

_diagnostic_repr = reprlib.Repr()
_diagnostic_repr.maxstring = 60
_diagnostic_repr.maxother = 60
_diagnostic_repr.maxdict = 12


class BatchStreamError(Exception):
    """Raised when the item stream cannot be framed past ``offset``."""

    def __init__(self, offset: int, cause: codec.CodecError) -> None:
        super().__init__(f"undecodable item at offset {offset}: {cause}")
        self.offset = offset
        self.cause = cause


class BatchItemError(ValueError):
    """Raised when a framed item is not a ``{seq, data}`` map."""


@dataclass(slots=True, frozen=True)
class BatchItem:
    seq: int
    data: bytes

    @classmethod
    def from_wire(cls, payload: Any) -> "BatchItem":
        if not isinstance(payload, Mapping):
            raise BatchItemError(f"expected a map, got {type(payload).__name__}")
        seq = payload.get("seq")
        data = payload.get("data")
        if isinstance(seq, bool) or not isinstance(seq, int):
            raise BatchItemError(f"invalid seq {seq!r}")
        if not isinstance(data, (bytes, bytearray)):
            raise BatchItemError(f"item {seq} has no binary data")
        return cls(seq=seq, data=bytes(data))

    def to_wire(self) -> dict[str, Any]:
        return {"seq": self.seq, "data": self.data}


@dataclass(slots=True, frozen=True)
class BatchItemOutcome:
    seq: Optional[int]
    record: Optional[SensorRecord] = None
    error: Optional[str] = None

    @property
    def decoded(self) -> bool:
        return self.record is not None


def iter_batch_frames(stream: bytes) -> Iterator[Any]:
    """Yield each decoded item of ``stream`` until it is exhausted.

    Running out of bytes exactly at an item boundary is the normal end of a
    batch. Anything else raises ``BatchStreamError``.
    """

    offset = 0
    while offset < len(stream):
        try:
            value, offset = codec.decode_from(stream, offset)
        except codec.CodecError as exc:
            raise BatchStreamError(offset, exc) from exc
        yield value


def describe_payload(data: bytes) -> str:
    """Best-effort rendering of an unrecognised payload for the logs."""

    try:
        value, _ = codec.decode_from(data)
    except codec.CodecError as exc:
        return f"<{len(data)} undecodable bytes: {exc}>"
    return _diagnostic_repr.repr(value)


class BatchItemDecoder:
    """Turns a batch's inner stream into sensor records.

    A bad item is logged and skipped; a stream that can no longer be framed
    ends decoding for that batch only.
    """

    def __init__(self, sink: Optional[RecordSink] = None) -> None:
        self._sink = sink

    async def decode(self, batch_id: int, stream: bytes) -> List[BatchItemOutcome]:
        """Decode ``stream`` on a worker thread, then hand records to the sink in order."""

        outcomes = await asyncio.to_thread(self.decode_items, batch_id, stream)
        for outcome in outcomes:
            if outcome.record is not None and outcome.seq is not None:
                await self._emit(batch_id, outcome.seq, outcome.record)
        return outcomes

    def decode_items(self, batch_id: int, stream: bytes) -> List[BatchItemOutcome]:
        outcomes: List[BatchItemOutcome] = []
        try:
            for frame in iter_batch_frames(stream):
                outcomes.append(self._decode_item(batch_id, frame))
        except BatchStreamError as exc:
            LOGGER.warning(
                "Batch %d: stopped decoding after %d items: %s",
                batch_id,
                len(outcomes),
                exc,
            )

        decoded = sum(1 for outcome in outcomes if outcome.decoded)
        LOGGER.info(
            "Batch %d: decoded %d records, discarded %d items",
            batch_id,
            decoded,
            len(outcomes) - decoded,
        )
        return outcomes

    def _decode_item(self, batch_id: int, frame: Any) -> BatchItemOutcome:
        try:
            item = BatchItem.from_wire(frame)
        except BatchItemError as exc:
            LOGGER.warning("Batch %d: discarding malformed item: %s", batch_id, exc)
            return BatchItemOutcome(seq=None, error=str(exc))

        try:
            record = decode_sensor_record(item.data)
        except RecordDecodeError as exc:
            LOGGER.warning(
                "Batch %d: discarding item %d (%s): %s",
                batch_id,
                item.seq,
                exc,
                describe_payload(item.data),
            )
            return BatchItemOutcome(seq=item.seq, error=str(exc))

        LOGGER.debug("Batch %d item %d: %s", batch_id, item.seq, record)
        return BatchItemOutcome(seq=item.seq, record=record)

    async def _emit(self, batch_id: int, seq: int, record: SensorRecord) -> None:
        if self._sink is None:
            return
        try:
            result = self._sink(batch_id, seq, record)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            LOGGER.error(
                "Record sink failed for batch %d item %d: %s",
                batch_id,
                seq,
                exc,
                exc_info=True,
            )
