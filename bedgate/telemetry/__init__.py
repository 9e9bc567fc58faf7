"""Firmware telemetry ingest: envelope sessions, batch archival and decoding."""

from .archive import BatchArchive, archive_name, read_archived_envelope
from .batch import (
    BatchItem,
    BatchItemDecoder,
    BatchItemError,
    BatchItemOutcome,
    BatchStreamError,
    RecordSink,
    iter_batch_frames,
)
from .envelope import Envelope, EnvelopeError, batch_ack, session_ack
from .records import (
    BedTemp,
    CapSense,
    CapSenseSide,
    FrzTemp,
    LogMessage,
    PiezoDual,
    RecordDecodeError,
    SensorRecord,
    SideTemperatures,
    decode_sensor_record,
    encode_sensor_record,
)
from .server import TelemetryServer
from .session import SessionState, TelemetrySession

__all__ = [
    "BatchArchive",
    "BatchItem",
    "BatchItemDecoder",
    "BatchItemError",
    "BatchItemOutcome",
    "BatchStreamError",
    "BedTemp",
    "CapSense",
    "CapSenseSide",
    "Envelope",
    "EnvelopeError",
    "FrzTemp",
    "LogMessage",
    "PiezoDual",
    "RecordDecodeError",
    "RecordSink",
    "SensorRecord",
    "SessionState",
    "SideTemperatures",
    "TelemetryServer",
    "TelemetrySession",
    "archive_name",
    "batch_ack",
    "decode_sensor_record",
    "encode_sensor_record",
    "iter_batch_frames",
    "read_archived_envelope",
    "session_ack",
]
