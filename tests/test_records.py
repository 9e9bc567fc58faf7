"""Tests for sensor record decoding."""

import pytest

from bedgate import codec
from bedgate.telemetry import (
    BedTemp,
    CapSense,
    LogMessage,
    RecordDecodeError,
    decode_sensor_record,
    encode_sensor_record,
)
from bedgate.telemetry.records import RECORD_TYPES, record_from_wire


def test_every_variant_round_trips(sample_records) -> None:
    assert {record.TYPE for record in sample_records} == set(RECORD_TYPES)

    for record in sample_records:
        assert decode_sensor_record(encode_sensor_record(record)) == record


def test_bed_temp_decodes_from_firmware_keys() -> None:
    payload = codec.encode(
        {
            "type": "bedTemp",
            "ts": 1706000000,
            "mcu": 28.29,
            "amb": 23.53,
            "hu": 50.04,
            "left": {"cen": 29.39, "in": 28.99, "out": 29.27},
            "right": {"cen": 30.0, "in": 29.0, "out": 28.0},
        }
    )

    record = decode_sensor_record(payload)

    assert isinstance(record, BedTemp)
    assert record.ambient == 23.53
    assert record.left.inner == 28.99
    assert record.right.outer == 28.0


def test_extra_fields_are_ignored() -> None:
    record = record_from_wire(
        {"type": "log", "ts": 5, "msg": "hello", "level": "debug", "extra": [1, 2]}
    )

    assert record == LogMessage(ts=5, msg="hello", level="debug")


def test_cap_sense_side_keys_map_to_fields() -> None:
    record = record_from_wire(
        {
            "type": "capSense",
            "ts": 1,
            "left": {"status": "good", "cen": 1, "in": 2, "out": 3},
            "right": {"status": "bad", "cen": 4, "in": 5, "out": 6},
        }
    )

    assert isinstance(record, CapSense)
    assert (record.left.center, record.left.inner, record.left.outer) == (1, 2, 3)
    assert record.right.status == "bad"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"type": "humidity", "ts": 1}, "unknown record type"),
        ({"ts": 1, "msg": "x", "level": "info"}, "unknown record type"),
        ({"type": "log", "ts": 1, "level": "info"}, "missing field 'msg'"),
        ({"type": "log", "ts": True, "msg": "x", "level": "info"}, "'ts' must be an integer"),
        ({"type": "frzTemp", "ts": 1, "amb": "cold", "hs": 1, "left": 1, "right": 1}, "'amb' must be a number"),
        ({"type": "capSense", "ts": 1, "left": [], "right": {}}, "'left' must be a map"),
        ({"type": "piezo-dual", "ts": 1, "adc": 1, "freq": 1, "gain": 1, "left1": "x", "left2": b"", "right1": b"", "right2": b""}, "'left1' must be a byte string"),
        ([1, 2, 3], "expected a map"),
    ],
)
def test_shape_mismatches_raise(payload, message) -> None:
    with pytest.raises(RecordDecodeError, match=message):
        decode_sensor_record(codec.encode(payload))


def test_undecodable_payload_raises() -> None:
    with pytest.raises(RecordDecodeError, match="undecodable payload"):
        decode_sensor_record(b"\xa3\x61")
