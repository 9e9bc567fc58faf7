import tempfile
from pathlib import Path
from typing import Callable, Iterable, Tuple

import pytest

from bedgate import codec
from bedgate.telemetry import (
    BedTemp,
    CapSense,
    CapSenseSide,
    FrzTemp,
    LogMessage,
    PiezoDual,
    SensorRecord,
    SideTemperatures,
    encode_sensor_record,
)


@pytest.fixture
def socket_dir():
    """Short directory for Unix sockets; pytest's tmp_path can exceed the path limit."""

    with tempfile.TemporaryDirectory(prefix="bg-", dir="/tmp") as path:
        yield Path(path)


@pytest.fixture
def sample_records() -> list[SensorRecord]:
    return [
        CapSense(
            ts=1706000000,
            left=CapSenseSide(status="good", center=468, inner=492, outer=470),
            right=CapSenseSide(status="good", center=451, inner=480, outer=463),
        ),
        PiezoDual(
            ts=1706000001,
            adc=1,
            freq=500,
            gain=400,
            left1=b"\x01\x02\x03\x04",
            left2=b"\x05\x06",
            right1=b"\x07\x08\x09",
            right2=b"",
        ),
        BedTemp(
            ts=1706000002,
            mcu=2829,
            ambient=23.53,
            humidity=50.04,
            left=SideTemperatures(center=2939, inner=2899, outer=2927),
            right=SideTemperatures(center=29.5, inner=28.75, outer=29.0),
        ),
        LogMessage(ts=1706000003, msg="pump started", level="info"),
        FrzTemp(ts=1706000004, ambient=2353, heatsink=31.5, left=18, right=-2.25),
    ]


@pytest.fixture
def build_stream() -> Callable[[Iterable[Tuple[int, bytes]]], bytes]:
    """Concatenate ``{seq, data}`` item frames into a batch stream."""

    def _build(items: Iterable[Tuple[int, bytes]]) -> bytes:
        return b"".join(codec.encode({"seq": seq, "data": data}) for seq, data in items)

    return _build


@pytest.fixture
def record_stream(build_stream) -> Callable[[Iterable[SensorRecord]], bytes]:
    def _build(records: Iterable[SensorRecord]) -> bytes:
        return build_stream(
            (seq, encode_sensor_record(record)) for seq, record in enumerate(records)
        )

    return _build
