"""Sensor record variants carried inside telemetry batch items.

Every item payload is a CBOR map whose ``type`` field names the variant. The
dataclasses below mirror those maps; ``from_wire`` checks the structure and
``to_wire`` rebuilds the map so a decoded record can be re-encoded unchanged.
Values are kept exactly as the firmware sent them: no unit conversion and no
range checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Type, Union

from .. import codec

Number = Union[int, float]


class RecordDecodeError(ValueError):
    """Raised when an item payload does not match any known sensor record."""


def _field(payload: Mapping[str, Any], key: str) -> Any:
    try:
        return payload[key]
    except KeyError:
        raise RecordDecodeError(f"missing field '{key}'") from None


def _int(payload: Mapping[str, Any], key: str) -> int:
    value = _field(payload, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise RecordDecodeError(f"field '{key}' must be an integer")
    return value


def _number(payload: Mapping[str, Any], key: str) -> Number:
    value = _field(payload, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordDecodeError(f"field '{key}' must be a number")
    return value


def _str(payload: Mapping[str, Any], key: str) -> str:
    value = _field(payload, key)
    if not isinstance(value, str):
        raise RecordDecodeError(f"field '{key}' must be a string")
    return value


def _bytes(payload: Mapping[str, Any], key: str) -> bytes:
    value = _field(payload, key)
    if not isinstance(value, (bytes, bytearray)):
        raise RecordDecodeError(f"field '{key}' must be a byte string")
    return bytes(value)


def _map(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = _field(payload, key)
    if not isinstance(value, Mapping):
        raise RecordDecodeError(f"field '{key}' must be a map")
    return value


@dataclass(slots=True, frozen=True)
class CapSenseSide:
    status: str
    center: Number
    inner: Number
    outer: Number

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "CapSenseSide":
        return cls(
            status=_str(payload, "status"),
            center=_number(payload, "cen"),
            inner=_number(payload, "in"),
            outer=_number(payload, "out"),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "cen": self.center,
            "in": self.inner,
            "out": self.outer,
        }


@dataclass(slots=True, frozen=True)
class SideTemperatures:
    center: Number
    inner: Number
    outer: Number

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "SideTemperatures":
        return cls(
            center=_number(payload, "cen"),
            inner=_number(payload, "in"),
            outer=_number(payload, "out"),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {"cen": self.center, "in": self.inner, "out": self.outer}


@dataclass(slots=True, frozen=True)
class CapSense:
    """Capacitive presence sensing for both sides of the bed."""

    TYPE: ClassVar[str] = "capSense"

    ts: int
    left: CapSenseSide
    right: CapSenseSide

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "CapSense":
        return cls(
            ts=_int(payload, "ts"),
            left=CapSenseSide.from_wire(_map(payload, "left")),
            right=CapSenseSide.from_wire(_map(payload, "right")),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": self.TYPE,
            "ts": self.ts,
            "left": self.left.to_wire(),
            "right": self.right.to_wire(),
        }


@dataclass(slots=True, frozen=True)
class PiezoDual:
    """Raw piezo waveforms, two channels per side."""

    TYPE: ClassVar[str] = "piezo-dual"

    ts: int
    adc: int
    freq: int
    gain: int
    left1: bytes
    left2: bytes
    right1: bytes
    right2: bytes

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "PiezoDual":
        return cls(
            ts=_int(payload, "ts"),
            adc=_int(payload, "adc"),
            freq=_int(payload, "freq"),
            gain=_int(payload, "gain"),
            left1=_bytes(payload, "left1"),
            left2=_bytes(payload, "left2"),
            right1=_bytes(payload, "right1"),
            right2=_bytes(payload, "right2"),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": self.TYPE,
            "ts": self.ts,
            "adc": self.adc,
            "freq": self.freq,
            "gain": self.gain,
            "left1": self.left1,
            "left2": self.left2,
            "right1": self.right1,
            "right2": self.right2,
        }


@dataclass(slots=True, frozen=True)
class BedTemp:
    """Bed surface temperatures plus controller and ambient readings."""

    TYPE: ClassVar[str] = "bedTemp"

    ts: int
    mcu: Number
    ambient: Number
    humidity: Number
    left: SideTemperatures
    right: SideTemperatures

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "BedTemp":
        return cls(
            ts=_int(payload, "ts"),
            mcu=_number(payload, "mcu"),
            ambient=_number(payload, "amb"),
            humidity=_number(payload, "hu"),
            left=SideTemperatures.from_wire(_map(payload, "left")),
            right=SideTemperatures.from_wire(_map(payload, "right")),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": self.TYPE,
            "ts": self.ts,
            "mcu": self.mcu,
            "amb": self.ambient,
            "hu": self.humidity,
            "left": self.left.to_wire(),
            "right": self.right.to_wire(),
        }


@dataclass(slots=True, frozen=True)
class LogMessage:
    """Firmware log line forwarded through the telemetry stream."""

    TYPE: ClassVar[str] = "log"

    ts: int
    msg: str
    level: str

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "LogMessage":
        return cls(
            ts=_int(payload, "ts"),
            msg=_str(payload, "msg"),
            level=_str(payload, "level"),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "ts": self.ts, "msg": self.msg, "level": self.level}


@dataclass(slots=True, frozen=True)
class FrzTemp:
    """Temperatures reported by the water cooling unit."""

    TYPE: ClassVar[str] = "frzTemp"

    ts: int
    ambient: Number
    heatsink: Number
    left: Number
    right: Number

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "FrzTemp":
        return cls(
            ts=_int(payload, "ts"),
            ambient=_number(payload, "amb"),
            heatsink=_number(payload, "hs"),
            left=_number(payload, "left"),
            right=_number(payload, "right"),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "type": self.TYPE,
            "ts": self.ts,
            "amb": self.ambient,
            "hs": self.heatsink,
            "left": self.left,
            "right": self.right,
        }


SensorRecord = Union[CapSense, PiezoDual, BedTemp, LogMessage, FrzTemp]

RECORD_TYPES: Dict[str, Type[SensorRecord]] = {
    record_type.TYPE: record_type
    for record_type in (CapSense, PiezoDual, BedTemp, LogMessage, FrzTemp)
}


def record_from_wire(payload: Any) -> SensorRecord:
    """Build a sensor record from an already decoded item payload."""

    if not isinstance(payload, Mapping):
        raise RecordDecodeError(
            f"expected a map, got {type(payload).__name__}"
        )
    record_type = payload.get("type")
    cls = RECORD_TYPES.get(record_type) if isinstance(record_type, str) else None
    if cls is None:
        raise RecordDecodeError(f"unknown record type {record_type!r}")
    return cls.from_wire(payload)


def decode_sensor_record(data: bytes) -> SensorRecord:
    """Decode an item payload into its sensor record variant.

    Raises:
        RecordDecodeError: The bytes are not valid CBOR, the ``type`` is not
            recognised, or the fields do not match the variant's shape.
    """

    try:
        payload = codec.decode(data)
    except codec.CodecError as exc:
        raise RecordDecodeError(f"undecodable payload: {exc}") from exc
    return record_from_wire(payload)


def encode_sensor_record(record: SensorRecord) -> bytes:
    return codec.encode(record.to_wire())
