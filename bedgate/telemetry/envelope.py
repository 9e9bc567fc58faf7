"""Top-level records exchanged on the telemetry stream."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .. import constants

LOGGER = logging.getLogger(__name__)

PART_SESSION = "session"
PART_BATCH = "batch"


class EnvelopeError(ValueError):
    """Raised when a decoded frame is not shaped like an envelope record."""


@dataclass(slots=True)
class Envelope:
    part: Optional[str]
    proto: Optional[str] = None
    id: Optional[int] = None
    version: Optional[str] = None
    dev: Optional[str] = None
    stream: Optional[bytes] = None

    @classmethod
    def from_wire(cls, payload: Any) -> "Envelope":
        if not isinstance(payload, Mapping):
            raise EnvelopeError(f"expected a map, got {type(payload).__name__}")

        batch_id = payload.get("id")
        if batch_id is not None and (
            isinstance(batch_id, bool) or not isinstance(batch_id, int) or batch_id < 0
        ):
            LOGGER.warning("Ignoring invalid envelope id %r", batch_id)
            batch_id = None

        stream = payload.get("stream")
        if stream is not None and not isinstance(stream, (bytes, bytearray)):
            LOGGER.warning(
                "Ignoring non-binary envelope stream of type %s", type(stream).__name__
            )
            stream = None

        return cls(
            part=_optional_str(payload.get("part")),
            proto=_optional_str(payload.get("proto")),
            id=batch_id,
            version=_optional_str(payload.get("version")),
            dev=_optional_str(payload.get("dev")),
            stream=bytes(stream) if stream is not None else None,
        )


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def session_ack() -> Dict[str, Any]:
    return {"proto": constants.TELEMETRY_PROTOCOL, "part": PART_SESSION}


def batch_ack(batch_id: int) -> Dict[str, Any]:
    return {"proto": constants.TELEMETRY_PROTOCOL, "part": PART_BATCH, "id": batch_id}
