"""Firmware control commands relayed over the command channel.

A command is the numeric code on its own line, optionally followed by a
payload line, and closed by a blank line::

    <code>\\n[<payload>\\n]\\n

Structured payloads (alarm, settings) are CBOR encoded and sent as lowercase
hex. Scalar payloads (heat level, heat duration, prime) are passed through as
the caller wrote them. The gateway does not interpret either kind.
"""

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Any, Optional, Union

from . import codec
from .channel import CommandChannel

LOGGER = logging.getLogger(__name__)


class CommandCode(IntEnum):
    HELLO = 0
    ALARM_LEFT = 5
    ALARM_RIGHT = 6
    SETTINGS = 8
    TEMPERATURE_DURATION_LEFT = 9
    TEMPERATURE_DURATION_RIGHT = 10
    TEMPERATURE_LEFT = 11
    TEMPERATURE_RIGHT = 12
    PRIME = 13
    VARIABLES = 14
    ALARM_CLEAR = 16


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class InvalidSideError(ValueError):
    """Raised when a side other than ``left`` or ``right`` is requested."""


class CommandPayloadError(ValueError):
    """Raised when a payload cannot be carried on a single command line."""


def parse_side(value: Union[str, Side]) -> Side:
    try:
        return Side(value)
    except ValueError:
        raise InvalidSideError(f"Invalid side requested: {value!r}") from None


def sided_code(side: Union[str, Side], left: CommandCode, right: CommandCode) -> CommandCode:
    return left if parse_side(side) is Side.LEFT else right


def build_command(code: CommandCode, payload: Optional[str] = None) -> bytes:
    """Return the command text without its closing blank line."""

    if not payload:
        return f"{int(code)}".encode("utf-8")
    if "\n" in payload or "\r" in payload:
        raise CommandPayloadError("payload must fit on a single line")
    return f"{int(code)}\n{payload}".encode("utf-8")


def _text_payload(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class FirmwareCommands:
    """High level operations mapped onto firmware command codes."""

    def __init__(self, channel: CommandChannel) -> None:
        self._channel = channel

    async def send(self, code: CommandCode, payload: Optional[str] = None) -> str:
        command = build_command(code, payload)
        LOGGER.info("Sending firmware command %d (%s)", code, code.name)
        response = await self._channel.execute(command)
        return response.decode("utf-8", errors="replace")

    async def hello(self) -> str:
        return await self.send(CommandCode.HELLO)

    async def variables(self) -> str:
        return await self.send(CommandCode.VARIABLES)

    async def alarm(self, side: Union[str, Side], settings: Any) -> str:
        code = sided_code(side, CommandCode.ALARM_LEFT, CommandCode.ALARM_RIGHT)
        return await self.send(code, codec.to_hex_payload(settings))

    async def alarm_clear(self) -> str:
        return await self.send(CommandCode.ALARM_CLEAR)

    async def settings(self, settings: Any) -> str:
        return await self.send(CommandCode.SETTINGS, codec.to_hex_payload(settings))

    async def temperature_duration(self, side: Union[str, Side], value: Any) -> str:
        code = sided_code(
            side,
            CommandCode.TEMPERATURE_DURATION_LEFT,
            CommandCode.TEMPERATURE_DURATION_RIGHT,
        )
        return await self.send(code, _text_payload(value))

    async def temperature(self, side: Union[str, Side], value: Any) -> str:
        code = sided_code(side, CommandCode.TEMPERATURE_LEFT, CommandCode.TEMPERATURE_RIGHT)
        return await self.send(code, _text_payload(value))

    async def prime(self, value: Any = None) -> str:
        return await self.send(CommandCode.PRIME, _text_payload(value))
