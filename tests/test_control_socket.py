"""Tests for the firmware control socket listener."""

import asyncio
import socket

import pytest

from bedgate.channel import CommandChannel
from bedgate.control_socket import ControlSocketListener
from bedgate.health import HealthReporter


async def _wait_until(predicate, timeout: float = 1.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


@pytest.mark.asyncio
async def test_accepted_connection_is_installed(socket_dir) -> None:
    channel = CommandChannel(response_timeout=0.05)
    health = HealthReporter()
    listener = ControlSocketListener(socket_dir / "dac.sock", channel, health=health)
    await listener.start()
    try:
        reader, writer = await asyncio.open_unix_connection(str(listener.path))
        await _wait_until(lambda: channel.connected)

        pending = asyncio.create_task(channel.execute(b"14"))
        command = await reader.readuntil(b"\n\n")
        writer.write(b"priming = false\n")
        await writer.drain()

        assert command == b"14\n\n"
        assert await pending == b"priming = false\n"

        snapshot = await health.snapshot()
        assert snapshot["status"] == "ok"
        assert snapshot["components"][0]["detail"] == "listening; firmware connection #1 installed"
        writer.close()
    finally:
        await listener.stop()


@pytest.mark.asyncio
async def test_new_connection_replaces_previous(socket_dir) -> None:
    channel = CommandChannel(response_timeout=0.05)
    listener = ControlSocketListener(socket_dir / "dac.sock", channel)
    await listener.start()
    try:
        first_reader, first_writer = await asyncio.open_unix_connection(str(listener.path))
        await _wait_until(lambda: listener.connections_accepted == 1)
        second_reader, second_writer = await asyncio.open_unix_connection(str(listener.path))
        await _wait_until(lambda: listener.connections_accepted == 2)

        assert await asyncio.wait_for(first_reader.read(), timeout=1.0) == b""

        pending = asyncio.create_task(channel.execute(b"0"))
        assert await second_reader.readuntil(b"\n\n") == b"0\n\n"
        second_writer.write(b"ok")
        assert await pending == b"ok"

        first_writer.close()
        second_writer.close()
    finally:
        await listener.stop()


@pytest.mark.asyncio
async def test_stale_socket_file_is_replaced(socket_dir) -> None:
    path = socket_dir / "dac.sock"
    stale = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    stale.bind(str(path))
    stale.close()
    assert path.exists()

    listener = ControlSocketListener(path, CommandChannel())
    await listener.start()
    await listener.stop()


@pytest.mark.asyncio
async def test_bind_failure_propagates(socket_dir) -> None:
    listener = ControlSocketListener(socket_dir / "missing" / "dac.sock", CommandChannel())

    with pytest.raises(OSError):
        await listener.start()


@pytest.mark.asyncio
async def test_bound_listener_is_healthy_before_firmware_connects(socket_dir) -> None:
    health = HealthReporter()
    listener = ControlSocketListener(socket_dir / "dac.sock", CommandChannel(), health=health)
    await listener.start()
    try:
        snapshot = await health.snapshot()
    finally:
        await listener.stop()

    assert snapshot["status"] == "ok"
    assert snapshot["components"][0]["detail"] == "listening; awaiting firmware connection"
    assert (await health.snapshot())["status"] == "degraded"
