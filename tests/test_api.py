"""Tests for the HTTP control API."""

from typing import Union

import aiohttp
import pytest
import pytest_asyncio

from bedgate.api import ControlApi
from bedgate.channel import CommandChannel
from bedgate.commands import FirmwareCommands
from bedgate.health import HealthReporter


class FakeChannel:
    def __init__(self, response: bytes = b"ok") -> None:
        self.commands: list[bytes] = []
        self.response = response

    async def execute(self, command: Union[bytes, str]) -> bytes:
        self.commands.append(command)
        return self.response


@pytest_asyncio.fixture
async def api_factory(unused_tcp_port):
    started: list[ControlApi] = []

    async def _start(channel, health=None) -> str:
        api = ControlApi(FirmwareCommands(channel), "127.0.0.1", unused_tcp_port, health=health)
        await api.start()
        started.append(api)
        return f"http://127.0.0.1:{unused_tcp_port}"

    yield _start

    for api in started:
        await api.stop()


@pytest.mark.asyncio
async def test_variables_relays_firmware_text(api_factory) -> None:
    channel = FakeChannel(response=b"heatLevelL = -100\nwaterLevel = true\n")
    base_url = await api_factory(channel)

    async with aiohttp.ClientSession() as session:
        async with session.get(f"{base_url}/variables") as response:
            body = await response.text()
            assert response.status == 200

    assert body == "heatLevelL = -100\nwaterLevel = true\n"
    assert channel.commands == [b"14"]


@pytest.mark.asyncio
async def test_not_connected_is_reported(api_factory) -> None:
    base_url = await api_factory(CommandChannel())

    async with aiohttp.ClientSession() as session:
        async with session.get(f"{base_url}/hello") as response:
            assert response.status == 503
            assert await response.text() == "not connected"
        async with session.post(f"{base_url}/alarm-clear") as response:
            assert response.status == 503


@pytest.mark.asyncio
async def test_alarm_sends_cbor_hex_payload(api_factory) -> None:
    channel = FakeChannel()
    base_url = await api_factory(channel)

    async with aiohttp.ClientSession() as session:
        async with session.post(
            f"{base_url}/alarm/left", data='{"pl": 50, "du": 600, "tt": 1705995000, "pi": "double"}'
        ) as response:
            assert response.status == 200
            assert await response.text() == "ok"

    assert channel.commands == [
        b"5\na462706c18326264751902586274741a65af6af862706966646f75626c65"
    ]


@pytest.mark.asyncio
async def test_invalid_side_is_rejected(api_factory) -> None:
    channel = FakeChannel()
    base_url = await api_factory(channel)

    async with aiohttp.ClientSession() as session:
        async with session.post(f"{base_url}/alarm/middle", data='{"pl": 1}') as response:
            assert response.status == 400
            assert "Invalid side" in await response.text()
        async with session.post(f"{base_url}/temperature/up", data="-40") as response:
            assert response.status == 400
        async with session.post(f"{base_url}/temperature-duration/both", data="60") as response:
            assert response.status == 400

    assert channel.commands == []


@pytest.mark.asyncio
async def test_invalid_json_is_rejected(api_factory) -> None:
    channel = FakeChannel()
    base_url = await api_factory(channel)

    async with aiohttp.ClientSession() as session:
        async with session.post(f"{base_url}/settings", data="{lb: 0") as response:
            assert response.status == 400

    assert channel.commands == []


@pytest.mark.asyncio
async def test_scalar_routes_pass_body_through(api_factory) -> None:
    channel = FakeChannel()
    base_url = await api_factory(channel)

    async with aiohttp.ClientSession() as session:
        for path, body in (
            ("/settings", '{"lb": 0}'),
            ("/temperature/right", "-40"),
            ("/temperature-duration/left", "7200"),
            ("/prime", ""),
        ):
            async with session.post(f"{base_url}{path}", data=body) as response:
                assert response.status == 200

    assert channel.commands == [b"8\na1626c6200", b"12\n-40", b"9\n7200", b"13"]


@pytest.mark.asyncio
async def test_healthz_reports_component_status(api_factory) -> None:
    health = HealthReporter()
    await health.update("control-socket", False, "awaiting firmware connection")
    base_url = await api_factory(FakeChannel(), health)

    async with aiohttp.ClientSession() as session:
        async with session.get(f"{base_url}/healthz") as response:
            payload = await response.json()
            assert response.status == 503

    components = {item["name"]: item for item in payload["components"]}
    assert payload["status"] == "degraded"
    assert components["api"]["healthy"] is True
    assert components["control-socket"]["detail"] == "awaiting firmware connection"
