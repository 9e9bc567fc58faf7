import pytest

from bedgate.health import HealthReporter


@pytest.mark.asyncio
async def test_health_reporter_snapshot():
    reporter = HealthReporter()

    await reporter.update("telemetry", True, "sessions=0")
    await reporter.update("control-socket", False, "awaiting firmware connection")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    components = {item["name"]: item for item in snapshot["components"]}
    assert components["telemetry"]["healthy"] is True
    assert components["control-socket"]["healthy"] is False
    assert components["control-socket"]["detail"] == "awaiting firmware connection"


@pytest.mark.asyncio
async def test_health_reporter_latest_update_wins():
    reporter = HealthReporter()

    await reporter.update("control-socket", False, "awaiting firmware connection")
    await reporter.update("control-socket", True, "firmware connected")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "ok"
    assert len(snapshot["components"]) == 1
    assert snapshot["components"][0]["detail"] == "firmware connected"
