"""Unit tests for the health check handlers."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from jobs import health


@pytest.fixture(autouse=True)
def reset_health_state():
    yield
    health.set_client(None)
    health.set_scheduler(None)


def make_client(ready=True, services=None):
    client = MagicMock()
    client.is_ready.return_value = ready
    client.is_closed.return_value = False
    client.services = services
    return client


def make_scheduler(running=True):
    scheduler = MagicMock()
    scheduler.running = running
    scheduler.get_jobs.return_value = [
        SimpleNamespace(id="invite_refresh", next_run_time=None)
    ]
    return scheduler


class TestHealthHandlers:
    """Test probe endpoints."""

    @pytest.mark.asyncio
    async def test_liveness_always_ok(self):
        response = await health.liveness_handler(MagicMock())

        assert response.status == 200

    @pytest.mark.asyncio
    async def test_not_ready_before_startup(self):
        response = await health.readiness_handler(MagicMock())

        assert response.status == 503
        assert json.loads(response.text)["ready"] is False

    @pytest.mark.asyncio
    async def test_ready_when_connected_and_scheduled(self):
        health.set_client(make_client())
        health.set_scheduler(make_scheduler())

        response = await health.readiness_handler(MagicMock())

        assert response.status == 200

    @pytest.mark.asyncio
    async def test_disconnected_gateway_is_unhealthy(self):
        health.set_client(make_client(ready=False))
        health.set_scheduler(make_scheduler())

        response = await health.health_handler(MagicMock())

        assert response.status == 503
        assert json.loads(response.text)["discord_connected"] is False

    @pytest.mark.asyncio
    async def test_health_reports_affiliate_state(self):
        services = MagicMock()
        services.tracked_guild_ids.return_value = [111]
        services.rollover = SimpleNamespace(current_month="2026-03")
        health.set_client(make_client(services=services))
        health.set_scheduler(make_scheduler())

        response = await health.health_handler(MagicMock())
        body = json.loads(response.text)

        assert response.status == 200
        assert body["status"] == "healthy"
        assert body["tracked_guilds"] == 1
        assert body["leaderboard_month"] == "2026-03"
        assert body["jobs"] == [{"id": "invite_refresh", "next_run_time": None}]
