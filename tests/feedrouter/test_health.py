"""
Unit tests for HealthCheckServer.

Endpoints are exercised over real HTTP on a dynamically assigned port.
"""

import aiohttp
import pytest

from feedrouter.health import HealthCheckServer


async def _get(server, path):
    async with (
        aiohttp.ClientSession() as session,
        session.get(f"http://127.0.0.1:{server.actual_port}{path}") as resp,
    ):
        return resp.status, await resp.json()


@pytest.fixture
async def server():
    server = HealthCheckServer(port=0, name="router-test")
    await server.start()
    yield server
    await server.stop()


class TestInitialization:

    def test_defaults(self):
        server = HealthCheckServer(port=8080)
        assert server.is_enabled is True
        assert server.is_ready is False
        assert server.actual_port is None
        assert server.error_message is None

    def test_port_none_disables(self):
        assert HealthCheckServer(port=None).is_enabled is False

    def test_enabled_false_disables(self):
        assert HealthCheckServer(port=8080, enabled=False).is_enabled is False


class TestLifecycle:

    async def test_start_assigns_port(self, server):
        assert server.actual_port is not None
        assert server.actual_port > 0

    async def test_port_conflict_falls_back(self, server):
        second = HealthCheckServer(port=server.actual_port, name="second")
        await second.start()
        try:
            assert second.actual_port is not None
            assert second.actual_port != server.actual_port
        finally:
            await second.stop()

    async def test_stop_releases_port(self):
        server = HealthCheckServer(port=0)
        await server.start()
        port = server.actual_port

        await server.stop()

        assert server.actual_port is None
        async with aiohttp.ClientSession() as session:
            with pytest.raises(aiohttp.ClientError):
                async with session.get(f"http://127.0.0.1:{port}/health/live"):
                    pass

    async def test_disabled_start_and_stop_are_noops(self):
        server = HealthCheckServer(port=8080, enabled=False)
        await server.start()
        assert server.actual_port is None
        await server.stop()


class TestLiveness:

    async def test_alive_even_when_not_ready(self, server):
        status, data = await _get(server, "/health/live")

        assert status == 200
        assert data["status"] == "alive"
        assert data["service"] == "router-test"
        assert data["uptime_seconds"] >= 0


class TestReadiness:

    async def test_not_ready_initially(self, server):
        status, data = await _get(server, "/health/ready")

        assert status == 503
        assert data["status"] == "not_ready"
        assert data["reasons"] == ["pool_unknown", "unsubscribed"]

    async def test_not_ready_without_subscription(self, server):
        server.set_ready(pool_refreshed=True, subscribed=False)
        status, data = await _get(server, "/health/ready")

        assert status == 503
        assert data["reasons"] == ["unsubscribed"]

    async def test_ready_when_pool_known_and_subscribed(self, server):
        server.set_ready(pool_refreshed=True, subscribed=True)
        status, data = await _get(server, "/health/ready")

        assert status == 200
        assert data["status"] == "ready"
        assert data["checks"] == {"pool_refreshed": True, "subscribed": True}
        assert server.is_ready is True

    async def test_error_state_reports_200_with_error(self, server):
        server.set_error("Configuration error: bad interval")
        status, data = await _get(server, "/health/ready")

        assert status == 200
        assert data["status"] == "error"
        assert data["error"] == "Configuration error: bad interval"
        assert server.is_ready is False

    def test_error_blocks_readiness(self):
        server = HealthCheckServer(port=0)
        server.set_error("broken")
        server.set_ready(pool_refreshed=True, subscribed=True)
        assert server.is_ready is False
