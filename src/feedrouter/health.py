"""
Health check endpoints for the router.

- /health/live  - Liveness probe (is the process serving?)
- /health/ready - Readiness probe (pool known and subscription open?)

The server runs on the router's own event loop; readiness flags are only
written from that loop, so no locking is needed.
"""

import logging
from datetime import UTC, datetime

from aiohttp import web

logger = logging.getLogger(__name__)


class HealthCheckServer:
    """
    HTTP server for Kubernetes-style health probes.

    Readiness is 200 only when the worker pool has been refreshed at least
    once and an upstream subscription is open. An error state (set on
    startup or configuration failure) reports 200 with the error in the
    body so a deployment can complete and the error can be inspected.
    """

    def __init__(
        self,
        port: int | None = 8080,
        name: str = "feedrouter",
        enabled: bool = True,
    ):
        """
        Args:
            port: HTTP port. 0 picks a free port; None disables the server.
            name: Service name reported in responses
            enabled: If False, start() and stop() are no-ops
        """
        self.port = port
        self.name = name
        self._enabled = enabled and port is not None
        self._pool_refreshed = False
        self._subscribed = False
        self._ready = False
        self._started_at = datetime.now(UTC)
        self._actual_port: int | None = None
        self._error_message: str | None = None

        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def set_ready(self, pool_refreshed: bool, subscribed: bool) -> None:
        self._pool_refreshed = pool_refreshed
        self._subscribed = subscribed

        old_ready = self._ready
        self._ready = pool_refreshed and subscribed and self._error_message is None
        if old_ready != self._ready:
            logger.info(
                f"Readiness status changed: {old_ready} -> {self._ready}",
                extra={"pool_refreshed": pool_refreshed, "subscribed": subscribed},
            )

    def set_error(self, error_message: str) -> None:
        """Put the server in an error state that prevents readiness."""
        self._error_message = error_message
        self._ready = False
        logger.error(
            f"Health check error state set: {error_message}",
            extra={"error": error_message},
        )

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def actual_port(self) -> int | None:
        return self._actual_port

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    async def handle_liveness(self, request: web.Request) -> web.Response:
        uptime_seconds = (datetime.now(UTC) - self._started_at).total_seconds()
        return web.json_response(
            {
                "status": "alive",
                "service": self.name,
                "uptime_seconds": int(uptime_seconds),
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=200,
        )

    async def handle_readiness(self, request: web.Request) -> web.Response:
        checks = {
            "pool_refreshed": self._pool_refreshed,
            "subscribed": self._subscribed,
        }

        if self._error_message:
            return web.json_response(
                {
                    "status": "error",
                    "service": self.name,
                    "error": self._error_message,
                    "reasons": ["configuration_error"],
                    "timestamp": datetime.now(UTC).isoformat(),
                },
                status=200,
            )

        if self._ready:
            return web.json_response(
                {
                    "status": "ready",
                    "service": self.name,
                    "checks": checks,
                    "timestamp": datetime.now(UTC).isoformat(),
                },
                status=200,
            )

        reasons = []
        if not self._pool_refreshed:
            reasons.append("pool_unknown")
        if not self._subscribed:
            reasons.append("unsubscribed")
        return web.json_response(
            {
                "status": "not_ready",
                "service": self.name,
                "reasons": reasons,
                "checks": checks,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=503,
        )

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health/live", self.handle_liveness)
        app.router.add_get("/health/ready", self.handle_readiness)
        return app

    async def _try_start_on_port(self, port: int) -> bool:
        """Returns False if the port is in use."""
        try:
            self._runner = web.AppRunner(self.create_app())
            await self._runner.setup()
            self._site = web.TCPSite(self._runner, "0.0.0.0", port, reuse_address=True)
            await self._site.start()

            if self._site._server and self._site._server.sockets:
                self._actual_port = self._site._server.sockets[0].getsockname()[1]
            else:
                self._actual_port = port
            return True
        except OSError as e:
            # errno 98 (Linux) or 10048 (Windows)
            if e.errno in (98, 10048):
                if self._runner:
                    await self._runner.cleanup()
                    self._runner = None
                    self._site = None
                return False
            raise

    async def start(self) -> None:
        """Start listening; falls back to a dynamic port if the configured one is taken.

        Failures disable health checks instead of crashing the router.
        """
        if not self._enabled:
            logger.debug("Health check server is disabled, skipping start")
            return

        if self._runner is not None:
            return

        try:
            if await self._try_start_on_port(self.port):
                pass
            elif self.port != 0 and await self._try_start_on_port(0):
                logger.warning(
                    f"Port {self.port} in use, falling back to dynamic port assignment",
                    extra={"original_port": self.port},
                )
            else:
                logger.warning("Could not start health check server")
                self._enabled = False
                return
        except Exception as e:
            logger.error(
                f"Failed to start health check server: {e}",
                extra={"port": self.port},
                exc_info=True,
            )
            self._enabled = False
            return

        logger.info(
            "Health check server started",
            extra={
                "port": self._actual_port,
                "liveness_endpoint": f"http://localhost:{self._actual_port}/health/live",
                "readiness_endpoint": f"http://localhost:{self._actual_port}/health/ready",
            },
        )

    async def stop(self) -> None:
        if self._runner is None:
            return
        try:
            await self._runner.cleanup()
            logger.info("Health check server stopped")
        except Exception as e:
            logger.error(f"Error stopping health check server: {e}", exc_info=True)
        finally:
            self._runner = None
            self._site = None
            self._actual_port = None


__all__ = ["HealthCheckServer"]
