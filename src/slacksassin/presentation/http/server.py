"""HTTP server receiving Slack messages from the webhook relay."""

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog
from aiohttp import web
from pydantic import ValidationError

from slacksassin import __version__
from slacksassin.application.services.message_store import MessageStore
from slacksassin.application.services.outbound_relay import OutboundRelay
from slacksassin.config.models import ServerConfig
from slacksassin.domain.entities.event import NewMessageEvent
from slacksassin.domain.errors import StoreError
from slacksassin.infrastructure.event_queue import EventQueue
from slacksassin.presentation.http.payload import InboundPayload

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def describe_validation_error(error: ValidationError) -> str:
    """Summarize a pydantic error as ``field: problem`` pairs."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "body"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


class HTTPServer:
    """HTTP server for inbound webhooks, health and status checks.

    This server provides endpoints for:
    - POST /<webhook_path>: Store an inbound message and queue it
    - GET /health: Liveness probe
    - GET /status: Counters and configuration summary
    - POST /test-response: Send a canned reply through the relay

    Args:
        config: Server configuration.
        store: Message store receiving new messages.
        event_queue: Queue announcing new messages to the processing loop.
        relay: Outbound relay, used by /test-response and /status.
        logger: Structured logger for logging.
    """

    def __init__(
        self,
        config: ServerConfig,
        store: MessageStore,
        event_queue: EventQueue,
        relay: OutboundRelay,
        logger: structlog.stdlib.BoundLogger,
    ) -> None:
        self.config = config
        self._store = store
        self._event_queue = event_queue
        self._relay = relay
        self._logger = logger
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self.messages_received = 0
        self.connections = 0
        self.started_at: float | None = None
        self.last_request: float | None = None
        self._started_monotonic: float | None = None

    @property
    def is_running(self) -> bool:
        """Return True if the server is running."""
        return self._site is not None

    @property
    def webhook_route(self) -> str:
        return f"/{self.config.webhook_path}"

    @property
    def endpoints(self) -> list[str]:
        return [
            f"{self.webhook_route} (POST)",
            "/health (GET)",
            "/status (GET)",
            "/test-response (POST)",
        ]

    @property
    def actual_port(self) -> int:
        """Return the actual port the server is listening on.

        This is useful when port 0 is configured to get a random port.

        Raises:
            RuntimeError: If the server is not running.
        """
        if self._site is None:
            raise RuntimeError("Server is not running")
        # aiohttp keeps the listening server private
        server = getattr(self._site, "_server", None)
        if server is None:
            raise RuntimeError("Server is not running")
        sockets = getattr(server, "sockets", None)
        if sockets:
            return sockets[0].getsockname()[1]
        raise RuntimeError("No sockets available")

    @property
    def port(self) -> int:
        return self.actual_port if self.is_running else self.config.port

    def create_app(self) -> web.Application:
        """Create and return the aiohttp Application.

        This method is exposed for testing purposes.

        Returns:
            Configured aiohttp Application.
        """
        app = web.Application(
            client_max_size=self.config.max_body_bytes,
            middlewares=[self._cors_middleware],
        )
        app.router.add_post(self.webhook_route, self._handle_webhook)
        app.router.add_get("/health", self._handle_health_check)
        app.router.add_get("/status", self._handle_status)
        app.router.add_post("/test-response", self._handle_test_response)
        self.started_at = time.time()
        self._started_monotonic = time.monotonic()
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()
        self._logger.info(
            "HTTP server started",
            host=self.config.host,
            port=self.actual_port,
            webhook=self.webhook_route,
        )

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            self._app = None
            self._logger.info("HTTP server stopped")

    @web.middleware
    async def _cors_middleware(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        """Answer preflights, normalize errors to JSON and add CORS headers."""
        self.connections += 1
        self.last_request = time.time()
        try:
            if request.method == "OPTIONS":
                response: web.StreamResponse = web.Response(status=204)
            else:
                response = await self._dispatch(request, handler)
        finally:
            self.connections -= 1
        response.headers.update(CORS_HEADERS)
        return response

    async def _dispatch(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPNotFound:
            self._logger.debug("Unknown route", method=request.method, path=request.path)
            return web.json_response({"error": "Not Found"}, status=404)
        except web.HTTPException as e:
            return web.json_response({"error": e.reason}, status=e.status)
        except ConnectionResetError:
            self._logger.info("Client disconnected", path=request.path)
            raise
        except Exception as e:
            self._logger.error(
                "Unhandled request error", path=request.path, error=str(e), exc_info=True
            )
            return web.json_response({"error": "Internal Server Error"}, status=500)

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        """Handle POST /<webhook_path> requests.

        Args:
            request: The incoming request.

        Returns:
            JSON receipt with the new message id, or an error message.
        """
        try:
            async with asyncio.timeout(self.config.body_read_timeout):
                body = await request.read()
        except TimeoutError:
            self._logger.warning("Request body timed out", remote=request.remote)
            return web.json_response(
                {"error": "Request body not received in time"}, status=408
            )

        try:
            payload = InboundPayload.model_validate_json(body)
        except ValidationError as e:
            reason = describe_validation_error(e)
            self._logger.warning("Rejected webhook payload", error=reason)
            return web.json_response({"error": f"Invalid payload: {reason}"}, status=400)

        if self._event_queue.is_full:
            return self._queue_full()

        message = payload.to_message()
        try:
            await self._store.create(message)
        except StoreError as e:
            self._logger.error("Failed to store message", error=str(e))
            return web.json_response({"error": "Failed to store message"}, status=500)

        # The last slot may have been taken while the message was stored
        if not self._event_queue.try_enqueue(NewMessageEvent.for_message(message.id)):
            await self._store.delete(message.id)
            return self._queue_full()

        self.messages_received += 1

        self._logger.info(
            "Message received",
            message_id=message.id,
            channel=payload.channel.name,
            user=payload.user.display_name,
            text_preview=payload.text[:50],
        )
        return web.json_response(
            {
                "status": "received",
                "message_id": message.id,
                "timestamp": time.time(),
                "user": payload.user.display_name,
                "channel": payload.channel.name,
            }
        )

    def _queue_full(self) -> web.Response:
        self._logger.warning(
            "Event queue full, rejecting webhook",
            max_size=self._event_queue.max_size,
        )
        return web.json_response({"error": "Queue full"}, status=503)

    async def _handle_health_check(self, request: web.Request) -> web.Response:
        return web.json_response(
            {"status": "healthy", "timestamp": time.time(), "port": self.port}
        )

    async def _handle_status(self, request: web.Request) -> web.Response:
        """Handle GET /status requests.

        Returns:
            JSON summary of counters, uptime and configuration.
        """
        uptime = (
            time.monotonic() - self._started_monotonic
            if self._started_monotonic is not None
            else 0.0
        )
        return web.json_response(
            {
                "server": "running",
                "version": __version__,
                "port": self.port,
                "messages_received": self.messages_received,
                "connections": self.connections,
                "uptime_seconds": uptime,
                "started_at": self.started_at or 0,
                "last_request": self.last_request or 0,
                "relay_url": self._relay.url or "Not configured",
                "queue_pending": self._event_queue.pending_count,
                "endpoints": self.endpoints,
            }
        )

    async def _handle_test_response(self, request: web.Request) -> web.Response:
        """Handle POST /test-response requests."""
        sent = await self._relay.send_test()
        return web.json_response(
            {
                "test_sent": sent,
                "relay_url": self._relay.url or "Not configured",
                "message": (
                    "Test response sent successfully!"
                    if sent
                    else "Failed to send test response"
                ),
            },
            status=200 if sent else 500,
        )
