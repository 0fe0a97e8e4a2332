"""HTTP server for receiving change and maintenance events."""

import json

import structlog
from aiohttp import web

from famchat.config.models import ServerConfig
from famchat.domain.entities.event import ChangeEvent, Event, EventType, ReconcileEvent
from famchat.infrastructure.event_queue import EventQueue


class HTTPServer:
    """HTTP server for event ingress and health checks.

    This server provides endpoints for:
    - POST /api/v1/events: Receive and enqueue events
    - GET /healthz: Liveness probe

    Args:
        config: Server configuration containing host and port.
        event_queue: EventQueue instance for enqueuing received events.
        logger: Structured logger for logging.
    """

    # Mapping from event type string to event class
    EVENT_TYPE_MAP: dict[str, type[Event]] = {
        EventType.CHANGE.value: ChangeEvent,
        EventType.RECONCILE.value: ReconcileEvent,
    }

    def __init__(
        self,
        config: ServerConfig,
        event_queue: EventQueue,
        logger: structlog.BoundLogger,
    ) -> None:
        self.config = config
        self._event_queue = event_queue
        self._logger = logger
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    @property
    def is_running(self) -> bool:
        """Return True if the server is running."""
        return self._site is not None

    @property
    def actual_port(self) -> int:
        """Return the port the server is listening on.

        Raises:
            RuntimeError: If the server is not running.
        """
        if self._site is None:
            raise RuntimeError("Server is not running")
        server = getattr(self._site, "_server", None)
        if server is None:
            raise RuntimeError("Server is not running")
        sockets = getattr(server, "sockets", None)
        if sockets:
            return sockets[0].getsockname()[1]
        raise RuntimeError("No sockets available")

    def create_app(self) -> web.Application:
        """Create and return the aiohttp Application."""
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health_check)
        app.router.add_post("/api/v1/events", self._handle_event)
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
        )

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            self._app = None
            self._logger.info("HTTP server stopped")

    async def _handle_health_check(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _handle_event(self, request: web.Request) -> web.Response:
        """Handle POST /api/v1/events requests.

        Returns:
            JSON response with event_id on success, or error message on failure.
        """
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return web.json_response({"error": "Invalid JSON"}, status=400)

        if not isinstance(body, dict) or "type" not in body:
            return web.json_response(
                {"error": "Missing required field: type"}, status=400
            )

        event_type = body["type"]
        if event_type not in self.EVENT_TYPE_MAP:
            return web.json_response(
                {"error": f"Invalid event type: {event_type}"}, status=400
            )

        event_class = self.EVENT_TYPE_MAP[event_type]
        payload = body.get("payload") or {}
        delay = body.get("delay", 0)
        if not isinstance(payload, dict):
            return web.json_response({"error": "Payload must be an object"}, status=400)

        try:
            event = event_class.from_payload(payload)
        except (TypeError, ValueError) as e:
            self._logger.warning("Rejected event", event_type=event_type, error=str(e))
            return web.json_response({"error": f"Invalid payload: {e}"}, status=400)

        try:
            await self._event_queue.enqueue(event, delay=delay)
        except Exception as e:
            self._logger.error("Failed to enqueue event", error=str(e))
            return web.json_response({"error": "Failed to enqueue event"}, status=500)

        self._logger.info(
            "Event received",
            event_id=event.id,
            event_type=event_type,
            delay=delay,
        )

        return web.json_response({"event_id": event.id})
