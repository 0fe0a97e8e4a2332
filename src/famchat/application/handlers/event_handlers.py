"""Event handler implementations."""

from structlog.stdlib import BoundLogger

from famchat.application.handlers import EventHandler
from famchat.application.services.thread_directory import ThreadDirectory
from famchat.domain.entities.event import ChangeEvent, Event, EventType
from famchat.infrastructure.realtime import RealtimeHub


class ChangeEventHandler:
    """Fans row changes out to realtime subscribers."""

    def __init__(self, hub: RealtimeHub, logger: BoundLogger) -> None:
        self._hub = hub
        self._logger = logger

    async def handle(self, event: Event) -> None:
        """Publish a change event on the hub.

        Args:
            event: The change event.
        """
        if not isinstance(event, ChangeEvent):
            raise TypeError(f"Expected ChangeEvent, got {type(event).__name__}")
        delivered = await self._hub.publish(event)
        if delivered == 0:
            self._logger.debug(
                "Change had no subscribers",
                table=event.table,
                action=event.action.value,
            )


class ReconcileEventHandler:
    """Runs the duplicate group thread cleanup."""

    def __init__(self, directory: ThreadDirectory) -> None:
        self._directory = directory

    async def handle(self, event: Event) -> None:
        """Reconcile group threads.

        Args:
            event: The reconcile event.
        """
        await self._directory.reconcile_group_threads()


class EventHandlerRegistry:
    """Registry for event handlers."""

    def __init__(self) -> None:
        """Initialize the registry."""
        self._handlers: dict[EventType, EventHandler] = {}

    def register(self, event_type: EventType, handler: EventHandler) -> None:
        """Register a handler for an event type.

        Args:
            event_type: The event type to handle.
            handler: The handler to register.
        """
        self._handlers[event_type] = handler

    def get_handler(self, event_type: EventType) -> EventHandler | None:
        """Get handler for an event type.

        Args:
            event_type: The event type.

        Returns:
            The handler if registered, None otherwise.
        """
        return self._handlers.get(event_type)
