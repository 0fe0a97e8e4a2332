"""Routes dequeued events to their handlers."""

from structlog.stdlib import BoundLogger

from famchat.application.handlers.event_handlers import (
    ChangeEventHandler,
    EventHandlerRegistry,
    ReconcileEventHandler,
)
from famchat.application.services.thread_directory import ThreadDirectory
from famchat.domain.entities.event import Event, EventType
from famchat.infrastructure.realtime import RealtimeHub


class EventRouter:
    """Dispatches each event to the handler registered for its type."""

    def __init__(
        self, hub: RealtimeHub, directory: ThreadDirectory, logger: BoundLogger
    ) -> None:
        """Initialize the router.

        Args:
            hub: Realtime hub that change events are published on.
            directory: Thread directory for maintenance events.
            logger: Logger instance.
        """
        self._logger = logger
        self._registry = EventHandlerRegistry()
        self._registry.register(EventType.CHANGE, ChangeEventHandler(hub, logger))
        self._registry.register(EventType.RECONCILE, ReconcileEventHandler(directory))

    async def process(self, event: Event) -> bool:
        """Process an event.

        Args:
            event: The event to process.

        Returns:
            False if no handler is registered for the event type.

        Raises:
            Exception: Whatever the handler raises.
        """
        self._logger.debug(
            "Processing event",
            event_id=event.id,
            event_type=event.type.value,
        )
        handler = self._registry.get_handler(event.type)
        if handler is None:
            self._logger.warning(
                "No handler found for event type",
                event_type=event.type.value,
            )
            return False
        await handler.handle(event)
        return True
