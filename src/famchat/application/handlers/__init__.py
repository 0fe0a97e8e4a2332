"""Event handler module."""

from typing import Protocol, runtime_checkable

from famchat.domain.entities.event import Event


@runtime_checkable
class EventHandler(Protocol):
    """Protocol for handlers that act on dequeued events."""

    async def handle(self, event: Event) -> None:
        """Handle an event.

        Args:
            event: The event to handle.
        """
        ...
