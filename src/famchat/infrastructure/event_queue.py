"""Deduplicating event queue feeding the main loop."""

import asyncio

from famchat.domain.entities.event import Event


class EventQueue:
    """In-memory queue that keeps only the newest event per identity key.

    Change events are delivered at least once by the store; redelivered copies
    share an identity key and supersede the pending copy instead of being
    processed twice. Delayed enqueue lets maintenance work (group thread
    reconciliation) be scheduled off the request path, and a newer enqueue
    for the same key cancels the pending delay.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._pending: dict[str, Event] = {}
        # Keyed by event.id so two events sharing a key can be in flight
        self._processing: dict[str, Event] = {}
        self._delay_tasks: dict[str, asyncio.Task[None]] = {}
        self._superseded = 0

    @property
    def pending_count(self) -> int:
        """Return the number of pending events."""
        return len(self._pending)

    @property
    def processing_count(self) -> int:
        """Return the number of events being processed."""
        return len(self._processing)

    @property
    def superseded_count(self) -> int:
        """Return how many queued events were skipped as duplicates."""
        return self._superseded

    async def enqueue(self, event: Event, delay: float = 0) -> None:
        """Add an event to the queue.

        Args:
            event: The event to enqueue.
            delay: Seconds to wait before the event becomes visible.
        """
        key = event.get_identity_key()

        previous = self._delay_tasks.pop(key, None)
        if previous is not None:
            previous.cancel()
            try:
                await previous
            except asyncio.CancelledError:
                pass

        if delay > 0:
            self._delay_tasks[key] = asyncio.create_task(
                self._delayed_enqueue(event, delay)
            )
            return

        # A stale copy already in the queue is skipped by dequeue()
        self._pending[key] = event
        await self._queue.put(event)

    async def _delayed_enqueue(self, event: Event, delay: float) -> None:
        key = event.get_identity_key()
        try:
            await asyncio.sleep(delay)
            self._pending[key] = event
            await self._queue.put(event)
        finally:
            if self._delay_tasks.get(key) is asyncio.current_task():
                del self._delay_tasks[key]

    async def dequeue(self) -> Event:
        """Wait for the next current event.

        Returns:
            The newest event of its identity key.
        """
        while True:
            event = await self._queue.get()
            key = event.get_identity_key()
            current = self._pending.get(key)
            if current is not None and current.id == event.id:
                del self._pending[key]
                self._processing[event.id] = event
                return event
            self._superseded += 1

    def mark_done(self, event: Event) -> None:
        """Mark an event as done processing."""
        self._processing.pop(event.id, None)

    async def close(self) -> None:
        """Cancel delayed enqueues that have not fired yet."""
        tasks = list(self._delay_tasks.values())
        self._delay_tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
