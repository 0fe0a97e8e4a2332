"""Application entry point for famchat."""

import argparse
import asyncio
import signal
import sys
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from famchat.application.services.chat_session import ChatSession
from famchat.application.services.event_router import EventRouter
from famchat.config import (
    ConfigError,
    ConfigFileNotFoundError,
    load_config,
)
from famchat.config.loader import resolve_config_path
from famchat.domain.entities.event import Event
from famchat.infrastructure import Database, EventQueue, RealtimeHub
from famchat.infrastructure.logging import (
    bind_session_context,
    get_logger,
    setup_logging,
)
from famchat.presentation.http.server import HTTPServer

# Shutdown timeout in seconds
SHUTDOWN_TIMEOUT = 30


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(description="famchat - Family chat session core")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: $FAMCHAT_CONFIG or config.yaml)",
    )
    return parser.parse_args(args)


async def run_main_loop(
    event_queue: EventQueue,
    router: EventRouter,
    shutdown_event: asyncio.Event,
    running_check: Callable[[], bool],
    logger: BoundLogger,
) -> None:
    """Run the main event processing loop.

    Args:
        event_queue: EventQueue instance for retrieving events.
        router: EventRouter instance for processing events.
        shutdown_event: Event that signals shutdown.
        running_check: Callable that returns whether the loop should continue.
        logger: Logger instance.
    """
    while running_check():
        dequeue_task = asyncio.create_task(event_queue.dequeue())
        shutdown_task = asyncio.create_task(shutdown_event.wait())

        try:
            done, pending = await asyncio.wait(
                [dequeue_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED,
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if shutdown_task in done:
                # Drain the event dequeued in the same tick
                if dequeue_task in done:
                    event = dequeue_task.result()
                    await _process_event(event, router, event_queue, logger)
                break

            if dequeue_task in done:
                event = dequeue_task.result()
                await _process_event(event, router, event_queue, logger)

        except asyncio.CancelledError:
            dequeue_task.cancel()
            shutdown_task.cancel()
            try:
                await dequeue_task
            except asyncio.CancelledError:
                pass
            try:
                await shutdown_task
            except asyncio.CancelledError:
                pass
            raise


async def _process_event(
    event: Event,
    router: EventRouter,
    event_queue: EventQueue,
    logger: BoundLogger,
) -> None:
    """Process a single event.

    Args:
        event: Event to process.
        router: EventRouter instance.
        event_queue: EventQueue instance for marking done.
        logger: Logger instance.
    """
    try:
        await router.process(event)
    except Exception as e:
        logger.error(
            "Error processing event",
            event_id=event.id,
            event_type=event.type.value,
            error=str(e),
        )
    finally:
        event_queue.mark_done(event)


async def main_async(
    config_path: Path | None,
    shutdown_timeout: float = SHUTDOWN_TIMEOUT,
) -> int:
    """Async main function.

    Args:
        config_path: Path to configuration file, or None for the default.
        shutdown_timeout: Maximum time in seconds to wait for graceful shutdown.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # 1. Load configuration
    config = load_config(config_path)

    # 2. Initialize logging
    setup_logging(config.logging)
    bind_session_context(config.member.member_id)
    logger = get_logger(__name__)
    logger.info("Starting famchat", config_path=str(resolve_config_path(config_path)))

    # 3. Initialize components
    database = Database(config.database.url)
    await database.initialize()

    event_queue = EventQueue()
    hub = RealtimeHub(logger=get_logger("realtime"))
    session = ChatSession(
        config=config,
        database=database,
        hub=hub,
        logger=get_logger("chat"),
        change_sink=event_queue.enqueue,
    )
    router = EventRouter(hub, session.directory, get_logger("events"))
    http_server = HTTPServer(
        config=config.server,
        event_queue=event_queue,
        logger=get_logger("http_server"),
    )

    # 4. Setup shutdown handling
    running = True
    shutdown_event = asyncio.Event()

    def is_running() -> bool:
        return running

    def signal_handler(sig: signal.Signals) -> None:
        nonlocal running
        logger.info("Received signal, initiating shutdown", signal=sig.name)
        running = False
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        # 5. Start HTTP server and session
        await http_server.start()
        await session.start()
        logger.info("famchat started successfully")

        # 6. Run main loop
        await run_main_loop(
            event_queue=event_queue,
            router=router,
            shutdown_event=shutdown_event,
            running_check=is_running,
            logger=logger,
        )

    except asyncio.CancelledError:
        logger.info("Main loop cancelled")

    finally:
        # 7. Shutdown
        logger.info("Shutting down")
        try:
            await asyncio.wait_for(
                _shutdown(session, http_server, event_queue, database),
                timeout=shutdown_timeout,
            )
            logger.info("famchat stopped")
        except TimeoutError:
            logger.warning(
                "Shutdown timed out, forcing termination",
                timeout_seconds=shutdown_timeout,
            )

    return 0


async def _shutdown(
    session: ChatSession,
    http_server: HTTPServer,
    event_queue: EventQueue,
    database: Database,
) -> None:
    await session.stop()
    await http_server.stop()
    await event_queue.close()
    await database.close()


def main() -> None:
    """Main entry point."""
    args = parse_args()
    config_path = args.config

    try:
        exit_code = asyncio.run(main_async(config_path))
        sys.exit(exit_code)
    except ConfigFileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ConfigError as e:
        print(f"Error: Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: Configuration validation error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
