"""Application entry point for slacksassin."""

import argparse
import asyncio
import signal
import sys
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from slacksassin.application.handlers.event_handlers import (
    EventHandlerRegistry,
    NewMessageEventHandler,
)
from slacksassin.application.services.message_processor import MessageProcessor
from slacksassin.application.services.message_store import MessageStore
from slacksassin.application.services.outbound_relay import OutboundRelay
from slacksassin.application.services.response_orchestrator import (
    ResponseOrchestrator,
)
from slacksassin.application.services.similarity_engine import SimilarityEngine
from slacksassin.config import (
    ConfigError,
    ConfigFileNotFoundError,
    load_config,
)
from slacksassin.domain.entities.event import Event, EventType, NewMessageEvent
from slacksassin.domain.features import FeatureExtractor
from slacksassin.domain.lifecycle import MessageStatus
from slacksassin.infrastructure import Database, EventQueue, SqliteMessageRepository
from slacksassin.infrastructure.llm.backend import StrandsBackend
from slacksassin.infrastructure.logging import get_logger, setup_logging
from slacksassin.infrastructure.relay.client import RelayClient
from slacksassin.infrastructure.tracing import setup_tracing
from slacksassin.presentation.http.server import HTTPServer

# Shutdown timeout in seconds
SHUTDOWN_TIMEOUT = 30


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="slacksassin - Slack reply assistant behind a webhook relay"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (default: config.yaml)",
    )
    return parser.parse_args(args)


def create_registry(processor: MessageProcessor, logger: BoundLogger) -> EventHandlerRegistry:
    """Register the handlers for every event type the server emits."""
    registry = EventHandlerRegistry()
    registry.register(EventType.NEW_MESSAGE, NewMessageEventHandler(processor, logger))
    return registry


async def run_main_loop(
    event_queue: EventQueue,
    registry: EventHandlerRegistry,
    shutdown_event: asyncio.Event,
    running_check: Callable[[], bool],
    logger: BoundLogger,
) -> None:
    """Run the main event processing loop.

    Args:
        event_queue: EventQueue instance for retrieving events.
        registry: Handlers by event type.
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

            # An event dequeued together with the shutdown signal is still handled
            if dequeue_task in done:
                await _process_event(dequeue_task.result(), registry, event_queue, logger)

            if shutdown_task in done:
                break

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
    registry: EventHandlerRegistry,
    event_queue: EventQueue,
    logger: BoundLogger,
) -> None:
    """Process a single event.

    Args:
        event: Event to process.
        registry: Handlers by event type.
        event_queue: EventQueue instance for marking done.
        logger: Logger instance.
    """
    try:
        handled = await registry.dispatch(event)
        if not handled:
            logger.warning("No handler found for event type", event_type=event.type.value)
    except Exception as e:
        logger.error("Error processing event", event_id=event.id, error=str(e))
    finally:
        event_queue.mark_done(event)


async def requeue_pending(
    store: MessageStore, event_queue: EventQueue, logger: BoundLogger
) -> int:
    """Announce messages still ``pending`` from a previous run.

    Returns:
        Number of messages queued.
    """
    pending = await store.list_messages(MessageStatus.PENDING)
    for message in reversed(pending):
        await event_queue.enqueue(NewMessageEvent.for_message(message.id, source="startup"))
    if pending:
        logger.info("Re-queued pending messages", count=len(pending))
    return len(pending)


async def main_async(
    config_path: Path,
    shutdown_timeout: float = SHUTDOWN_TIMEOUT,
) -> int:
    """Async main function.

    Args:
        config_path: Path to configuration file.
        shutdown_timeout: Maximum time in seconds to wait for graceful shutdown.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # 1. Load configuration
    config = load_config(config_path)

    # 2. Initialize logging
    setup_logging(config.logging)
    logger = get_logger(__name__)
    logger.info("Starting slacksassin", config_path=str(config_path))

    # 3. Initialize tracing (if enabled and an OTEL endpoint is configured)
    telemetry = setup_tracing(config.tracing)
    if telemetry:
        logger.info("Tracing enabled")

    # 4. Initialize components
    database = Database(config.database.url)
    await database.initialize()
    store = MessageStore(SqliteMessageRepository(database), get_logger("store"))
    await store.recover_interrupted()

    event_queue = EventQueue(max_size=config.queue.max_size)
    relay_client = RelayClient(config.relay, get_logger("relay"))
    relay = OutboundRelay(store, relay_client, get_logger("relay"))
    similarity = SimilarityEngine(
        store,
        FeatureExtractor(config.similarity.weights),
        config.similarity,
        get_logger("similarity"),
    )
    orchestrator = ResponseOrchestrator(
        store,
        StrandsBackend(config.generation, get_logger("backend")),
        config.generation,
        get_logger("orchestrator"),
    )
    processor = MessageProcessor(
        store,
        similarity,
        orchestrator,
        relay,
        get_logger("processor"),
        auto_generate=config.generation.auto_generate,
    )
    registry = create_registry(processor, get_logger("handlers"))
    http_server = HTTPServer(
        config=config.server,
        store=store,
        event_queue=event_queue,
        relay=relay,
        logger=get_logger("http_server"),
    )

    # 5. Setup shutdown handling
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

    # Backlog may exceed the queue size, so it is fed while the loop runs
    requeue_task = asyncio.create_task(requeue_pending(store, event_queue, logger))

    try:
        # 6. Start HTTP server
        await http_server.start()
        logger.info("slacksassin started successfully")

        # 7. Run main loop
        await run_main_loop(
            event_queue=event_queue,
            registry=registry,
            shutdown_event=shutdown_event,
            running_check=is_running,
            logger=logger,
        )

    except asyncio.CancelledError:
        logger.info("Main loop cancelled")

    finally:
        # 8. Shutdown
        logger.info("Shutting down")
        requeue_task.cancel()
        try:
            await requeue_task
        except asyncio.CancelledError:
            pass
        try:
            await asyncio.wait_for(http_server.stop(), timeout=shutdown_timeout)
        except TimeoutError:
            logger.warning(
                "Shutdown timed out, forcing termination",
                timeout_seconds=shutdown_timeout,
            )
        await relay_client.close()
        await database.close()
        logger.info("slacksassin stopped")

    return 0


def main() -> None:
    """Main entry point."""
    args = parse_args()
    config_path = args.config

    try:
        exit_code = asyncio.run(main_async(config_path))
        sys.exit(exit_code)
    except ConfigFileNotFoundError:
        print(f"Error: {config_path} not found", file=sys.stderr)
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
