"""Event handler implementations."""

from structlog.stdlib import BoundLogger

from slacksassin.application.handlers import EventHandler
from slacksassin.application.services.message_processor import MessageProcessor
from slacksassin.domain.entities.event import Event, EventType, NewMessageEvent


class NewMessageEventHandler:
    """Hands newly received messages to the message processor."""

    def __init__(self, processor: MessageProcessor, logger: BoundLogger) -> None:
        self._processor = processor
        self._logger = logger

    async def handle(self, event: Event) -> None:
        """Process the message announced by a ``NewMessageEvent``.

        Args:
            event: The new-message event.

        Raises:
            TypeError: If the event is not a ``NewMessageEvent``.
        """
        if not isinstance(event, NewMessageEvent):
            raise TypeError(f"Unexpected event type: {event.type.value}")
        outcome = await self._processor.process(event.message_id)
        self._logger.info(
            "Message processed",
            event_id=event.id,
            message_id=outcome.message_id,
            action=outcome.action.value,
            similar=len(outcome.similar),
        )


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

    async def dispatch(self, event: Event) -> bool:
        """Route an event to its handler.

        Returns:
            False if no handler is registered for the event type.
        """
        handler = self.get_handler(event.type)
        if handler is None:
            return False
        await handler.handle(event)
        return True
