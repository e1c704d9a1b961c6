"""
Event bus implementation for domain event publishing and subscription.

The event bus routes committed domain events to registered handlers. Handlers
run synchronously in the publishing thread; a failing handler is logged and
never affects the transaction that produced the event.
"""

from collections import defaultdict
from collections.abc import Callable

from alterations.core.observability import get_logger
from alterations.domain.scheduling.events.domain_events import DomainEvent

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], None]


class InMemoryEventBus:
    """
    In-memory implementation of event bus.

    Supports multiple handlers per event type. Events are processed in the
    order they are published and a bounded history is kept for inspection.
    """

    def __init__(self, max_history_size: int = 1000):
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(
            list
        )
        self._event_history: list[DomainEvent] = []
        self._max_history_size = max_history_size

    def publish(self, event: DomainEvent) -> None:
        """
        Publish a domain event synchronously to all registered handlers.

        Args:
            event: Domain event to publish
        """
        self._add_to_history(event)

        event_type = type(event)
        handlers = self._handlers.get(event_type, [])

        if not handlers:
            logger.debug("No handlers registered", event_type=event_type.__name__)
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Continue with other handlers even if one fails
                logger.error(
                    "Event handler failed",
                    event_type=event_type.__name__,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                    exc_info=True,
                )

    def publish_batch(self, events: list[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribe a handler to a specific event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Handler function to call when event is published
        """
        if handler in self._handlers[event_type]:
            logger.warning(
                "Handler already subscribed",
                event_type=event_type.__name__,
                handler=getattr(handler, "__name__", repr(handler)),
            )
            return
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def get_event_history(
        self, event_type: type[DomainEvent] | None = None
    ) -> list[DomainEvent]:
        if event_type is None:
            return list(self._event_history)
        return [e for e in self._event_history if isinstance(e, event_type)]

    def _add_to_history(self, event: DomainEvent) -> None:
        self._event_history.append(event)
        if len(self._event_history) > self._max_history_size:
            self._event_history = self._event_history[-self._max_history_size :]
