"""In-memory event bus.

Dispatches order/metrics domain events to async handlers inside the process.
Handlers run sequentially in subscription order.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Type, TypeVar

from domain.shared.events import DomainEvent

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)
Handler = Callable[[Any], Awaitable[None]]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))


class InMemoryEventBus:
    """
    In-memory implementation of the IEventBus port.

    Thread safety: NOT thread-safe (single event loop only)
    Persistence: subscriptions live as long as the process
    Error handling: a failing handler is logged and the next handler still runs

    Example:
        >>> bus = InMemoryEventBus()
        >>> bus.subscribe(AggregateUpdateFailed, handler.handle)
        >>> await bus.publish(AggregateUpdateFailed.create(...))
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = {}

    def subscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> None:
        """
        Subscribe a handler to an event type.

        Subscribing the same handler twice makes it run twice.
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "Handler subscribed",
            extra={"event_type": event_type.__name__, "handler": _handler_name(handler)},
        )

    async def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to every handler subscribed to its exact type.

        Handler exceptions are logged with traceback and do not propagate,
        so one failing handler never prevents the others from running.
        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("No handlers for event", extra={"event_type": event_type.__name__})
            return

        logger.info(
            "Publishing event",
            extra={
                "event_type": event_type.__name__,
                "event_id": event.event_id,
                "handler_count": len(handlers),
            },
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    extra={
                        "event_type": event_type.__name__,
                        "event_id": event.event_id,
                        "handler": _handler_name(handler),
                        "error": str(e),
                    },
                    exc_info=True,
                )

    def unsubscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> bool:
        """
        Remove the first subscription of handler for event_type.

        Returns:
            True if a subscription was removed
        """
        handlers = self._handlers.get(event_type)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        logger.debug(
            "Handler unsubscribed",
            extra={"event_type": event_type.__name__, "handler": _handler_name(handler)},
        )
        return True

    def clear(self) -> None:
        """Remove all subscriptions (testing utility)."""
        self._handlers.clear()

    def get_handler_count(self, event_type: Type[DomainEvent]) -> int:
        """Number of handlers subscribed to event_type."""
        return len(self._handlers.get(event_type, []))
