"""Route parsed webhook events to callbacks by event type."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable

import structlog

from laneful.webhooks.payload import EventType, WebhookEvent, WebhookPayload

logger = structlog.get_logger()

EventHandler = Callable[[WebhookEvent], object]


class WebhookDispatcher:
    """Registry of event handlers keyed by EventType.

    Handlers run in registration order for each event, events in source order.
    Exceptions raised by a handler propagate to the caller.

    Usage:
        dispatcher = WebhookDispatcher()

        @dispatcher.on(EventType.BOUNCE)
        def handle_bounce(event):
            suppress(event["email"])

        dispatcher.dispatch(parse_webhook_payload(body))
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[EventHandler]] = defaultdict(list)
        self._fallback: list[EventHandler] = []

    def on(self, event_type: EventType | str) -> Callable[[EventHandler], EventHandler]:
        """Decorator registering a handler for one event type."""
        key = EventType(event_type)

        def decorator(handler: EventHandler) -> EventHandler:
            self.register(key, handler)
            return handler

        return decorator

    def on_any(self, handler: EventHandler) -> EventHandler:
        """Register a handler for events that have no type-specific handler."""
        self._fallback.append(handler)
        return handler

    def register(self, event_type: EventType | str, handler: EventHandler) -> None:
        self._handlers[EventType(event_type)].append(handler)

    def handlers_for(self, event_type: EventType | str) -> list[EventHandler]:
        handlers = self._handlers.get(EventType(event_type))
        return list(handlers) if handlers else list(self._fallback)

    def dispatch(self, payload: WebhookPayload) -> int:
        """Invoke handlers for every event in the payload.

        Returns:
            Number of handler invocations.
        """
        calls = 0
        for event in payload:
            handlers = self.handlers_for(event["event"])
            if not handlers:
                logger.debug("No handler for webhook event", event_type=event["event"])
                continue
            for handler in handlers:
                handler(event)
                calls += 1
        return calls
