"""
Message Bus

Routes commands to their single handler and events to every subscriber.
Views, webhooks and Celery tasks all dispatch through the same bus, so a
command behaves identically whichever entry point triggered it.
"""

from typing import Any, Callable, Dict, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class MessageBus:
    """
    Message bus for commands and events

    Commands: One handler per command (1:1). A handler is either a callable
    or an object exposing ``handle(command)``.
    Events: Multiple handlers per event (1:N), best effort.
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._command_handlers: Dict[Type, Any] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable[[DomainEvent], None]):
        """Register an event handler; the same handler is never added twice."""
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Subscribed {_handler_name(handler)} to {event_type.__name__}")

    def register_command_handler(self, command_type: Type, handler: Any, *, replace: bool = False):
        """
        Register a command handler

        Only one handler can be registered per command type. ``replace``
        allows swapping a handler explicitly (used when rewiring the gateway).
        """
        if command_type in self._command_handlers and not replace:
            raise ValueError(
                f"Handler for {command_type.__name__} is already registered. "
                "Commands can have only one handler."
            )
        self._command_handlers[command_type] = handler
        logger.debug(f"Registered command handler for {command_type.__name__}")

    def handle_command(self, command: Any) -> Any:
        """
        Handle a command

        Returns whatever the handler returns. Domain errors raised by the
        handler propagate to the caller unchanged.
        """
        command_type = type(command)
        handler = self._command_handlers.get(command_type)

        if handler is None:
            raise LookupError(f"No handler registered for command {command_type.__name__}")

        logger.debug(f"Handling command: {command_type.__name__}")
        if hasattr(handler, 'handle'):
            return handler.handle(command)
        return handler(command)

    def publish_events(self, events: List[DomainEvent]):
        """
        Publish domain events

        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            handlers = self._event_handlers.get(type(event), [])

            if not handlers:
                logger.debug(f"No handlers registered for event {event.name}")
                continue

            logger.info(f"Publishing event: {event.name} ({event.aggregate_id})")

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {_handler_name(handler)} "
                        f"for event {event.name}: {e}",
                        exc_info=True
                    )


def _handler_name(handler: Any) -> str:
    return getattr(handler, '__name__', handler.__class__.__name__)


# Global message bus instance
message_bus = MessageBus()
