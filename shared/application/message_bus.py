"""
Message Bus

Routes reservation commands to their handler and domain events to
their subscribers.

- Commands: exactly one handler per command type. DRF views call
  ``handle_command``; async callers await ``ahandle_command``.
- Events: any number of subscribers, run after the unit of work has
  committed. A failing subscriber is logged and never affects the
  committed reservation.
"""

from time import monotonic
from typing import Any, Callable, Dict, Iterable, List, Mapping, Type
import logging

from asgiref.sync import sync_to_async
from django.db import connections

from shared.domain.base import DomainEvent
from shared.domain.exceptions import ReservationError

logger = logging.getLogger(__name__)

EventSubscriber = Callable[[DomainEvent], None]


class MessageBus:
    def __init__(self):
        self._commands: Dict[Type, Callable[[Any], Any]] = {}
        self._subscribers: Dict[Type[DomainEvent], List[EventSubscriber]] = {}

    # ----- registration -----

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        if command_type in self._commands:
            raise ValueError(f"{command_type.__name__} already has a handler.")
        self._commands[command_type] = handler

    def register_event_handler(self, event_type: Type[DomainEvent], subscriber: EventSubscriber):
        subscribers = self._subscribers.setdefault(event_type, [])
        if subscriber not in subscribers:
            subscribers.append(subscriber)

    def has_command_handler(self, command_type: Type) -> bool:
        return command_type in self._commands

    def register_app(
        self,
        command_handlers: Mapping[Type, type],
        event_handlers: Mapping[Type[DomainEvent], Iterable[EventSubscriber]],
    ):
        """
        Wire one app's handlers; called from ``AppConfig.ready()``

        Handler classes are instantiated with their default repositories.
        Registering the same app twice is a no-op.
        """
        for command_type, handler_class in command_handlers.items():
            if not self.has_command_handler(command_type):
                self.register_command_handler(command_type, handler_class().handle)
        for event_type, subscribers in event_handlers.items():
            for subscriber in subscribers:
                self.register_event_handler(event_type, subscriber)
        logger.debug(f"Registered {len(command_handlers)} command(s), {len(event_handlers)} event type(s)")

    # ----- commands -----

    def handle_command(self, command: Any) -> Any:
        """Run the command's handler and return its result (raises LookupError when unrouted)"""
        name = type(command).__name__
        handler = self._commands.get(type(command))
        if handler is None:
            raise LookupError(f"No handler registered for {name}")

        started = monotonic()
        try:
            result = handler(command)
        except ReservationError as e:
            logger.info(f"{name} rejected: {e.reason}: {e.message}")
            raise
        except Exception:
            logger.exception(f"{name} failed")
            raise
        logger.debug(f"{name} handled in {(monotonic() - started) * 1000:.1f} ms")
        return result

    async def ahandle_command(self, command: Any) -> Any:
        """
        Async facade over ``handle_command``

        Each call runs in its own worker thread with its own database
        connection, so concurrent awaits serialize on the same row locks
        as concurrent HTTP requests.
        """
        return await sync_to_async(self._handle_in_worker, thread_sensitive=False)(command)

    def _handle_in_worker(self, command: Any) -> Any:
        try:
            return self.handle_command(command)
        finally:
            connections.close_all()

    # ----- events -----

    def publish_events(self, events: Iterable[DomainEvent]):
        for event in events:
            for subscriber in self._subscribers.get(type(event), []):
                try:
                    subscriber(event)
                except Exception:
                    logger.exception(
                        f"Subscriber {getattr(subscriber, '__name__', subscriber)!s} failed on "
                        f"{type(event).__name__} {event.event_id}"
                    )


message_bus = MessageBus()
