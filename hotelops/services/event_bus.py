"""
Event bus
In-process publish/subscribe. Services publish after their transaction commits;
handlers (webhooks, notifications) run synchronously on the publishing thread.
"""
from typing import Callable, Dict, List, Any, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime
from collections import defaultdict, deque
from enum import Enum
import logging
import threading

from hotelops.config import settings

logger = logging.getLogger(__name__)

EventKey = Union[str, Enum]


def _key(event_type: EventKey) -> str:
    return event_type.value if isinstance(event_type, Enum) else str(event_type)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


@dataclass
class Event:
    """A committed change, e.g. booking.checked_out"""
    event_type: EventKey
    timestamp: datetime
    data: Dict[str, Any]
    source: str  # publishing service
    event_id: str = field(default_factory=lambda: datetime.now().strftime("%Y%m%d%H%M%S%f"))

    @property
    def key(self) -> str:
        return _key(self.event_type)


class EventBus:
    """
    Process-wide event bus (one instance per process)

        event_bus.subscribe(EventType.BOOKING_CHECKED_OUT, handler)
        event_bus.publish(Event(...))
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._subscribers = defaultdict(list)
                instance._history = deque(maxlen=settings.EVENT_HISTORY_SIZE)
                instance._subscriber_lock = threading.Lock()
                cls._instance = instance
        return cls._instance

    def subscribe(self, event_type: EventKey, handler: Callable) -> None:
        key = _key(event_type)
        with self._subscriber_lock:
            if handler in self._subscribers[key]:
                return
            self._subscribers[key].append(handler)
        logger.info(f"{_handler_name(handler)} subscribed to {key}")

    def unsubscribe(self, event_type: EventKey, handler: Callable) -> None:
        key = _key(event_type)
        with self._subscriber_lock:
            if handler not in self._subscribers.get(key, []):
                return
            self._subscribers[key].remove(handler)
        logger.info(f"{_handler_name(handler)} unsubscribed from {key}")

    def publish(self, event: Event) -> None:
        """Run every handler; a failing handler is logged and the rest still run"""
        self._history.append(event)
        with self._subscriber_lock:
            handlers = list(self._subscribers.get(event.key, []))
        if not handlers:
            logger.debug(f"No handlers for {event.key}")
            return

        logger.info(f"Publishing {event.key} from {event.source} to {len(handlers)} handler(s)")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler {_handler_name(handler)} failed on {event.key}: {e}", exc_info=True)

    def get_history(self, event_type: Optional[EventKey] = None, limit: int = 50) -> List[Event]:
        """Recent events, newest first"""
        events = reversed(self._history)
        if event_type:
            key = _key(event_type)
            events = (e for e in events if e.key == key)
        return list(events)[:limit]

    def get_subscribers(self, event_type: Optional[EventKey] = None) -> Dict[str, List[str]]:
        with self._subscriber_lock:
            if event_type:
                key = _key(event_type)
                return {key: [_handler_name(h) for h in self._subscribers.get(key, [])]}
            return {k: [_handler_name(h) for h in hs] for k, hs in self._subscribers.items() if hs}

    def clear_subscribers(self) -> None:
        with self._subscriber_lock:
            self._subscribers.clear()
        logger.info("All event subscribers cleared")

    def clear_history(self) -> None:
        self._history.clear()


event_bus = EventBus()
