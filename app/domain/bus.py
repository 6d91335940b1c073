"""Synchronous in-process bus for reservation domain events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe bus for domain events.

    Handlers run synchronously, in registration order, inside the request
    that published the event. A failing handler propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        handlers = self._subscribers.get(type(event), [])
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)
