"""Event publishing shared by all bounded contexts."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Protocol

logger = logging.getLogger(__name__)


class EventPublisherProtocol(Protocol):
    """Publishes domain events for observability."""

    def publish(self, event: Any) -> None: ...


@dataclass
class EventCollector:
    """Simple in-memory event collector for domain events."""

    events: List[Any] = field(default_factory=list)
    max_events: int = 1000

    def publish(self, event: Any) -> None:
        if len(self.events) >= self.max_events:
            self.events.pop(0)
        self.events.append(event)
        logger.debug("Domain event: %s", getattr(event, "to_dict", lambda: event)())

    def get_recent(self, n: int = 10) -> List[Any]:
        return self.events[-n:]

    def of_type(self, event_type: type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()
