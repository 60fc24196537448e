"""
Event System Module

Publish/subscribe notifications for ledger activity (Birth, Transfer,
Approval, Sale). Notifications are observable, not retrievable state: the
exchange buffers them while an operation runs and publishes them only once
the operation has committed.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock

from .ownership import Holder


class DomainEvent(Enum):
    """Notifications emitted by the ledger"""
    BIRTH = "bag.birth"
    TRANSFER = "bag.transfer"
    APPROVAL = "bag.approval"
    SALE = "bag.sale"
    ADMINISTRATOR_CHANGED = "admin.changed"
    FUNDS_WITHDRAWN = "funds.withdrawn"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("bag_ledger.events")

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {getattr(handler, '__name__', repr(handler))} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)

    def unsubscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
            except ValueError:
                self.logger.warning(f"Handler {getattr(handler, '__name__', repr(handler))} was not subscribed to {event_type.value}")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # A subscriber failure must not affect the committed ledger state
                self.logger.error(f"Error in event handler {getattr(handler, '__name__', repr(handler))} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            return sum(len(h) for h in self._handlers.values()) + len(self._global_handlers)


class EventRecorder:
    """Subscriber that keeps every published event, in order"""

    def __init__(self):
        self.events: List[EventPayload] = []

    def __call__(self, event: EventPayload) -> None:
        self.events.append(event)

    def of_type(self, event_type: DomainEvent) -> List[EventPayload]:
        return [e for e in self.events if e.event_type == event_type]


def birth_event(bag_id: int, name: str, owner: Holder) -> EventPayload:
    return EventPayload(
        event_type=DomainEvent.BIRTH,
        entity_type="bag",
        entity_id=str(bag_id),
        data={"bag_id": bag_id, "name": name, "owner": owner.to_dict()}
    )


def transfer_event(bag_id: int, from_: Optional[Holder], to: Holder) -> EventPayload:
    """from_ is None when the bag is being created"""
    return EventPayload(
        event_type=DomainEvent.TRANSFER,
        entity_type="bag",
        entity_id=str(bag_id),
        data={
            "bag_id": bag_id,
            "from": from_.to_dict() if from_ is not None else None,
            "to": to.to_dict()
        }
    )


def approval_event(bag_id: int, owner: Holder, approved: Optional[str]) -> EventPayload:
    return EventPayload(
        event_type=DomainEvent.APPROVAL,
        entity_type="bag",
        entity_id=str(bag_id),
        data={"bag_id": bag_id, "owner": owner.to_dict(), "approved": approved}
    )


def sale_event(bag_id: int, old_price: int, new_price: int,
               old_owner: Holder, new_owner: Holder, name: str) -> EventPayload:
    return EventPayload(
        event_type=DomainEvent.SALE,
        entity_type="bag",
        entity_id=str(bag_id),
        data={
            "bag_id": bag_id,
            "old_price": old_price,
            "new_price": new_price,
            "old_owner": old_owner.to_dict(),
            "new_owner": new_owner.to_dict(),
            "name": name
        }
    )
