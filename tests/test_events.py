"""
Tests for the event dispatcher and notification payloads
"""

from unittest.mock import Mock

from bag_ledger.ownership import Holder
from bag_ledger.events import (
    DomainEvent, EventDispatcher, EventPayload, EventRecorder,
    birth_event, sale_event, transfer_event
)


class TestEventPayload:

    def test_serialization(self):
        event = transfer_event(3, None, Holder.of("alice"))
        data = event.to_dict()
        assert data["event_type"] == "bag.transfer"
        assert data["entity_id"] == "3"
        assert data["data"] == {
            "bag_id": 3,
            "from": None,
            "to": {"kind": "account", "account": "alice"}
        }
        assert data["event_id"]

    def test_sale_payload(self):
        event = sale_event(0, 1000, 2000, Holder.ledger(), Holder.of("bob"), "Gucci")
        assert event.event_type == DomainEvent.SALE
        assert event.data["old_price"] == 1000
        assert event.data["new_price"] == 2000
        assert event.data["name"] == "Gucci"
        assert event.data["old_owner"] == {"kind": "ledger", "account": None}


class TestEventDispatcher:

    def test_subscribe_and_publish(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.BIRTH, handler)

        event = birth_event(0, "Gucci", Holder.ledger())
        dispatcher.publish(event)
        dispatcher.publish(transfer_event(0, None, Holder.ledger()))

        handler.assert_called_once_with(event)

    def test_subscribe_all(self):
        dispatcher = EventDispatcher()
        recorder = EventRecorder()
        dispatcher.subscribe_all(recorder)

        dispatcher.publish(birth_event(0, "Gucci", Holder.ledger()))
        dispatcher.publish(transfer_event(0, None, Holder.ledger()))

        assert [e.event_type for e in recorder.events] == [DomainEvent.BIRTH, DomainEvent.TRANSFER]
        assert len(recorder.of_type(DomainEvent.TRANSFER)) == 1

    def test_unsubscribe(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.SALE, handler)
        dispatcher.unsubscribe(DomainEvent.SALE, handler)
        dispatcher.publish(sale_event(0, 1, 2, Holder.of("a"), Holder.of("b"), "n"))
        handler.assert_not_called()

    def test_failing_handler_does_not_stop_others(self):
        dispatcher = EventDispatcher()
        failing = Mock(side_effect=RuntimeError("boom"))
        recorder = EventRecorder()
        dispatcher.subscribe(DomainEvent.BIRTH, failing)
        dispatcher.subscribe(DomainEvent.BIRTH, recorder)

        dispatcher.publish(birth_event(0, "Gucci", Holder.ledger()))

        failing.assert_called_once()
        assert len(recorder.events) == 1

    def test_handler_count_and_clear(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(DomainEvent.BIRTH, Mock())
        dispatcher.subscribe(DomainEvent.SALE, Mock())
        dispatcher.subscribe_all(Mock())
        assert dispatcher.get_handler_count(DomainEvent.BIRTH) == 1
        assert dispatcher.get_handler_count() == 3
        dispatcher.clear()
        assert dispatcher.get_handler_count() == 0

    def test_custom_payload(self):
        dispatcher = EventDispatcher()
        recorder = EventRecorder()
        dispatcher.subscribe(DomainEvent.FUNDS_WITHDRAWN, recorder)
        dispatcher.publish(EventPayload(
            event_type=DomainEvent.FUNDS_WITHDRAWN,
            entity_type="treasury",
            entity_id="ledger",
            data={"to": "admin", "amount": 150}
        ))
        assert recorder.events[0].data["amount"] == 150
