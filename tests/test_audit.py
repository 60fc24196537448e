"""
Tests for the hash-chained audit trail
"""

import pytest

from bag_ledger.storage import InMemoryStorage, SQLiteStorage
from bag_ledger.audit import AuditTrail, AuditEventType, AuditEvent


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_trail(storage):
    return AuditTrail(storage)


class TestAuditTrail:

    def test_log_event(self, audit_trail):
        event = audit_trail.log_event(
            AuditEventType.BAG_CREATED, "bag", "0",
            metadata={"name": "Gucci", "price": 1000},
            user_id="admin"
        )
        assert isinstance(event, AuditEvent)
        assert event.sequence == 1
        assert event.previous_hash == ""
        assert event.metadata["price"] == "1000"
        assert event.verify_hash()

    def test_events_are_chained(self, audit_trail):
        first = audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "0")
        second = audit_trail.log_event(AuditEventType.BAG_SOLD, "bag", "0")
        assert second.sequence == 2
        assert second.previous_hash == first.current_hash

    def test_metadata_keeps_booleans_and_none(self, audit_trail):
        event = audit_trail.log_event(
            AuditEventType.APPROVAL_SET, "bag", "0",
            metadata={"approved": None, "flag": True}
        )
        assert event.metadata == {"approved": None, "flag": True}

    def test_queries(self, audit_trail):
        audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "0")
        audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "1")
        audit_trail.log_event(AuditEventType.BAG_SOLD, "bag", "0")

        assert audit_trail.count_events() == 3
        assert len(audit_trail.get_events_for_entity("bag", "0")) == 2
        assert len(audit_trail.get_events_by_type(AuditEventType.BAG_CREATED)) == 2
        assert [e.sequence for e in audit_trail.get_all_events(limit=2)] == [2, 3]

    def test_disabled_trail_records_nothing(self, storage):
        trail = AuditTrail(storage, enabled=False)
        assert trail.log_event(AuditEventType.BAG_CREATED, "bag", "0") is None
        assert trail.count_events() == 0


class TestIntegrity:

    def test_intact_chain(self, audit_trail):
        for i in range(5):
            audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", str(i), metadata={"price": 10**40})
        result = audit_trail.verify_integrity()
        assert result["valid"]
        assert result["total_events"] == 5

    def test_tampered_metadata_detected(self, storage, audit_trail):
        event = audit_trail.log_event(AuditEventType.BAG_SOLD, "bag", "0", metadata={"paid": 1000})
        record = storage.load("audit_events", event.id)
        record["metadata"]["paid"] = "1"
        storage.save("audit_events", event.id, record)

        result = audit_trail.verify_integrity()
        assert not result["valid"]
        assert result["hash_errors"][0]["event_id"] == event.id

    def test_deleted_event_breaks_chain(self, storage, audit_trail):
        audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "0")
        middle = audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "1")
        audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "2")
        storage.delete("audit_events", middle.id)

        result = audit_trail.verify_integrity()
        assert not result["valid"]
        assert len(result["chain_breaks"]) == 1

    def test_rolled_back_events_leave_chain_intact(self, storage, audit_trail):
        audit_trail.log_event(AuditEventType.BAG_CREATED, "bag", "0")
        with pytest.raises(RuntimeError):
            with storage.atomic():
                audit_trail.log_event(AuditEventType.BAG_SOLD, "bag", "0")
                raise RuntimeError("boom")
        after = audit_trail.log_event(AuditEventType.BAG_SOLD, "bag", "0")

        assert after.sequence == 2
        assert audit_trail.verify_integrity()["valid"]

    def test_sqlite_round_trip(self, tmp_path):
        storage = SQLiteStorage(tmp_path / "audit.db")
        trail = AuditTrail(storage)
        trail.log_event(AuditEventType.BAG_CREATED, "bag", "0", metadata={"price": 1000, "owner": "ledger"})
        trail.log_event(AuditEventType.FUNDS_WITHDRAWN, "treasury", "ledger", metadata={"amount": 850})
        assert trail.verify_integrity()["valid"]
        storage.close()
