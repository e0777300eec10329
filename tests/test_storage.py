"""Tests for the JSON file and in-memory stores."""

import asyncio
import json
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from isa_allowance.models.audit import AuditEvent, AuditEventType
from isa_allowance.models.contribution import ISAType
from isa_allowance.policy import FlexibilityPolicy
from isa_allowance.services.storage import (
    CorruptDataError,
    InMemoryContributionStore,
    JsonContributionStore,
    JsonFlexibilityStore,
    JsonLinesAuditStorage,
)


class TestJsonContributionStore:
    """Tests for the contribution ledger file."""

    def test_missing_file_is_empty_ledger(self, tmp_path):
        """Test a fresh data directory loads as an empty ledger."""
        store = JsonContributionStore(tmp_path / "contributions.json", retry_attempts=1)
        assert asyncio.run(store.load()) == []

    def test_round_trip_preserves_order(self, tmp_path, make_contribution):
        """Test save then load returns the same entries in insertion order."""
        store = JsonContributionStore(tmp_path / "contributions.json", retry_attempts=1)
        ledger = [
            make_contribution("300", when=datetime(2024, 9, 1)),
            make_contribution("100.50", when=datetime(2024, 4, 6), isa_type=ISAType.LIFETIME),
            make_contribution("200", when=datetime(2024, 6, 1), withdrawn=True),
        ]
        asyncio.run(store.save(ledger))

        loaded = asyncio.run(store.load())
        assert loaded == ledger
        assert [c.id for c in loaded] == [c.id for c in ledger]

    def test_wire_format(self, tmp_path, make_contribution):
        """Test amounts are strings, None is omitted and empty strings are kept."""
        path = tmp_path / "contributions.json"
        store = JsonContributionStore(path, retry_attempts=1)
        asyncio.run(store.save([make_contribution("1500.25", notes="")]))

        record = json.loads(path.read_text(encoding="utf-8"))[0]
        assert record["amount"] == "1500.25"
        assert record["isa_type"] == "cash"
        assert record["notes"] == ""
        assert "account_number" not in record

    def test_save_creates_data_directory(self, tmp_path, make_contribution):
        """Test the data directory is created on first save."""
        path = tmp_path / "nested" / "contributions.json"
        store = JsonContributionStore(path, retry_attempts=1)
        asyncio.run(store.save([make_contribution()]))
        assert path.exists()
        assert not list(path.parent.glob("*.tmp"))

    def test_invalid_json(self, tmp_path):
        """Test an unreadable blob raises instead of loading as empty."""
        path = tmp_path / "contributions.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CorruptDataError):
            asyncio.run(JsonContributionStore(path, retry_attempts=1).load())

    def test_wrong_shape(self, tmp_path):
        """Test a JSON object where an array belongs."""
        path = tmp_path / "contributions.json"
        path.write_text('{"amount": "100"}', encoding="utf-8")
        with pytest.raises(CorruptDataError):
            asyncio.run(JsonContributionStore(path, retry_attempts=1).load())

    def test_invalid_record(self, tmp_path):
        """Test a record with a negative amount is reported as corrupt."""
        path = tmp_path / "contributions.json"
        path.write_text(json.dumps([{
            "isa_type": "cash",
            "provider": "Monzo",
            "amount": "-5",
            "date": "2024-05-01T00:00:00",
        }]), encoding="utf-8")
        with pytest.raises(CorruptDataError):
            asyncio.run(JsonContributionStore(path, retry_attempts=1).load())


class TestJsonFlexibilityStore:

    def test_round_trip(self, tmp_path):
        """Test settings are keyed by provider and type."""
        store = JsonFlexibilityStore(tmp_path / "isa_settings.json", retry_attempts=1)
        policy = FlexibilityPolicy(provider="Monzo", isa_type=ISAType.CASH, is_flexible=True)
        asyncio.run(store.save({policy.key: policy}))

        loaded = asyncio.run(store.load())
        assert list(loaded) == ["monzo_cash"]
        assert loaded["monzo_cash"].is_flexible is True

    def test_missing_file(self, tmp_path):
        """Test no settings file means no recorded choices."""
        store = JsonFlexibilityStore(tmp_path / "isa_settings.json", retry_attempts=1)
        assert asyncio.run(store.load()) == {}


class TestJsonLinesAuditStorage:
    """Tests for the append-only audit log."""

    def make_event(self, **kwargs) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_ADDED,
            description="Contribution added",
            **kwargs,
        )

    def test_queries(self, tmp_path):
        """Test correlation, entity and recency queries."""
        storage = JsonLinesAuditStorage(tmp_path / "audit_log.jsonl", retry_attempts=1)
        correlation_id = uuid4()
        entity_id = uuid4()
        start = datetime(2024, 5, 1, 12, 0)

        events = [
            self.make_event(correlation_id=correlation_id, timestamp=start),
            self.make_event(
                correlation_id=correlation_id,
                entity_type="contribution",
                entity_id=entity_id,
                timestamp=start + timedelta(seconds=1),
            ),
            self.make_event(timestamp=start + timedelta(seconds=2)),
        ]
        for event in events:
            assert asyncio.run(storage.append_event(event))

        by_correlation = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert [e.event_id for e in by_correlation] == [events[0].event_id, events[1].event_id]

        by_entity = asyncio.run(storage.get_events_by_entity("contribution", entity_id))
        assert [e.event_id for e in by_entity] == [events[1].event_id]

        recent = asyncio.run(storage.get_recent_events(limit=2))
        assert [e.event_id for e in recent] == [events[2].event_id, events[1].event_id]

    def test_bad_line_is_skipped(self, tmp_path):
        """Test one unreadable line does not hide the rest of the log."""
        path = tmp_path / "audit_log.jsonl"
        storage = JsonLinesAuditStorage(path, retry_attempts=1)
        asyncio.run(storage.append_event(self.make_event()))
        with path.open("a", encoding="utf-8") as handle:
            handle.write("garbage\n")
        asyncio.run(storage.append_event(self.make_event()))

        assert len(asyncio.run(storage.get_recent_events())) == 2


class TestInMemoryContributionStore:

    def test_copies_on_the_way_in_and_out(self, make_contribution):
        """Test callers cannot mutate stored entries."""
        original = make_contribution("100")
        store = InMemoryContributionStore([original])

        loaded = asyncio.run(store.load())
        loaded.append(make_contribution("200"))
        assert len(asyncio.run(store.load())) == 1
        assert store.save_count == 0

        asyncio.run(store.save(loaded))
        assert len(asyncio.run(store.load())) == 2
        assert store.save_count == 1
