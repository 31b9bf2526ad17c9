"""
Tests for the record store, counters and collection repositories.
"""

import json

import pytest

from core.deals.repository import DealRepository
from core.store import (
    DEAL_COUNTER_PREFIX,
    RECEIPT_COUNTER_PREFIX,
    InMemoryRecordStore,
    JsonFileRecordStore,
    YearlyCounter,
    get_record_store,
    reset_record_store,
)


@pytest.fixture
def json_store(tmp_path):
    return JsonFileRecordStore(str(tmp_path / "nested" / "store.json"))


class TestInMemoryStore:

    def test_missing_key_reads_none(self):
        store = InMemoryRecordStore()
        assert store.read("deals") is None
        assert store.read_list("deals") == []

    def test_values_are_copied(self):
        store = InMemoryRecordStore()
        value = [{"id": "A"}]
        store.write("deals", value)

        value.append({"id": "B"})
        read_back = store.read("deals")
        read_back.append({"id": "C"})

        assert store.read("deals") == [{"id": "A"}]

    def test_non_list_degrades_to_empty(self):
        store = InMemoryRecordStore({"deals": {"not": "a list"}})
        assert store.read_list("deals") == []


class TestJsonFileStore:

    def test_write_creates_parent_directories(self, json_store):
        json_store.write("deals", [{"id": "A"}])

        assert json_store.path.exists()
        assert json.loads(json_store.path.read_text())["deals"] == [{"id": "A"}]

    def test_keys_are_written_independently(self, json_store):
        json_store.write("deals", [1])
        json_store.write("commissions", [2])

        assert json_store.read("deals") == [1]
        assert json_store.read("commissions") == [2]

    def test_corrupt_file_reads_as_empty(self, json_store):
        json_store.path.parent.mkdir(parents=True)
        json_store.path.write_text("{not json")

        assert json_store.read("deals") is None
        assert json_store.read_list("deals") == []

    def test_non_object_document_reads_as_empty(self, json_store):
        json_store.path.parent.mkdir(parents=True)
        json_store.path.write_text("[1, 2, 3]")

        assert json_store.read("deals") is None

    def test_undecodable_bytes_read_as_empty(self, json_store):
        json_store.path.parent.mkdir(parents=True)
        json_store.path.write_bytes(b"\xff\xfe\x00garbage")

        assert json_store.read("deals") is None

        json_store.write("deals", [{"id": "A"}])
        assert json_store.read("deals") == [{"id": "A"}]

    def test_second_instance_sees_writes(self, json_store):
        json_store.write("receipt-counter:2026", 4)
        other = JsonFileRecordStore(str(json_store.path))

        assert other.read("receipt-counter:2026") == 4


class TestYearlyCounter:

    def test_counts_from_one_per_year(self):
        counter = YearlyCounter(InMemoryRecordStore())

        assert counter.peek(2026) == 0
        assert [counter.next_value(2026) for _ in range(3)] == [1, 2, 3]
        assert counter.next_value(2027) == 1
        assert counter.peek(2026) == 3

    def test_prefixes_do_not_collide(self):
        store = InMemoryRecordStore()
        receipts = YearlyCounter(store, RECEIPT_COUNTER_PREFIX)
        deals = YearlyCounter(store, DEAL_COUNTER_PREFIX)

        receipts.next_value(2026)
        receipts.next_value(2026)

        assert deals.next_value(2026) == 1
        assert sorted(store.keys()) == ["deal-counter:2026", "receipt-counter:2026"]

    def test_garbage_value_restarts_at_one(self):
        store = InMemoryRecordStore({"receipt-counter:2026": "lots"})
        assert YearlyCounter(store).next_value(2026) == 1


class TestCollectionRepository:

    def test_malformed_records_are_skipped(self):
        good = {
            "id": "DEAL-1",
            "deal_number": "DEAL-2026-0001",
            "property_id": "PROP-1",
            "parties": {"buyer": {"name": "Bilal"}, "seller": {"name": "Sana"}},
            "agents": {"primary": {"id": "AG-1", "name": "Ayesha"}},
            "financial": {"agreed_price": 1000},
            "lifecycle": {"stage": "offer-accepted"},
        }
        store = InMemoryRecordStore({"deals": [good, {"id": "DEAL-BROKEN"}]})

        deals = DealRepository(store).list_all()

        assert [d.id for d in deals] == ["DEAL-1"]

    def test_writes_keep_malformed_records(self):
        good = {
            "id": "DEAL-1",
            "deal_number": "DEAL-2026-0001",
            "property_id": "PROP-1",
            "parties": {"buyer": {"name": "Bilal"}, "seller": {"name": "Sana"}},
            "agents": {"primary": {"id": "AG-1", "name": "Ayesha"}},
            "financial": {"agreed_price": 1000},
            "lifecycle": {"stage": "offer-accepted"},
        }
        store = InMemoryRecordStore({"deals": [{"id": "DEAL-BROKEN"}, good]})
        repository = DealRepository(store)

        deal = repository.get("DEAL-1")
        deal.property_id = "PROP-2"
        repository.save(deal)
        repository.save_all(repository.list_all())

        stored = store.read("deals")
        assert stored[0] == {"id": "DEAL-BROKEN"}
        assert [d.property_id for d in repository.list_all()] == ["PROP-2"]


class TestSingleton:

    def test_singleton_is_reused_until_reset(self, tmp_path):
        reset_record_store()
        try:
            first = get_record_store(str(tmp_path / "a.json"))
            assert get_record_store(str(tmp_path / "b.json")) is first
            reset_record_store()
            assert get_record_store(str(tmp_path / "b.json")) is not first
        finally:
            reset_record_store()
