"""Tests for the transfer registry."""

from datetime import datetime, timedelta, timezone

import pytest

from transferconsole.session.models import TransferMeta
from transferconsole.transfers.registry import TransferRegistry

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds):
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def registry():
    return TransferRegistry()


class TestUpsert:
    def test_ignores_meta_without_id(self, registry):
        assert registry.upsert(TransferMeta(status="pending"), "x", at(0)) is None
        assert registry.upsert(TransferMeta(id=""), "x", at(0)) is None
        assert registry.upsert(None) is None
        assert len(registry) == 0
        assert registry.snapshot() == ()

    def test_creates_record(self, registry):
        record = registry.upsert(
            TransferMeta(id="t1", txIndex=2, status="submitted"), "sent", at(0)
        )

        assert record.id == "t1"
        assert record.tx_index == 2
        assert record.status == "submitted"
        assert record.last_message == "sent"
        assert record.created_at == at(0)
        assert record.updated_at == at(0)

    def test_last_write_wins_field_by_field(self, registry):
        registry.upsert(TransferMeta(id="t1", txIndex=0, label="First", status="submitted"), "a", at(0))
        registry.upsert(TransferMeta(id="t1", txHash="0xabc", status="pending"), "b", at(5))
        registry.upsert(TransferMeta(id="t1", txHash="", label="", status=""), "", at(9))

        record = registry.get("t1")
        assert record.created_at == at(0)
        assert record.updated_at == at(9)
        assert record.label == "First"
        assert record.tx_index == 0
        assert record.tx_hash == "0xabc"
        assert record.status == "pending"
        assert record.last_message == "b"

    def test_out_of_order_status_is_not_corrected(self, registry):
        registry.upsert(TransferMeta(id="t1", status="monitoring"), None, at(1))
        registry.upsert(TransferMeta(id="t1", status="submitted"), None, at(2))

        assert registry.get("t1").status == "submitted"

    def test_naive_timestamp_treated_as_utc(self, registry):
        registry.upsert(TransferMeta(id="a"), None, datetime(2024, 5, 1, 12, 0, 0))
        registry.upsert(TransferMeta(id="b"), None, at(1))

        assert [r.id for r in registry.snapshot()] == ["a", "b"]


class TestSnapshot:
    def test_ordered_by_creation_not_update(self, registry):
        registry.upsert(TransferMeta(id="late"), None, at(10))
        registry.upsert(TransferMeta(id="early"), None, at(1))
        registry.upsert(TransferMeta(id="late", status="confirmed"), None, at(20))

        assert [r.id for r in registry.snapshot()] == ["early", "late"]

    def test_ties_keep_insertion_order(self, registry):
        for transfer_id in ["c", "a", "b"]:
            registry.upsert(TransferMeta(id=transfer_id), None, at(0))

        assert [r.id for r in registry.snapshot()] == ["c", "a", "b"]

    def test_stable_without_new_events(self, registry):
        registry.upsert(TransferMeta(id="t1", status="pending"), None, at(0))
        registry.upsert(TransferMeta(id="t2", status="pending"), None, at(0))

        assert registry.snapshot() == registry.snapshot()

    def test_snapshot_is_isolated_from_later_updates(self, registry):
        registry.upsert(TransferMeta(id="t1", status="pending"), None, at(0))
        before = registry.snapshot()

        registry.upsert(TransferMeta(id="t1", status="confirmed"), None, at(1))

        assert before[0].status == "pending"
        assert registry.snapshot()[0].status == "confirmed"

    def test_reset(self, registry):
        registry.upsert(TransferMeta(id="t1"), None, at(0))
        registry.reset()

        assert len(registry) == 0
        assert registry.snapshot() == ()


class TestRecordDisplay:
    def test_label_defaults_to_ordinal(self, registry):
        record = registry.upsert(TransferMeta(id="t1", txIndex=0), None, at(0))
        assert record.display_label == "Tx 1"

    def test_explicit_label(self, registry):
        record = registry.upsert(TransferMeta(id="t1", txIndex=0, label="Forced revert"), None, at(0))
        assert record.display_label == "Forced revert"

    def test_falls_back_to_id(self, registry):
        record = registry.upsert(TransferMeta(id="t1"), None, at(0))
        assert record.display_label == "t1"
        assert record.status_label == "Unknown"
