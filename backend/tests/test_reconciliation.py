"""Tests for merging extracted batches into booking history."""

from database.models.booking import NOT_AVAILABLE
from mailsync.reconciliation import reconcile


def test_new_ids_inserted_and_history_retained(make_booking):
    history = [make_booking("1"), make_booking("2")]
    batch = [make_booking("3")]

    result = reconcile(history, batch)

    assert sorted(r.id for r in result.records) == ["1", "2", "3"]
    assert result.inserted_ids == ["3"]
    assert result.replaced_ids == []
    assert result.changed


def test_batch_record_replaces_stale_record_wholesale(make_booking):
    stale = make_booking("1", customer_name=NOT_AVAILABLE, paid_amount=NOT_AVAILABLE)
    healed = make_booking("1", location="Baner")

    result = reconcile([stale], [healed])

    assert result.records == [healed]
    assert result.replaced_ids == ["1"]
    assert result.inserted_ids == []


def test_identical_reoffer_changes_nothing(make_booking):
    history = [make_booking("1", customer_name=NOT_AVAILABLE)]

    result = reconcile(history, [make_booking("1", customer_name=NOT_AVAILABLE)])

    assert not result.changed
    assert result.records == history


def test_reconcile_is_idempotent(make_booking):
    history = [make_booking("1"), make_booking("2", customer_name=NOT_AVAILABLE)]
    batch = [make_booking("2"), make_booking("3")]

    first = reconcile(history, batch)
    second = reconcile(first.records, batch)

    assert second.records == first.records
    assert not second.changed


def test_duplicate_batch_ids_collapse_last_wins(make_booking):
    batch = [make_booking("7", location="Thane"), make_booking("7", location="Powai")]

    result = reconcile([], batch)

    assert len(result.records) == 1
    assert result.records[0].location == "Powai"
    assert result.inserted_ids == ["7"]


def test_result_ids_are_unique(make_booking):
    history = [make_booking(str(i)) for i in range(5)]
    batch = [make_booking(str(i), location="Dahisar") for i in range(3, 8)]

    ids = [r.id for r in reconcile(history, batch).records]

    assert len(ids) == len(set(ids)) == 8
