"""Unit tests for history store persistence."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.errors import TrackerStoreError
from core.types import RegionCount, Snapshot
from store.history_store import HistoryStore


def _snapshot(day: int) -> Snapshot:
    return Snapshot(
        source_timestamp=datetime(2020, 4, day, 21, tzinfo=timezone.utc),
        metrics={"infected": day, "deceased": 0},
        by_region={
            "infected": (RegionCount(state="SP", count=day),),
            "deceased": (RegionCount(state="SP", count=0),),
        },
        source_url="https://example.org",
        fetched_at=datetime(2020, 4, day, 21, 30, tzinfo=timezone.utc),
        read_me_url="https://example.org/readme",
    )


def test_empty_store_has_no_cursor(tmp_path) -> None:
    """A fresh store reports no last record."""
    store = HistoryStore(tmp_path, "demo")

    assert store.read_last_record() is None and store.read_latest() is None


def test_append_history_preserves_order(tmp_path) -> None:
    """History reads back in append order."""
    store = HistoryStore(tmp_path, "demo")
    store.append_history([_snapshot(1), _snapshot(2)])
    store.append_history([_snapshot(3)])

    assert [item.metrics["infected"] for item in store.read_history()] == [1, 2, 3]


def test_last_record_is_most_recent_append(tmp_path) -> None:
    """The cursor comes from the last appended record."""
    store = HistoryStore(tmp_path, "demo")
    store.append_history([_snapshot(1), _snapshot(2)])

    assert store.read_last_record() == _snapshot(2)


def test_write_latest_replaces_previous(tmp_path) -> None:
    """Latest always holds the most recent write."""
    store = HistoryStore(tmp_path, "demo")
    store.write_latest(_snapshot(1))
    store.write_latest(_snapshot(2))

    assert store.read_latest() == _snapshot(2)


def test_write_latest_leaves_no_temporary_files(tmp_path) -> None:
    """Atomic replacement cleans up its temporary file."""
    store = HistoryStore(tmp_path, "demo")
    store.write_latest(_snapshot(1))

    assert sorted(path.name for path in store.source_root.iterdir()) == ["latest.json"]


def test_publish_is_separate_from_history(tmp_path) -> None:
    """Published records never count towards history."""
    store = HistoryStore(tmp_path, "demo")
    store.publish([_snapshot(1)])

    assert len(store.read_published()) == 1 and store.read_history() == []


def test_stores_are_isolated_per_source(tmp_path) -> None:
    """Each source keeps its own history."""
    HistoryStore(tmp_path, "first").append_history([_snapshot(1)])

    assert HistoryStore(tmp_path, "second").read_history() == []


def test_corrupt_history_raises_store_error(tmp_path) -> None:
    """A broken history line is reported instead of ignored."""
    store = HistoryStore(tmp_path, "demo")
    (store.source_root / "history.jsonl").write_text("{not json\n", encoding="utf-8")

    with pytest.raises(TrackerStoreError):
        store.read_last_record()
