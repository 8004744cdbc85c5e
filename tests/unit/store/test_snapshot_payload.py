"""Unit tests for the published snapshot shape."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from core.types import RegionCount, Snapshot
from store.snapshot_payload import format_instant, parse_instant, snapshot_to_payload


def _snapshot(version: int | None = None) -> Snapshot:
    return Snapshot(
        source_timestamp=datetime(2020, 4, 5, 21, tzinfo=timezone.utc),
        metrics={"tested": 100, "infected": 10, "deceased": 1, "suspicious": 4},
        by_region={
            "tested": (RegionCount(state="SP", count=100),),
            "infected": (RegionCount(state="SP", count=10),),
            "deceased": (RegionCount(state="SP", count=1),),
            "suspicious": (RegionCount(state="SP", count=4),),
        },
        source_url="https://example.org",
        fetched_at=datetime(2020, 4, 5, 21, 30, 0, 123456, tzinfo=timezone.utc),
        read_me_url="https://example.org/readme",
        version=version,
    )


def test_payload_uses_published_field_names() -> None:
    """Totals and region lists use the published names."""
    payload = snapshot_to_payload(_snapshot())

    assert (payload["totalTested"], payload["suspiciousCases"]) == (100, 4)


def test_payload_region_lists_hold_state_and_count() -> None:
    """Region entries are objects with state and count."""
    payload = snapshot_to_payload(_snapshot())

    assert payload["infectedByRegion"] == [{"state": "SP", "count": 10}]


def test_payload_formats_both_instants() -> None:
    """Source and fetch instants render as UTC with milliseconds."""
    payload = snapshot_to_payload(_snapshot())

    assert (payload["lastUpdatedAtSource"], payload["lastUpdatedAtApify"]) == (
        "2020-04-05T21:00:00.000Z",
        "2020-04-05T21:30:00.123Z",
    )


def test_payload_omits_version_when_unset() -> None:
    """Only versioned sources publish a version field."""
    assert "version" not in snapshot_to_payload(_snapshot())
    assert snapshot_to_payload(_snapshot(version=2))["version"] == 2


def test_format_instant_converts_offset_to_utc() -> None:
    """Local instants are shifted to UTC before formatting."""
    local = datetime(2020, 4, 5, 18, tzinfo=timezone(timedelta(hours=-3)))

    assert format_instant(local) == "2020-04-05T21:00:00.000Z"


def test_parse_instant_rejects_naive_text() -> None:
    """Stored instants must carry an offset."""
    with pytest.raises(ValueError):
        parse_instant("2020-04-05T21:00:00")
