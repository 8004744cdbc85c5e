"""Unit tests for snapshot assembly."""

from __future__ import annotations

from datetime import datetime, timezone

from core.source_profile import BUILTIN_SOURCE_PROFILES
from core.types import NormalizedPayload, RegionObservation
from ingest.snapshot_builder import CandidateAccumulator, build_snapshot

_INSTANT = datetime(2020, 4, 5, 21, tzinfo=timezone.utc)


def _normalized() -> NormalizedPayload:
    return NormalizedPayload(
        observations=(
            RegionObservation("SP", {"suspicious": 5, "infected": 3, "deceased": 1}),
            RegionObservation("RJ", {"suspicious": 2, "infected": 4, "deceased": 0}),
        ),
        raw_timestamp_text="",
    )


def test_build_snapshot_totals_equal_region_sums() -> None:
    """Totals are computed from the per-region counts."""
    profile = BUILTIN_SOURCE_PROFILES["news-feed"]

    snapshot = build_snapshot(_normalized(), _INSTANT, profile, "https://example.org", _INSTANT)

    assert snapshot.metrics == {"suspicious": 7, "infected": 7, "deceased": 1}


def test_build_snapshot_keeps_source_region_order() -> None:
    """Per-region lists follow observation order."""
    profile = BUILTIN_SOURCE_PROFILES["news-feed"]

    snapshot = build_snapshot(_normalized(), _INSTANT, profile, "https://example.org", _INSTANT)

    assert [item.state for item in snapshot.by_region["infected"]] == ["SP", "RJ"]


def test_build_snapshot_carries_profile_version_and_read_me() -> None:
    """Versioned sources stamp their version on every snapshot."""
    profile = BUILTIN_SOURCE_PROFILES["portal-api"]

    snapshot = build_snapshot(_normalized(), _INSTANT, profile, "https://example.org", _INSTANT)

    assert (snapshot.version, snapshot.read_me_url) == (2, profile.read_me_url)


def test_accumulator_orders_candidates_by_timestamp() -> None:
    """Candidates found out of order are returned oldest first."""
    profile = BUILTIN_SOURCE_PROFILES["news-feed"]
    later = build_snapshot(_normalized(), _INSTANT, profile, "https://example.org/b", _INSTANT)
    earlier = build_snapshot(
        _normalized(),
        datetime(2020, 4, 4, 21, tzinfo=timezone.utc),
        profile,
        "https://example.org/a",
        _INSTANT,
    )
    accumulator = CandidateAccumulator()
    accumulator.add_candidate(later)
    accumulator.add_candidate(earlier)

    assert accumulator.ordered_candidates() == [earlier, later]
