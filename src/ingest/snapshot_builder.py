"""Snapshot assembly from normalized observations.

This module sums per-region counts into totals and keeps the per-run
candidate accumulator. One accumulator is created per pipeline run and
never shared across runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.source_profile import SourceProfile
from core.types import NormalizedPayload, RawPayload, RegionCount, Snapshot


def build_snapshot(
    normalized: NormalizedPayload,
    source_timestamp: datetime,
    profile: SourceProfile,
    source_url: str,
    fetched_at: datetime,
) -> Snapshot:
    """Build a candidate snapshot from normalized observations.

    Args:
        normalized: Observations and raw update text.
        source_timestamp: Resolved source update instant.
        profile: Source profile declaring the metric kinds.
        source_url: URL the observations came from.
        fetched_at: Fetch completion instant.

    Returns:
        Candidate snapshot with totals equal to per-region sums.
    """
    by_region: dict[str, tuple[RegionCount, ...]] = {}
    metrics: dict[str, int] = {}
    for kind in profile.metric_kinds:
        counts = tuple(
            RegionCount(state=observation.region_code, count=observation.metrics[kind])
            for observation in normalized.observations
            if kind in observation.metrics
        )
        by_region[kind] = counts
        metrics[kind] = sum(item.count for item in counts)
    return Snapshot(
        source_timestamp=source_timestamp,
        metrics=metrics,
        by_region=by_region,
        source_url=source_url,
        fetched_at=fetched_at,
        read_me_url=profile.read_me_url,
        version=profile.version,
    )


@dataclass
class CandidateAccumulator:
    """Mutable per-run builder of candidates and their raw inputs.

    Attributes:
        candidates: Candidates collected so far, in discovery order.
        last_raw_payload: Most recent raw payload body, for diagnostics.
        failed_urls: Detail URLs that exhausted their fetch attempts.
    """

    candidates: list[Snapshot] = field(default_factory=list)
    last_raw_payload: Any = None
    failed_urls: list[str] = field(default_factory=list)

    def record_payload(self, payload: RawPayload) -> None:
        """Remember the latest raw payload body."""
        self.last_raw_payload = payload.body

    def add_candidate(self, snapshot: Snapshot) -> None:
        """Add a candidate snapshot."""
        self.candidates.append(snapshot)

    def record_failure(self, url: str) -> None:
        """Remember a detail URL that could not be fetched."""
        self.failed_urls.append(url)

    def ordered_candidates(self) -> list[Snapshot]:
        """Return candidates sorted by source timestamp ascending."""
        return sorted(self.candidates, key=lambda item: item.source_timestamp)
