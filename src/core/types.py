"""Shared typed models.

This module defines immutable data models used by the normalizers,
validator, merger and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Mapping

MetricKind = Literal["tested", "notInfected", "infected", "deceased", "suspicious"]
SUPPORTED_METRIC_KINDS: tuple[MetricKind, ...] = (
    "tested",
    "notInfected",
    "infected",
    "deceased",
    "suspicious",
)
MANDATORY_METRIC_KINDS: tuple[MetricKind, ...] = ("infected", "deceased")

PayloadFormat = Literal["tabular", "json_api", "feed_html", "embedded_script"]
SUPPORTED_PAYLOAD_FORMATS: tuple[PayloadFormat, ...] = (
    "tabular",
    "json_api",
    "feed_html",
    "embedded_script",
)


@dataclass(frozen=True)
class RawPayload:
    """Format-tagged blob produced by the fetch collaborator.

    Attributes:
        payload_format: Format tag selecting the normalizer.
        body: Response text, or an already-decoded JSON object.
        source_url: URL the payload was fetched from.
        status_code: HTTP-like status reported by the collaborator.
        fetched_at: UTC instant the fetch completed.
    """

    payload_format: PayloadFormat
    body: Any
    source_url: str
    status_code: int
    fetched_at: datetime


@dataclass(frozen=True)
class RegionObservation:
    """Metric counts reported for one federative unit.

    Attributes:
        region_code: Two-letter region code.
        metrics: Non-negative integer count per metric kind.
    """

    region_code: str
    metrics: Mapping[str, int]


@dataclass(frozen=True)
class NormalizedPayload:
    """Uniform intermediate representation of any raw payload.

    Attributes:
        observations: Region observations in source order.
        raw_timestamp_text: Source-reported update time, unparsed.
    """

    observations: tuple[RegionObservation, ...]
    raw_timestamp_text: str


@dataclass(frozen=True)
class RegionCount:
    """One entry of a per-region metric list."""

    state: str
    count: int


@dataclass(frozen=True)
class Snapshot:
    """Timestamped set of region-level and total metric counts.

    Attributes:
        source_timestamp: Update instant reported by the source.
        metrics: Total per metric kind.
        by_region: Per-region counts per metric kind.
        source_url: URL the data was extracted from.
        fetched_at: Instant the tracker fetched the data.
        read_me_url: Documentation URL published with every record.
        version: Optional source-format version tag.
    """

    source_timestamp: datetime
    metrics: Mapping[str, int]
    by_region: Mapping[str, tuple[RegionCount, ...]]
    source_url: str
    fetched_at: datetime
    read_me_url: str
    version: int | None = None


@dataclass(frozen=True)
class SourceExpectations:
    """Structural promises a source makes about its records.

    Attributes:
        expected_region_count: Cardinality of full coverage.
        full_coverage: Whether every region must be present.
        monotonic_totals: Whether cumulative totals should never decrease.
    """

    expected_region_count: int
    full_coverage: bool
    monotonic_totals: bool


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging candidates against the history cursor."""

    to_append: tuple[Snapshot, ...]
    latest: Snapshot


@dataclass(frozen=True)
class RunResult:
    """Summary of one completed pipeline run.

    Attributes:
        source_name: Profile name the run used.
        latest_source_timestamp: Source instant of the published latest record.
        candidate_count: Candidates validated in this run.
        appended_count: Candidates appended to history.
        warnings: Soft validation findings.
    """

    source_name: str
    latest_source_timestamp: datetime
    candidate_count: int
    appended_count: int
    warnings: tuple[str, ...] = field(default_factory=tuple)
