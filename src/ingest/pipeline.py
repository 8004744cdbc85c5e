"""Extraction pipeline orchestration.

This module coordinates one run: read the history cursor once, fetch
and normalize the source, validate every candidate, merge against the
cursor, then write latest, append history and publish. Data-shape
errors abort the run before anything is written, after the offending
payload is captured to the diagnostic store.
"""

from __future__ import annotations

from datetime import datetime

from core.config import TrackerConfig
from core.errors import FetchFailure, TrackerPipelineError
from core.logging_config import get_logger
from core.source_profile import SourceProfile, resolve_source_profile
from core.types import MergeResult, RunResult, Snapshot
from ingest.crawl_controller import FeedCrawlController
from ingest.fetcher import Fetcher, HttpFetcher, ensure_success
from ingest.history_merger import merge_candidates
from ingest.payload_normalizer import normalize_payload
from ingest.record_validator import validate_snapshot
from ingest.snapshot_builder import CandidateAccumulator, build_snapshot
from ingest.timestamp_resolver import resolve_timestamp
from store.diagnostic_store import DiagnosticStore
from store.history_store import HistoryStore
from store.s3_export import S3Publisher

_LOGGER = get_logger(__name__)


class TrackerPipelineRunner:
    """Pipeline runner for one source profile.

    Each ``run`` call creates its own candidate accumulator, so a runner
    can be reused across runs without sharing state.
    """

    def __init__(
        self,
        profile: SourceProfile,
        fetcher: Fetcher,
        store: HistoryStore,
        diagnostics: DiagnosticStore,
        publisher: S3Publisher | None = None,
    ) -> None:
        self._profile = profile
        self._fetcher = fetcher
        self._store = store
        self._diagnostics = diagnostics
        self._publisher = publisher

    def run(self) -> RunResult:
        """Execute one pipeline run.

        Returns:
            Summary of the persisted outcome.

        Raises:
            TrackerPipelineError: If fetch, extraction or validation fails.
            TrackerStoreError: If persisted state cannot be read or written.
        """
        last_record = self._store.read_last_record()
        cursor = last_record.source_timestamp if last_record else None
        accumulator = CandidateAccumulator()
        try:
            self._collect_candidates(cursor, accumulator)
            candidates = accumulator.ordered_candidates()
            warnings = self._validate_candidates(candidates, last_record)
            merge_result = merge_candidates(candidates, cursor)
        except TrackerPipelineError as error:
            self._capture_diagnostics(error, accumulator)
            raise
        self._persist(merge_result, candidates)
        result = RunResult(
            source_name=self._profile.name,
            latest_source_timestamp=merge_result.latest.source_timestamp,
            candidate_count=len(candidates),
            appended_count=len(merge_result.to_append),
            warnings=warnings,
        )
        _log_run_completion(result, cursor, accumulator.failed_urls)
        return result

    def _collect_candidates(
        self,
        cursor: datetime | None,
        accumulator: CandidateAccumulator,
    ) -> None:
        if self._profile.payload_format == "feed_html":
            FeedCrawlController(self._profile, self._fetcher, cursor, accumulator).run()
            return
        payload = self._fetcher.fetch(self._profile.source_url, self._profile.payload_format)
        accumulator.record_payload(payload)
        ensure_success(payload)
        normalized = normalize_payload(payload, self._profile)
        source_timestamp = resolve_timestamp(normalized.raw_timestamp_text, self._profile.utc_offset)
        accumulator.add_candidate(
            build_snapshot(
                normalized,
                source_timestamp,
                self._profile,
                payload.source_url,
                payload.fetched_at,
            )
        )

    def _validate_candidates(
        self,
        candidates: list[Snapshot],
        last_record: Snapshot | None,
    ) -> tuple[str, ...]:
        warnings: list[str] = []
        for candidate in candidates:
            warnings.extend(
                validate_snapshot(candidate, self._profile.expectations, previous=last_record)
            )
        return tuple(warnings)

    def _persist(self, merge_result: MergeResult, candidates: list[Snapshot]) -> None:
        self._store.write_latest(merge_result.latest)
        self._store.append_history(merge_result.to_append)
        self._store.publish(candidates)
        if self._publisher is not None:
            self._publisher.upload_latest(self._profile.name, merge_result.latest)

    def _capture_diagnostics(
        self,
        error: TrackerPipelineError,
        accumulator: CandidateAccumulator,
    ) -> None:
        if isinstance(error, FetchFailure):
            return
        if error.diagnostic_payload is not None:
            self._diagnostics.capture(error.kind, error.diagnostic_payload)
        raw_payload = accumulator.last_raw_payload
        if raw_payload is not None and raw_payload is not error.diagnostic_payload:
            self._diagnostics.capture(f"{error.kind}_raw", raw_payload)


def run_pipeline(config: TrackerConfig, fetcher: Fetcher | None = None) -> RunResult:
    """Run the pipeline once for the configured source.

    Args:
        config: Runtime configuration.
        fetcher: Optional fetch collaborator; HTTP when omitted.

    Returns:
        Summary of the persisted outcome.

    Raises:
        TrackerConfigError: If the source profile cannot be resolved.
        TrackerPipelineError: If fetch, extraction or validation fails.
        TrackerStoreError: If persisted state cannot be read or written.
    """
    profile = resolve_source_profile(config.source_name, config.profile_file)
    store = HistoryStore(config.data_root, profile.name)
    runner = TrackerPipelineRunner(
        profile=profile,
        fetcher=fetcher or HttpFetcher(config.request_timeout),
        store=store,
        diagnostics=DiagnosticStore(store.source_root),
        publisher=S3Publisher.from_config(config),
    )
    return runner.run()


def _log_run_completion(
    result: RunResult,
    cursor: datetime | None,
    failed_urls: list[str],
) -> None:
    """Log run completion with contextual metadata."""
    _LOGGER.info(
        "run_completed",
        source=result.source_name,
        cursor=cursor.isoformat() if cursor else None,
        latest_source_timestamp=result.latest_source_timestamp.isoformat(),
        candidate_count=result.candidate_count,
        appended_count=result.appended_count,
        failed_urls=failed_urls,
        warning_count=len(result.warnings),
    )
