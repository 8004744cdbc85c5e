"""Python SDK for tracker operations.

This module exposes high-level APIs for running the pipeline and
reading the latest snapshot and history of a source.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from core.config import TrackerConfig
from core.source_profile import resolve_source_profile
from core.types import RunResult, Snapshot
from ingest.fetcher import Fetcher
from ingest.pipeline import run_pipeline
from store.history_store import HistoryStore


class TrackerClient:
    """Primary SDK entry point."""

    def __init__(self, config: TrackerConfig | None = None, fetcher: Fetcher | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            fetcher: Optional fetch collaborator; HTTP when omitted.
        """
        self._config = config or TrackerConfig.from_env()
        self._fetcher = fetcher

    @property
    def config(self) -> TrackerConfig:
        """Runtime configuration of this client."""
        return self._config

    def run(self, source_name: str | None = None, profile_file: Path | None = None) -> RunResult:
        """Run the pipeline once.

        Args:
            source_name: Built-in profile name; configured source when omitted.
            profile_file: Optional YAML profile file.

        Returns:
            Summary of the persisted outcome.
        """
        config = self._config
        if source_name:
            config = replace(config, source_name=source_name)
        if profile_file is not None:
            config = replace(config, profile_file=profile_file)
        return run_pipeline(config, self._fetcher)

    def latest(self, source_name: str | None = None) -> Snapshot | None:
        """Return the latest snapshot of a source, if any."""
        return self._history_store(source_name).read_latest()

    def history(self, source_name: str | None = None) -> list[Snapshot]:
        """Return the full history of a source in append order."""
        return self._history_store(source_name).read_history()

    def with_data_root(self, data_root: str) -> "TrackerClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        updated_config = replace(self._config, data_root=resolved_root)
        return TrackerClient(updated_config, self._fetcher)

    def _history_store(self, source_name: str | None) -> HistoryStore:
        profile = resolve_source_profile(
            source_name or self._config.source_name,
            None if source_name else self._config.profile_file,
        )
        return HistoryStore(self._config.data_root, profile.name)
