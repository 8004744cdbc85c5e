"""Public SDK surface for the tracker.

This module provides a stable import path for library users.
It re-exports the client, configuration and typed models.
"""

from __future__ import annotations

from core.config import TrackerConfig
from core.errors import TrackerError, TrackerPipelineError
from core.source_profile import SourceProfile, builtin_source_names, load_source_profile
from core.types import RegionCount, RunResult, Snapshot
from ingest.fetcher import Fetcher, HttpFetcher
from store.tracker_sdk import TrackerClient

__all__ = [
    "Fetcher",
    "HttpFetcher",
    "RegionCount",
    "RunResult",
    "Snapshot",
    "SourceProfile",
    "TrackerClient",
    "TrackerConfig",
    "TrackerError",
    "TrackerPipelineError",
    "builtin_source_names",
    "load_source_profile",
]
