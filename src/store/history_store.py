"""Filesystem-backed snapshot history store.

This module persists three views per source: the always-refreshed
latest snapshot, the append-only history, and the published dataset
that receives every run's candidates regardless of deduplication.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Sequence

from core.constants import (
    HISTORY_FILE_NAME,
    LATEST_FILE_NAME,
    PUBLISHED_FILE_NAME,
    SOURCES_DIR_NAME,
)
from core.errors import TrackerStoreError
from core.logging_config import get_logger
from core.types import Snapshot
from store.snapshot_payload import (
    read_snapshots_jsonl,
    snapshot_from_payload,
    snapshot_to_line,
    snapshot_to_payload,
)

_LOGGER = get_logger(__name__)


class HistoryStore:
    """Latest, history and published sinks for one source.

    Each write is individually atomic: ``latest.json`` is replaced via a
    temporary file and JSONL appends go out in a single write call.
    """

    def __init__(self, data_root: Path, source_name: str) -> None:
        """Initialize store directories.

        Args:
            data_root: Root directory for all tracker state.
            source_name: Source profile name owning this store.
        """
        self._source_name = source_name
        self._source_root = data_root / SOURCES_DIR_NAME / source_name
        self._source_root.mkdir(parents=True, exist_ok=True)

    @property
    def source_root(self) -> Path:
        """Directory holding this source's files."""
        return self._source_root

    def read_last_record(self) -> Snapshot | None:
        """Return the last appended history record, or None when empty.

        Raises:
            TrackerStoreError: If the history file is corrupt.
        """
        history = self.read_history()
        return history[-1] if history else None

    def read_history(self) -> list[Snapshot]:
        """Return every history record in append order.

        Raises:
            TrackerStoreError: If the history file is corrupt.
        """
        return self._read_jsonl(self._source_root / HISTORY_FILE_NAME)

    def read_published(self) -> list[Snapshot]:
        """Return every published record in publish order."""
        return self._read_jsonl(self._source_root / PUBLISHED_FILE_NAME)

    def read_latest(self) -> Snapshot | None:
        """Return the latest snapshot, or None before the first run.

        Raises:
            TrackerStoreError: If the latest file is corrupt.
        """
        latest_path = self._source_root / LATEST_FILE_NAME
        if not latest_path.exists():
            return None
        try:
            payload = json.loads(latest_path.read_text(encoding="utf-8"))
            return snapshot_from_payload(payload)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as error:
            raise TrackerStoreError(
                f"Failed to read latest snapshot at {latest_path}: {error}. "
                "Delete the file to let the next run recreate it."
            ) from error

    def write_latest(self, snapshot: Snapshot) -> None:
        """Atomically replace the latest snapshot."""
        latest_path = self._source_root / LATEST_FILE_NAME
        body = json.dumps(snapshot_to_payload(snapshot), indent=2, ensure_ascii=False) + "\n"
        _atomic_write_text(latest_path, body)
        _LOGGER.info(
            "latest_written",
            source=self._source_name,
            last_updated_at_source=snapshot.source_timestamp.isoformat(),
        )

    def append_history(self, snapshots: Sequence[Snapshot]) -> None:
        """Append snapshots to the history in the given order."""
        if not snapshots:
            return
        _append_lines(self._source_root / HISTORY_FILE_NAME, snapshots)
        _LOGGER.info(
            "history_appended",
            source=self._source_name,
            appended_count=len(snapshots),
            last_updated_at_source=snapshots[-1].source_timestamp.isoformat(),
        )

    def publish(self, snapshots: Sequence[Snapshot]) -> None:
        """Write snapshots to the always-write published dataset."""
        if not snapshots:
            return
        _append_lines(self._source_root / PUBLISHED_FILE_NAME, snapshots)
        _LOGGER.info("snapshots_published", source=self._source_name, count=len(snapshots))

    def _read_jsonl(self, records_path: Path) -> list[Snapshot]:
        if not records_path.exists():
            return []
        try:
            return read_snapshots_jsonl(records_path)
        except (OSError, ValueError) as error:
            raise TrackerStoreError(
                f"Failed to read snapshots at {records_path}: {error}. "
                "Repair or remove the corrupt line and retry."
            ) from error


def _append_lines(records_path: Path, snapshots: Sequence[Snapshot]) -> None:
    body = "".join(snapshot_to_line(snapshot) + "\n" for snapshot in snapshots)
    with records_path.open("a", encoding="utf-8") as records_file:
        records_file.write(body)


def _atomic_write_text(target_path: Path, body: str) -> None:
    file_descriptor, temp_name = tempfile.mkstemp(
        dir=target_path.parent, prefix=f".{target_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(file_descriptor, "w", encoding="utf-8") as temp_file:
            temp_file.write(body)
        temp_path.replace(target_path)
    except OSError as error:
        temp_path.unlink(missing_ok=True)
        raise TrackerStoreError(f"Failed to write {target_path}: {error}.") from error
