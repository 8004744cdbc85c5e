"""Incremental history merge.

This module decides which candidates extend the append-only history.
Only candidates strictly newer than the cursor are appended, while the
chronologically last candidate always becomes the latest snapshot.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from core.errors import EmptyPayload
from core.types import MergeResult, Snapshot


def merge_candidates(
    candidates: Sequence[Snapshot],
    cursor: datetime | None,
) -> MergeResult:
    """Select history appends and the latest snapshot.

    Args:
        candidates: Validated candidates, any order.
        cursor: Source timestamp of the last persisted snapshot, if any.

    Returns:
        Candidates to append in ascending order and the latest candidate.

    Raises:
        EmptyPayload: If there is no candidate to publish.
    """
    if not candidates:
        raise EmptyPayload("No candidate snapshots to merge.")
    ordered = sorted(candidates, key=lambda item: item.source_timestamp)
    to_append: list[Snapshot] = []
    seen_timestamps: set[datetime] = set()
    for candidate in ordered:
        # A source clock moving backwards refreshes latest but never rewrites history.
        if cursor is not None and candidate.source_timestamp <= cursor:
            continue
        if candidate.source_timestamp in seen_timestamps:
            continue
        seen_timestamps.add(candidate.source_timestamp)
        to_append.append(candidate)
    return MergeResult(to_append=tuple(to_append), latest=ordered[-1])
