"""Shared JSON serialization for Snapshot payloads.

This module owns the published snapshot shape. Every sink (latest,
history, published dataset, S3 export, diagnostics) goes through it,
so the external contract stays identical across source formats.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from core.types import RegionCount, Snapshot

# Metric kind -> (total field, per-region list field).
METRIC_FIELD_NAMES: dict[str, tuple[str, str]] = {
    "tested": ("totalTested", "testedByRegion"),
    "notInfected": ("testedNotInfected", "testedNotInfectedByRegion"),
    "infected": ("infected", "infectedByRegion"),
    "deceased": ("deceased", "deceasedByRegion"),
    "suspicious": ("suspiciousCases", "suspiciousCasesByRegion"),
}


def snapshot_to_payload(snapshot: Snapshot) -> dict[str, object]:
    """Serialize a snapshot into its published JSON shape.

    Args:
        snapshot: Snapshot instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    payload: dict[str, object] = {}
    for kind, (total_field, _) in METRIC_FIELD_NAMES.items():
        if kind in snapshot.metrics:
            payload[total_field] = snapshot.metrics[kind]
    for kind, (_, region_field) in METRIC_FIELD_NAMES.items():
        if kind in snapshot.by_region:
            payload[region_field] = [
                {"state": item.state, "count": item.count} for item in snapshot.by_region[kind]
            ]
    payload["sourceUrl"] = snapshot.source_url
    payload["lastUpdatedAtSource"] = format_instant(snapshot.source_timestamp)
    payload["lastUpdatedAtApify"] = format_instant(snapshot.fetched_at)
    payload["readMe"] = snapshot.read_me_url
    if snapshot.version is not None:
        payload["version"] = snapshot.version
    return payload


def snapshot_from_payload(payload: dict[str, Any]) -> Snapshot:
    """Deserialize a published JSON payload into a Snapshot.

    Args:
        payload: Serialized snapshot payload.

    Returns:
        Parsed Snapshot.

    Raises:
        ValueError: If required fields are missing or malformed.
    """
    metrics: dict[str, int] = {}
    by_region: dict[str, tuple[RegionCount, ...]] = {}
    for kind, (total_field, region_field) in METRIC_FIELD_NAMES.items():
        if total_field in payload:
            metrics[kind] = int(payload[total_field])
        if region_field in payload:
            by_region[kind] = tuple(
                RegionCount(state=str(item["state"]), count=int(item["count"]))
                for item in payload[region_field]
            )
    version = payload.get("version")
    return Snapshot(
        source_timestamp=parse_instant(_required_text(payload, "lastUpdatedAtSource")),
        metrics=metrics,
        by_region=by_region,
        source_url=str(payload.get("sourceUrl", "")),
        fetched_at=parse_instant(_required_text(payload, "lastUpdatedAtApify")),
        read_me_url=str(payload.get("readMe", "")),
        version=int(version) if version is not None else None,
    )


def format_instant(instant: datetime) -> str:
    """Render an instant as UTC ISO-8601 with milliseconds and ``Z``."""
    utc_instant = instant.astimezone(timezone.utc)
    milliseconds = utc_instant.microsecond // 1000
    return utc_instant.strftime("%Y-%m-%dT%H:%M:%S") + f".{milliseconds:03d}Z"


def parse_instant(text: str) -> datetime:
    """Parse an offset-carrying ISO-8601 instant into UTC.

    Raises:
        ValueError: If the text is not an ISO instant with offset.
    """
    candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    instant = datetime.fromisoformat(candidate)
    if instant.tzinfo is None:
        raise ValueError(f"instant '{text}' carries no UTC offset")
    return instant.astimezone(timezone.utc)


def snapshot_to_line(snapshot: Snapshot) -> str:
    """Render one snapshot as a compact JSONL row."""
    return json.dumps(snapshot_to_payload(snapshot), sort_keys=True, ensure_ascii=False)


def read_snapshots_jsonl(records_path: Path) -> list[Snapshot]:
    """Read snapshots from a JSONL file.

    Args:
        records_path: Input JSONL file path.

    Returns:
        Parsed snapshots in file order.

    Raises:
        ValueError: If JSONL rows are invalid.
    """
    snapshots: list[Snapshot] = []
    for line_number, line in enumerate(records_path.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        payload = _parse_payload_line(line, line_number)
        try:
            snapshots.append(snapshot_from_payload(payload))
        except (KeyError, TypeError, ValueError) as error:
            raise ValueError(f"Invalid snapshot at line {line_number}: {error}") from error
    return snapshots


def _required_text(payload: dict[str, Any], field_name: str) -> str:
    value = payload.get(field_name)
    if not isinstance(value, str):
        raise ValueError(f"field '{field_name}' must be a string")
    return value


def _parse_payload_line(line: str, line_number: int) -> dict[str, Any]:
    """Parse and validate one JSONL payload row.

    Raises:
        ValueError: If JSON row is invalid.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ValueError(
            f"Invalid JSON at line {line_number}: {error.msg}"
        ) from error
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid payload at line {line_number}: expected JSON object")
    return payload
