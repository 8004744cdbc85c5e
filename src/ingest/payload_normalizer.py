"""Raw payload normalizers.

This module converts format-specific payloads (dashboard CSV export,
JSON API object, HTML news table, embedded script literal) into one
intermediate shape: region observations plus the source-reported update
text. Normalizers slice and parse only; structural checks belong to the
record validator.
"""

from __future__ import annotations

import csv
import io
import json
import re
from typing import Any, Callable, Mapping, Sequence

from bs4 import BeautifulSoup

from core.errors import EmptyPayload, MalformedEmbeddedPayload
from core.source_profile import SourceProfile
from core.types import NormalizedPayload, PayloadFormat, RawPayload, RegionObservation
from ingest.region_codec import to_integer, to_region_code

_JSON_DECODER = json.JSONDecoder()


def normalize_payload(payload: RawPayload, profile: SourceProfile) -> NormalizedPayload:
    """Normalize one raw payload using the profile's format.

    Args:
        payload: Raw payload from the fetch collaborator.
        profile: Source profile carrying the format mapping.

    Returns:
        Observations and raw update text.

    Raises:
        EmptyPayload: If the payload holds no usable rows.
        MalformedEmbeddedPayload: If an embedded literal cannot be parsed.
        UnresolvableRegion: If a kept row names an unknown region.
        UnparsableNumber: If a kept metric value is not a count.
    """
    normalizer = _NORMALIZERS[payload.payload_format]
    return normalizer(payload.body, profile)


def normalize_tabular(body: Any, profile: SourceProfile) -> NormalizedPayload:
    """Normalize dashboard export rows.

    Only rows whose first cell matches the region row marker are kept.
    The final row carries the update text in its first cell.
    """
    rows = _tabular_rows(body)
    if not rows:
        raise EmptyPayload("Tabular payload has no rows.", diagnostic_payload=body)
    marker = re.compile(profile.region_row_marker)
    update_row = rows[-1]
    if not update_row or marker.search(update_row[0]):
        raise EmptyPayload(
            "Tabular payload is missing the trailing update row.", diagnostic_payload=body
        )
    observations = [
        _row_observation(row, profile)
        for row in rows[:-1]
        if row and marker.search(row[0])
    ]
    return NormalizedPayload(
        observations=tuple(observations),
        raw_timestamp_text=update_row[0],
    )


def normalize_json_api(body: Any, profile: SourceProfile) -> NormalizedPayload:
    """Normalize a JSON API object holding a results array."""
    document = _decode_json_object(body)
    return _normalize_json_document(document, profile)


def normalize_html_table(body: Any, profile: SourceProfile) -> NormalizedPayload:
    """Normalize a news page table.

    Rows with a cell count other than ``expected_columns`` are skipped,
    as are header rows made only of ``th`` cells.
    """
    soup = BeautifulSoup(_as_text(body), "html.parser")
    observations: list[RegionObservation] = []
    for table_row in soup.find_all("tr"):
        cells = table_row.find_all(["td", "th"])
        if profile.expected_columns is not None and len(cells) != profile.expected_columns:
            continue
        if all(cell.name == "th" for cell in cells):
            continue
        row = [cell.get_text(" ", strip=True) for cell in cells]
        observations.append(_row_observation(row, profile))
    timestamp_match = re.search(profile.timestamp_pattern, soup.get_text(" ", strip=True))
    return NormalizedPayload(
        observations=tuple(observations),
        raw_timestamp_text=timestamp_match.group(0) if timestamp_match else "",
    )


def normalize_embedded_script(body: Any, profile: SourceProfile) -> NormalizedPayload:
    """Normalize a JSON literal embedded in script text.

    The literal starts after ``script_marker`` and ends where the JSON
    value ends; any script code after it is ignored.
    """
    text = _as_text(body)
    marker_index = text.find(profile.script_marker) if profile.script_marker else -1
    if marker_index < 0:
        raise MalformedEmbeddedPayload(
            f"Script marker '{profile.script_marker}' not found in payload.",
            diagnostic_payload=text,
        )
    start = marker_index + len(profile.script_marker)
    while start < len(text) and text[start].isspace():
        start += 1
    literal = text[start:]
    try:
        document, _ = _JSON_DECODER.raw_decode(text, start)
    except json.JSONDecodeError as error:
        raise MalformedEmbeddedPayload(
            f"Embedded payload is not valid JSON: {error.msg} at position {error.pos - start}.",
            diagnostic_payload=literal,
        ) from error
    if not isinstance(document, Mapping):
        raise MalformedEmbeddedPayload(
            "Embedded payload is not a JSON object.", diagnostic_payload=literal
        )
    return _normalize_json_document(document, profile)


def _normalize_json_document(
    document: Mapping[str, Any],
    profile: SourceProfile,
) -> NormalizedPayload:
    items = _results_array(document, profile)
    observations = []
    for item in items:
        if not isinstance(item, Mapping):
            raise EmptyPayload(
                f"Results array holds a {type(item).__name__} instead of an object.",
                diagnostic_payload=document,
            )
        metrics = {
            kind: _json_count(item[field_name])
            for kind, field_name in profile.metric_fields.items()
            if field_name in item
        }
        observations.append(
            RegionObservation(
                region_code=to_region_code(item.get(profile.region_field)),
                metrics=metrics,
            )
        )
    raw_timestamp = document.get(profile.timestamp_field, items[0].get(profile.timestamp_field))
    return NormalizedPayload(
        observations=tuple(observations),
        raw_timestamp_text="" if raw_timestamp is None else str(raw_timestamp),
    )


def _results_array(document: Mapping[str, Any], profile: SourceProfile) -> Sequence[Any]:
    for key in profile.results_keys:
        items = document.get(key)
        if isinstance(items, list) and items:
            return items
    keys = ", ".join(profile.results_keys)
    raise EmptyPayload(
        f"JSON payload has no non-empty results array under: {keys}.",
        diagnostic_payload=dict(document),
    )


def _row_observation(row: Sequence[str], profile: SourceProfile) -> RegionObservation:
    label = row[profile.label_column] if profile.label_column < len(row) else ""
    metrics = {
        kind: to_integer(row[column])
        for kind, column in profile.metric_columns.items()
        if column < len(row)
    }
    return RegionObservation(region_code=to_region_code(label), metrics=metrics)


def _json_count(value: Any) -> Any:
    # Numbers pass through so the validator sees negatives and fractions.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return to_integer(value)


def _tabular_rows(body: Any) -> list[list[str]]:
    if isinstance(body, (str, bytes)):
        reader = csv.reader(io.StringIO(_as_text(body)))
        return [row for row in reader if any(cell.strip() for cell in row)]
    return [[str(cell) for cell in row] for row in body if row]


def _decode_json_object(body: Any) -> Mapping[str, Any]:
    if isinstance(body, Mapping):
        return body
    try:
        document = json.loads(_as_text(body))
    except json.JSONDecodeError as error:
        raise EmptyPayload(
            f"JSON payload could not be decoded: {error.msg}.", diagnostic_payload=body
        ) from error
    if not isinstance(document, Mapping):
        raise EmptyPayload("JSON payload is not an object.", diagnostic_payload=body)
    return document


def _as_text(body: Any) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)


_NORMALIZERS: dict[PayloadFormat, Callable[[Any, SourceProfile], NormalizedPayload]] = {
    "tabular": normalize_tabular,
    "json_api": normalize_json_api,
    "feed_html": normalize_html_table,
    "embedded_script": normalize_embedded_script,
}
