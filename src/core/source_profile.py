"""Typed source profiles for the extraction pipeline.

A source profile selects the payload format and carries every
format-specific detail the normalizers need: column and field
mappings, metric kinds, timestamp pattern, UTC offset and the
structural promises the validator enforces. Built-in profiles cover
the historical source formats; custom profiles load from YAML with
one strict schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping, Sequence, cast

import yaml

from core.constants import (
    DEFAULT_FETCH_ATTEMPTS,
    DEFAULT_READ_ME_URL,
    DEFAULT_UTC_OFFSET,
    EXPECTED_FEDERATIVE_UNITS,
)
from core.errors import TrackerConfigError
from core.types import (
    SUPPORTED_METRIC_KINDS,
    SUPPORTED_PAYLOAD_FORMATS,
    MANDATORY_METRIC_KINDS,
    PayloadFormat,
    SourceExpectations,
)

DEFAULT_TIMESTAMP_PATTERN = (
    r"\d{1,2}/\d{1,2}/\d{4}\s*(?:às|as|at|-|,)?\s*\d{1,2}[:h]\d{2}"
)


@dataclass(frozen=True)
class SourceProfile:
    """Configuration of one source adapter.

    Attributes:
        name: Profile identifier.
        payload_format: Normalizer selected for this source.
        source_url: Endpoint (or feed URL for feed sources).
        metric_kinds: Metric kinds this source reports.
        utc_offset: Fixed local offset of source timestamps.
        timestamp_pattern: Regex locating update text inside HTML pages.
        region_row_marker: Regex a tabular region row's first cell matches.
        label_column: Column holding the region label in table rows.
        metric_columns: Column index per metric kind in table rows.
        expected_columns: Exact cell count of a usable HTML table row.
        results_keys: Candidate keys of the JSON results array.
        region_field: JSON item field holding the region label.
        metric_fields: JSON item field per metric kind.
        timestamp_field: JSON field holding the update time.
        script_marker: Substring preceding an embedded JSON literal.
        feed_keywords: URL fragments marking feed entries of interest.
        expected_region_count: Cardinality of full coverage.
        full_coverage: Whether every region must be present.
        monotonic_totals: Whether cumulative totals should never decrease.
        read_me_url: Documentation URL published with every record.
        version: Optional source-format version tag.
        fetch_attempts: Attempts per crawl task before giving up.
    """

    name: str
    payload_format: PayloadFormat
    source_url: str
    metric_kinds: tuple[str, ...]
    utc_offset: str = DEFAULT_UTC_OFFSET
    timestamp_pattern: str = DEFAULT_TIMESTAMP_PATTERN
    region_row_marker: str = r"^Unidade"
    label_column: int = 0
    metric_columns: Mapping[str, int] = field(default_factory=dict)
    expected_columns: int | None = None
    results_keys: tuple[str, ...] = ("results", "values")
    region_field: str = "state"
    metric_fields: Mapping[str, str] = field(default_factory=dict)
    timestamp_field: str = "updatedAt"
    script_marker: str = ""
    feed_keywords: tuple[str, ...] = ()
    expected_region_count: int = EXPECTED_FEDERATIVE_UNITS
    full_coverage: bool = True
    monotonic_totals: bool = True
    read_me_url: str = DEFAULT_READ_ME_URL
    version: int | None = None
    fetch_attempts: int = DEFAULT_FETCH_ATTEMPTS

    @property
    def expectations(self) -> SourceExpectations:
        """Return structural expectations for the record validator."""
        return SourceExpectations(
            expected_region_count=self.expected_region_count,
            full_coverage=self.full_coverage,
            monotonic_totals=self.monotonic_totals,
        )


BUILTIN_SOURCE_PROFILES: dict[str, SourceProfile] = {
    "dashboard-csv": SourceProfile(
        name="dashboard-csv",
        payload_format="tabular",
        source_url="http://plataforma.saude.gov.br/novocoronavirus/",
        metric_kinds=("tested", "infected", "notInfected", "deceased"),
        region_row_marker=r"^Unidade",
        label_column=1,
        metric_columns={"tested": 2, "infected": 4, "notInfected": 6, "deceased": 8},
    ),
    "portal-api": SourceProfile(
        name="portal-api",
        payload_format="json_api",
        source_url="https://covid.saude.gov.br/api/portal-estados",
        metric_kinds=("infected", "deceased"),
        region_field="nome",
        metric_fields={"infected": "casosAcumulado", "deceased": "obitosAcumulado"},
        timestamp_field="dt_updated",
        version=2,
    ),
    "news-feed": SourceProfile(
        name="news-feed",
        payload_format="feed_html",
        source_url="https://www.saude.gov.br/noticias/agencia-saude?format=feed&type=rss",
        metric_kinds=("suspicious", "infected", "deceased"),
        label_column=0,
        metric_columns={"suspicious": 1, "infected": 2, "deceased": 3},
        expected_columns=4,
        feed_keywords=("coronavirus", "covid"),
        full_coverage=False,
    ),
    "dashboard-script": SourceProfile(
        name="dashboard-script",
        payload_format="embedded_script",
        source_url="http://plataforma.saude.gov.br/novocoronavirus/resources/scripts/database.js",
        metric_kinds=("suspicious", "infected", "deceased"),
        script_marker="var database=",
        region_field="uid",
        metric_fields={"suspicious": "suspects", "infected": "cases", "deceased": "deaths"},
        timestamp_field="updatedAt",
        full_coverage=False,
    ),
}


def builtin_source_names() -> list[str]:
    """Return built-in profile names in sorted order."""
    return sorted(BUILTIN_SOURCE_PROFILES)


def resolve_source_profile(source_name: str, profile_file: Path | None = None) -> SourceProfile:
    """Resolve the profile for a run.

    Args:
        source_name: Built-in profile name.
        profile_file: Optional YAML profile file; takes precedence when set.

    Returns:
        Selected source profile.

    Raises:
        TrackerConfigError: If the name is unknown or the file is invalid.
    """
    if profile_file is not None:
        return load_source_profile(profile_file)
    profile = BUILTIN_SOURCE_PROFILES.get(source_name)
    if profile is None:
        supported_rows = ", ".join(builtin_source_names())
        raise TrackerConfigError(
            f"Unknown source profile '{source_name}'. Use one of: {supported_rows}, "
            "or provide a YAML profile file."
        )
    return profile


def load_source_profile(profile_path: Path) -> SourceProfile:
    """Load and validate a YAML source profile from disk.

    Args:
        profile_path: File path to YAML profile.

    Returns:
        Fully validated source profile.

    Raises:
        TrackerConfigError: If file is invalid or schema checks fail.
    """
    payload = _load_yaml_payload(profile_path)
    mapping = _expect_mapping(payload, "source profile root")
    _validate_profile_keys(mapping)
    name = _required_string(mapping, "name")
    payload_format = _parse_payload_format(mapping)
    metric_kinds = _parse_metric_kinds(mapping)
    overrides: dict[str, object] = {}
    for key in ("utc_offset", "timestamp_pattern", "region_row_marker", "region_field",
                "timestamp_field", "script_marker", "read_me_url"):
        if key in mapping:
            overrides[key] = _required_string(mapping, key)
    for key in ("label_column", "expected_region_count", "fetch_attempts"):
        if key in mapping:
            overrides[key] = _non_negative_int(mapping, key)
    for key in ("expected_columns", "version"):
        if mapping.get(key) is not None:
            overrides[key] = _non_negative_int(mapping, key)
    for key in ("full_coverage", "monotonic_totals"):
        if key in mapping:
            overrides[key] = _boolean(mapping, key)
    for key in ("results_keys", "feed_keywords"):
        if key in mapping:
            overrides[key] = _string_tuple(mapping, key)
    if "metric_columns" in mapping:
        overrides["metric_columns"] = _metric_mapping(mapping, "metric_columns", int)
    if "metric_fields" in mapping:
        overrides["metric_fields"] = _metric_mapping(mapping, "metric_fields", str)
    return SourceProfile(
        name=name,
        payload_format=payload_format,
        source_url=_required_string(mapping, "source_url"),
        metric_kinds=metric_kinds,
        **overrides,  # type: ignore[arg-type]
    )


def _load_yaml_payload(profile_path: Path) -> object:
    profile_file = profile_path.expanduser().resolve()
    if not profile_file.exists():
        raise TrackerConfigError(
            f"Source profile file does not exist at {profile_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(profile_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise TrackerConfigError(
            f"Failed to read source profile at {profile_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise TrackerConfigError(
            f"Failed to parse YAML source profile at {profile_file}: {error}. "
            "Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise TrackerConfigError(
            f"Source profile at {profile_file} is empty. Define 'name', 'format' and 'source_url'."
        )
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise TrackerConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise TrackerConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise TrackerConfigError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _required_string(mapping: Mapping[str, object], field_name: str) -> str:
    raw_value = mapping.get(field_name)
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    raise TrackerConfigError(f"Source profile field '{field_name}' must be a non-empty string.")


def _non_negative_int(mapping: Mapping[str, object], field_name: str) -> int:
    raw_value = mapping.get(field_name)
    if isinstance(raw_value, int) and not isinstance(raw_value, bool) and raw_value >= 0:
        return raw_value
    raise TrackerConfigError(
        f"Source profile field '{field_name}' must be a non-negative integer."
    )


def _boolean(mapping: Mapping[str, object], field_name: str) -> bool:
    raw_value = mapping.get(field_name)
    if isinstance(raw_value, bool):
        return raw_value
    raise TrackerConfigError(f"Source profile field '{field_name}' must be true or false.")


def _string_tuple(mapping: Mapping[str, object], field_name: str) -> tuple[str, ...]:
    rows = _expect_sequence(mapping.get(field_name), f"source profile field '{field_name}'")
    values = []
    for row in rows:
        if not isinstance(row, str):
            raise TrackerConfigError(
                f"Source profile field '{field_name}' must contain only strings."
            )
        values.append(row)
    return tuple(values)


def _parse_payload_format(mapping: Mapping[str, object]) -> PayloadFormat:
    raw_format = _required_string(mapping, "format")
    if raw_format in SUPPORTED_PAYLOAD_FORMATS:
        return cast(PayloadFormat, raw_format)
    supported_rows = ", ".join(SUPPORTED_PAYLOAD_FORMATS)
    raise TrackerConfigError(
        f"Unsupported source format '{raw_format}'. Use one of: {supported_rows}."
    )


def _parse_metric_kinds(mapping: Mapping[str, object]) -> tuple[str, ...]:
    metric_kinds = _string_tuple(mapping, "metric_kinds")
    for kind in metric_kinds:
        _check_metric_kind(kind)
    missing = [kind for kind in MANDATORY_METRIC_KINDS if kind not in metric_kinds]
    if missing:
        raise TrackerConfigError(
            f"Source profile field 'metric_kinds' must include: {', '.join(missing)}."
        )
    return metric_kinds


def _metric_mapping(
    mapping: Mapping[str, object],
    field_name: str,
    value_type: type,
) -> dict[str, object]:
    raw_mapping = _expect_mapping(mapping.get(field_name), f"source profile field '{field_name}'")
    parsed: dict[str, object] = {}
    for kind, value in raw_mapping.items():
        _check_metric_kind(kind)
        if not isinstance(value, value_type) or isinstance(value, bool):
            raise TrackerConfigError(
                f"Source profile field '{field_name}.{kind}' must be {value_type.__name__}."
            )
        parsed[kind] = value
    return parsed


def _check_metric_kind(kind: str) -> None:
    if kind not in SUPPORTED_METRIC_KINDS:
        supported_rows = ", ".join(SUPPORTED_METRIC_KINDS)
        raise TrackerConfigError(f"Unsupported metric kind '{kind}'. Use one of: {supported_rows}.")


def _validate_profile_keys(mapping: Mapping[str, object]) -> None:
    allowed_keys = {item.name for item in fields(SourceProfile)} - {"payload_format"}
    allowed_keys.add("format")
    unknown_keys = sorted(set(mapping) - allowed_keys)
    if unknown_keys:
        raise TrackerConfigError(
            f"Source profile contains unknown fields: {', '.join(unknown_keys)}."
        )
