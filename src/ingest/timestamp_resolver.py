"""Source timestamp resolution.

This module turns source-reported update times into absolute UTC
instants. Three shapes are accepted: a local ``day/month/year at time``
text interpreted at a fixed UTC offset, an ISO-8601 timestamp, and an
epoch number in seconds or milliseconds.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone

from core.constants import EPOCH_MILLISECONDS_THRESHOLD, EPOCH_MINIMUM_SECONDS
from core.errors import UnparsableTimestamp

_DAY_MONTH_YEAR_TIME = re.compile(
    r"(?P<day>\d{1,2})/(?P<month>\d{1,2})/(?P<year>\d{4})"
    r"\s*(?:às|as|at|-|,)?\s*"
    r"(?P<hour>\d{1,2})[:h](?P<minute>\d{2})"
)
_UTC_OFFSET = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")
_EPOCH = re.compile(r"^\d+(?:\.\d+)?$")


def resolve_timestamp(text: object, local_utc_offset: str) -> datetime:
    """Resolve a source update time into a UTC instant.

    Args:
        text: Raw timestamp text, or an epoch number.
        local_utc_offset: Source local offset such as ``-03:00``.

    Returns:
        Timezone-aware UTC datetime.

    Raises:
        UnparsableTimestamp: If no accepted shape matches.
    """
    local_zone = parse_utc_offset(local_utc_offset)
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return _from_epoch(float(text), str(text))
    if not isinstance(text, str) or not text.strip():
        raise UnparsableTimestamp(
            f"Cannot resolve timestamp from empty or non-text value {text!r}.",
            diagnostic_payload=repr(text),
        )
    stripped = text.strip()
    if _EPOCH.match(stripped):
        return _from_epoch(float(stripped), stripped)
    match = _DAY_MONTH_YEAR_TIME.search(stripped)
    if match:
        return _from_day_month_year(match, local_zone, stripped)
    return _from_iso(stripped, local_zone)


def parse_utc_offset(offset_text: str) -> timezone:
    """Parse a fixed ``±HH:MM`` offset into a timezone.

    Raises:
        UnparsableTimestamp: If the offset text is malformed.
    """
    match = _UTC_OFFSET.match(offset_text.strip())
    if not match:
        raise UnparsableTimestamp(
            f"Invalid UTC offset '{offset_text}'. Use the form -03:00.",
            diagnostic_payload=offset_text,
        )
    delta = timedelta(hours=int(match.group("hours")), minutes=int(match.group("minutes")))
    if match.group("sign") == "-":
        delta = -delta
    return timezone(delta)


def _from_day_month_year(match: re.Match[str], local_zone: timezone, text: str) -> datetime:
    try:
        local_instant = datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            tzinfo=local_zone,
        )
    except ValueError as error:
        raise UnparsableTimestamp(
            f"Timestamp text '{text}' names an impossible date or time: {error}.",
            diagnostic_payload=text,
        ) from error
    return local_instant.astimezone(timezone.utc)


def _from_iso(text: str, local_zone: timezone) -> datetime:
    instant = _parse_iso(text)
    if instant is None:
        raise UnparsableTimestamp(
            f"Timestamp text '{text}' matches no supported format.",
            diagnostic_payload=text,
        )
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=local_zone)
    return instant.astimezone(timezone.utc)


def _parse_iso(text: str) -> datetime | None:
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def _from_epoch(value: float, text: str) -> datetime:
    if not math.isfinite(value) or value < 0:
        raise UnparsableTimestamp(
            f"Epoch timestamp '{text}' is not a finite non-negative number.",
            diagnostic_payload=text,
        )
    seconds = value / 1000 if value >= EPOCH_MILLISECONDS_THRESHOLD else value
    if seconds < EPOCH_MINIMUM_SECONDS:
        raise UnparsableTimestamp(
            f"Epoch timestamp '{text}' is too small to be a source update time.",
            diagnostic_payload=text,
        )
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as error:
        raise UnparsableTimestamp(
            f"Epoch timestamp '{text}' is out of range: {error}.",
            diagnostic_payload=text,
        ) from error
