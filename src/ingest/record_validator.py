"""Candidate snapshot validation.

Checks run in a fixed order and stop at the first failure:
observations present, region codes and coverage, metric values,
then the soft cumulative-totals comparison against the last
persisted snapshot.
"""

from __future__ import annotations

import re

from core.constants import REGION_CODE_PATTERN
from core.errors import ValidationError
from core.logging_config import get_logger
from core.types import MANDATORY_METRIC_KINDS, Snapshot, SourceExpectations

_LOGGER = get_logger(__name__)
_REGION_CODE = re.compile(REGION_CODE_PATTERN)


def validate_snapshot(
    candidate: Snapshot,
    expectations: SourceExpectations,
    previous: Snapshot | None = None,
) -> tuple[str, ...]:
    """Validate a candidate snapshot before persistence.

    Args:
        candidate: Candidate snapshot.
        expectations: Structural promises of the source.
        previous: Last persisted snapshot, for the totals comparison.

    Returns:
        Soft warnings; empty when totals did not decrease.

    Raises:
        ValidationError: If a structural check fails.
    """
    _check_observations_present(candidate)
    _check_region_codes(candidate, expectations)
    _check_metric_values(candidate)
    if expectations.monotonic_totals and previous is not None:
        return _compare_totals(candidate, previous)
    return ()


def _check_observations_present(candidate: Snapshot) -> None:
    if not any(candidate.by_region.values()):
        raise ValidationError(
            "observations_present",
            "candidate holds no region observations",
            diagnostic_payload=candidate,
        )
    missing = [kind for kind in MANDATORY_METRIC_KINDS if kind not in candidate.by_region]
    if missing:
        raise ValidationError(
            "observations_present",
            f"mandatory metrics missing: {', '.join(missing)}",
            details={"missing_metrics": missing},
            diagnostic_payload=candidate,
        )


def _check_region_codes(candidate: Snapshot, expectations: SourceExpectations) -> None:
    for kind, counts in candidate.by_region.items():
        malformed = [item.state for item in counts if not _REGION_CODE.match(item.state)]
        if malformed:
            raise ValidationError(
                "region_codes",
                f"malformed region codes in {kind}: {', '.join(malformed)}",
                details={"metric": kind, "codes": malformed},
                diagnostic_payload=candidate,
            )
        if not expectations.full_coverage:
            continue
        distinct_codes = {item.state for item in counts}
        expected = expectations.expected_region_count
        if len(counts) != expected or len(distinct_codes) != expected:
            raise ValidationError(
                "region_coverage",
                f"{kind} covers {len(distinct_codes)} distinct regions in {len(counts)} "
                f"entries, expected exactly {expected}",
                details={
                    "metric": kind,
                    "entry_count": len(counts),
                    "distinct_count": len(distinct_codes),
                    "expected": expected,
                },
                diagnostic_payload=candidate,
            )


def _check_metric_values(candidate: Snapshot) -> None:
    all_states = {item.state for counts in candidate.by_region.values() for item in counts}
    for kind, counts in candidate.by_region.items():
        missing_states = sorted(all_states - {item.state for item in counts})
        if missing_states:
            raise ValidationError(
                "metric_values",
                f"{kind} is missing for regions: {', '.join(missing_states)}",
                details={"metric": kind, "missing_regions": missing_states},
                diagnostic_payload=candidate,
            )
        invalid = [
            {"state": item.state, "count": item.count}
            for item in counts
            if isinstance(item.count, bool) or not isinstance(item.count, int) or item.count < 0
        ]
        if invalid:
            raise ValidationError(
                "metric_values",
                f"{kind} has counts that are not non-negative integers",
                details={"metric": kind, "invalid": invalid},
                diagnostic_payload=candidate,
            )
        region_sum = sum(item.count for item in counts)
        if candidate.metrics.get(kind) != region_sum:
            raise ValidationError(
                "metric_values",
                f"{kind} total {candidate.metrics.get(kind)} differs from region sum {region_sum}",
                details={"metric": kind, "total": candidate.metrics.get(kind), "sum": region_sum},
                diagnostic_payload=candidate,
            )


def _compare_totals(candidate: Snapshot, previous: Snapshot) -> tuple[str, ...]:
    warnings = []
    for kind, total in candidate.metrics.items():
        previous_total = previous.metrics.get(kind)
        if previous_total is None or total >= previous_total:
            continue
        warnings.append(f"{kind} decreased from {previous_total} to {total}")
        _LOGGER.warning(
            "totals_decreased",
            metric=kind,
            previous_total=previous_total,
            total=total,
            source_url=candidate.source_url,
        )
    return tuple(warnings)
