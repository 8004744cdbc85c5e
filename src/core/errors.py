"""Tracker exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Pipeline errors carry a stable kind slug and an optional payload
that the diagnostic store captures before the run aborts.
"""

from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    """Base exception for all tracker failures."""


class TrackerConfigError(TrackerError):
    """Raised for invalid runtime configuration or source profiles."""


class TrackerStoreError(TrackerError):
    """Raised for unreadable or corrupt persisted state."""


class TrackerDependencyError(TrackerError):
    """Raised when an optional runtime dependency is missing."""


class TrackerPipelineError(TrackerError):
    """Base class for errors that abort a pipeline run.

    Attributes:
        kind: Stable slug used to key diagnostic captures.
        diagnostic_payload: Offending raw input or candidate, when known.
    """

    kind = "pipeline_error"

    def __init__(self, message: str, diagnostic_payload: Any = None) -> None:
        super().__init__(message)
        self.diagnostic_payload = diagnostic_payload


class FetchFailure(TrackerPipelineError):
    """Raised when the fetch collaborator reports a failed request."""

    kind = "fetch_failure"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        diagnostic_payload: Any = None,
    ) -> None:
        super().__init__(message, diagnostic_payload)
        self.status_code = status_code


class EmptyPayload(TrackerPipelineError):
    """Raised when a payload holds no usable region data."""

    kind = "empty_payload"


class MalformedEmbeddedPayload(TrackerPipelineError):
    """Raised when an embedded script literal cannot be parsed."""

    kind = "malformed_embedded_payload"


class UnresolvableRegion(TrackerPipelineError):
    """Raised when a region label cannot be mapped to a two-letter code."""

    kind = "unresolvable_region"


class UnparsableNumber(TrackerPipelineError):
    """Raised when a metric value cannot be read as an integer."""

    kind = "unparsable_number"


class UnparsableTimestamp(TrackerPipelineError):
    """Raised when the source update time cannot be resolved."""

    kind = "unparsable_timestamp"


class ValidationError(TrackerPipelineError):
    """Raised when a candidate snapshot fails a structural check.

    Attributes:
        check: Name of the failed check.
        details: Offending values for offline inspection.
    """

    kind = "validation_error"

    def __init__(
        self,
        check: str,
        message: str,
        details: dict[str, Any] | None = None,
        diagnostic_payload: Any = None,
    ) -> None:
        super().__init__(f"Validation check '{check}' failed: {message}", diagnostic_payload)
        self.check = check
        self.details = dict(details or {})
