"""Runtime configuration model for the tracker.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DATA_ROOT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SOURCE_NAME,
)
from core.errors import TrackerConfigError


@dataclass(frozen=True)
class TrackerConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for history, latest and diagnostics.
        source_name: Source profile selected for this process.
        profile_file: Optional YAML profile file overriding built-ins.
        request_timeout: Fetch timeout in seconds.
        s3_publish_uri: Optional ``s3://`` prefix for latest-snapshot export.
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    data_root: Path
    source_name: str
    profile_file: Path | None
    request_timeout: int
    s3_publish_uri: str | None
    s3_region: str | None
    s3_profile: str | None

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            TrackerConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("TRACKER_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        profile_file_value = os.getenv("TRACKER_PROFILE_FILE")
        timeout_value = os.getenv("TRACKER_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))
        s3_publish_uri = os.getenv("TRACKER_S3_PUBLISH_URI")
        if s3_publish_uri and not s3_publish_uri.startswith("s3://"):
            raise TrackerConfigError(
                f"Invalid TRACKER_S3_PUBLISH_URI value: expected s3:// URI, got '{s3_publish_uri}'. "
                "Set an s3://bucket/prefix URI or unset the variable."
            )
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            source_name=os.getenv("TRACKER_SOURCE", DEFAULT_SOURCE_NAME),
            profile_file=Path(profile_file_value).expanduser() if profile_file_value else None,
            request_timeout=_parse_request_timeout(timeout_value),
            s3_publish_uri=s3_publish_uri or None,
            s3_region=os.getenv("TRACKER_S3_REGION"),
            s3_profile=os.getenv("TRACKER_S3_PROFILE"),
        )


def _parse_request_timeout(raw_value: str) -> int:
    """Parse the request timeout environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive timeout in seconds.

    Raises:
        TrackerConfigError: If value is not a positive integer.
    """
    try:
        timeout = int(raw_value)
    except ValueError as error:
        raise TrackerConfigError(
            "Invalid TRACKER_REQUEST_TIMEOUT value: "
            f"expected integer, got '{raw_value}'. "
            "Set TRACKER_REQUEST_TIMEOUT to a number of seconds."
        ) from error
    if timeout <= 0:
        raise TrackerConfigError(
            f"Invalid TRACKER_REQUEST_TIMEOUT value: expected positive integer, got {timeout}."
        )
    return timeout
