"""S3 export of the latest snapshot.

This module encapsulates boto3 client creation and the upload of the
latest snapshot document after each successful run.
"""

from __future__ import annotations

import json
from typing import Any

from core.config import TrackerConfig
from core.constants import S3_LATEST_OBJECT_NAME
from core.errors import TrackerDependencyError, TrackerStoreError
from core.logging_config import get_logger
from core.s3_uri import S3Location, parse_s3_uri
from core.types import Snapshot
from store.snapshot_payload import snapshot_to_payload

_LOGGER = get_logger(__name__)


class S3Publisher:
    """Uploads latest snapshots under an ``s3://bucket/prefix`` location."""

    def __init__(self, location: S3Location, s3_client: Any) -> None:
        self._location = location
        self._s3_client = s3_client

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "S3Publisher | None":
        """Build a publisher when ``TRACKER_S3_PUBLISH_URI`` is set.

        Raises:
            TrackerConfigError: If the URI is malformed.
            TrackerDependencyError: If boto3 is missing.
        """
        if not config.s3_publish_uri:
            return None
        location = parse_s3_uri(config.s3_publish_uri)
        return cls(location, create_s3_client(config))

    def upload_latest(self, source_name: str, snapshot: Snapshot) -> str:
        """Upload ``snapshot`` as ``<prefix>/<source>/latest.json``.

        Returns:
            Destination ``s3://`` URI.

        Raises:
            TrackerStoreError: If the upload fails.
        """
        object_key = self._location.object_key(f"{source_name}/{S3_LATEST_OBJECT_NAME}")
        body = json.dumps(snapshot_to_payload(snapshot), ensure_ascii=False).encode("utf-8")
        destination = f"s3://{self._location.bucket}/{object_key}"
        try:
            self._s3_client.put_object(
                Bucket=self._location.bucket,
                Key=object_key,
                Body=body,
                ContentType="application/json",
            )
        except Exception as error:
            raise TrackerStoreError(
                f"Failed to export latest snapshot to {destination}: {error}. "
                "Check AWS credentials and retry."
            ) from error
        _LOGGER.info("latest_exported", source=source_name, destination=destination)
        return destination


def create_s3_client(config: TrackerConfig) -> Any:
    """Create boto3 S3 client for exports.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        TrackerDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise TrackerDependencyError(
            "S3 export requires boto3, but it is not installed. "
            "Install boto3 or unset TRACKER_S3_PUBLISH_URI."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
