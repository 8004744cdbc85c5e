"""Unit tests for S3 export of latest snapshots."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from core.config import TrackerConfig
from core.errors import TrackerConfigError, TrackerStoreError
from core.s3_uri import S3Location, parse_s3_uri
from core.types import RegionCount, Snapshot
from store.s3_export import S3Publisher


class _FakeS3Client:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.objects: dict[str, bytes] = {}

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str) -> None:
        if self.fail:
            raise RuntimeError("access denied")
        self.objects[f"{Bucket}/{Key}"] = Body


def _snapshot() -> Snapshot:
    return Snapshot(
        source_timestamp=datetime(2020, 4, 5, 21, tzinfo=timezone.utc),
        metrics={"infected": 1, "deceased": 0},
        by_region={
            "infected": (RegionCount(state="SP", count=1),),
            "deceased": (RegionCount(state="SP", count=0),),
        },
        source_url="https://example.org",
        fetched_at=datetime(2020, 4, 5, 21, tzinfo=timezone.utc),
        read_me_url="https://example.org/readme",
    )


def test_parse_s3_uri_splits_bucket_and_prefix() -> None:
    """URIs split into bucket and key prefix."""
    assert parse_s3_uri("s3://bucket/exports/covid") == S3Location("bucket", "exports/covid")


def test_parse_s3_uri_requires_prefix() -> None:
    """A bare bucket is rejected."""
    with pytest.raises(TrackerConfigError):
        parse_s3_uri("s3://bucket")


def test_upload_latest_writes_published_payload() -> None:
    """Latest is uploaded as JSON under the source key."""
    client = _FakeS3Client()
    publisher = S3Publisher(S3Location("bucket", "exports/"), client)

    destination = publisher.upload_latest("portal-api", _snapshot())
    body = json.loads(client.objects["bucket/exports/portal-api/latest.json"])

    assert destination == "s3://bucket/exports/portal-api/latest.json" and body["infected"] == 1


def test_upload_failure_raises_store_error() -> None:
    """Client errors surface as store errors."""
    publisher = S3Publisher(S3Location("bucket", "exports"), _FakeS3Client(fail=True))

    with pytest.raises(TrackerStoreError):
        publisher.upload_latest("portal-api", _snapshot())


def test_from_config_without_uri_disables_export(tmp_path, monkeypatch) -> None:
    """No publisher is built when no URI is configured."""
    monkeypatch.delenv("TRACKER_S3_PUBLISH_URI", raising=False)
    config = replace(TrackerConfig.from_env(), data_root=tmp_path)

    assert S3Publisher.from_config(config) is None
