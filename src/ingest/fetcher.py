"""Fetch collaborator.

The pipeline consumes any object implementing ``Fetcher``. The HTTP
implementation performs one plain GET per call; rendering, proxies and
retry scheduling are not its concern.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

import requests

from core.constants import DEFAULT_USER_AGENT
from core.errors import FetchFailure
from core.types import PayloadFormat, RawPayload


class Fetcher(Protocol):
    """Capability to fetch one resource as a raw payload."""

    def fetch(self, url: str, payload_format: PayloadFormat) -> RawPayload:
        """Fetch a resource and tag it with its payload format."""
        ...


class HttpFetcher:
    """Fetcher backed by a shared ``requests`` session."""

    def __init__(self, timeout: int, session: requests.Session | None = None) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", DEFAULT_USER_AGENT)

    def fetch(self, url: str, payload_format: PayloadFormat) -> RawPayload:
        """Fetch ``url`` and return its body with the response status.

        Raises:
            FetchFailure: If the request fails at the transport level.
        """
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as error:
            raise FetchFailure(f"Request to {url} failed: {error}.") from error
        return RawPayload(
            payload_format=payload_format,
            body=response.text,
            source_url=url,
            status_code=response.status_code,
            fetched_at=datetime.now(timezone.utc),
        )


def ensure_success(payload: RawPayload) -> RawPayload:
    """Reject payloads whose status is not 200.

    Raises:
        FetchFailure: If the collaborator reported a non-success status.
    """
    if payload.status_code != 200:
        raise FetchFailure(
            f"Fetch of {payload.source_url} returned status {payload.status_code}.",
            status_code=payload.status_code,
        )
    return payload
