"""Feed-then-page crawl controller.

The controller moves through three states. ``discover_feed`` parses
the feed and enqueues one detail task per unique matching URL.
``fetch_detail`` processes tasks one at a time against the origin.
``done`` is reached once every task succeeded, was discarded as older
than the cursor, or exhausted its fetch attempts.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Literal
import xml.etree.ElementTree as ElementTree

from core.errors import EmptyPayload, FetchFailure
from core.logging_config import get_logger
from core.source_profile import SourceProfile
from core.types import RawPayload
from ingest.fetcher import Fetcher, ensure_success
from ingest.payload_normalizer import normalize_payload
from ingest.snapshot_builder import CandidateAccumulator, build_snapshot
from ingest.timestamp_resolver import resolve_timestamp

_LOGGER = get_logger(__name__)
_ATOM_NAMESPACE = "{http://www.w3.org/2005/Atom}"

CrawlState = Literal["discover_feed", "fetch_detail", "done"]


@dataclass(frozen=True)
class CrawlTask:
    """One detail page to fetch."""

    url: str


class FeedCrawlController:
    """Two-stage crawl of a feed and its linked detail pages."""

    def __init__(
        self,
        profile: SourceProfile,
        fetcher: Fetcher,
        cursor: datetime | None,
        accumulator: CandidateAccumulator,
    ) -> None:
        self._profile = profile
        self._fetcher = fetcher
        self._cursor = cursor
        self._accumulator = accumulator
        self._queue: deque[CrawlTask] = deque()
        self.state: CrawlState = "discover_feed"

    def run(self) -> None:
        """Crawl the feed and add surviving pages to the accumulator.

        Raises:
            FetchFailure: If the feed itself cannot be fetched.
            EmptyPayload: If the feed lists no matching entries.
        """
        self._discover_feed()
        self.state = "fetch_detail"
        while self._queue:
            self._fetch_detail(self._queue.popleft())
        self.state = "done"
        _LOGGER.info(
            "crawl_completed",
            source=self._profile.name,
            candidate_count=len(self._accumulator.candidates),
            failed_count=len(self._accumulator.failed_urls),
        )

    def _discover_feed(self) -> None:
        feed_payload = ensure_success(
            self._fetcher.fetch(self._profile.source_url, self._profile.payload_format)
        )
        self._accumulator.record_payload(feed_payload)
        urls = discover_detail_urls(str(feed_payload.body), self._profile.feed_keywords)
        if not urls:
            raise EmptyPayload(
                f"Feed {self._profile.source_url} lists no entries matching "
                f"{', '.join(self._profile.feed_keywords)}.",
                diagnostic_payload=feed_payload.body,
            )
        self._queue.extend(CrawlTask(url=url) for url in urls)
        _LOGGER.info("crawl_feed_discovered", source=self._profile.name, task_count=len(urls))

    def _fetch_detail(self, task: CrawlTask) -> None:
        payload = self._fetch_with_attempts(task)
        if payload is None:
            self._accumulator.record_failure(task.url)
            return
        self._accumulator.record_payload(payload)
        normalized = normalize_payload(payload, self._profile)
        source_timestamp = resolve_timestamp(
            normalized.raw_timestamp_text, self._profile.utc_offset
        )
        if self._cursor is not None and source_timestamp < self._cursor:
            _LOGGER.info(
                "crawl_task_discarded",
                url=task.url,
                source_timestamp=source_timestamp.isoformat(),
                cursor=self._cursor.isoformat(),
            )
            return
        self._accumulator.add_candidate(
            build_snapshot(
                normalized,
                source_timestamp,
                self._profile,
                payload.source_url,
                payload.fetched_at,
            )
        )

    def _fetch_with_attempts(self, task: CrawlTask) -> RawPayload | None:
        attempts = max(self._profile.fetch_attempts, 1)
        for attempt in range(1, attempts + 1):
            try:
                return ensure_success(self._fetcher.fetch(task.url, self._profile.payload_format))
            except FetchFailure as error:
                _LOGGER.warning(
                    "crawl_fetch_failed",
                    url=task.url,
                    attempt=attempt,
                    attempts=attempts,
                    error=str(error),
                )
        return None


def discover_detail_urls(feed_text: str, keywords: tuple[str, ...]) -> list[str]:
    """List unique entry URLs that reference one of ``keywords``.

    Args:
        feed_text: RSS or Atom document.
        keywords: Lowercase URL fragments marking relevant entries.

    Returns:
        Matching URLs in feed order, without duplicates.

    Raises:
        EmptyPayload: If the feed is not well-formed XML.
    """
    try:
        root = ElementTree.fromstring(feed_text)
    except ElementTree.ParseError as error:
        raise EmptyPayload(
            f"Feed could not be parsed: {error}.", diagnostic_payload=feed_text
        ) from error
    links = [item.findtext("link", default="").strip() for item in root.iter("item")]
    for entry in root.iter(f"{_ATOM_NAMESPACE}entry"):
        for link in entry.iter(f"{_ATOM_NAMESPACE}link"):
            links.append(link.get("href", "").strip())
    unique_urls: list[str] = []
    seen_urls: set[str] = set()
    for url in links:
        if not url or url in seen_urls:
            continue
        if keywords and not any(keyword in url.lower() for keyword in keywords):
            continue
        seen_urls.add(url)
        unique_urls.append(url)
    return unique_urls
