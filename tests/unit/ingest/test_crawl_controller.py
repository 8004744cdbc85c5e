"""Unit tests for the feed crawl controller."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from core.errors import EmptyPayload, FetchFailure
from core.source_profile import BUILTIN_SOURCE_PROFILES
from ingest.crawl_controller import FeedCrawlController, discover_detail_urls
from ingest.snapshot_builder import CandidateAccumulator
from tests.fetch_stubs import StubFetcher
from tests.fixture_paths import fixture_text

_PROFILE = BUILTIN_SOURCE_PROFILES["news-feed"]
_PAGE_04_04 = "https://www.saude.gov.br/noticias/agencia-saude/46510-boletim-coronavirus-04-04"
_PAGE_03_04 = "https://www.saude.gov.br/noticias/agencia-saude/46500-boletim-coronavirus-03-04"


def _responses() -> dict:
    return {
        _PROFILE.source_url: (200, fixture_text("feed/rss.xml")),
        _PAGE_04_04: (200, fixture_text("feed/boletim_04_04.html")),
        _PAGE_03_04: (200, fixture_text("feed/boletim_03_04.html")),
    }


def _crawl(fetcher: StubFetcher, cursor: datetime | None = None, profile=_PROFILE):
    accumulator = CandidateAccumulator()
    controller = FeedCrawlController(profile, fetcher, cursor, accumulator)
    controller.run()
    return controller, accumulator


def test_discover_detail_urls_filters_and_deduplicates() -> None:
    """Only unique keyword URLs are enqueued, in feed order."""
    urls = discover_detail_urls(fixture_text("feed/rss.xml"), ("coronavirus",))

    assert urls == [_PAGE_04_04, _PAGE_03_04]


def test_discover_detail_urls_reads_atom_links() -> None:
    """Atom entries expose their URL through the link href."""
    feed = (
        '<feed xmlns="http://www.w3.org/2005/Atom"><entry>'
        '<link href="https://example.org/covid-boletim"/></entry></feed>'
    )

    assert discover_detail_urls(feed, ("covid",)) == ["https://example.org/covid-boletim"]


def test_discover_detail_urls_rejects_malformed_feed() -> None:
    """A feed that is not XML cannot be crawled."""
    with pytest.raises(EmptyPayload):
        discover_detail_urls("<rss><channel>", ("covid",))


def test_crawl_collects_every_page_and_finishes() -> None:
    """Without a cursor both bulletins become candidates."""
    controller, accumulator = _crawl(StubFetcher(_responses()))

    assert controller.state == "done" and len(accumulator.candidates) == 2


def test_crawl_fetches_each_unique_page_once() -> None:
    """Duplicate feed entries never produce duplicate requests."""
    fetcher = StubFetcher(_responses())

    _crawl(fetcher)

    assert fetcher.requested_urls == [_PROFILE.source_url, _PAGE_04_04, _PAGE_03_04]


def test_crawl_discards_pages_older_than_cursor() -> None:
    """Older pages are dropped; a page equal to the cursor is kept."""
    cursor = datetime(2020, 4, 4, 20, tzinfo=timezone.utc)

    _, accumulator = _crawl(StubFetcher(_responses()), cursor)

    assert [item.source_url for item in accumulator.candidates] == [_PAGE_04_04]


def test_crawl_records_exhausted_page_without_blocking() -> None:
    """A page failing every attempt is recorded while others still succeed."""
    responses = _responses()
    responses[_PAGE_03_04] = FetchFailure("timed out")
    fetcher = StubFetcher(responses)
    profile = replace(_PROFILE, fetch_attempts=2)

    _, accumulator = _crawl(fetcher, profile=profile)

    assert accumulator.failed_urls == [_PAGE_03_04] and fetcher.requested_urls.count(_PAGE_03_04) == 2


def test_crawl_without_matching_entries_fails() -> None:
    """A feed with no relevant entries is an empty payload."""
    profile = replace(_PROFILE, feed_keywords=("dengue",))

    with pytest.raises(EmptyPayload):
        _crawl(StubFetcher(_responses()), profile=profile)


def test_crawl_feed_error_status_fails() -> None:
    """The feed itself must be fetched successfully."""
    responses = _responses()
    responses[_PROFILE.source_url] = (500, "")

    with pytest.raises(FetchFailure):
        _crawl(StubFetcher(responses))
