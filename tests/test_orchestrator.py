"""Tests for the batched catalog crawl."""

import httpx
import pytest
import respx

from helsinki_deals.ingest.base import Deal, SiteStatus
from helsinki_deals.ingest.catalog import CatalogError
from helsinki_deals.ingest.fetch_strategies import PageFetcher
from helsinki_deals.ingest.orchestrator import CrawlOrchestrator, batched, run_crawl
from helsinki_deals.ingest.site_crawler import SiteCrawler

from conftest import FakeCrawler, FakeFetcher, make_site


def _deal(site_id, description, percentage=None):
    return Deal(site_id=site_id, description=description, url=f"https://{site_id}.example/", percentage=percentage)


def _sites(*ids):
    return [make_site(site_id, f"https://{site_id}.example/") for site_id in ids]


def test_batched():
    assert batched(_sites("a", "b", "c", "d", "e"), 2) == [
        _sites("a", "b"), _sites("c", "d"), _sites("e"),
    ]
    assert batched([], 3) == []


@pytest.mark.asyncio
async def test_failures_are_isolated():
    """An exception or timeout only costs that site's deals."""
    crawler = FakeCrawler(
        deals={"a": [_deal("a", "Ale -10%", "10%")], "d": [_deal("d", "Outlet")]},
        errors={"b": RuntimeError("parser exploded")},
        delays={"c": 5.0},
    )
    fetcher = FakeFetcher()
    orchestrator = CrawlOrchestrator(fetcher, crawler, rendering=False, batch_pause=0, site_timeout=0.2)

    result = await orchestrator.run_all(_sites("a", "b", "c", "d"))

    statuses = {o.site.id: o.status for o in result.outcomes}
    assert statuses == {
        "a": SiteStatus.OK,
        "b": SiteStatus.FAILED,
        "c": SiteStatus.FAILED,
        "d": SiteStatus.OK,
    }
    reasons = {o.site.id: o.reason for o in result.failed_sites}
    assert reasons["b"] == "parser exploded"
    assert "timed out" in reasons["c"]
    assert [d.site_id for d in result.deals] == ["a", "d"]
    assert fetcher.closed


@pytest.mark.asyncio
async def test_batch_size_with_rendering():
    """Rendering shrinks batches to three concurrent sites."""
    crawler = FakeCrawler()
    fetcher = FakeFetcher(rendering=True)
    orchestrator = CrawlOrchestrator(fetcher, crawler, batch_pause=0)

    await orchestrator.run_all(_sites(*"abcdefg"))

    assert fetcher.start_calls == 1
    assert crawler.max_active == 3
    assert crawler.crawled == list("abcdefg")


@pytest.mark.asyncio
async def test_batch_size_without_rendering():
    """When the browser cannot start, batches hold five sites."""
    crawler = FakeCrawler()
    fetcher = FakeFetcher(rendering=False)
    orchestrator = CrawlOrchestrator(fetcher, crawler, rendering=True, batch_pause=0)

    result = await orchestrator.run_all(_sites(*"abcdefg"))

    assert fetcher.start_calls == 1
    assert crawler.max_active == 5
    assert len(result.outcomes) == 7


@pytest.mark.asyncio
async def test_rendering_disabled_never_starts_browser():
    fetcher = FakeFetcher(rendering=True)
    orchestrator = CrawlOrchestrator(fetcher, FakeCrawler(), rendering=False, batch_pause=0)

    await orchestrator.run_all(_sites("a"))

    assert fetcher.start_calls == 0


@pytest.mark.asyncio
async def test_aggregate_order_is_deterministic():
    """Percentage deals first; ties keep catalog then per-site order."""
    crawler = FakeCrawler(
        deals={
            "a": [_deal("a", "A1")],
            "b": [_deal("b", "B1", "20%"), _deal("b", "B2")],
            "c": [_deal("c", "C1", "30%")],
        },
        # a finishes last, but its deals still come first among ties
        delays={"a": 0.05, "b": 0.01, "c": 0.0},
    )
    orchestrator = CrawlOrchestrator(FakeFetcher(), crawler, rendering=False, batch_size_static=2, batch_pause=0)

    result = await orchestrator.run_all(_sites("a", "b", "c"))

    assert [d.description for d in result.deals] == ["B1", "C1", "A1", "B2"]
    assert [o.site.id for o in result.outcomes] == ["a", "b", "c"]
    assert result.last_crawled is not None


@pytest.mark.asyncio
async def test_empty_catalog():
    result = await CrawlOrchestrator(FakeFetcher(), FakeCrawler(), batch_pause=0).run_all([])

    assert result.deals == []
    assert result.to_dict()["deals"] == []


@pytest.mark.asyncio
async def test_rendering_engine_unavailable(monkeypatch):
    """An allow-listed site is crawled statically when the browser will not start."""

    def broken_playwright():
        raise RuntimeError("Executable doesn't exist")

    monkeypatch.setattr("playwright.async_api.async_playwright", broken_playwright)
    zara = make_site("zara", "https://www.zara.com/fi/")
    fetcher = PageFetcher()
    orchestrator = CrawlOrchestrator(fetcher, SiteCrawler(fetcher, sale_page_pause=0), rendering=True, batch_pause=0)

    with respx.mock:
        respx.get("https://www.zara.com/fi/").mock(
            return_value=httpx.Response(200, text='<html><body><h2 class="promo">Kesäale jopa -50%</h2></body></html>')
        )
        result = await orchestrator.run_all([zara])

    assert [d.percentage for d in result.deals] == ["50%"]
    assert result.outcomes[0].strategy == "static"


@pytest.mark.asyncio
async def test_run_crawl_unreadable_catalog(tmp_path):
    """An unreadable catalog is the only run-level failure."""
    with pytest.raises(CatalogError):
        await run_crawl(catalog_path=tmp_path / "missing.json", rendering=False)
