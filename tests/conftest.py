"""Shared fixtures and fakes for the crawler tests.

Playwright is never launched here: ``FakeBrowser`` mimics the small part of
the browser API the fetcher uses. ``StubFetcher`` serves canned pages keyed by
URL so site crawls run without any network.
"""

import asyncio
import logging
from typing import Dict, List, Optional

import pytest

from helsinki_deals.config import settings
from helsinki_deals.ingest.base import Site, SiteOutcome
from helsinki_deals.ingest.fetch_strategies import FetchResult, FetchStrategy


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """No pacing delays and no log files during tests."""
    monkeypatch.setattr(settings, "logs_dir", "")
    monkeypatch.setattr(settings, "render_settle_seconds", 0.0)
    monkeypatch.setattr(settings, "sale_page_pause_seconds", 0.0)
    monkeypatch.setattr(settings, "batch_pause_seconds", 0.0)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers and not type(handler).__module__.startswith("_pytest"):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def make_site(site_id: str = "shop", website: str = "https://shop.example/", **kwargs) -> Site:
    return Site(
        id=site_id,
        name=kwargs.get("name", site_id.title()),
        website=website,
        lat=kwargs.get("lat", 60.1699),
        lng=kwargs.get("lng", 24.9384),
        category=kwargs.get("category", "mid-range"),
        address=kwargs.get("address", ""),
    )


@pytest.fixture
def site() -> Site:
    return make_site()


class StubFetcher:
    """Serves canned HTML; URLs without a page fail like a 404."""

    def __init__(self, pages: Dict[str, str], rendered_domains: tuple = ()):
        self.pages = pages
        self.rendered_domains = rendered_domains
        self.requested: List[str] = []
        self.prefer_rendering: List[bool] = []
        self.closed = False

    def needs_rendering(self, url: str) -> bool:
        return any(domain in url for domain in self.rendered_domains)

    async def fetch(self, url: str, prefer_rendering: bool = False) -> FetchResult:
        self.requested.append(url)
        self.prefer_rendering.append(prefer_rendering)
        html = self.pages.get(url)
        if html is None:
            return FetchResult(
                success=False,
                html=None,
                strategy=FetchStrategy.STATIC,
                status_code=404,
                error="HTTP 404",
            )
        return FetchResult(success=True, html=html, strategy=FetchStrategy.STATIC, status_code=200)

    async def start_browser(self) -> bool:
        return False

    async def close(self):
        self.closed = True


class FakeRequest:
    def __init__(self, resource_type: str):
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, resource_type: str):
        self.request = FakeRequest(resource_type)
        self.aborted = False
        self.continued = False

    async def abort(self):
        self.aborted = True

    async def continue_(self):
        self.continued = True


class FakePage:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.closed = False
        self.route_handler = None
        self.goto_kwargs: Optional[dict] = None

    async def route(self, pattern, handler):
        self.route_handler = handler

    async def goto(self, url, **kwargs):
        self.goto_kwargs = kwargs
        self.browser.visited.append(url)
        if self.browser.fail:
            raise RuntimeError("net::ERR_NAME_NOT_RESOLVED")

    async def content(self) -> str:
        return self.browser.html

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, browser: "FakeBrowser", options: dict):
        self.browser = browser
        self.options = options
        self.closed = False
        self.pages: List[FakePage] = []

    async def new_page(self) -> FakePage:
        page = FakePage(self.browser)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Stands in for a Playwright ``Browser``."""

    def __init__(self, html: str = "<html><body></body></html>", fail: bool = False):
        self.html = html
        self.fail = fail
        self.contexts: List[FakeContext] = []
        self.visited: List[str] = []
        self.closed = False

    async def new_context(self, **options) -> FakeContext:
        context = FakeContext(self, options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeFetcher:
    """Fetcher lifecycle double for orchestrator tests."""

    def __init__(self, rendering: bool = False):
        self.rendering = rendering
        self.start_calls = 0
        self.closed = False

    async def start_browser(self) -> bool:
        self.start_calls += 1
        return self.rendering

    def needs_rendering(self, url: str) -> bool:
        return False

    async def close(self):
        self.closed = True


class FakeCrawler:
    """Returns canned outcomes, optionally raising or hanging per site."""

    def __init__(self, deals=None, errors=None, delays=None):
        self.deals = deals or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.active = 0
        self.max_active = 0
        self.crawled: List[str] = []

    async def crawl(self, site, found_at=None):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.crawled.append(site.id)
        try:
            await asyncio.sleep(self.delays.get(site.id, 0.01))
            if site.id in self.errors:
                raise self.errors[site.id]
            return SiteOutcome.from_deals(site, self.deals.get(site.id, []), strategy="static")
        finally:
            self.active -= 1
