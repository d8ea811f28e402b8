"""Page fetching with a rendered-browser strategy and a static fallback.

Sites on the rendering allow-list are loaded in a headless browser first;
anything that fails there, and every other site, is fetched with a plain
HTTP GET. Fetch problems are reported in the result, never raised.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import urlparse

import httpx

from helsinki_deals import metrics
from helsinki_deals.config import settings

logger = logging.getLogger(__name__)


class FetchStrategy(Enum):
    """Available fetch strategies, cheapest first."""
    STATIC = "static"
    RENDERED = "rendered"


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    success: bool
    html: Optional[str]
    strategy: FetchStrategy
    duration_ms: float = 0.0
    error: Optional[str] = None
    status_code: Optional[int] = None


BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
]


class PageFetcher:
    """
    Fetches raw HTML for a URL.

    The rendering engine is optional: call ``start_browser()`` once before a
    run. If it cannot start, ``fetch`` silently uses the static strategy for
    every URL.
    """

    def __init__(
        self,
        rendered_domains: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        browser: Any = None,
    ):
        self.rendered_domains = [
            d.lower() for d in (rendered_domains if rendered_domains is not None else settings.rendered_domains)
        ]
        self.timeout = timeout if timeout is not None else settings.request_timeout

        # HTTP client (reused)
        self._client: Optional[httpx.AsyncClient] = None

        # Playwright browser (lazy initialized, or injected)
        self._playwright = None
        self._browser = browser
        self._browser_lock = asyncio.Lock()
        self._browser_failed = False

    @property
    def rendering_available(self) -> bool:
        return self._browser is not None

    def needs_rendering(self, url: str) -> bool:
        """True if the URL's host is on the rendering allow-list."""
        host = (urlparse(url).hostname or "").lower()
        return any(host == d or host.endswith("." + d) for d in self.rendered_domains)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the static HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": settings.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": settings.accept_language,
                },
            )
        return self._client

    async def start_browser(self) -> bool:
        """
        Launch the shared headless browser.

        Returns:
            True if rendering is available for this run
        """
        async with self._browser_lock:
            if self._browser is not None:
                return True
            if self._browser_failed:
                return False

            try:
                from playwright.async_api import async_playwright

                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=True,
                    args=BROWSER_ARGS,
                )
                logger.info("Rendering engine started")
                return True
            except Exception as e:
                self._browser_failed = True
                logger.warning(f"Rendering engine unavailable, using static fetch only: {e}")
                await self._stop_playwright()
                return False

    async def _stop_playwright(self):
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Error stopping playwright: {e}")
            self._playwright = None

    async def close(self):
        """Close the HTTP client and browser."""
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug(f"Error closing browser: {e}")
            self._browser = None

        await self._stop_playwright()

    async def fetch(self, url: str, prefer_rendering: bool = False) -> FetchResult:
        """
        Fetch a URL.

        Args:
            url: URL to fetch
            prefer_rendering: Try the rendering engine first if it is running

        Returns:
            FetchResult; ``success`` is False when no strategy produced markup
        """
        if prefer_rendering and self.rendering_available:
            result = await self._timed(FetchStrategy.RENDERED, self._fetch_rendered(url))
            if result is not None:
                return result
            logger.debug(f"Rendered fetch failed for {url}, falling back to static")

        return await self._timed(FetchStrategy.STATIC, self._fetch_static(url))

    async def _timed(self, strategy: FetchStrategy, attempt) -> Optional[FetchResult]:
        start_time = time.monotonic()
        result = await attempt
        duration = time.monotonic() - start_time

        metrics.record_fetch(strategy.value, result is not None and result.success, duration)
        if result is not None:
            result.duration_ms = duration * 1000
        return result

    async def _fetch_static(self, url: str) -> FetchResult:
        """Fetch using a plain HTTP GET."""
        try:
            client = await self._get_client()
            response = await client.get(url)

            if not response.is_success:
                return FetchResult(
                    success=False,
                    html=None,
                    strategy=FetchStrategy.STATIC,
                    status_code=response.status_code,
                    error=f"HTTP {response.status_code}",
                )

            return FetchResult(
                success=True,
                html=response.text,
                strategy=FetchStrategy.STATIC,
                status_code=response.status_code,
            )

        except httpx.TimeoutException:
            return FetchResult(
                success=False,
                html=None,
                strategy=FetchStrategy.STATIC,
                error="Timeout",
            )
        except Exception as e:
            return FetchResult(
                success=False,
                html=None,
                strategy=FetchStrategy.STATIC,
                error=str(e) or e.__class__.__name__,
            )

    async def _fetch_rendered(self, url: str) -> Optional[FetchResult]:
        """Fetch using the headless browser. Returns None on any failure."""
        context = None
        page = None

        try:
            context = await self._browser.new_context(
                user_agent=settings.user_agent,
                locale=settings.browser_locale,
                extra_http_headers={"Accept-Language": settings.accept_language},
            )
            page = await context.new_page()
            await page.route("**/*", self._route_handler)

            await page.goto(url, wait_until="domcontentloaded", timeout=settings.render_timeout_ms)

            # Client-side rendering settles after the DOM is ready
            await asyncio.sleep(settings.render_settle_seconds)

            html = await page.content()
            return FetchResult(success=True, html=html, strategy=FetchStrategy.RENDERED)

        except Exception as e:
            logger.debug(f"Rendered fetch error for {url}: {e}")
            return None
        finally:
            if page:
                try:
                    await page.close()
                except Exception as e:
                    logger.debug(f"Error closing page: {e}")
            if context:
                try:
                    await context.close()
                except Exception as e:
                    logger.debug(f"Error closing context: {e}")

    @staticmethod
    async def _route_handler(route):
        if route.request.resource_type in settings.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()
