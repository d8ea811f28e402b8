"""Crawl of a single site: main page, discovered sale pages, dedupe and rank."""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from helsinki_deals.config import settings
from helsinki_deals.detect.deal_extractor import DealExtractor
from helsinki_deals.detect.dedupe import dedupe_deals, rank_deals
from helsinki_deals.ingest.base import Deal, Site, SiteOutcome, utc_now
from helsinki_deals.ingest.document import parse_document
from helsinki_deals.ingest.fetch_strategies import PageFetcher
from helsinki_deals.ingest.link_discoverer import LinkDiscoverer, SaleLink

logger = logging.getLogger(__name__)


class CrawlState(Enum):
    """Steps of a site crawl, in the order they run."""
    FETCHING_MAIN = "fetching_main"
    EXTRACTING_MAIN = "extracting_main"
    DISCOVERING_LINKS = "discovering_links"
    FETCHING_SALE = "fetching_sale"
    EXTRACTING_SALE = "extracting_sale"
    DEDUPLICATING = "deduplicating"
    DONE = "done"


class SiteCrawler:
    """
    Crawls one site.

    The main page is fetched and scanned, then up to ``max_sale_links``
    discovered sale pages are followed one after another with a short pause
    between them. A failed main page ends the crawl for this site only; a
    failed sale page is skipped.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: Optional[DealExtractor] = None,
        discoverer: Optional[LinkDiscoverer] = None,
        max_sale_links: Optional[int] = None,
        sale_page_pause: Optional[float] = None,
        max_deals: Optional[int] = None,
        prefix_length: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.extractor = extractor or DealExtractor()
        self.discoverer = discoverer or LinkDiscoverer(self.extractor.policy, self.extractor.scorer)
        self.max_sale_links = max_sale_links if max_sale_links is not None else settings.max_sale_links
        self.sale_page_pause = sale_page_pause if sale_page_pause is not None else settings.sale_page_pause_seconds
        self.max_deals = max_deals if max_deals is not None else settings.max_deals_per_site
        self.prefix_length = prefix_length or settings.dedupe_prefix_length

    async def crawl(self, site: Site, found_at: Optional[datetime] = None) -> SiteOutcome:
        """
        Crawl a site and return its ranked deals.

        Args:
            site: Catalog entry to crawl
            found_at: Discovery timestamp stamped on every deal

        Returns:
            SiteOutcome with status ok, empty or failed
        """
        found_at = found_at or utc_now()
        prefer_rendering = self.fetcher.needs_rendering(site.website)

        self._enter(site, CrawlState.FETCHING_MAIN)
        main = await self.fetcher.fetch(site.website, prefer_rendering=prefer_rendering)
        if not main.success or not main.html:
            reason = main.error or "empty response"
            logger.warning(f"Main page fetch failed for {site.id} ({site.website}): {reason}")
            return SiteOutcome.failed(site, reason)

        self._enter(site, CrawlState.EXTRACTING_MAIN)
        document = parse_document(main.html)
        deals: List[Deal] = self.extractor.extract(document, site, site.website, found_at)

        self._enter(site, CrawlState.DISCOVERING_LINKS)
        links = self.discoverer.discover_links(document, site.website)
        if links:
            logger.debug(f"{site.id}: {len(links)} sale link(s) found, following {min(len(links), self.max_sale_links)}")

        for index, link in enumerate(links[:self.max_sale_links]):
            if index:
                await asyncio.sleep(self.sale_page_pause)
            deals.extend(await self._crawl_sale_page(site, link, prefer_rendering, found_at))

        if not deals and links:
            deals = self._deals_from_links(site, links, found_at)

        self._enter(site, CrawlState.DEDUPLICATING)
        deals = dedupe_deals(deals, self.prefix_length, self.extractor.policy.bare_keywords)
        deals = rank_deals(deals, self.max_deals)

        self._enter(site, CrawlState.DONE)
        logger.info(f"{site.id}: {len(deals)} deal(s)")
        return SiteOutcome.from_deals(site, deals, strategy=main.strategy.value)

    async def _crawl_sale_page(
        self,
        site: Site,
        link: SaleLink,
        prefer_rendering: bool,
        found_at: datetime,
    ) -> List[Deal]:
        self._enter(site, CrawlState.FETCHING_SALE)
        result = await self.fetcher.fetch(link.url, prefer_rendering=prefer_rendering)
        if not result.success or not result.html:
            logger.debug(f"Sale page fetch failed for {site.id} ({link.url}): {result.error}")
            return []

        self._enter(site, CrawlState.EXTRACTING_SALE)
        document = parse_document(result.html)
        deals = self.extractor.extract(document, site, link.url, found_at)
        if deals:
            return deals

        # Nothing structured; the page's own heading is a weak signal
        heading = document.title() or document.first_heading()
        fallback = self.extractor.deal_from_text(heading, site, link.url, found_at)
        return [fallback] if fallback else []

    def _deals_from_links(self, site: Site, links: List[SaleLink], found_at: datetime) -> List[Deal]:
        deals = []
        for link in links:
            deal = self.extractor.deal_from_text(link.text, site, link.url, found_at)
            if deal:
                deals.append(deal)
        return deals

    @staticmethod
    def _enter(site: Site, state: CrawlState):
        logger.debug(f"{site.id}: {state.value}")
