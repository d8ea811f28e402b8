"""Batched crawl of the whole site catalog.

Sites are crawled in sequential batches; sites inside a batch run
concurrently and are isolated from each other, so one site's exception or
timeout only costs that site's deals.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

from helsinki_deals import metrics
from helsinki_deals.config import settings
from helsinki_deals.detect.deal_extractor import DealExtractor
from helsinki_deals.detect.policy import get_policy
from helsinki_deals.ingest.base import CrawlResult, Site, SiteOutcome, SiteStatus, utc_now
from helsinki_deals.ingest.catalog import load_catalog
from helsinki_deals.ingest.fetch_strategies import PageFetcher
from helsinki_deals.ingest.site_crawler import SiteCrawler
from helsinki_deals.logging_config import get_logger

logger = logging.getLogger(__name__)


def batched(sites: Sequence[Site], size: int) -> List[List[Site]]:
    """Split sites into consecutive batches of at most ``size``."""
    size = max(1, size)
    return [list(sites[i:i + size]) for i in range(0, len(sites), size)]


class CrawlOrchestrator:
    """Runs ``SiteCrawler`` over a catalog in bounded-concurrency batches."""

    def __init__(
        self,
        fetcher: PageFetcher,
        crawler: Optional[SiteCrawler] = None,
        rendering: Optional[bool] = None,
        batch_size_rendered: Optional[int] = None,
        batch_size_static: Optional[int] = None,
        batch_pause: Optional[float] = None,
        site_timeout: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.crawler = crawler or SiteCrawler(fetcher)
        self.rendering = settings.rendering_enabled if rendering is None else rendering
        self.batch_size_rendered = batch_size_rendered or settings.batch_size_rendered
        self.batch_size_static = batch_size_static or settings.batch_size_static
        self.batch_pause = settings.batch_pause_seconds if batch_pause is None else batch_pause
        self.site_timeout = site_timeout or settings.site_timeout_seconds

    async def run_all(self, catalog: Sequence[Site]) -> CrawlResult:
        """
        Crawl every site in the catalog.

        Args:
            catalog: Sites to crawl, in catalog order

        Returns:
            CrawlResult with deals from every site that produced any
        """
        start_time = time.monotonic()
        outcomes: List[SiteOutcome] = []

        try:
            rendering_active = False
            if self.rendering:
                rendering_active = await self.fetcher.start_browser()
            else:
                logger.info("Rendering disabled, using static fetch only")

            batch_size = self.batch_size_rendered if rendering_active else self.batch_size_static
            batches = batched(catalog, batch_size)
            logger.info(
                f"Crawling {len(catalog)} site(s) in {len(batches)} batch(es) of up to {batch_size}"
            )

            found_at = utc_now()
            for index, batch in enumerate(batches, start=1):
                if index > 1 and self.batch_pause:
                    await asyncio.sleep(self.batch_pause)

                logger.info(f"Batch {index}/{len(batches)}: {', '.join(site.id for site in batch)}")
                outcomes.extend(await self._run_batch(batch, found_at))
        finally:
            await self.fetcher.close()

        result = self._aggregate(outcomes)

        duration = time.monotonic() - start_time
        metrics.record_run(success=True, duration=duration)
        logger.info(
            f"Crawl finished in {duration:.1f}s: {len(result.deals)} deal(s) from "
            f"{len(catalog)} site(s), {len(result.failed_sites)} failed"
        )
        return result

    async def _run_batch(self, batch: List[Site], found_at) -> List[SiteOutcome]:
        results = await asyncio.gather(
            *(self._crawl_site(site, found_at) for site in batch),
            return_exceptions=True,
        )

        outcomes = []
        for site, result in zip(batch, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.TimeoutError):
                    reason = f"timed out after {self.site_timeout:g}s"
                else:
                    reason = str(result) or result.__class__.__name__
                get_logger(__name__, site=site.id).error(f"Crawl failed for {site.id}: {reason}")
                result = SiteOutcome.failed(site, reason)

            metrics.record_site(result.status.value, site.id, len(result.deals))
            outcomes.append(result)
        return outcomes

    async def _crawl_site(self, site: Site, found_at) -> SiteOutcome:
        return await asyncio.wait_for(self.crawler.crawl(site, found_at), timeout=self.site_timeout)

    @staticmethod
    def _aggregate(outcomes: List[SiteOutcome]) -> CrawlResult:
        deals = [deal for outcome in outcomes if outcome.status is SiteStatus.OK for deal in outcome.deals]
        # Stable: per-site ranking and catalog order break ties
        deals.sort(key=lambda deal: deal.percentage is None)
        return CrawlResult(last_crawled=utc_now(), deals=deals, outcomes=outcomes)


async def run_crawl(
    catalog_path: Optional[Union[str, Path]] = None,
    rendering: Optional[bool] = None,
) -> CrawlResult:
    """
    Run a full crawl now.

    Args:
        catalog_path: Catalog JSON (defaults to the configured/bundled one)
        rendering: Override ``settings.rendering_enabled``

    Returns:
        CrawlResult for the run

    Raises:
        CatalogError: If the catalog cannot be read
    """
    catalog = load_catalog(catalog_path)

    policy = get_policy(settings.scoring_policy)
    fetcher = PageFetcher()
    crawler = SiteCrawler(fetcher, extractor=DealExtractor(policy))
    orchestrator = CrawlOrchestrator(fetcher, crawler, rendering=rendering)
    return await orchestrator.run_all(catalog)
