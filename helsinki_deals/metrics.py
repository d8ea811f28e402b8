"""Prometheus metrics for crawl runs."""

import time

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("helsinki_deals", "Helsinki deals crawler info")
app_info.info({"version": "0.1.0", "name": "helsinki-deals"})

# Fetch metrics
crawl_fetches_total = Counter(
    "crawl_fetches_total",
    "Total number of page fetch attempts",
    ["strategy", "status"],
)

crawl_fetch_duration_seconds = Histogram(
    "crawl_fetch_duration_seconds",
    "Time spent fetching pages",
    ["strategy"],
    buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0],
)

# Site metrics
crawl_sites_total = Counter(
    "crawl_sites_total",
    "Total number of sites crawled, by outcome",
    ["status"],
)

crawl_deals_total = Counter(
    "crawl_deals_total",
    "Total number of deals found",
    ["site"],
)

# Run metrics
crawl_runs_total = Counter(
    "crawl_runs_total",
    "Total number of crawl runs",
    ["status"],
)

crawl_run_duration_seconds = Histogram(
    "crawl_run_duration_seconds",
    "Wall time of a full crawl run",
    buckets=[10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
)

crawl_last_run_timestamp = Gauge(
    "crawl_last_run_timestamp",
    "Timestamp of the last completed crawl run",
)


def record_fetch(strategy: str, success: bool, duration: float):
    """Record a single fetch attempt."""
    status = "success" if success else "error"
    crawl_fetches_total.labels(strategy=strategy, status=status).inc()
    crawl_fetch_duration_seconds.labels(strategy=strategy).observe(duration)


def record_site(status: str, site_id: str, deal_count: int):
    """Record a finished site crawl."""
    crawl_sites_total.labels(status=status).inc()
    if deal_count:
        crawl_deals_total.labels(site=site_id).inc(deal_count)


def record_run(success: bool, duration: float):
    """Record a finished crawl run."""
    status = "success" if success else "error"
    crawl_runs_total.labels(status=status).inc()
    crawl_run_duration_seconds.observe(duration)
    if success:
        crawl_last_run_timestamp.set(time.time())
