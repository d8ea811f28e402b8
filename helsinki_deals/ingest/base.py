"""Core data types shared by the crawl pipeline."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

StoreCategory = Literal[
    "fast-fashion",
    "luxury",
    "vintage",
    "streetwear",
    "department-store",
    "nordic-design",
    "sports",
    "mid-range",
    "accessories",
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Site:
    """A retail site from the external catalog. Read-only to the crawler."""

    id: str
    name: str
    website: str
    lat: float
    lng: float
    category: StoreCategory
    address: str = ""


@dataclass(frozen=True)
class Deal:
    """A discount found on one page of a site."""

    site_id: str
    description: str
    url: str
    percentage: Optional[str] = None
    found_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        data = {
            "storeId": self.site_id,
            "description": self.description,
            "url": self.url,
            "foundAt": _iso(self.found_at),
        }
        if self.percentage:
            data["percentage"] = self.percentage
        return data


class SiteStatus(Enum):
    """Outcome of crawling one site."""
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class SiteOutcome:
    """Per-site result collected by the orchestrator."""

    site: Site
    status: SiteStatus
    deals: List[Deal] = field(default_factory=list)
    reason: Optional[str] = None
    strategy: Optional[str] = None  # Strategy that served the main page

    @classmethod
    def from_deals(cls, site: Site, deals: List[Deal], strategy: Optional[str] = None) -> "SiteOutcome":
        status = SiteStatus.OK if deals else SiteStatus.EMPTY
        return cls(site=site, status=status, deals=list(deals), strategy=strategy)

    @classmethod
    def failed(cls, site: Site, reason: str) -> "SiteOutcome":
        return cls(site=site, status=SiteStatus.FAILED, reason=reason)


@dataclass
class CrawlResult:
    """The single artifact produced by a full crawl run."""

    last_crawled: datetime
    deals: List[Deal] = field(default_factory=list)
    outcomes: List[SiteOutcome] = field(default_factory=list)

    def deals_for(self, site_id: str) -> List[Deal]:
        return [deal for deal in self.deals if deal.site_id == site_id]

    @property
    def failed_sites(self) -> List[SiteOutcome]:
        return [o for o in self.outcomes if o.status is SiteStatus.FAILED]

    def to_dict(self) -> dict:
        return {
            "lastCrawled": _iso(self.last_crawled),
            "deals": [deal.to_dict() for deal in self.deals],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)
