"""Deduplication and ranking of per-site deals."""

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from helsinki_deals.config import settings
from helsinki_deals.detect.policy import DEFAULT_POLICY
from helsinki_deals.ingest.base import Deal

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w%]+")


def normalize_description(description: str) -> str:
    """
    Normalize a description for duplicate detection.

    Lowercases, drops punctuation and collapses whitespace so that
    "Kesäale -50%!" and "kesäale 50%" share a key.
    """
    return _NON_WORD.sub(" ", (description or "").lower()).strip()


def _dedupe_key(deal: Deal, prefix_length: int) -> Tuple[str, str]:
    return deal.site_id, normalize_description(deal.description)[:prefix_length]


def is_bare_keyword(description: str, bare_keywords: Iterable[str] = DEFAULT_POLICY.bare_keywords) -> bool:
    """True if the description is nothing but a generic sale keyword."""
    return normalize_description(description) in set(bare_keywords)


def dedupe_deals(
    deals: Iterable[Deal],
    prefix_length: Optional[int] = None,
    bare_keywords: Iterable[str] = DEFAULT_POLICY.bare_keywords,
) -> List[Deal]:
    """
    Drop repeated and uninformative deals.

    Deals are keyed by (site id, normalized description prefix). The first
    occurrence of a key wins. Descriptions that are only a bare "sale"/"ale"
    are rejected. Applying this twice gives the same result as once.

    Args:
        deals: Deals in discovery order
        prefix_length: Normalized prefix length used as the key
        bare_keywords: Descriptions rejected outright

    Returns:
        Surviving deals in their original order
    """
    prefix_length = prefix_length or settings.dedupe_prefix_length
    bare = set(bare_keywords)

    seen: Dict[Tuple[str, str], Deal] = {}
    for deal in deals:
        normalized = normalize_description(deal.description)
        if not normalized or normalized in bare:
            logger.debug(f"Dropping uninformative deal for {deal.site_id}: {deal.description!r}")
            continue

        key = _dedupe_key(deal, prefix_length)
        if key in seen:
            continue
        seen[key] = deal

    return list(seen.values())


def rank_deals(deals: Iterable[Deal], limit: Optional[int] = None) -> List[Deal]:
    """
    Order deals with a detected percentage first and cap the count.

    The sort is stable, so ties keep discovery order.
    """
    ranked = sorted(deals, key=lambda deal: deal.percentage is None)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
