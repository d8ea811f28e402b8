"""Discovery of sale sub-pages linked from a storefront page."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urldefrag, urljoin, urlparse

from helsinki_deals.detect.policy import DEFAULT_POLICY, ScoringPolicy
from helsinki_deals.detect.scorer import ContentScorer
from helsinki_deals.ingest.document import Document

logger = logging.getLogger(__name__)

_PATH_SPLIT = re.compile(r"[/\-_.]+")


@dataclass(frozen=True)
class SaleLink:
    """A discovered sale page and the anchor text that pointed to it."""
    url: str
    text: str


def _same_page(a: str, b: str) -> bool:
    return a.rstrip("/").lower() == b.rstrip("/").lower()


def _path_words(href: str) -> str:
    """Href path as lowercase space-separated words ("/terms-of-sale" -> "terms of sale")."""
    if not href:
        return ""
    try:
        path = urlparse(href).path.lower()
    except ValueError:
        return ""
    return " ".join(token for token in _PATH_SPLIT.split(path) if token)


def _same_site(url: str, base_url: str) -> bool:
    """True if url is on the base host or one of its subdomains."""
    host = (urlparse(url).hostname or "").lower()
    base = (urlparse(base_url).hostname or "").lower()
    if base.startswith("www."):
        base = base[4:]
    return bool(base) and (host == base or host.endswith("." + base))


class LinkDiscoverer:
    """Selects anchors that look like they lead to a sale page."""

    def __init__(
        self,
        policy: ScoringPolicy = DEFAULT_POLICY,
        scorer: Optional[ContentScorer] = None,
    ):
        self.policy = policy
        self.scorer = scorer or ContentScorer(policy)
        self._path_tokens = frozenset(policy.sale_path_tokens)

    def discover(self, document: Document, base_url: str) -> List[str]:
        """Absolute sale-page URLs in document order, without duplicates."""
        return [link.url for link in self.discover_links(document, base_url)]

    def discover_links(self, document: Document, base_url: str) -> List[SaleLink]:
        """
        Find sale-page links on a page.

        An anchor qualifies if a segment of its href path is a sale token, or
        if its text is short and contains a sale keyword. Anchors whose text
        or path is on the false-positive denylist never qualify, and neither
        do links leaving the site.

        Args:
            document: Parsed page
            base_url: URL the page was fetched from

        Returns:
            Links in document order, deduplicated, excluding the page itself
        """
        links: List[SaleLink] = []
        seen = set()

        for anchor in document.anchors():
            href = (anchor.attr("href") or "").strip()
            text = anchor.text()

            if not (self._href_matches(href) or self._text_matches(text)):
                continue
            if self.scorer.is_false_positive(text) or self.scorer.is_false_positive(_path_words(href)):
                logger.debug(f"Skipping denylisted link {href!r} ({text!r})")
                continue

            url = self._resolve(href, base_url)
            if url is None or _same_page(url, base_url):
                continue
            if not _same_site(url, base_url):
                logger.debug(f"Skipping off-site link {url}")
                continue

            key = url.rstrip("/").lower()
            if key in seen:
                continue
            seen.add(key)
            links.append(SaleLink(url=url, text=text))

        return links

    def _href_matches(self, href: str) -> bool:
        return any(token in self._path_tokens for token in _path_words(href).split())

    def _text_matches(self, text: str) -> bool:
        if not text or len(text) >= self.policy.max_link_text_length:
            return False
        return self.scorer.has_sale_keyword(text)

    @staticmethod
    def _resolve(href: str, base_url: str) -> Optional[str]:
        try:
            url, _ = urldefrag(urljoin(base_url, href))
        except ValueError:
            return None
        if urlparse(url).scheme not in ("http", "https"):
            return None
        return url
