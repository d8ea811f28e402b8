"""Promotional text extraction from parsed storefront pages."""

import logging
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from helsinki_deals.detect.policy import DEFAULT_POLICY, ScoringPolicy
from helsinki_deals.detect.scorer import CandidateText, ContentScorer, SourceKind, content_scorer, word_pattern
from helsinki_deals.ingest.base import Deal, Site, utc_now
from helsinki_deals.ingest.document import Document, Element, collapse_whitespace

logger = logging.getLogger(__name__)


def cap_description(text: str, max_length: int) -> str:
    """Collapse whitespace and cut text to at most ``max_length`` characters."""
    cleaned = collapse_whitespace(text)
    if len(cleaned) <= max_length:
        return cleaned
    cut = cleaned[:max_length - 3].rsplit(" ", 1)[0].rstrip(" ,.;:-")
    if not cut:
        cut = cleaned[:max_length - 3]
    return f"{cut}..."


class DealExtractor:
    """
    Finds discount announcements on a page.

    Two pools of elements are scanned in document order: headings and
    promo-styled containers, and product cards that show an old/new price
    pairing or a percentage. Navigation and footer regions are skipped.
    Each element's text is scored; accepted candidates that repeat text
    already accepted are dropped.
    """

    def __init__(
        self,
        policy: ScoringPolicy = DEFAULT_POLICY,
        scorer: Optional[ContentScorer] = None,
    ):
        self.policy = policy
        self.scorer = scorer or ContentScorer(policy)
        self._was_now = word_pattern(policy.was_now_phrases)

    def extract(
        self,
        document: Document,
        site: Site,
        page_url: str,
        found_at: Optional[datetime] = None,
    ) -> List[Deal]:
        """
        Extract deals from a document.

        Args:
            document: Parsed page
            site: Site the page belongs to
            page_url: URL the page was fetched from
            found_at: Discovery timestamp (defaults to now)

        Returns:
            Deals in document order, possibly empty
        """
        found_at = found_at or utc_now()
        try:
            candidates = self.find_candidates(document)
        except Exception as e:
            logger.warning(f"Extraction failed for {site.id} ({page_url}): {e}")
            return []

        return [
            Deal(
                site_id=site.id,
                description=candidate.text,
                percentage=candidate.percentage,
                url=page_url,
                found_at=found_at,
            )
            for candidate in candidates
        ]

    def find_candidates(self, document: Document) -> List[CandidateText]:
        """Accepted, de-overlapped candidates with final descriptions."""
        accepted: List[CandidateText] = []

        for element, source in self._candidate_elements(document):
            raw = element.text()
            if not raw or len(raw) > self.policy.max_candidate_length:
                continue

            candidate = self.scorer.evaluate(raw, source)
            if not self.scorer.accepts(candidate):
                logger.debug(
                    f"Rejected {source.value} candidate (score {candidate.score}): "
                    f"{candidate.text[:60]}"
                )
                continue

            if self._overlaps(candidate, accepted):
                continue

            candidate.text = self._describe(candidate, element)
            accepted.append(candidate)

        return accepted

    def deal_from_text(
        self,
        text: str,
        site: Site,
        page_url: str,
        found_at: Optional[datetime] = None,
    ) -> Optional[Deal]:
        """
        Build a low-confidence deal from a page title or link label.

        Only the false-positive filter applies; no score threshold.
        """
        description = cap_description(text or "", self.policy.max_description_length)
        if not description or self.scorer.is_false_positive(description):
            return None
        return Deal(
            site_id=site.id,
            description=description,
            percentage=self.scorer.find_percentage(description),
            url=page_url,
            found_at=found_at or utc_now(),
        )

    # ------------------------------------------------------------------
    # Candidate pools
    # ------------------------------------------------------------------

    def _candidate_elements(self, document: Document) -> Iterator[Tuple[Element, SourceKind]]:
        excluded = self.policy.excluded_regions
        for element in document.elements():
            if element.tag in excluded or element.has_ancestor(excluded):
                continue

            if element.tag in self.policy.heading_tags:
                yield element, SourceKind.HEADING
            elif element.matches_hint(self.policy.promo_hints):
                yield element, SourceKind.PROMO_CONTAINER
            elif element.matches_hint(self.policy.card_hints) and self._shows_discount(element):
                yield element, SourceKind.PRODUCT_CARD

    def _shows_discount(self, element: Element) -> bool:
        """Old/new price pairing or a percentage inside a product card."""
        if element.has_descendant(self.policy.old_price_tags):
            return True
        if any(node.matches_hint(self.policy.old_price_hints) for node in element.descendants()):
            return True
        text = element.text()
        if self._was_now.search(text):
            return True
        return self.scorer.find_percentage(text) is not None

    # ------------------------------------------------------------------
    # Descriptions
    # ------------------------------------------------------------------

    @staticmethod
    def _overlaps(candidate: CandidateText, accepted: List[CandidateText]) -> bool:
        text = candidate.text.lower()
        for other in accepted:
            other_text = other.text.lower()
            if text in other_text or other_text in text:
                return True
        return False

    def _describe(self, candidate: CandidateText, element: Element) -> str:
        text = candidate.text
        if len(text.split()) <= self.policy.short_description_words:
            categories = self._nearby_categories(candidate, element)
            if categories:
                text = f"{text}: {', '.join(c.capitalize() for c in categories)}"
        return cap_description(text, self.policy.max_description_length)

    def _nearby_categories(self, candidate: CandidateText, element: Element) -> Tuple[str, ...]:
        """Category keywords from the closest ancestor that mentions any."""
        limit = self.policy.max_enrichment_keywords
        own = set(candidate.categories)
        for ancestor in element.ancestors():
            text = ancestor.text()
            if len(text) > self.policy.max_candidate_length * 2:
                break
            found = [c for c in self.scorer.category_keywords(text) if c not in own]
            if found:
                return tuple(found[:limit])
        return ()


def extract_percentage(text: str, policy: ScoringPolicy = DEFAULT_POLICY) -> Optional[str]:
    """Extract a discount percentage from text using ``policy``'s patterns."""
    scorer = content_scorer if policy is DEFAULT_POLICY else ContentScorer(policy)
    return scorer.find_percentage(text)
