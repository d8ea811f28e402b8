"""Discount signal scoring for candidate text blocks.

Text found on a storefront is scored by how strongly it advertises a
discount. A detected percentage dominates, sale vocabulary and price
notation add to it, and navigation labels, category menus and legal or
service text are penalised. False-positive phrases veto a candidate
outright.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from helsinki_deals.detect.policy import DEFAULT_POLICY, ScoringPolicy
from helsinki_deals.ingest.document import collapse_whitespace

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Where on the page a candidate was found."""
    HEADING = "heading"
    PROMO_CONTAINER = "promo-container"
    PRODUCT_CARD = "product-card"
    LINK_TEXT = "link-text"


@dataclass
class CandidateText:
    """A cleaned text fragment with its derived features."""

    text: str
    source: SourceKind
    percentage: Optional[str] = None
    categories: Tuple[str, ...] = ()
    score: int = 0


_PRICE_NOTATION = re.compile(
    r"(?:[€$£]\s*\d)|(?:\d(?:[.,]\d{1,2})?\s*(?:€|eur\b|euro))",
    re.IGNORECASE,
)
_WORD = re.compile(r"[^\W\d_][\w-]*")


def word_pattern(words) -> re.Pattern:
    """Case-insensitive whole-word alternation, longest first."""
    ordered = sorted(set(words), key=len, reverse=True)
    alternation = "|".join(re.escape(w) for w in ordered)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


class ContentScorer:
    """Scores text by discount signal strength under a ``ScoringPolicy``."""

    def __init__(self, policy: ScoringPolicy = DEFAULT_POLICY):
        self.policy = policy

        self._sale_keywords = word_pattern(policy.sale_keywords)
        self._weak_sale_keywords = word_pattern(policy.weak_sale_keywords)
        stems = "|".join(re.escape(w) for w in policy.compound_stems)
        suffixes = "|".join(re.escape(w) for w in policy.compound_sale_keywords)
        self._compound_keywords = re.compile(
            rf"(?<!\w)\w*(?:{stems})-?(?:{suffixes})(?!\w)", re.IGNORECASE
        )
        self._price_words = word_pattern(policy.price_words)
        self._category_words = frozenset(policy.category_keywords)
        self._sale_words = frozenset(policy.sale_keywords + policy.weak_sale_keywords)
        self._percentage_patterns = [
            re.compile(pattern, re.IGNORECASE) for pattern in policy.percentage_patterns
        ]
        self._bare_percentage_patterns = [
            re.compile(pattern, re.IGNORECASE) for pattern in policy.bare_percentage_patterns
        ]

    # ------------------------------------------------------------------
    # Individual signals
    # ------------------------------------------------------------------

    def is_false_positive(self, text: str) -> bool:
        """True if text contains any phrase from the false-positive denylist."""
        lowered = (text or "").lower()
        return any(phrase in lowered for phrase in self.policy.false_positive_phrases)

    def has_sale_keyword(self, text: str) -> bool:
        if not text:
            return False
        return bool(self._sale_keywords.search(text) or self._compound_keywords.search(text))

    def has_weak_sale_keyword(self, text: str) -> bool:
        return bool(text and self._weak_sale_keywords.search(text))

    def find_percentage(self, text: str) -> Optional[str]:
        """
        Extract a discount percentage.

        Patterns are tried in policy order and the first match inside the
        plausible range wins. A bare "NN%" only counts when the text also
        carries sale vocabulary.

        Args:
            text: Text to scan

        Returns:
            Canonical percentage such as ``"50%"`` or None
        """
        if not text:
            return None
        patterns = self._percentage_patterns
        if self.has_sale_keyword(text) or self.has_weak_sale_keyword(text):
            patterns = patterns + self._bare_percentage_patterns
        for pattern in patterns:
            for match in pattern.finditer(text):
                value = int(match.group(1))
                if self.policy.min_percentage <= value <= self.policy.max_percentage:
                    return f"{value}%"
        return None

    def category_keywords(self, text: str) -> Tuple[str, ...]:
        """Clothing category keywords found in text, in order of appearance."""
        found: List[str] = []
        for word in _WORD.findall((text or "").lower()):
            if word in self._category_words and word not in found:
                found.append(word)
        return tuple(found)

    def _has_price_notation(self, text: str) -> bool:
        return bool(_PRICE_NOTATION.search(text) or self._price_words.search(text))

    def _has_starting_from(self, lowered: str) -> bool:
        return any(phrase in lowered for phrase in self.policy.starting_from_phrases)

    def _is_sentence_like(self, text: str) -> bool:
        if len(text) < self.policy.sentence_min_length:
            return False
        words = _WORD.findall(text)
        upper = sum(1 for w in words if w[0].isupper())
        lower = sum(1 for w in words if w[0].islower())
        return upper >= 1 and lower >= 2

    def _is_navigation(self, lowered: str) -> bool:
        label = lowered.strip(" .,:;!?»›>←→")
        for phrase in self.policy.navigation_phrases:
            if label == phrase:
                return True
            if label.startswith(phrase + " ") and len(label) <= 30:
                return True
        return False

    def _is_category_menu(self, text: str) -> bool:
        words = _WORD.findall(text)
        if len(words) < 3:
            return False
        capitalized = sum(1 for w in words if w[0].isupper())
        if capitalized / len(words) < 0.75:
            return False
        lowered = [w.lower() for w in words]
        categories = sum(1 for w in lowered if w in self._category_words)
        sale_words = sum(1 for w in lowered if w in self._sale_words)
        return categories >= 2 and (categories + sale_words) / len(words) >= 0.5

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score(self, text: str) -> int:
        """Net discount signal strength of text."""
        cleaned = collapse_whitespace(text)
        lowered = cleaned.lower()
        weights = self.policy.weights

        score = 0
        percentage = self.find_percentage(cleaned)
        if percentage:
            score += weights.percentage
        if self.has_sale_keyword(cleaned):
            score += weights.sale_keyword
        elif self.has_weak_sale_keyword(cleaned):
            score += weights.weak_sale_keyword
        if self._has_price_notation(cleaned):
            score += weights.price_notation
        if self._has_starting_from(lowered):
            score += weights.starting_from
        if self._is_sentence_like(cleaned):
            score += weights.sentence_like

        if len(cleaned) < self.policy.min_text_length:
            score += weights.too_short
        if self._is_navigation(lowered):
            score += weights.navigation
        if percentage is None and self._is_category_menu(cleaned):
            score += weights.category_menu
        if self.is_false_positive(lowered):
            score += weights.false_positive

        return score

    def threshold(self, source: SourceKind) -> int:
        thresholds = self.policy.thresholds
        return {
            SourceKind.HEADING: thresholds.heading,
            SourceKind.PROMO_CONTAINER: thresholds.promo_container,
            SourceKind.PRODUCT_CARD: thresholds.product_card,
            SourceKind.LINK_TEXT: thresholds.link_text,
        }[source]

    def evaluate(self, text: str, source: SourceKind) -> CandidateText:
        """Build a scored candidate from raw element text."""
        cleaned = collapse_whitespace(text)
        return CandidateText(
            text=cleaned,
            source=source,
            percentage=self.find_percentage(cleaned),
            categories=self.category_keywords(cleaned),
            score=self.score(cleaned),
        )

    def accepts(self, candidate: CandidateText) -> bool:
        return candidate.score >= self.threshold(candidate.source)


# Global instance
content_scorer = ContentScorer()
