"""Versioned scoring policies.

A policy bundles every keyword list, pattern, weight and threshold the
heuristics use. Policies are immutable; derive a variant with
``dataclasses.replace`` (e.g. to add keywords for another locale) and pass it
to ``ContentScorer`` / ``DealExtractor``.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Weights:
    """Score contributions. Only their relative ordering is meaningful."""
    percentage: int = 10
    sale_keyword: int = 5
    weak_sale_keyword: int = 2
    price_notation: int = 2
    starting_from: int = 1
    sentence_like: int = 1
    too_short: int = -5
    navigation: int = -4
    category_menu: int = -3
    false_positive: int = -100


@dataclass(frozen=True)
class Thresholds:
    """Minimum score to accept a candidate, per source location."""
    heading: int = 5
    promo_container: int = 5
    product_card: int = 7
    link_text: int = 5


@dataclass(frozen=True)
class ScoringPolicy:
    version: str

    # Finnish + English sale vocabulary, matched as whole words
    sale_keywords: Tuple[str, ...]
    # Everyday words that only hint at a promotion; never enough on their own
    weak_sale_keywords: Tuple[str, ...]
    # Finnish compounds ("kesäale", "talvi-ale") are a known stem followed by
    # a sale suffix
    compound_stems: Tuple[str, ...]
    compound_sale_keywords: Tuple[str, ...]
    # Descriptions that carry no information on their own
    bare_keywords: Tuple[str, ...]
    false_positive_phrases: Tuple[str, ...]
    navigation_phrases: Tuple[str, ...]
    starting_from_phrases: Tuple[str, ...]
    price_words: Tuple[str, ...]
    category_keywords: Tuple[str, ...]

    # Tried in order, first in-range match wins. Group 1 is the number.
    percentage_patterns: Tuple[str, ...]
    # Percentages without discount wording; tried last and only when the
    # text also carries sale vocabulary ("80% puuvillaa" is not a discount)
    bare_percentage_patterns: Tuple[str, ...]
    min_percentage: int
    max_percentage: int

    # Link discovery
    sale_path_tokens: Tuple[str, ...]
    max_link_text_length: int

    # Element hints (substrings of class-like attributes)
    promo_hints: Tuple[str, ...]
    card_hints: Tuple[str, ...]
    old_price_hints: Tuple[str, ...]
    old_price_tags: Tuple[str, ...]
    was_now_phrases: Tuple[str, ...]
    heading_tags: Tuple[str, ...]
    excluded_regions: Tuple[str, ...]

    # Text shape
    min_text_length: int
    sentence_min_length: int
    max_candidate_length: int
    max_description_length: int
    short_description_words: int
    max_enrichment_keywords: int

    weights: Weights = Weights()
    thresholds: Thresholds = Thresholds()


POLICY_V2 = ScoringPolicy(
    version="v2",
    sale_keywords=(
        "sale", "ale", "alennus", "alennukset", "alennusmyynti",
        "tarjous", "tarjoukset", "outlet", "loppuunmyynti",
        "kampanja", "clearance", "discount", "mid-season", "end of season",
        "final sale", "black friday", "cyber monday", "hullut päivät", "säästä",
        "discounts", "alennuksia", "tarjouksia", "tarjouksessa", "kampanjat",
    ),
    weak_sale_keywords=("save", "offer", "offers", "deal", "deals"),
    compound_stems=(
        "kesä", "kevät", "talvi", "syys", "joulu", "tammi", "loppu",
        "kausi", "viikko", "päivä", "mega", "super", "jätti", "hullu",
        "erikois", "netti", "verkko", "kenkä", "muoti",
    ),
    compound_sale_keywords=("ale", "alennus", "alennukset", "tarjous", "tarjoukset", "kampanja", "outlet"),
    bare_keywords=("sale", "ale"),
    false_positive_phrases=(
        # legal / policies
        "privacy", "tietosuoja", "terms", "ehdot", "cookie", "eväste",
        "accessibility", "saavutettavuus", "copyright", "all rights reserved",
        # service pages
        "returns", "palautus", "palautukset", "refund",
        "toimitustiedot", "customer service", "asiakaspalvelu",
        "contact us", "ota yhteyttä", "yhteystiedot", "faq", "usein kysytyt",
        "store locator", "myymälät",
        # accounts / marketing
        "newsletter", "uutiskirje", "subscribe", "log in", "login",
        "sign in", "sign up", "kirjaudu", "rekisteröidy", "my account",
        "oma tili", "gift card", "lahjakortti",
        # corporate
        "careers", "työpaikat", "rekrytointi", "jobs", "investors",
        "sijoittajat", "lehdistö", "about us", "meistä",
        "sustainability", "vastuullisuus",
    ),
    navigation_phrases=(
        "back", "takaisin", "shop all", "shop now", "all categories",
        "kaikki kategoriat", "kaikki tuotteet", "view all", "see all",
        "näytä kaikki", "katso kaikki", "menu", "valikko", "close", "sulje",
    ),
    starting_from_phrases=("alk.", "alkaen", "starting at", "starting from", "from €"),
    price_words=("hinta", "price", "now", "nyt", "ennen", "was", "norm.", "ovh"),
    category_keywords=(
        "takit", "jackets", "kengät", "shoes", "mekot", "dresses",
        "housut", "trousers", "farkut", "jeans", "paidat", "shirts",
        "neuleet", "knitwear", "hameet", "skirts", "laukut", "bags",
        "asusteet", "accessories", "korut", "jewellery", "urheilu",
        "sportswear", "alusvaatteet", "underwear", "lasten", "kids",
        "naiset", "naisten", "women", "miehet", "miesten", "men", "lapset", "sisustus", "home",
    ),
    percentage_patterns=(
        r"(?<![\d.,])(\d{1,3})\s*%\s*(?:off|alennus|alennusta|ale)\b",
        r"(?:up to|upto|jopa|yli|enintään)\s*-?\s*(\d{1,3})\s*%",
        r"(?:save|säästä)\s*-?\s*(\d{1,3})\s*%",
        r"(?<![\w.,])-\s*(\d{1,3})\s*%",
    ),
    bare_percentage_patterns=(
        r"(?<![\d.,])(\d{1,3})\s*%",
    ),
    min_percentage=5,
    max_percentage=90,
    sale_path_tokens=(
        "sale", "ale", "outlet", "tarjous", "tarjoukset", "kampanja",
        "kampanjat", "clearance", "alennus", "alennukset", "offers", "deals",
    ),
    max_link_text_length=50,
    promo_hints=("promo", "banner", "campaign", "kampanja", "offer", "sale", "discount", "tarjous"),
    card_hints=("product", "card", "tile", "item"),
    old_price_hints=(
        "old-price", "oldprice", "price--old", "was-price", "compare",
        "original-price", "strike", "before", "price-before", "regular-price",
    ),
    old_price_tags=("s", "del", "strike"),
    was_now_phrases=("was", "now", "ennen", "nyt", "norm", "ovh"),
    heading_tags=("h1", "h2", "h3", "h4"),
    excluded_regions=("nav", "footer"),
    min_text_length=4,
    sentence_min_length=25,
    max_candidate_length=400,
    max_description_length=200,
    short_description_words=2,
    max_enrichment_keywords=3,
)

_POLICIES: Dict[str, ScoringPolicy] = {
    POLICY_V2.version: POLICY_V2,
}

DEFAULT_POLICY = POLICY_V2


def register_policy(policy: ScoringPolicy) -> None:
    _POLICIES[policy.version] = policy


def get_policy(version: str) -> ScoringPolicy:
    """
    Look up a registered policy by version.

    Raises:
        KeyError: If no policy is registered under that version
    """
    try:
        return _POLICIES[version]
    except KeyError:
        raise KeyError(
            f"Unknown scoring policy '{version}' (known: {', '.join(sorted(_POLICIES))})"
        ) from None
