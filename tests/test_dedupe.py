"""Tests for deal deduplication and ranking."""

from helsinki_deals.detect.dedupe import dedupe_deals, is_bare_keyword, normalize_description, rank_deals
from helsinki_deals.ingest.base import Deal

URL = "https://shop.example/"


def _deal(description, percentage=None, site_id="shop"):
    return Deal(site_id=site_id, description=description, url=URL, percentage=percentage)


def test_normalize_description():
    assert normalize_description("  Kesäale -50%!  ") == "kesäale 50%"


def test_first_occurrence_wins():
    """Descriptions equal after normalization collapse to the first."""
    first = _deal("Kesäale -50% kaikista takeista", "50%")
    second = _deal("kesäale 50% kaikista takeista!", "50%")

    assert dedupe_deals([first, second]) == [first]


def test_prefix_key():
    """Only the normalized prefix is compared."""
    deals = [_deal("Kesäale alkaa huomenna"), _deal("Kesäale alkaa tänään")]
    assert len(dedupe_deals(deals, prefix_length=10)) == 1
    assert len(dedupe_deals(deals, prefix_length=50)) == 2


def test_sites_are_independent():
    """Equal descriptions on different sites are both kept."""
    deals = [_deal("Outlet -30%", "30%", "a"), _deal("Outlet -30%", "30%", "b")]
    assert dedupe_deals(deals) == deals


def test_bare_keyword_rejected():
    """A description that is only "sale"/"ale" is dropped."""
    deals = [_deal("Sale"), _deal("ALE!"), _deal("Sale: Takit, Kengät")]

    assert [d.description for d in dedupe_deals(deals)] == ["Sale: Takit, Kengät"]
    assert is_bare_keyword(" ale ")
    assert not is_bare_keyword("Kesäale")


def test_dedupe_is_idempotent():
    """Deduplicating twice equals deduplicating once."""
    deals = [
        _deal("Kesäale -50%", "50%"),
        _deal("kesäale 50%", "50%"),
        _deal("Sale"),
        _deal("Outlet"),
        _deal("Outlet", site_id="other"),
        _deal("Uutuudet -20%", "20%"),
    ]
    once = dedupe_deals(deals)

    assert dedupe_deals(once) == once


def test_rank_puts_percentages_first_and_caps():
    """Percentage deals lead, ties keep discovery order, at most the limit survive."""
    deals = [
        _deal(f"Tarjous {i}", f"{10 + i}%" if i % 2 else None)
        for i in range(12)
    ]
    ranked = rank_deals(deals, limit=8)

    assert len(ranked) == 8
    assert [d.description for d in ranked] == [
        "Tarjous 1", "Tarjous 3", "Tarjous 5", "Tarjous 7", "Tarjous 9", "Tarjous 11",
        "Tarjous 0", "Tarjous 2",
    ]


def test_rank_without_limit():
    deals = [_deal("A"), _deal("B", "10%")]
    assert [d.description for d in rank_deals(deals)] == ["B", "A"]
