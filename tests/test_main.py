"""Tests for the command-line entry point."""

import json
from datetime import datetime, timezone

import pytest

from helsinki_deals import main as cli
from helsinki_deals.ingest.base import CrawlResult, Deal, SiteOutcome

from conftest import make_site

FOUND_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _result():
    stockmann, zara = make_site("stockmann"), make_site("zara")
    deal = Deal(site_id="stockmann", description="Hullut Päivät -40%", url="https://www.stockmann.com",
                percentage="40%", found_at=FOUND_AT)
    return CrawlResult(
        last_crawled=FOUND_AT,
        deals=[deal],
        outcomes=[
            SiteOutcome.from_deals(stockmann, [deal], strategy="static"),
            SiteOutcome.failed(zara, "HTTP 403"),
        ],
    )


@pytest.fixture
def fake_crawl(monkeypatch):
    calls = []

    async def fake_run_crawl(catalog_path=None, rendering=None):
        calls.append({"catalog_path": catalog_path, "rendering": rendering})
        return _result()

    monkeypatch.setattr(cli, "run_crawl", fake_run_crawl)
    return calls


def test_writes_output_file(tmp_path, fake_crawl):
    output = tmp_path / "out" / "deals.json"

    assert cli.main(["--output", str(output), "--no-render", "--catalog", "stores.json"]) == 0

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["lastCrawled"] == "2024-06-01T12:00:00.000Z"
    assert data["deals"][0]["storeId"] == "stockmann"
    assert data["deals"][0]["percentage"] == "40%"
    assert fake_crawl == [{"catalog_path": "stores.json", "rendering": False}]


def test_writes_stdout(capsys, fake_crawl):
    assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert json.loads(out)["deals"][0]["description"] == "Hullut Päivät -40%"
    assert fake_crawl[0]["rendering"] is None


def test_missing_catalog_exit_code(tmp_path):
    assert cli.main(["--catalog", str(tmp_path / "missing.json"), "--no-render"]) == 1


def test_summary_lines():
    lines = cli.summarize(_result())

    assert lines == [
        "stockmann: 1 deal(s) via static",
        "zara: failed (HTTP 403)",
        "Total: 1 deal(s) from 2 site(s)",
    ]
