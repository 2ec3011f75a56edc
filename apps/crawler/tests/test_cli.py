"""Click commands, with the database commands run against a SQLite file."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

import pytest
from click.testing import CliRunner
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from fare_scout_core.schemas import CrawlResult, PollOutcome, PollState
from fare_scout_crawler import cli as cli_module
from fare_scout_crawler.base import BaseCrawler
from fare_scout_crawler.config import settings
from fare_scout_crawler.flightsfinder import crawler as crawler_module
from fare_scout_crawler.pipeline import orchestrator as orchestrator_module
from fare_scout_crawler.pipeline.store import FareStore
from fare_scout_db.models import Base


@pytest.fixture
def fake_crawler(monkeypatch, itinerary_factory):
    seen = []

    class FakeCrawler(BaseCrawler):
        source = "fake"

        def __init__(self, **kwargs):
            pass

        async def crawl(self, task):
            seen.append(task.search_request)
            req = task.search_request
            return CrawlResult(
                itineraries=[itinerary_factory(req.departure_date, req.return_date)],
                state=PollState.FINISHED,
                crawled_at=datetime(2025, 11, 1, tzinfo=UTC),
                polls=3,
            )

        async def health_check(self):
            return True

        async def close(self):
            pass

    monkeypatch.setattr(crawler_module, "FlightsFinderCrawler", FakeCrawler)
    return seen


def test_search_prints_itineraries(fake_crawler):
    result = CliRunner().invoke(
        cli_module.cli,
        ["search", "fra", "jfk", "2025-12-11", "--return-date", "2025-12-14"],
    )

    assert result.exit_code == 0, result.output
    assert "State: FINISHED | Polls: 3" in result.output
    assert "FRA → JFK | Thu, 11 Dec 2025" in result.output
    assert "return Sun, 14 Dec 2025" in result.output
    assert fake_crawler[0].origin == "FRA"


def test_search_json_output(fake_crawler):
    result = CliRunner().invoke(
        cli_module.cli, ["search", "FRA", "JFK", "2025-12-11", "--json-output"]
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["state"] == "FINISHED"
    assert payload["itineraries"][0]["outbound"]["legs"][0]["flight_number"] == "LH900"


def test_rejects_malformed_date():
    result = CliRunner().invoke(cli_module.cli, ["search", "FRA", "JFK", "11/12/2025"])
    assert result.exit_code == 2
    assert "expected YYYY-MM-DD" in result.output


def test_health(fake_crawler):
    result = CliRunner().invoke(cli_module.cli, ["health"])
    assert result.exit_code == 0
    assert "OK" in result.output


# ---------------------------------------------------------------------------
# Database-backed commands
# ---------------------------------------------------------------------------


class PortalStub:
    """Finished search: one-way trips on Expedia/Kiwi, round trips on Trip.com."""

    def __init__(self, factory, *, fail=False):
        self.factory = factory
        self.fail = fail

    async def run(self, request):
        if self.fail:
            return PollOutcome(
                state=PollState.ABORTED, success=False, error="connection refused"
            )
        if request.return_date is None:
            prices = (("Expedia", "500.00"), ("Kiwi.com", "480.00"))
        else:
            prices = (("Trip.com", "999.00"),)
        return PollOutcome(
            state=PollState.FINISHED,
            finished=True,
            itineraries=[
                self.factory(request.departure_date, request.return_date, prices=prices)
            ],
        )


@pytest.fixture
def db_cli(monkeypatch, tmp_path, itinerary_factory):
    """Point the store-backed commands at a SQLite file and a stubbed portal."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'fares.db'}"
    portal = PortalStub(itinerary_factory)

    def run_with_store(func):
        async def _run():
            engine = create_async_engine(url)
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                factory = async_sessionmaker(engine, expire_on_commit=False)
                return await func(FareStore(factory))
            finally:
                await engine.dispose()

        return asyncio.run(_run())

    monkeypatch.setattr(cli_module, "_run_with_store", run_with_store)
    monkeypatch.setattr(orchestrator_module, "PollCoordinator", lambda: portal)
    monkeypatch.setattr(settings, "combination_delay", 0.0)
    return portal


def test_scrape_saves_and_reports(db_cli):
    result = CliRunner().invoke(
        cli_module.cli,
        ["scrape", "FRA", "JFK", "2025-12-11", "--return-date", "2025-12-14"],
    )
    assert result.exit_code == 0, result.output
    assert "Scraped 1 trips for FRA->JFK 2025-12-11/2025-12-14" in result.output


def test_scrape_failure_exits_nonzero(db_cli):
    db_cli.fail = True
    result = CliRunner().invoke(cli_module.cli, ["scrape", "FRA", "JFK", "2025-12-11"])
    assert result.exit_code == 1
    assert "Search failed: connection refused" in result.output


def test_scrape_range_json_output(db_cli):
    result = CliRunner().invoke(
        cli_module.cli,
        [
            "scrape-range", "FRA", "JFK", "2025-12-10",
            "--departure-end", "2025-12-11",
            "--return-start", "2025-12-20",
            "--json-output",
        ],
    )  # fmt: skip
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["combinations_total"] == 2
    assert payload["combinations_processed"] == 2
    assert payload["trips_scraped"] == 2


def test_deals_lists_one_way_deals_cheapest_first(db_cli):
    runner = CliRunner()
    runner.invoke(cli_module.cli, ["scrape", "FRA", "JFK", "2025-12-11"])
    runner.invoke(
        cli_module.cli,
        ["scrape", "FRA", "JFK", "2025-12-11", "--return-date", "2025-12-14"],
    )

    result = runner.invoke(cli_module.cli, ["deals", "fra", "jfk", "2025-12-11"])

    assert result.exit_code == 0, result.output
    assert "Last fetched:" in result.output
    lines = [line.strip() for line in result.output.splitlines()]
    deal_lines = [line for line in lines if line[:2] in ("1.", "2.", "3.")]
    assert deal_lines == [
        "1. 480.00 EUR | Kiwi.com | dep 07:05:00 | ret -",
        "2. 500.00 EUR | Expedia | dep 07:05:00 | ret -",
    ]
    assert "Trip.com" not in result.output


def test_deals_for_round_trip_json(db_cli):
    runner = CliRunner()
    runner.invoke(
        cli_module.cli,
        ["scrape", "FRA", "JFK", "2025-12-11", "--return-date", "2025-12-14"],
    )
    result = runner.invoke(
        cli_module.cli,
        ["deals", "FRA", "JFK", "2025-12-11", "--return-date", "2025-12-14",
         "--json-output"],
    )  # fmt: skip

    assert result.exit_code == 0, result.output
    (deal,) = json.loads(result.output)
    assert deal["provider"] == "Trip.com"
    assert deal["return_date"] == "2025-12-14"
    assert deal["return_time"] == "18:30:00"


def test_deals_when_nothing_stored(db_cli):
    result = CliRunner().invoke(cli_module.cli, ["deals", "FRA", "JFK", "2025-12-11"])
    assert result.exit_code == 0
    assert "No deals stored." in result.output
    assert "Last fetched" not in result.output
