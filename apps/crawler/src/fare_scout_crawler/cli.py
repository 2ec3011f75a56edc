"""Command-line entry point for running and inspecting ingestion."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import TYPE_CHECKING, TypeVar

import click

from fare_scout_core.schemas import CrawlTask, SearchRequest

from .config import settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fare_scout_core.schemas import CrawlResult, RawItinerary

    from .pipeline.store import FareStore

T = TypeVar("T")

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def _parse_date(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from None


def _run_with_store(func: Callable[[FareStore], Awaitable[T]]) -> T:
    """Run ``func`` against a store bound to ``DATABASE_URL``."""
    from fare_scout_db.database import async_session_factory, engine

    from .pipeline.store import FareStore

    async def _run() -> T:
        try:
            return await func(FareStore(async_session_factory))
        finally:
            await engine.dispose()

    return asyncio.run(_run())


def _print_itineraries(itineraries: list[RawItinerary]) -> None:
    if not itineraries:
        click.echo("No itineraries found.")
        return
    click.echo(f"\nFound {len(itineraries)} itinerary(ies):\n")
    for i, it in enumerate(itineraries, 1):
        out = it.outbound
        line = (
            f"  {i}. {out.origin} → {out.destination} | {out.date_label} | "
            f"{out.departure} - {out.arrival} | {len(out.legs)} leg(s)"
        )
        if it.inbound is not None:
            line += f" | return {it.inbound.date_label} {it.inbound.departure}"
        providers = ", ".join(f"{p.provider} {p.price}" for p in it.prices[:3])
        click.echo(f"{line} | from {it.price} [{providers}]")


@click.group()
def cli() -> None:
    """Fare Scout ingestion CLI."""


@cli.command("search")
@click.argument("origin")
@click.argument("destination")
@click.argument("departure_date", callback=_parse_date)
@click.option("--return-date", callback=_parse_date, help="Return date (YYYY-MM-DD)")
@click.option("--json-output", is_flag=True, help="Output as JSON")
def search(
    origin: str,
    destination: str,
    departure_date: date,
    return_date: date | None,
    json_output: bool,
) -> None:
    """Run one portal search and print the itineraries, without saving."""
    from .flightsfinder.crawler import FlightsFinderCrawler

    task = CrawlTask(
        search_request=SearchRequest(
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            return_date=return_date,
            cabin_class=settings.cabin_class,
            currency=settings.currency,
        )
    )

    async def _run() -> CrawlResult:
        async with FlightsFinderCrawler() as crawler:
            return await crawler.crawl(task)

    result = asyncio.run(_run())
    if json_output:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        click.echo(
            f"State: {result.state.value} | Polls: {result.polls} | "
            f"Duration: {result.duration_ms}ms"
        )
        if result.error:
            click.echo(f"Error: {result.error}", err=True)
        _print_itineraries(result.itineraries)


@cli.command("scrape")
@click.argument("origin")
@click.argument("destination")
@click.argument("departure_date", callback=_parse_date)
@click.option("--return-date", callback=_parse_date, help="Return date (YYYY-MM-DD)")
@click.option("--json-output", is_flag=True, help="Output as JSON")
def scrape(
    origin: str,
    destination: str,
    departure_date: date,
    return_date: date | None,
    json_output: bool,
) -> None:
    """Search one date combination and save the results."""
    from .pipeline.orchestrator import FareIngestor

    result = _run_with_store(
        lambda store: FareIngestor(store).scrape(
            origin, destination, departure_date, return_date
        )
    )
    if json_output:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        click.echo(result.message, err=not result.success)
    if not result.success:
        raise SystemExit(1)


@cli.command("scrape-range")
@click.argument("origin")
@click.argument("destination")
@click.argument("departure_start", callback=_parse_date)
@click.option("--departure-end", callback=_parse_date, help="Last departure date")
@click.option("--return-start", callback=_parse_date, help="First return date")
@click.option("--return-end", callback=_parse_date, help="Last return date")
@click.option("--json-output", is_flag=True, help="Output as JSON")
def scrape_range(
    origin: str,
    destination: str,
    departure_start: date,
    departure_end: date | None,
    return_start: date | None,
    return_end: date | None,
    json_output: bool,
) -> None:
    """Search every date combination of a range and save the results."""
    from .pipeline.orchestrator import FareIngestor

    result = _run_with_store(
        lambda store: FareIngestor(store).scrape_range(
            origin,
            destination,
            departure_start,
            departure_end,
            return_start,
            return_end,
        )
    )
    if json_output:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        click.echo(
            f"{result.message} | "
            f"{result.combinations_processed}/{result.combinations_total} ok"
        )
    if not result.success:
        raise SystemExit(1)


@cli.command("deals")
@click.argument("origin")
@click.argument("destination")
@click.argument("departure_date", callback=_parse_date)
@click.option("--return-date", callback=_parse_date, help="Return date (YYYY-MM-DD)")
@click.option("--limit", default=20, show_default=True, help="Rows to show")
@click.option("--json-output", is_flag=True, help="Output as JSON")
def deals(
    origin: str,
    destination: str,
    departure_date: date,
    return_date: date | None,
    limit: int,
    json_output: bool,
) -> None:
    """Show stored deals for a search, cheapest first."""
    from .pipeline.identity import query_id

    async def _load(store: FareStore) -> tuple[list[dict], list[dict]]:
        rows = await store.query(
            "deals",
            order_by="price",
            origin=origin.upper(),
            destination=destination.upper(),
            departure_date=departure_date,
            return_date=return_date,
        )
        fetched = await store.query(
            "fetch_queries",
            id=query_id(origin, destination, departure_date, return_date),
        )
        return rows, fetched

    rows, fetched = _run_with_store(_load)
    rows = rows[:limit]
    if json_output:
        click.echo(json.dumps(rows, indent=2, default=str))
        return

    if fetched:
        click.echo(f"Last fetched: {fetched[0]['last_fetched']}")
    if not rows:
        click.echo("No deals stored.")
        return
    for i, row in enumerate(rows, 1):
        click.echo(
            f"  {i}. {row['price']:.2f} {row['currency']} | {row['provider']} | "
            f"dep {row['departure_time']} | ret {row['return_time'] or '-'}"
        )


@cli.command("health")
def health_check() -> None:
    """Check that the search portal is reachable."""
    from .flightsfinder.crawler import FlightsFinderCrawler

    async def _run() -> bool:
        async with FlightsFinderCrawler() as crawler:
            return await crawler.health_check()

    ok = asyncio.run(_run())
    click.echo(f"  flightsfinder ({settings.base_url}): {'OK' if ok else 'FAIL'}")
