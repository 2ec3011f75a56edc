"""Top-level ingestion: search, build records and persist them.

``scrape`` handles one (departure, return) pair; ``scrape_range`` expands
date ranges into pairs and runs them one after another, persisting after
each so an interrupted range keeps what it already saved.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import ValidationError

from fare_scout_core.schemas import (
    DateCombination,
    FetchQueryRecord,
    RangeScrapeResult,
    RangeSearchRequest,
    ScrapeResult,
    SearchRequest,
)

from ..config import settings
from ..flightsfinder.poller import PollCoordinator
from .builder import RecordBuilder
from .identity import query_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fare_scout_core.schemas import RecordBatch

    from .store import FareStore

logger = logging.getLogger(__name__)


def _date_span(start: date, end: date | None) -> list[date]:
    last = end or start
    return [start + timedelta(days=n) for n in range((last - start).days + 1)]


def date_combinations(
    departure_start: date,
    departure_end: date | None = None,
    return_start: date | None = None,
    return_end: date | None = None,
) -> list[DateCombination]:
    """Expand inclusive date ranges into (departure, return) pairs.

    Pairs come out departure-major.  Without ``return_start`` every pair is
    one-way; pairs whose return falls before the departure are left out.
    """
    departures = _date_span(departure_start, departure_end)
    if return_start is None:
        return [DateCombination(departure_date=d) for d in departures]

    returns = _date_span(return_start, return_end)
    return [
        DateCombination(departure_date=dep, return_date=ret)
        for dep in departures
        for ret in returns
        if ret >= dep
    ]


class FareIngestor:
    """Run searches and write their results through a :class:`FareStore`."""

    def __init__(
        self,
        store: FareStore,
        *,
        poller: PollCoordinator | None = None,
        builder: RecordBuilder | None = None,
        currency: str | None = None,
        combination_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._poller = poller or PollCoordinator()
        self._currency = currency or settings.currency
        self._builder = builder or RecordBuilder(currency=self._currency)
        self._combination_delay = (
            settings.combination_delay
            if combination_delay is None
            else combination_delay
        )
        self._sleep = sleep

    async def scrape(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        return_date: date | None = None,
    ) -> ScrapeResult:
        """Ingest a single date combination."""
        try:
            request = SearchRequest(
                origin=origin,
                destination=destination,
                departure_date=departure_date,
                return_date=return_date,
                cabin_class=settings.cabin_class,
                currency=self._currency,
            )
        except ValidationError as exc:
            return ScrapeResult(success=False, message=f"Invalid search: {exc}")
        return await self._ingest(request)

    async def scrape_range(
        self,
        origin: str,
        destination: str,
        departure_start: date,
        departure_end: date | None = None,
        return_start: date | None = None,
        return_end: date | None = None,
    ) -> RangeScrapeResult:
        """Ingest every combination of the given date ranges, in order.

        A failed combination is logged and counted; the rest still run.
        """
        try:
            ranges = RangeSearchRequest(
                origin=origin,
                destination=destination,
                departure_start=departure_start,
                departure_end=departure_end,
                return_start=return_start,
                return_end=return_end,
                cabin_class=settings.cabin_class,
                currency=self._currency,
            )
        except ValidationError as exc:
            return RangeScrapeResult(success=False, message=f"Invalid search: {exc}")

        combinations = date_combinations(
            ranges.departure_start,
            ranges.departure_end,
            ranges.return_start,
            ranges.return_end,
        )
        logger.info(
            "Scraping %d date combinations for %s->%s",
            len(combinations),
            ranges.origin,
            ranges.destination,
        )

        trips = processed = failed = 0
        for index, combo in enumerate(combinations):
            if index:
                await self._sleep(self._combination_delay)

            request = SearchRequest(
                origin=ranges.origin,
                destination=ranges.destination,
                departure_date=combo.departure_date,
                return_date=combo.return_date,
                cabin_class=ranges.cabin_class,
                currency=ranges.currency,
            )
            try:
                result = await self._ingest(request)
            except Exception as exc:
                logger.exception("Combination %s failed", combo.label())
                result = ScrapeResult(success=False, message=str(exc))
            if result.success:
                processed += 1
                trips += result.trips_scraped
            else:
                failed += 1
                logger.warning(
                    "Combination %d/%d (%s) failed: %s",
                    index + 1,
                    len(combinations),
                    combo.label(),
                    result.message,
                )

        logger.info(
            "Range scraping completed: %d/%d combinations successful, %d trips",
            processed,
            len(combinations),
            trips,
        )
        return RangeScrapeResult(
            success=True,
            message=(
                f"Scraped {trips} trips across {processed} date combinations"
                + (f" ({failed} failed)" if failed else "")
            ),
            trips_scraped=trips,
            combinations_processed=processed,
            combinations_failed=failed,
            combinations_total=len(combinations),
        )

    async def _ingest(self, request: SearchRequest) -> ScrapeResult:
        route = f"{request.origin}->{request.destination} {request.departure_date}"
        if request.return_date:
            route += f"/{request.return_date}"

        try:
            outcome = await self._poller.run(request)
        except Exception as exc:
            logger.exception("Search %s failed", route)
            return ScrapeResult(success=False, message=f"Search failed: {exc}")

        if not outcome.success:
            return ScrapeResult(
                success=False,
                message=f"Search failed: {outcome.error or 'unknown error'}",
            )
        if not outcome.finished:
            # No fetch_queries stamp: an unfinished job says nothing fresh.
            logger.warning("Search %s did not finish; nothing saved", route)
            return ScrapeResult(success=True, message="Search did not finish in time")

        now = datetime.now(tz=UTC)
        batch = self._builder.build(outcome.itineraries, now=now)
        if batch.is_empty:
            logger.info("No trips found for %s", route)
        try:
            await self._persist(batch, request, now)
        except Exception as exc:
            logger.exception("Saving results for %s failed", route)
            return ScrapeResult(success=False, message=f"Database error: {exc}")

        count = len(batch.trips)
        return ScrapeResult(
            success=True,
            message=f"Scraped {count} trips for {route}",
            trips_scraped=count,
        )

    async def _persist(
        self, batch: RecordBatch, request: SearchRequest, now: datetime
    ) -> None:
        fetch = FetchQueryRecord(
            id=query_id(
                request.origin,
                request.destination,
                request.departure_date,
                request.return_date,
            ),
            origin=request.origin,
            destination=request.destination,
            departure_date=request.departure_date,
            return_date=request.return_date,
            last_fetched=now,
        )
        # One transaction per combination; parents before children so
        # foreign keys resolve.
        async with self._store.transaction() as session:
            for table, records in (
                ("flights", batch.flights),
                ("trips", batch.trips),
                ("legs", batch.legs),
                ("deals", batch.deals),
            ):
                await self._store.upsert(
                    table,
                    [r.model_dump() for r in records.values()],
                    session=session,
                )
            await self._store.upsert(
                "fetch_queries", [fetch.model_dump()], session=session
            )
