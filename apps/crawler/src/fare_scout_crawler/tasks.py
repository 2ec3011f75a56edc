"""Celery tasks for scheduled ingestion."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import TYPE_CHECKING

from .celery_app import app

if TYPE_CHECKING:
    from fare_scout_core.schemas import RangeScrapeResult, ScrapeResult

logger = logging.getLogger(__name__)


def _date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


@app.task(name="fare_scout_crawler.tasks.scrape")
def scrape(
    origin: str,
    destination: str,
    departure_date: str,
    return_date: str | None = None,
) -> dict:
    """Ingest one date combination; dates are ISO strings."""
    from fare_scout_db.database import async_session_factory, engine

    from .pipeline.orchestrator import FareIngestor
    from .pipeline.store import FareStore

    async def _run() -> ScrapeResult:
        try:
            ingestor = FareIngestor(FareStore(async_session_factory))
            return await ingestor.scrape(
                origin, destination, date.fromisoformat(departure_date), _date(return_date)
            )
        finally:
            await engine.dispose()

    result = asyncio.run(_run())
    logger.info("scrape %s->%s %s: %s", origin, destination, departure_date, result.message)
    return result.model_dump(mode="json")


@app.task(name="fare_scout_crawler.tasks.scrape_range")
def scrape_range(
    origin: str,
    destination: str,
    departure_start: str,
    departure_end: str | None = None,
    return_start: str | None = None,
    return_end: str | None = None,
) -> dict:
    """Ingest every combination of a date range; dates are ISO strings."""
    from fare_scout_db.database import async_session_factory, engine

    from .pipeline.orchestrator import FareIngestor
    from .pipeline.store import FareStore

    async def _run() -> RangeScrapeResult:
        try:
            ingestor = FareIngestor(FareStore(async_session_factory))
            return await ingestor.scrape_range(
                origin,
                destination,
                date.fromisoformat(departure_start),
                _date(departure_end),
                _date(return_start),
                _date(return_end),
            )
        finally:
            await engine.dispose()

    result = asyncio.run(_run())
    logger.info(
        "scrape_range %s->%s from %s: %s",
        origin,
        destination,
        departure_start,
        result.message,
    )
    return result.model_dump(mode="json")
