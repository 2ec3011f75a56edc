"""flightsfinder crawler implementation."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fare_scout_core.schemas import CrawlResult, CrawlTask, PollState

from ..base import BaseCrawler
from .client import FlightsFinderClient
from .poller import PollCoordinator

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)


class FlightsFinderCrawler(BaseCrawler):
    """Crawler that runs one portal search per task."""

    source = "flightsfinder"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        poller: PollCoordinator | None = None,
    ) -> None:
        self._base_url = base_url
        self._transport = transport
        self._poller = poller or PollCoordinator(base_url=base_url, transport=transport)

    # ------------------------------------------------------------------
    # BaseCrawler interface
    # ------------------------------------------------------------------

    async def crawl(self, task: CrawlTask) -> CrawlResult:
        """Search the portal and return the raw itineraries it found."""
        start = time.monotonic()
        try:
            outcome = await self._poller.run(task.search_request)
        except Exception as exc:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.exception("flightsfinder crawl failed: %s", exc)
            return CrawlResult(
                state=PollState.ABORTED,
                crawled_at=datetime.now(tz=UTC),
                duration_ms=elapsed_ms,
                error=str(exc),
                success=False,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return CrawlResult(
            itineraries=outcome.itineraries,
            state=outcome.state,
            crawled_at=datetime.now(tz=UTC),
            duration_ms=elapsed_ms,
            polls=outcome.polls,
            error=outcome.error,
            success=outcome.success,
        )

    async def health_check(self) -> bool:
        """Return *True* if the portal's search page is reachable."""
        async with FlightsFinderClient(
            base_url=self._base_url, transport=self._transport
        ) as client:
            return await client.health_check()

    async def close(self) -> None:
        """Nothing to release; every search opens and closes its own client."""
