"""Crawler task and result schemas."""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003

from pydantic import BaseModel, Field

from .enums import PollState
from .itinerary import RawItinerary
from .search import SearchRequest


class CrawlTask(BaseModel):
    """A single crawl job dispatched to a crawler."""

    search_request: SearchRequest


class PollOutcome(BaseModel):
    """What one initiate-then-poll cycle produced."""

    state: PollState = PollState.INITIATED
    finished: bool = False
    itineraries: list[RawItinerary] = Field(default_factory=list)
    cookies: str = ""
    # False only when the transport failed; an empty result is still a success.
    success: bool = True
    polls: int = 0
    count: int = 0
    error: str | None = None


class CrawlResult(BaseModel):
    """Result from a single crawler execution."""

    itineraries: list[RawItinerary] = Field(default_factory=list)
    state: PollState = PollState.INITIATED
    crawled_at: datetime
    duration_ms: int = 0
    polls: int = 0
    error: str | None = None
    success: bool = True


class DateCombination(BaseModel):
    """One (departure, return) pair produced by range expansion."""

    departure_date: date
    return_date: date | None = None

    def label(self) -> str:
        if self.return_date is None:
            return self.departure_date.isoformat()
        return f"{self.departure_date.isoformat()} / {self.return_date.isoformat()}"


class ScrapeResult(BaseModel):
    """Outcome of ingesting a single date combination."""

    success: bool
    message: str
    trips_scraped: int = 0


class RangeScrapeResult(BaseModel):
    """Outcome of ingesting every combination of a date range."""

    success: bool
    message: str
    trips_scraped: int = 0
    combinations_processed: int = 0
    combinations_failed: int = 0
    combinations_total: int = 0
