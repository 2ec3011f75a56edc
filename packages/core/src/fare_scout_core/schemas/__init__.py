"""Core schemas for Fare Scout."""

from .crawler import (
    CrawlResult,
    CrawlTask,
    DateCombination,
    PollOutcome,
    RangeScrapeResult,
    ScrapeResult,
)
from .enums import CabinClass, Direction, PollState
from .itinerary import RawItinerary, RawLeg, RawPrice, RawSection
from .records import (
    DealRecord,
    FetchQueryRecord,
    FlightRecord,
    LegRecord,
    RecordBatch,
    TripRecord,
)
from .search import RangeSearchRequest, SearchRequest

__all__ = [
    "CabinClass",
    "CrawlResult",
    "CrawlTask",
    "DateCombination",
    "DealRecord",
    "Direction",
    "FetchQueryRecord",
    "FlightRecord",
    "LegRecord",
    "PollOutcome",
    "PollState",
    "RangeScrapeResult",
    "RangeSearchRequest",
    "RawItinerary",
    "RawLeg",
    "RawPrice",
    "RawSection",
    "RecordBatch",
    "ScrapeResult",
    "SearchRequest",
    "TripRecord",
]
