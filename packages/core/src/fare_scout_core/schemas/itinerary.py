"""Raw itinerary records as extracted from the portal's result markup.

These mirror what the page shows, as text.  Nothing here is normalized yet:
times are still "2:30 PM" style strings and durations are "5h 30m" labels.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, computed_field

from .enums import Direction


class RawLeg(BaseModel):
    """One flight segment inside a section's detail panel."""

    direction: Direction
    flight_number: str | None = None
    airline: str | None = None
    departure: str
    arrival: str
    origin: str = Field(description="IATA airport code")
    destination: str = Field(description="IATA airport code")
    origin_label: str = ""
    destination_label: str = ""
    duration: str | None = None
    # Wait before the next leg in the same direction, e.g. "1h 15m".
    connection_time: str | None = None
    # Only set when the leg lands on a later day than the section date.
    arrival_date: str | None = None


class RawSection(BaseModel):
    """Outbound or return half of an itinerary."""

    direction: Direction
    date_label: str | None = None
    departure: str = ""
    arrival: str = ""
    origin: str = ""
    destination: str = ""
    duration: str = ""
    airline: str | None = None
    stop_count: int = 0
    legs: list[RawLeg] = Field(default_factory=list)


class RawPrice(BaseModel):
    """A provider quote from the shared price list."""

    provider: str
    price: str
    link: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def amount(self) -> float:
        """Numeric price with thousands separators removed; NaN if unreadable."""
        try:
            return float(self.price.replace(",", ""))
        except ValueError:
            return math.nan


class RawItinerary(BaseModel):
    """One search modal: outbound, optional return and the quotes for both."""

    outbound: RawSection
    inbound: RawSection | None = None
    prices: list[RawPrice] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def price(self) -> str | None:
        """Headline (lowest) price string."""
        if not self.prices:
            return None
        priced = [p for p in self.prices if not math.isnan(p.amount)]
        if not priced:
            return None
        return min(priced, key=lambda p: p.amount).price
