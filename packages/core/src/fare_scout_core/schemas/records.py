"""Canonical records written to the store, keyed by deterministic ids."""

from __future__ import annotations

from datetime import date, datetime, time  # noqa: TC003

from pydantic import BaseModel, Field


class FlightRecord(BaseModel):
    """One scheduled segment."""

    id: str
    flight_number: str
    airline: str = ""
    origin: str
    destination: str
    departure_date: date
    departure_time: time
    arrival_date: date
    arrival_time: time
    duration: int = Field(default=0, ge=0, description="Minutes")


class TripRecord(BaseModel):
    """An itinerary identified by the set of flights it is made of."""

    id: str
    origin: str
    destination: str
    stop_count: int = 0
    duration: int = Field(default=0, ge=0, description="Minutes")
    is_round: bool = False


class LegRecord(BaseModel):
    """Membership of a flight in a trip."""

    id: str
    trip_id: str
    flight_id: str
    inbound: bool = False
    order: int = 0
    connection_time: int | None = None


class DealRecord(BaseModel):
    """A provider's price for a trip."""

    id: str
    trip_id: str
    source: str
    provider: str
    price: float
    currency: str = "EUR"
    link: str = ""
    origin: str
    destination: str
    departure_date: date
    departure_time: time | None = None
    return_date: date | None = None
    return_time: time | None = None
    updated_at: datetime


class FetchQueryRecord(BaseModel):
    """Provenance row telling consumers when a search was last scraped."""

    id: str
    origin: str
    destination: str
    departure_date: date
    return_date: date | None = None
    last_fetched: datetime


class RecordBatch(BaseModel):
    """Identifier-keyed record maps built from one poll's itineraries.

    Re-adding a record with an existing id replaces it, so repeated
    itineraries within one batch collapse to a single row each.
    """

    flights: dict[str, FlightRecord] = Field(default_factory=dict)
    trips: dict[str, TripRecord] = Field(default_factory=dict)
    legs: dict[str, LegRecord] = Field(default_factory=dict)
    deals: dict[str, DealRecord] = Field(default_factory=dict)

    def add_flight(self, record: FlightRecord) -> None:
        self.flights[record.id] = record

    def add_trip(self, record: TripRecord) -> None:
        self.trips[record.id] = record

    def add_leg(self, record: LegRecord) -> None:
        self.legs[record.id] = record

    def add_deal(self, record: DealRecord) -> None:
        self.deals[record.id] = record

    @property
    def is_empty(self) -> bool:
        return not self.trips
