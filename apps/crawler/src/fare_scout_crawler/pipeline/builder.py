"""Convert raw itineraries into identifier-keyed Flight/Trip/Leg/Deal records."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fare_scout_core.schemas import (
    DealRecord,
    Direction,
    FlightRecord,
    LegRecord,
    RawLeg,
    RecordBatch,
    TripRecord,
)

from ..config import settings
from ..normalize import normalize_date, normalize_duration, normalize_time
from .identity import deal_id, flight_id, leg_id, trip_id

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date, time

    from fare_scout_core.schemas import RawItinerary, RawSection

logger = logging.getLogger(__name__)


@dataclass
class _PlacedFlight:
    """A normalized flight plus what the leg row needs to know about it."""

    record: FlightRecord
    connection_time: int | None


class RecordBuilder:
    """Build a :class:`RecordBatch` from the itineraries of one search.

    Itineraries that cannot be turned into at least one outbound flight are
    skipped; a bad return section only drops the return half.
    """

    def __init__(self, *, source: str | None = None, currency: str | None = None) -> None:
        self._source = source or settings.deal_source
        self._currency = currency or settings.currency

    def build(
        self,
        itineraries: Iterable[RawItinerary],
        *,
        now: datetime | None = None,
    ) -> RecordBatch:
        stamp = now or datetime.now(tz=UTC)
        batch = RecordBatch()
        for index, itinerary in enumerate(itineraries):
            try:
                self.add_itinerary(batch, itinerary, stamp)
            except Exception:
                logger.exception("Skipping itinerary #%d", index)
        logger.info(
            "Built %d flights, %d trips, %d legs, %d deals",
            len(batch.flights),
            len(batch.trips),
            len(batch.legs),
            len(batch.deals),
        )
        return batch

    def add_itinerary(
        self, batch: RecordBatch, itinerary: RawItinerary, now: datetime
    ) -> str | None:
        """Add one itinerary's records to ``batch``; returns its trip id."""
        outbound_date = normalize_date(itinerary.outbound.date_label)
        if outbound_date is None:
            logger.debug(
                "Dropping itinerary with unreadable outbound date %r",
                itinerary.outbound.date_label,
            )
            return None

        outbound = self._section_flights(itinerary.outbound, outbound_date)
        if not outbound:
            return None

        inbound: list[_PlacedFlight] = []
        inbound_date: date | None = None
        if itinerary.inbound is not None:
            inbound_date = normalize_date(itinerary.inbound.date_label)
            if inbound_date is None:
                logger.debug(
                    "Dropping return section with unreadable date %r",
                    itinerary.inbound.date_label,
                )
            else:
                inbound = self._section_flights(itinerary.inbound, inbound_date)

        flights = [f.record for f in outbound + inbound]
        trip = trip_id(f.id for f in flights)
        for flight in flights:
            batch.add_flight(flight)

        batch.add_trip(
            TripRecord(
                id=trip,
                origin=outbound[0].record.origin,
                destination=outbound[-1].record.destination,
                stop_count=(len(outbound) - 1) + (len(inbound) - 1 if inbound else 0),
                duration=sum(f.duration for f in flights),
                is_round=bool(inbound),
            )
        )

        for direction, placed in (
            (Direction.OUTBOUND, outbound),
            (Direction.INBOUND, inbound),
        ):
            for order, item in enumerate(placed):
                batch.add_leg(
                    LegRecord(
                        id=leg_id(direction, item.record.id, trip),
                        trip_id=trip,
                        flight_id=item.record.id,
                        inbound=direction is Direction.INBOUND,
                        order=order,
                        connection_time=item.connection_time,
                    )
                )

        departure_time = (
            normalize_time(itinerary.outbound.departure)
            or outbound[0].record.departure_time
        )
        return_time: time | None = None
        if inbound and itinerary.inbound is not None:
            return_time = (
                normalize_time(itinerary.inbound.departure)
                or inbound[0].record.departure_time
            )

        for quote in itinerary.prices:
            if math.isnan(quote.amount):
                continue
            batch.add_deal(
                DealRecord(
                    id=deal_id(trip, self._source, quote.provider),
                    trip_id=trip,
                    source=self._source,
                    provider=quote.provider,
                    price=quote.amount,
                    currency=self._currency,
                    link=quote.link or "",
                    origin=outbound[0].record.origin,
                    destination=outbound[-1].record.destination,
                    departure_date=outbound_date,
                    departure_time=departure_time,
                    return_date=inbound_date if inbound else None,
                    return_time=return_time,
                    updated_at=now,
                )
            )
        return trip

    def _section_flights(
        self, section: RawSection, section_date: date
    ) -> list[_PlacedFlight]:
        legs = section.legs
        if not legs and section.direction is Direction.OUTBOUND:
            summary = _summary_leg(section)
            legs = [summary] if summary is not None else []

        placed: list[_PlacedFlight] = []
        for leg in legs:
            record = _flight_record(leg, section_date)
            if record is None:
                logger.debug(
                    "Dropping %s leg %s with unreadable times (%r, %r)",
                    leg.direction.value,
                    leg.flight_number,
                    leg.departure,
                    leg.arrival,
                )
                continue
            connection = (
                normalize_duration(leg.connection_time) if leg.connection_time else None
            )
            placed.append(_PlacedFlight(record=record, connection_time=connection))
        return placed


def _summary_leg(section: RawSection) -> RawLeg | None:
    """Stand-in leg built from a section's headline when it has no detail."""
    if not (
        section.airline
        and section.departure
        and section.arrival
        and section.origin
        and section.destination
    ):
        return None
    return RawLeg(
        direction=section.direction,
        flight_number=section.airline,
        airline=section.airline,
        departure=section.departure,
        arrival=section.arrival,
        origin=section.origin,
        destination=section.destination,
        duration=section.duration or None,
    )


def _flight_record(leg: RawLeg, section_date: date) -> FlightRecord | None:
    departure = normalize_time(leg.departure)
    arrival = normalize_time(leg.arrival)
    if departure is None or arrival is None:
        return None
    number = leg.flight_number or leg.airline or ""
    return FlightRecord(
        id=flight_id(number, leg.origin, section_date, departure),
        flight_number=number,
        airline=leg.airline or "",
        origin=leg.origin,
        destination=leg.destination,
        departure_date=section_date,
        departure_time=departure,
        arrival_date=normalize_date(leg.arrival_date) or section_date,
        arrival_time=arrival,
        duration=normalize_duration(leg.duration),
    )
