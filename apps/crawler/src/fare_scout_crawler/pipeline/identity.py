"""Deterministic identifiers for stored records.

Every id is a pure function of the fields that define the record, so the
same segment, trip or quote scraped twice maps to the same row.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from fare_scout_core.schemas import Direction

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date, time


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def flight_id(
    flight_number: str, origin: str, departure_date: date, departure_time: time
) -> str:
    """``{flight_number}_{origin}_{YYYY-MM-DD}_{HH:MM:SS}``."""
    return (
        f"{flight_number}_{origin}_"
        f"{departure_date.isoformat()}_{departure_time.isoformat()}"
    )


def trip_id(flight_ids: Iterable[str]) -> str:
    """Hash of the member flight ids; order and direction do not matter."""
    return _sha256("|".join(sorted(flight_ids)))


def leg_id(direction: Direction, flight: str, trip: str) -> str:
    return f"{direction.value}_{flight}_{trip}"


def deal_id(trip: str, source: str, provider: str) -> str:
    # Price and link stay out of the key so re-scrapes update in place.
    return f"{trip}_{source}_{provider}"


def query_id(
    origin: str,
    destination: str,
    departure_date: date,
    return_date: date | None = None,
) -> str:
    """Fingerprint of a search; airport codes are case-insensitive."""
    parts = [
        origin.upper(),
        destination.upper(),
        departure_date.isoformat(),
        return_date.isoformat() if return_date else "",
    ]
    return _sha256("|".join(parts))
