"""Deterministic record identifiers."""

from __future__ import annotations

import hashlib
import itertools
from datetime import date, time

import pytest

from fare_scout_core.schemas import Direction
from fare_scout_crawler.pipeline.identity import (
    deal_id,
    flight_id,
    leg_id,
    query_id,
    trip_id,
)

_FLIGHT = ("LH900", "FRA", date(2025, 12, 11), time(7, 5))


def test_flight_id_format():
    assert flight_id(*_FLIGHT) == "LH900_FRA_2025-12-11_07:05:00"


def test_flight_id_is_deterministic():
    assert flight_id(*_FLIGHT) == flight_id(*_FLIGHT)


@pytest.mark.parametrize(
    "changed",
    [
        ("LH901", "FRA", date(2025, 12, 11), time(7, 5)),
        ("LH900", "MUC", date(2025, 12, 11), time(7, 5)),
        ("LH900", "FRA", date(2025, 12, 12), time(7, 5)),
        ("LH900", "FRA", date(2025, 12, 11), time(7, 6)),
    ],
)
def test_flight_id_changes_with_every_field(changed):
    assert flight_id(*changed) != flight_id(*_FLIGHT)


def test_trip_id_ignores_order():
    ids = [
        "LH900_FRA_2025-12-11_07:05:00",
        "BA117_LHR_2025-12-11_09:30:00",
        "LH401_JFK_2025-12-14_18:30:00",
    ]
    expected = hashlib.sha256("|".join(sorted(ids)).encode()).hexdigest()
    for permutation in itertools.permutations(ids):
        assert trip_id(permutation) == expected
    assert len(expected) == 64


def test_trip_id_depends_on_membership():
    assert trip_id(["a", "b"]) != trip_id(["a", "b", "c"])
    assert trip_id(["a", "b"]) != trip_id(["a", "c"])


def test_leg_and_deal_ids():
    trip = trip_id(["x"])
    assert leg_id(Direction.OUTBOUND, "F1", trip) == f"outbound_F1_{trip}"
    assert leg_id(Direction.INBOUND, "F1", trip) == f"inbound_F1_{trip}"
    assert deal_id(trip, "skyscanner", "Expedia") == f"{trip}_skyscanner_Expedia"


def test_query_id():
    dep, ret = date(2025, 12, 11), date(2025, 12, 14)
    expected = hashlib.sha256(b"FRA|JFK|2025-12-11|2025-12-14").hexdigest()

    assert query_id("FRA", "JFK", dep, ret) == expected
    assert query_id("fra", "Jfk", dep, ret) == expected
    assert query_id("FRA", "JFK", dep) == hashlib.sha256(
        b"FRA|JFK|2025-12-11|"
    ).hexdigest()
    assert query_id("FRA", "JFK", dep) != query_id("JFK", "FRA", dep)
