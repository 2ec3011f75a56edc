"""Shared fixtures and helpers for crawler tests."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fare_scout_core.schemas import (
    Direction,
    RawItinerary,
    RawLeg,
    RawPrice,
    RawSection,
    SearchRequest,
)
from fare_scout_crawler.pipeline.store import FareStore
from fare_scout_db.models import Base

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def search_page_html() -> str:
    return (FIXTURES / "search_page.html").read_text(encoding="utf-8")


@pytest.fixture
def results_html() -> str:
    return (FIXTURES / "results.html").read_text(encoding="utf-8")


@pytest.fixture
def search_request() -> SearchRequest:
    return SearchRequest(
        origin="fra",
        destination="jfk",
        departure_date=date(2025, 12, 11),
        return_date=date(2025, 12, 14),
    )


def finished_poll(html: str, count: int = 2) -> str:
    """A terminal poll reply carrying ``html`` percent-encoded in field 6."""
    return f"Y|{count}|0|0|0|0|{quote(html, safe='')}"


@pytest.fixture
def finished_reply() -> Callable[..., str]:
    return finished_poll


@pytest.fixture
def portal(search_page_html: str):
    """Factory for an ``httpx.MockTransport`` that plays the portal.

    ``polls`` is the scripted sequence of poll replies: a string body, an
    ``httpx.Response`` or an exception to raise.  Every request is recorded
    on ``transport.requests``.
    """

    def _make(
        polls: list[str | httpx.Response | Exception],
        *,
        page: str | None = None,
        page_cookies: tuple[str, ...] = ("sid=abc123; Path=/; HttpOnly", "lang=en"),
    ) -> httpx.MockTransport:
        replies = list(polls)
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET" and request.url.path == "/portal/sky":
                return httpx.Response(
                    200,
                    headers=[("set-cookie", c) for c in page_cookies],
                    text=search_page_html if page is None else page,
                )
            if request.method == "POST" and request.url.path == "/portal/sky/poll":
                if not replies:
                    return httpx.Response(200, text="N|0")
                reply = replies.pop(0)
                if isinstance(reply, Exception):
                    raise reply
                if isinstance(reply, httpx.Response):
                    return reply
                return httpx.Response(200, text=reply)
            return httpx.Response(404, text="Page Not Found")

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return _make


class RecordingSleep:
    """Async stand-in for ``asyncio.sleep`` that only records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


# ---------------------------------------------------------------------------
# Raw itinerary builders
# ---------------------------------------------------------------------------


def label(day: date) -> str:
    """Date label as the portal prints it, e.g. ``Thu, 11 Dec 2025``."""
    return day.strftime("%a, %d %b %Y")


def make_leg(
    direction: Direction,
    flight_number: str,
    origin: str,
    destination: str,
    departure: str,
    arrival: str,
    **extra: str | None,
) -> RawLeg:
    return RawLeg(
        direction=direction,
        flight_number=flight_number,
        airline=extra.pop("airline", "Lufthansa"),
        departure=departure,
        arrival=arrival,
        origin=origin,
        destination=destination,
        duration=extra.pop("duration", "2h"),
        **extra,
    )


def make_itinerary(
    departure_date: date,
    return_date: date | None = None,
    *,
    prices: tuple[tuple[str, str], ...] = (("Expedia", "420.00"),),
    link: str = "https://book.test/1",
) -> RawItinerary:
    """FRA->JFK via LHR, optionally with a direct JFK->FRA return."""
    outbound = RawSection(
        direction=Direction.OUTBOUND,
        date_label=label(departure_date),
        departure="7:05 AM",
        arrival="1:45 PM",
        origin="FRA",
        destination="JFK",
        airline="Lufthansa",
        stop_count=1,
        legs=[
            make_leg(
                Direction.OUTBOUND, "LH900", "FRA", "LHR", "7:05 AM", "7:40 AM",
                duration="1h 35m", connection_time="1h 50m",
            ),
            make_leg(
                Direction.OUTBOUND, "BA117", "LHR", "JFK", "9:30 AM", "12:55 PM",
                airline="British Airways", duration="8h 25m",
            ),
        ],
    )  # fmt: skip
    inbound = None
    if return_date is not None:
        inbound = RawSection(
            direction=Direction.INBOUND,
            date_label=label(return_date),
            departure="6:30 PM",
            arrival="8:15 AM",
            origin="JFK",
            destination="FRA",
            legs=[
                make_leg(
                    Direction.INBOUND, "LH401", "JFK", "FRA", "6:30 PM", "8:15 AM",
                    duration="7h 45m",
                ),
            ],
        )  # fmt: skip
    return RawItinerary(
        outbound=outbound,
        inbound=inbound,
        prices=[RawPrice(provider=p, price=v, link=link) for p, v in prices],
    )


@pytest.fixture
def itinerary_factory() -> Callable[..., RawItinerary]:
    return make_itinerary


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker]:
    """In-memory SQLite database with every fare table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker) -> FareStore:
    return FareStore(session_factory)
