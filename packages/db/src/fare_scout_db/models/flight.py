"""Flight model."""

from __future__ import annotations

from datetime import date, time  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import Date, Index, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .trip import Leg


class Flight(TimestampMixin, Base):
    """Flights table - one row per scheduled segment.

    The primary key is ``{flight_number}_{origin}_{date}_{time}`` so the same
    segment seen in different scrapes lands on the same row.
    """

    __tablename__ = "flights"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    flight_number: Mapped[str] = mapped_column(String(100), nullable=False)
    airline: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    origin: Mapped[str] = mapped_column(String(3), nullable=False)
    destination: Mapped[str] = mapped_column(String(3), nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_time: Mapped[time] = mapped_column(Time, nullable=False)
    arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    legs: Mapped[list[Leg]] = relationship(back_populates="flight")

    __table_args__ = (
        Index("ix_flights_origin_destination", "origin", "destination"),
        Index("ix_flights_departure_date", "departure_date"),
    )

    def __repr__(self) -> str:
        return f"<Flight {self.flight_number} {self.origin}->{self.destination}>"
