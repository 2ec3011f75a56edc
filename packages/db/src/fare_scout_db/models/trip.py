"""Trip and leg models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .deal import Deal
    from .flight import Flight


class Trip(TimestampMixin, Base):
    """Trips table - an itinerary identified by its set of flights."""

    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    origin: Mapped[str] = mapped_column(String(3), nullable=False)
    destination: Mapped[str] = mapped_column(String(3), nullable=False)
    stop_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_round: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    legs: Mapped[list[Leg]] = relationship(
        back_populates="trip", order_by="Leg.order"
    )
    deals: Mapped[list[Deal]] = relationship(back_populates="trip")

    def __repr__(self) -> str:
        return f"<Trip {self.origin}->{self.destination} ({self.id[:8]})>"


class Leg(TimestampMixin, Base):
    """Legs table - a flight's position in one direction of a trip."""

    __tablename__ = "legs"

    id: Mapped[str] = mapped_column(String(400), primary_key=True)
    trip_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("trips.id"), nullable=False
    )
    flight_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("flights.id"), nullable=False
    )
    inbound: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    connection_time: Mapped[int | None] = mapped_column(Integer)

    trip: Mapped[Trip] = relationship(back_populates="legs")
    flight: Mapped[Flight] = relationship(back_populates="legs")

    __table_args__ = (
        Index("ix_legs_trip_id", "trip_id"),
        Index("ix_legs_flight_id", "flight_id"),
    )

    def __repr__(self) -> str:
        direction = "inbound" if self.inbound else "outbound"
        return f"<Leg {direction} #{self.order} {self.flight_id}>"
