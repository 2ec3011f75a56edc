"""Deal model."""

from __future__ import annotations

from datetime import date, datetime, time  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .trip import Trip


class Deal(Base):
    """Deals table - latest price per (trip, source, provider).

    Price and link are not part of the key; a re-scrape overwrites them.
    """

    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    trip_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("trips.id"), nullable=False
    )
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    provider: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    link: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Denormalized search keys so the read side can filter without joins.
    origin: Mapped[str] = mapped_column(String(3), nullable=False)
    destination: Mapped[str] = mapped_column(String(3), nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_time: Mapped[time | None] = mapped_column(Time)
    return_date: Mapped[date | None] = mapped_column(Date)
    return_time: Mapped[time | None] = mapped_column(Time)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    trip: Mapped[Trip] = relationship(back_populates="deals")

    __table_args__ = (
        Index(
            "ix_deals_search",
            "origin",
            "destination",
            "departure_date",
            "return_date",
        ),
        Index("ix_deals_trip_id", "trip_id"),
        Index("ix_deals_price", "price"),
    )

    def __repr__(self) -> str:
        return f"<Deal {self.provider} {self.price} {self.currency}>"
