"""Fetch query provenance model."""

from __future__ import annotations

from datetime import date, datetime  # noqa: TC003

from sqlalchemy import Date, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class FetchQuery(TimestampMixin, Base):
    """Fetch queries table - when each search was last scraped."""

    __tablename__ = "fetch_queries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    origin: Mapped[str] = mapped_column(String(3), nullable=False)
    destination: Mapped[str] = mapped_column(String(3), nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[date | None] = mapped_column(Date)
    last_fetched: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("ix_fetch_queries_route", "origin", "destination", "departure_date"),
    )

    def __repr__(self) -> str:
        return f"<FetchQuery {self.origin}->{self.destination} {self.departure_date}>"
