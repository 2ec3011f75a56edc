"""SQLAlchemy ORM models for Fare Scout."""

from .base import Base, TimestampMixin
from .deal import Deal
from .fetch_query import FetchQuery
from .flight import Flight
from .trip import Leg, Trip

__all__ = [
    "Base",
    "Deal",
    "FetchQuery",
    "Flight",
    "Leg",
    "TimestampMixin",
    "Trip",
]
