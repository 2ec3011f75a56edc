"""Pydantic-compatible enums for crawler schemas (DB-independent)."""

from enum import StrEnum


class CabinClass(StrEnum):
    """Cabin class as understood by the search portal."""

    ECONOMY = "Economy"
    PREMIUM_ECONOMY = "PremiumEconomy"
    BUSINESS = "Business"
    FIRST = "First"


class Direction(StrEnum):
    """Which half of a trip a leg belongs to."""

    OUTBOUND = "outbound"
    INBOUND = "inbound"


class PollState(StrEnum):
    """Lifecycle of one remote search job."""

    INITIATED = "INITIATED"
    POLLING = "POLLING"
    FINISHED = "FINISHED"
    ABORTED = "ABORTED"
