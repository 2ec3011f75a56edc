"""Exceptions raised inside the crawler.

Public entry points catch these and report them through result objects.
"""

from __future__ import annotations


class FareScoutError(Exception):
    """Base class for crawler errors."""


class PageDataError(FareScoutError):
    """The job payload embedded in the search page could not be read."""


class MissingJobTokenError(FareScoutError):
    """The search page did not carry a ``_token``; polling is pointless."""


class PollTransportError(FareScoutError):
    """A request to the portal failed below the protocol level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
