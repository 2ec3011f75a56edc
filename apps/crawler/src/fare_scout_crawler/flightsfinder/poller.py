"""Drive one portal search from the initial request to the finished poll."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from fare_scout_core.schemas import PollOutcome, PollState

from ..config import settings
from ..errors import MissingJobTokenError, PollTransportError
from .client import FlightsFinderClient
from .response_parser import extract_itineraries

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import httpx

    from fare_scout_core.schemas import SearchRequest

logger = logging.getLogger(__name__)


class PollCoordinator:
    """Run the initiate-then-poll protocol for a search.

    States move ``INITIATED -> POLLING -> FINISHED | ABORTED``.  A search
    that runs out of polls or time before the job finishes ends in
    ``POLLING`` with ``finished=False`` and no itineraries; that is not a
    failure.  ``success`` is False only when the portal could not be
    talked to or did not hand out a job token.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_polls: int | None = None,
        poll_delay: float | None = None,
        search_deadline: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._base_url = base_url
        self._transport = transport
        self._max_polls = settings.max_polls if max_polls is None else max_polls
        self._poll_delay = settings.poll_delay if poll_delay is None else poll_delay
        self._deadline = (
            settings.search_deadline if search_deadline is None else search_deadline
        )
        self._sleep = sleep
        self._clock = clock

    def _client(self) -> FlightsFinderClient:
        # A fresh client per search keeps cookies from leaking between searches.
        return FlightsFinderClient(base_url=self._base_url, transport=self._transport)

    async def run(self, request: SearchRequest) -> PollOutcome:
        """Search for ``request`` and return whatever the finished job holds."""
        outcome = PollOutcome(state=PollState.INITIATED)
        route = f"{request.origin}->{request.destination} {request.departure_date}"

        async with self._client() as client:
            try:
                session = await client.start_search(request)
            except MissingJobTokenError as exc:
                logger.error("Search %s aborted: %s", route, exc)
                return _abort(outcome, str(exc))
            except PollTransportError as exc:
                logger.error("Search %s could not be started: %s", route, exc)
                return _abort(outcome, str(exc))

            outcome.state = PollState.POLLING
            outcome.cookies = session.cookies
            give_up_at = self._clock() + self._deadline

            for attempt in range(1, self._max_polls + 1):
                if self._clock() >= give_up_at:
                    logger.warning(
                        "Search %s passed its %.0fs deadline after %d polls",
                        route,
                        self._deadline,
                        outcome.polls,
                    )
                    break

                try:
                    response = await client.poll(
                        session.payload, outcome.cookies, session.referer
                    )
                except (PollTransportError, MissingJobTokenError) as exc:
                    logger.error("Poll %d for %s failed: %s", attempt, route, exc)
                    outcome.polls = attempt
                    return _abort(outcome, str(exc))

                outcome.polls = attempt
                outcome.cookies = response.cookies
                outcome.count = response.count

                if response.finished:
                    outcome.state = PollState.FINISHED
                    outcome.finished = True
                    outcome.itineraries = extract_itineraries(response.body)
                    logger.info(
                        "Search %s finished after %d polls with %d itineraries",
                        route,
                        attempt,
                        len(outcome.itineraries),
                    )
                    return outcome

                logger.debug(
                    "Poll %d/%d for %s not finished (count=%d)",
                    attempt,
                    self._max_polls,
                    route,
                    response.count,
                )
                if attempt < self._max_polls:
                    await self._sleep(self._poll_delay)
            else:
                logger.warning(
                    "Search %s not finished after %d polls", route, self._max_polls
                )

        outcome.error = "Search did not finish in time"
        return outcome


def _abort(outcome: PollOutcome, error: str) -> PollOutcome:
    outcome.state = PollState.ABORTED
    outcome.success = False
    outcome.error = error
    return outcome
