"""The initiate-then-poll protocol against a scripted portal."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from fare_scout_core.schemas import CrawlTask, PollState
from fare_scout_crawler.config import settings
from fare_scout_crawler.flightsfinder.crawler import FlightsFinderCrawler
from fare_scout_crawler.flightsfinder.poller import PollCoordinator

pytestmark = [pytest.mark.timeout(10)]


def _posts(transport) -> list[httpx.Request]:
    return [r for r in transport.requests if r.method == "POST"]


async def test_reaches_finished_through_interim_replies(
    portal, results_html, finished_reply, no_sleep, search_request
):
    transport = portal(
        [
            "N|0|||||",
            "N|5",
            httpx.Response(504, text="<h1>504 Gateway Time-out</h1>"),
            finished_reply(results_html),
        ]
    )
    poller = PollCoordinator(transport=transport, sleep=no_sleep)

    outcome = await poller.run(search_request)

    assert outcome.state is PollState.FINISHED
    assert outcome.finished is True
    assert outcome.success is True
    assert outcome.polls == 4
    assert outcome.count == 2
    assert len(outcome.itineraries) == 2
    assert no_sleep.delays == [settings.poll_delay] * 3


async def test_not_found_page_keeps_polling(
    portal, results_html, finished_reply, no_sleep, search_request
):
    transport = portal(
        [httpx.Response(404, text="Page Not Found"), finished_reply(results_html)]
    )
    outcome = await PollCoordinator(transport=transport, sleep=no_sleep).run(
        search_request
    )
    assert outcome.state is PollState.FINISHED
    assert outcome.polls == 2


async def test_initial_request_parameters(portal, no_sleep, search_request):
    transport = portal(["Y|0"])
    await PollCoordinator(transport=transport, sleep=no_sleep).run(search_request)

    get = transport.requests[0]
    assert get.method == "GET"
    assert get.url.path == "/portal/sky"
    assert dict(get.url.params) == {
        "originplace": "FRA",
        "destinationplace": "JFK",
        "outbounddate": "2025-12-11",
        "inbounddate": "2025-12-14",
        "cabinclass": "Economy",
        "adults": "1",
        "children": "0",
        "infants": "0",
        "currency": "EUR",
    }
    assert get.headers["user-agent"] == settings.user_agent
    assert get.headers["accept-language"] == settings.accept_language
    assert "text/html" in get.headers["accept"]


async def test_poll_body_carries_payload_and_fresh_nonce(
    portal, no_sleep, search_request
):
    transport = portal(["N|0", "Y|0"])
    await PollCoordinator(transport=transport, sleep=no_sleep).run(search_request)

    first, second = _posts(transport)
    assert first.headers["content-type"] == "application/x-www-form-urlencoded"
    form = parse_qs(first.content.decode())
    assert form["_token"] == ["pZ8xK2mQ7rT4vW9y"]
    assert form["deeplink"] == ["true"]
    assert form["filters"] == ["price,stops"]
    assert form["noc"][0].isdigit()
    assert parse_qs(second.content.decode())["_token"] == ["pZ8xK2mQ7rT4vW9y"]


async def test_cookies_accumulate_across_polls(portal, no_sleep, search_request):
    transport = portal(
        [
            httpx.Response(
                200,
                headers=[("set-cookie", "sid=rotated; Path=/"), ("set-cookie", "tz=UTC")],
                text="N|0",
            ),
            "Y|0",
        ]
    )
    outcome = await PollCoordinator(transport=transport, sleep=no_sleep).run(
        search_request
    )

    first, second = _posts(transport)
    assert first.headers["cookie"] == "sid=abc123; lang=en"
    assert second.headers["cookie"] == "sid=rotated; lang=en; tz=UTC"
    assert outcome.cookies == "sid=rotated; lang=en; tz=UTC"


async def test_finished_without_results_is_still_a_success(
    portal, no_sleep, search_request
):
    outcome = await PollCoordinator(transport=portal(["Y|0"]), sleep=no_sleep).run(
        search_request
    )
    assert outcome.state is PollState.FINISHED
    assert outcome.success is True
    assert outcome.itineraries == []


async def test_markup_is_parsed_exactly_once(
    portal, results_html, finished_reply, no_sleep, search_request, monkeypatch
):
    from fare_scout_crawler.flightsfinder import poller as poller_module

    seen: list[str] = []
    real = poller_module.extract_itineraries

    def counting(html):
        seen.append(html)
        return real(html)

    monkeypatch.setattr(poller_module, "extract_itineraries", counting)
    transport = portal(["N|1", "N|2", finished_reply(results_html)])
    await PollCoordinator(transport=transport, sleep=no_sleep).run(search_request)

    assert seen == [results_html]


async def test_missing_token_aborts_without_retry(
    portal, no_sleep, search_request
):
    page = "<script>$.ajax({ data: { session: 'x', noc: $.now() } })</script>"
    transport = portal(["Y|0"], page=page)

    outcome = await PollCoordinator(transport=transport, sleep=no_sleep).run(
        search_request
    )

    assert outcome.state is PollState.ABORTED
    assert outcome.success is False
    assert "token" in outcome.error
    assert len(transport.requests) == 1


async def test_initial_transport_failure_aborts(
    portal, no_sleep, search_request, monkeypatch
):
    monkeypatch.setattr(settings, "initial_retries", 0)

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    outcome = await PollCoordinator(
        transport=httpx.MockTransport(refuse), sleep=no_sleep
    ).run(search_request)

    assert outcome.state is PollState.ABORTED
    assert outcome.success is False
    assert outcome.polls == 0


@pytest.mark.parametrize(
    "failure",
    [
        httpx.Response(500, text="Internal Server Error"),
        httpx.Response(403, text="Forbidden"),
        httpx.ReadTimeout("read timed out"),
    ],
)
async def test_poll_transport_failure_aborts(
    portal, no_sleep, search_request, failure
):
    transport = portal(["N|0", failure, "Y|0"])
    outcome = await PollCoordinator(transport=transport, sleep=no_sleep).run(
        search_request
    )

    assert outcome.state is PollState.ABORTED
    assert outcome.success is False
    assert outcome.finished is False
    assert outcome.polls == 2
    assert len(_posts(transport)) == 2


async def test_poll_limit_ends_unfinished(portal, no_sleep, search_request):
    transport = portal(["N|0"] * 5)
    outcome = await PollCoordinator(
        transport=transport, sleep=no_sleep, max_polls=3
    ).run(search_request)

    assert outcome.state is PollState.POLLING
    assert outcome.finished is False
    assert outcome.success is True
    assert outcome.itineraries == []
    assert outcome.polls == 3
    assert len(no_sleep.delays) == 2


async def test_deadline_stops_polling(portal, no_sleep, search_request):
    ticks = iter([0.0, 1.0, 10.0])
    transport = portal(["N|0"] * 5)
    outcome = await PollCoordinator(
        transport=transport,
        sleep=no_sleep,
        search_deadline=5.0,
        clock=lambda: next(ticks),
    ).run(search_request)

    assert outcome.finished is False
    assert outcome.success is True
    assert outcome.polls == 1
    assert len(_posts(transport)) == 1


# ---------------------------------------------------------------------------
# Crawler wrapper
# ---------------------------------------------------------------------------


async def test_crawler_returns_crawl_result(
    portal, results_html, finished_reply, no_sleep, search_request
):
    poller = PollCoordinator(
        transport=portal([finished_reply(results_html)]), sleep=no_sleep
    )
    async with FlightsFinderCrawler(poller=poller) as crawler:
        result = await crawler.crawl(CrawlTask(search_request=search_request))

    assert result.success is True
    assert result.error is None
    assert result.state is PollState.FINISHED
    assert result.polls == 1
    assert len(result.itineraries) == 2


async def test_crawler_reports_unexpected_errors(search_request):
    class BrokenPoller:
        async def run(self, request):
            raise RuntimeError("boom")

    crawler = FlightsFinderCrawler(poller=BrokenPoller())  # type: ignore[arg-type]
    result = await crawler.crawl(CrawlTask(search_request=search_request))

    assert result.success is False
    assert result.state is PollState.ABORTED
    assert result.error == "boom"


async def test_crawler_health_check(portal):
    assert await FlightsFinderCrawler(transport=portal([])).health_check() is True

    def down(request):
        raise httpx.ConnectError("down", request=request)

    crawler = FlightsFinderCrawler(transport=httpx.MockTransport(down))
    assert await crawler.health_check() is False
