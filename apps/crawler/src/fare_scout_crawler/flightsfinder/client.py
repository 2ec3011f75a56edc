"""HTTP client for the flightsfinder ``/portal/sky`` search and poll endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote

import httpx

from ..config import settings
from ..errors import MissingJobTokenError, PollTransportError
from ..retry import async_retry
from .page_data import extract_page_data, now_ms

if TYPE_CHECKING:
    from fare_scout_core.schemas import SearchRequest

logger = logging.getLogger(__name__)

_SEARCH_PATH = "/portal/sky"
_POLL_PATH = "/portal/sky/poll"

# Poll response fields, split on "|".  Only these three are understood.
_FIELD_FINISHED = 0
_FIELD_COUNT = 1
_FIELD_PAYLOAD = 6

# Characters encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass
class SearchSession:
    """State handed from the initial search request to the poll loop."""

    payload: dict[str, Any]
    cookies: str
    referer: str


@dataclass
class PollResponse:
    """One decoded poll reply."""

    status_code: int
    finished: bool
    count: int
    body: str
    cookies: str
    # Set when the portal answered with a timeout or not-found page.
    interim_reason: str | None = None


def cookie_pairs(set_cookie_headers: list[str]) -> str:
    """Reduce ``Set-Cookie`` header values to a ``name=value; ...`` string."""
    pairs = []
    for header in set_cookie_headers:
        pair = header.split(";", 1)[0].strip()
        if pair:
            pairs.append(pair)
    return "; ".join(pairs)


def merge_cookies(existing: str, incoming: str) -> str:
    """Merge two cookie strings; same-named cookies take the incoming value."""
    if not incoming:
        return existing
    if not existing:
        return incoming
    jar: dict[str, str] = {}
    for source in (existing, incoming):
        for part in source.split(";"):
            name, _, value = part.strip().partition("=")
            if name:
                jar[name] = value
    return "; ".join(f"{name}={value}" for name, value in jar.items())


def _js_string(value: object) -> str:
    """Render a payload value the way JavaScript's ``String()`` would."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    if isinstance(value, list):
        return ",".join(_js_string(v) for v in value)
    return str(value)


def encode_form(payload: dict[str, Any]) -> str:
    """URL-encode a payload like ``encodeURIComponent`` does, key order kept."""
    return "&".join(
        f"{key}={quote(_js_string(value), safe=_URI_COMPONENT_SAFE)}"
        for key, value in payload.items()
    )


def decode_poll_body(text: str) -> tuple[bool, int, str]:
    """Split a poll reply into ``(finished, count, payload)``.

    The reply is ``|``-delimited; field 0 is ``Y`` once the job is done,
    field 1 the item count and field 6 the (maybe percent-encoded) markup.
    Short replies yield defaults instead of failing.
    """
    parts = text.split("|")
    finished = len(parts) > _FIELD_FINISHED and parts[_FIELD_FINISHED] == "Y"

    count = 0
    if len(parts) > _FIELD_COUNT:
        try:
            count = int(parts[_FIELD_COUNT].strip())
        except ValueError:
            count = 0

    body = parts[_FIELD_PAYLOAD] if len(parts) > _FIELD_PAYLOAD else ""
    if "%" in body:
        try:
            body = unquote(body, errors="strict")
        except UnicodeDecodeError:
            logger.debug("Poll payload is not valid percent-encoding, using raw body")
    return finished, count, body


def interim_reason(status_code: int, text: str) -> str | None:
    """Name the error page that should count as "not finished yet", if any."""
    if status_code == 504 or "504 Gateway Time-out" in text:
        return "504 Gateway Time-out"
    if status_code == 404 or "Page Not Found" in text:
        return "Page Not Found"
    return None


class FlightsFinderClient:
    """Thin async wrapper around the portal's search and poll endpoints.

    One instance serves one search: it is created per search so cookies and
    connections are never shared between searches.  The cookie string is
    passed explicitly on every request.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.base_url,
            headers={
                "User-Agent": settings.user_agent,
                "Accept": (
                    "text/html,application/xhtml+xml,application/xml;"
                    "q=0.9,image/webp,*/*;q=0.8"
                ),
                "Accept-Language": settings.accept_language,
                "Connection": "keep-alive",
            },
            timeout=httpx.Timeout(timeout or settings.request_timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> FlightsFinderClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @async_retry(
        max_retries=lambda: settings.initial_retries,
        base_delay=1.0,
        max_delay=10.0,
        exceptions=(PollTransportError,),
        giveup=(MissingJobTokenError,),
    )
    async def start_search(self, request: SearchRequest) -> SearchSession:
        """Open a search and return its job payload and session cookies.

        Raises :class:`MissingJobTokenError` when the page carries no
        ``_token``; that is never retried.
        """
        params = {
            "originplace": request.origin,
            "destinationplace": request.destination,
            "outbounddate": request.departure_date.isoformat(),
            "inbounddate": request.return_date.isoformat()
            if request.return_date
            else "",
            "cabinclass": request.cabin_class.value,
            "adults": str(request.adults),
            "children": "0",
            "infants": "0",
            "currency": request.currency,
        }
        try:
            resp = await self._client.get(_SEARCH_PATH, params=params)
        except httpx.HTTPError as exc:
            msg = f"Search request failed: {exc}"
            raise PollTransportError(msg) from exc
        if resp.status_code >= 400:
            msg = f"Search request returned HTTP {resp.status_code}"
            raise PollTransportError(msg, resp.status_code)

        payload = extract_page_data(resp.text)
        if not payload or not payload.get("_token"):
            msg = "Search page carried no job token"
            raise MissingJobTokenError(msg)

        cookies = cookie_pairs(resp.headers.get_list("set-cookie"))
        logger.debug(
            "Search %s->%s opened with %d payload fields",
            request.origin,
            request.destination,
            len(payload),
        )
        return SearchSession(payload=payload, cookies=cookies, referer=str(resp.url))

    async def poll(
        self,
        payload: dict[str, Any],
        cookies: str = "",
        referer: str | None = None,
    ) -> PollResponse:
        """Send one poll with a fresh ``noc`` nonce.

        Timeout and not-found pages come back as unfinished responses;
        anything else that goes wrong raises :class:`PollTransportError`.
        """
        if not payload.get("_token"):
            msg = "Poll payload has no _token"
            raise MissingJobTokenError(msg)

        body = encode_form({**payload, "noc": str(now_ms())})
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if cookies:
            headers["Cookie"] = cookies
        if referer:
            headers["Referer"] = referer

        try:
            resp = await self._client.post(_POLL_PATH, content=body, headers=headers)
        except httpx.HTTPError as exc:
            msg = f"Poll request failed: {exc}"
            raise PollTransportError(msg) from exc

        merged = merge_cookies(cookies, cookie_pairs(resp.headers.get_list("set-cookie")))
        text = resp.text

        reason = interim_reason(resp.status_code, text)
        if reason is not None:
            logger.warning("%s received, treating as unfinished poll", reason)
            return PollResponse(
                status_code=resp.status_code,
                finished=False,
                count=0,
                body="",
                cookies=merged,
                interim_reason=reason,
            )

        if resp.status_code >= 400:
            msg = f"Poll returned HTTP {resp.status_code}"
            raise PollTransportError(msg, resp.status_code)

        finished, count, markup = decode_poll_body(text)
        return PollResponse(
            status_code=resp.status_code,
            finished=finished,
            count=count,
            body=markup,
            cookies=merged,
        )

    async def health_check(self) -> bool:
        """Return True if the portal's search page answers."""
        try:
            resp = await self._client.get(_SEARCH_PATH)
        except httpx.HTTPError:
            return False
        return resp.status_code < 500

    async def close(self) -> None:
        """Shut down the underlying HTTPX client."""
        await self._client.aclose()
