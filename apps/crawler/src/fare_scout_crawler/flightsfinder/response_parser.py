"""Parse the portal's final result markup into raw itinerary records.

The finished poll carries an HTML fragment with one ``div.search_modal`` per
itinerary.  Each modal holds an outbound section, an optional return section
(``p._heading`` followed by a ``div._panel``) and a shared ``div._similar``
list of provider quotes.  Markup varies between one-way, round-trip and
multi-leg results, so every lookup here tolerates missing nodes.
"""

from __future__ import annotations

import logging
import math
import re
from urllib.parse import unquote

from selectolax.lexbor import (  # type: ignore[import-untyped]
    LexborHTMLParser,
    LexborNode,
)

from fare_scout_core.schemas import (
    Direction,
    RawItinerary,
    RawLeg,
    RawPrice,
    RawSection,
)

from ..normalize import date_label

logger = logging.getLogger(__name__)

_AIRPORT_CODE_RE = re.compile(r"^([A-Z]{3})\s")
_STOP_COUNT_RE = re.compile(r"(\d+)\s*stop")
# Grouped thousands first, so "1234.56" is not cut down to "123".
_PRICE_RE = re.compile(r"(\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{2})?|\d+(?:[.,]\d{2})?)")
_DEEP_LINK_RE = re.compile(r"(?:^|[?&])u=([^&#]*)")


class _Blank:
    """Null-object for missing DOM nodes."""

    def text(self, *_: object, **__: object) -> str:
        return ""

    def css(self, *_: object) -> list[LexborNode]:
        return []

    def css_first(self, *_: object) -> _Blank:
        return self

    @property
    def attributes(self) -> dict[str, str | None]:
        return {}


_blank = _Blank()


def _safe(node: LexborNode | None) -> LexborNode | _Blank:
    return node if node is not None else _blank  # type: ignore[return-value]


def _text(node: LexborNode | _Blank | None) -> str:
    if node is None:
        return ""
    return node.text(strip=True)


def _own_text(node: LexborNode | _Blank) -> str:
    """Text of the node itself, without the text of child elements."""
    return node.text(deep=False, strip=True)


def _has_class(node: LexborNode, name: str) -> bool:
    classes = node.attributes.get("class") or ""
    return name in classes.split()


def _first_last(node: LexborNode | _Blank, selector: str) -> tuple[str, str]:
    matches = node.css(selector)
    if not matches:
        return "", ""
    return _text(matches[0]), _text(matches[-1])


def _airport_code(label: str) -> str | None:
    match = _AIRPORT_CODE_RE.match(label)
    return match.group(1) if match else None


def _following_panel(heading: LexborNode) -> LexborNode | None:
    """First ``div._panel`` among the siblings after ``heading``."""
    node = heading.next
    while node is not None:
        if node.tag == "div" and _has_class(node, "_panel"):
            return node
        node = node.next
    return None


def _find_headings(modal: LexborNode) -> tuple[LexborNode | None, LexborNode | None]:
    outbound: LexborNode | None = None
    inbound: LexborNode | None = None
    for heading in modal.css("p._heading"):
        text = heading.text()
        if "Book Your Ticket" in text:
            continue
        if outbound is None and "Outbound" in text and "Return" not in text:
            outbound = heading
        elif inbound is None and "Return" in text:
            inbound = heading
    return outbound, inbound


def _parse_leg(leg_node: LexborNode, direction: Direction) -> RawLeg | None:
    """Read one ``div._panel_body``; ``None`` if any required field is missing."""
    flight_info = _text(leg_node.css_first("div._head small"))
    parts = flight_info.split()
    flight_number = parts[-1] if parts else None
    airline = " ".join(parts[:-1]) if len(parts) > 1 else None

    departure, arrival = _first_last(_safe(leg_node.css_first("div.c3")), "p")
    origin_label, destination_label = _first_last(
        _safe(leg_node.css_first("div.c4")), "p"
    )
    origin = _airport_code(origin_label)
    destination = _airport_code(destination_label)

    if not (departure and arrival and origin and destination):
        logger.debug(
            "Dropping incomplete %s leg %r (dep=%r arr=%r %s->%s)",
            direction.value,
            flight_info,
            departure,
            arrival,
            origin,
            destination,
        )
        return None

    connect = leg_node.css_first("p.connect_airport")
    connection_time = _text(_safe(connect).css_first("span")) if connect else ""

    summary = leg_node.css_first("p._summary")
    arrival_date = date_label(summary.text()) if summary is not None else None

    return RawLeg(
        direction=direction,
        flight_number=flight_number,
        airline=airline,
        departure=departure,
        arrival=arrival,
        origin=origin,
        destination=destination,
        origin_label=origin_label,
        destination_label=destination_label,
        duration=_text(leg_node.css_first("div.c1 p")) or None,
        connection_time=connection_time or None,
        arrival_date=arrival_date,
    )


def _parse_section(heading: LexborNode, direction: Direction) -> RawSection | None:
    panel = _following_panel(heading)
    if panel is None:
        return None

    panel_heading = _safe(panel.css_first("div._panel_heading"))
    airline = _text(panel_heading.css_first("p._ahn")) or _text(
        panel_heading.css_first("p._flight_name")
    )

    trip = _safe(panel_heading.css_first("div.trip"))
    times = trip.css("p.time")
    departure_node = _safe(times[0] if times else None)
    arrival_node = _safe(times[-1] if times else None)

    stops = _safe(trip.css_first("div._stops"))
    stop_match = _STOP_COUNT_RE.search(_text(stops.css_first("p.stop")))

    legs = [
        leg
        for leg in (
            _parse_leg(node, direction) for node in panel.css("div._panel_body")
        )
        if leg is not None
    ]

    return RawSection(
        direction=direction,
        date_label=date_label(heading.text()),
        departure=_own_text(departure_node),
        arrival=_own_text(arrival_node),
        origin=_text(departure_node.css_first("span")),
        destination=_text(arrival_node.css_first("span")),
        duration=_text(stops.css_first("p.time")),
        airline=airline or None,
        stop_count=int(stop_match.group(1)) if stop_match else 0,
        legs=legs,
    )


def parse_deep_link(href: str | None) -> str | None:
    """Return the percent-decoded ``u=`` target of a redirect href."""
    if not href:
        return None
    match = _DEEP_LINK_RE.search(href)
    if not match:
        return None
    raw = match.group(1)
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def price_text(text: str) -> str | None:
    """First price-looking number in ``text``, e.g. ``1,234.56``."""
    match = _PRICE_RE.search(text)
    return match.group(1) if match else None


def _parse_prices(modal: LexborNode) -> list[RawPrice]:
    prices: list[RawPrice] = []
    for row in modal.css("div._similar > div"):
        paragraphs = row.css("p")
        if len(paragraphs) < 2:
            continue
        provider = _text(paragraphs[0])
        price_p = paragraphs[1]
        price = price_text(_text(price_p))
        if price is None:
            continue
        anchor = price_p.css_first("a")
        href = anchor.attributes.get("href") if anchor is not None else None
        prices.append(
            RawPrice(provider=provider, price=price, link=parse_deep_link(href))
        )
    # Unreadable amounts sort last.
    prices.sort(key=lambda p: (math.isnan(p.amount), p.amount))
    return prices


def parse_search_modal(modal: LexborNode) -> RawItinerary | None:
    """Build one itinerary; ``None`` when it has no outbound part or no price."""
    outbound_heading, inbound_heading = _find_headings(modal)
    if outbound_heading is None:
        return None
    outbound = _parse_section(outbound_heading, Direction.OUTBOUND)
    if outbound is None:
        return None

    inbound = None
    if inbound_heading is not None:
        inbound = _parse_section(inbound_heading, Direction.INBOUND)

    prices = _parse_prices(modal)
    if not prices:
        return None

    return RawItinerary(outbound=outbound, inbound=inbound, prices=prices)


def extract_itineraries(html: str) -> list[RawItinerary]:
    """Extract every priced itinerary from a finished poll's markup.

    A modal that fails to parse is skipped; the rest of the document is
    still processed.
    """
    if not html or not html.strip():
        return []

    parser = LexborHTMLParser(html)
    itineraries: list[RawItinerary] = []
    for index, modal in enumerate(parser.css("div.search_modal")):
        try:
            itinerary = parse_search_modal(modal)
        except Exception:
            logger.warning("Skipping unparseable search modal #%d", index, exc_info=True)
            continue
        if itinerary is not None:
            itineraries.append(itinerary)

    logger.info("Markup parser extracted %d itineraries", len(itineraries))
    return itineraries
