"""Read the job payload embedded in the portal's search page.

The page starts the search with an inline script along the lines of::

    $.ajax({ url: '/portal/sky/poll', data: { _token: 'abc', noc: $.now(), ... } })

The ``data`` object is a JavaScript object literal, not JSON: keys may be
bare identifiers, strings may use single quotes and ``$.now()`` stands in for
the client timestamp.  It is parsed here with a small literal-only parser;
nothing is ever evaluated.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, NoReturn

from ..errors import PageDataError

logger = logging.getLogger(__name__)

_NOW_PLACEHOLDERS = ("$.now()", "Date.now()")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_KEYWORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}
_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def now_ms() -> int:
    """Client-side timestamp in epoch milliseconds, as ``$.now()`` returns."""
    return int(time.time() * 1000)


def find_object_literal(html: str, marker: str = "data:") -> str | None:
    """Return the ``{...}`` source following ``marker``, or ``None``.

    Braces inside string literals do not count towards nesting.
    """
    marker_at = html.find(marker)
    if marker_at == -1:
        return None
    start = html.find("{", marker_at)
    if start == -1:
        return None

    depth = 0
    quote: str | None = None
    i = start
    while i < len(html):
        ch = html[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return html[start : i + 1]
        i += 1
    return None


class _LiteralParser:
    """Recursive-descent parser for the JSON-like subset of JS literals."""

    def __init__(self, source: str, timestamp: int) -> None:
        self._src = source
        self._pos = 0
        self._timestamp = timestamp

    def parse(self) -> Any:
        value = self._value()
        self._skip_ws()
        if self._pos != len(self._src):
            self._fail("trailing characters")
        return value

    # -- helpers -----------------------------------------------------------

    def _fail(self, what: str) -> NoReturn:
        msg = f"Cannot parse page data at offset {self._pos}: {what}"
        raise PageDataError(msg)

    def _peek(self) -> str:
        return self._src[self._pos] if self._pos < len(self._src) else ""

    def _skip_ws(self) -> None:
        src = self._src
        while self._pos < len(src):
            if src[self._pos].isspace():
                self._pos += 1
            elif src.startswith("//", self._pos):
                end = src.find("\n", self._pos)
                self._pos = len(src) if end == -1 else end + 1
            elif src.startswith("/*", self._pos):
                end = src.find("*/", self._pos + 2)
                if end == -1:
                    self._fail("unterminated comment")
                self._pos = end + 2
            else:
                break

    def _expect(self, ch: str) -> None:
        self._skip_ws()
        if self._peek() != ch:
            self._fail(f"expected {ch!r}")
        self._pos += 1

    # -- grammar -----------------------------------------------------------

    def _value(self) -> Any:
        self._skip_ws()
        ch = self._peek()
        if not ch:
            self._fail("unexpected end of input")
        if ch == "{":
            return self._object()
        if ch == "[":
            return self._array()
        if ch and ch in "'\"":
            return self._string()
        if ch == "-" or ch == "+" or ch == "." or ch.isdigit():
            return self._number()
        for placeholder in _NOW_PLACEHOLDERS:
            if self._src.startswith(placeholder, self._pos):
                self._pos += len(placeholder)
                return self._timestamp
        word = self._identifier()
        if word in _KEYWORDS:
            return _KEYWORDS[word]
        self._fail(f"unsupported expression {word!r}")

    def _object(self) -> dict[str, Any]:
        self._expect("{")
        result: dict[str, Any] = {}
        while True:
            self._skip_ws()
            if self._peek() == "}":
                self._pos += 1
                return result
            key = self._key()
            self._expect(":")
            result[key] = self._value()
            self._skip_ws()
            if self._peek() == ",":
                self._pos += 1
            elif self._peek() != "}":
                self._fail("expected ',' or '}'")

    def _array(self) -> list[Any]:
        self._expect("[")
        result: list[Any] = []
        while True:
            self._skip_ws()
            if self._peek() == "]":
                self._pos += 1
                return result
            result.append(self._value())
            self._skip_ws()
            if self._peek() == ",":
                self._pos += 1
            elif self._peek() != "]":
                self._fail("expected ',' or ']'")

    def _key(self) -> str:
        ch = self._peek()
        if ch and ch in "'\"":
            return self._string()
        if ch.isdigit():
            return str(self._number())
        key = self._identifier()
        if not key:
            self._fail("expected a property name")
        return key

    def _identifier(self) -> str:
        start = self._pos
        while self._pos < len(self._src) and (
            self._src[self._pos].isalnum() or self._src[self._pos] in "_$"
        ):
            self._pos += 1
        return self._src[start : self._pos]

    def _string(self) -> str:
        quote = self._src[self._pos]
        self._pos += 1
        out: list[str] = []
        while True:
            if self._pos >= len(self._src):
                self._fail("unterminated string")
            ch = self._src[self._pos]
            if ch == quote:
                self._pos += 1
                return "".join(out)
            if ch == "\\":
                self._pos += 1
                esc = self._peek()
                if esc == "u":
                    digits = self._src[self._pos + 1 : self._pos + 5]
                    try:
                        out.append(chr(int(digits, 16)))
                    except ValueError:
                        self._fail("bad unicode escape")
                    self._pos += 5
                    continue
                out.append(_ESCAPES.get(esc, esc))
                self._pos += 1
                continue
            out.append(ch)
            self._pos += 1

    def _number(self) -> int | float:
        match = _NUMBER_RE.match(self._src, self._pos)
        if not match:
            self._fail("bad number")
        self._pos = match.end()
        text = match.group(0)
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)


def parse_object_literal(source: str, *, timestamp: int | None = None) -> Any:
    """Parse a JS object literal.  Strict JSON is tried first."""
    stamp = now_ms() if timestamp is None else timestamp
    substituted = source
    for placeholder in _NOW_PLACEHOLDERS:
        substituted = substituted.replace(placeholder, str(stamp))
    try:
        return json.loads(substituted)
    except json.JSONDecodeError:
        logger.debug("Page data is not strict JSON, using literal parser")
    return _LiteralParser(source, stamp).parse()


def extract_page_data(html: str) -> dict[str, Any] | None:
    """Find and parse the job payload object in a search page.

    Returns ``None`` when the page has no payload or it cannot be parsed.
    """
    literal = find_object_literal(html)
    if literal is None:
        return None
    try:
        data = parse_object_literal(literal)
    except PageDataError:
        logger.warning("Failed to parse search page data object", exc_info=True)
        return None
    if not isinstance(data, dict):
        return None
    return data
