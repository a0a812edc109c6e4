"""Recover page routes from the router module generated by `nuxt build`.

The generated `.nuxt/router.js` is program code, not data. Only the literal
`routes: [...]` table inside it is needed, so this module locates that table
with a tolerant pattern and reads it with a small parser for the JavaScript
literal subset (arrays, objects, strings, numbers, booleans, null). Component
references are arbitrary expressions (identifiers, lazy `import()` arrows);
they are skipped as balanced text and recorded as an empty string. Nothing in
the artifact is ever evaluated.

Shape contract for the route table (checked, with a descriptive
ArtifactShapeError on mismatch):

* the table is an array of objects;
* every object has a string ``path``;
* every object has a string ``name`` unless it has ``children``;
* ``children``, when present, is an array following the same contract, with
  relative child paths resolved against the parent path.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nuxt_lambda.errors import ArtifactShapeError

logger = logging.getLogger(__name__)

ROUTER_FILE = ".nuxt/router.js"
ROUTES_PATTERN = re.compile(r"\broutes\s*:\s*\[")
OPAQUE_KEYS = frozenset({"component", "components"})

_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_KEYWORD_VALUES: dict[str, Any] = {"true": True, "false": False, "null": None, "undefined": None}
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_OPENERS = {"(": ")", "[": "]", "{": "}"}


@dataclass(frozen=True, slots=True)
class Route:
    path: str
    name: str


class _LiteralParser:
    def __init__(self, source: str, pos: int = 0) -> None:
        self.source = source
        self.pos = pos

    # -- helpers ---------------------------------------------------------

    def error(self, message: str, pos: int | None = None) -> ArtifactShapeError:
        at = self.pos if pos is None else pos
        line = self.source.count("\n", 0, at) + 1
        column = at - (self.source.rfind("\n", 0, at) + 1) + 1
        return ArtifactShapeError(f"{ROUTER_FILE}:{line}:{column}: {message}")

    def peek(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def skip_trivia(self) -> None:
        src = self.source
        while self.pos < len(src):
            char = src[self.pos]
            if char.isspace():
                self.pos += 1
            elif src.startswith("//", self.pos):
                end = src.find("\n", self.pos)
                self.pos = len(src) if end == -1 else end + 1
            elif src.startswith("/*", self.pos):
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("unterminated comment")
                self.pos = end + 2
            else:
                return

    def expect(self, char: str) -> None:
        self.skip_trivia()
        if self.peek() != char:
            found = self.peek() or "end of file"
            raise self.error(f"expected {char!r}, found {found!r}")
        self.pos += 1

    # -- literals --------------------------------------------------------

    def parse_value(self) -> Any:
        self.skip_trivia()
        char = self.peek()
        if char == "[":
            return self.parse_array()
        if char == "{":
            return self.parse_object()
        if char in "\"'`":
            return self.parse_string()
        number = _NUMBER_RE.match(self.source, self.pos)
        if number:
            self.pos = number.end()
            text = number.group(0)
            return float(text) if any(c in text for c in ".eE") else int(text)
        ident = _IDENT_RE.match(self.source, self.pos)
        if ident and ident.group(0) in _KEYWORD_VALUES:
            self.pos = ident.end()
            return _KEYWORD_VALUES[ident.group(0)]
        if not char:
            raise self.error("unexpected end of file")
        raise self.error(f"non-literal value starting with {char!r}")

    def parse_array(self) -> list[Any]:
        self.expect("[")
        items: list[Any] = []
        while True:
            self.skip_trivia()
            if self.peek() == "]":
                self.pos += 1
                return items
            items.append(self.parse_value())
            self.skip_trivia()
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect("]")
            return items

    def parse_key(self) -> str:
        self.skip_trivia()
        char = self.peek()
        if char in "\"'":
            return self.parse_string()
        ident = _IDENT_RE.match(self.source, self.pos)
        if ident:
            self.pos = ident.end()
            return ident.group(0)
        number = _NUMBER_RE.match(self.source, self.pos)
        if number:
            self.pos = number.end()
            return number.group(0)
        raise self.error(f"expected object key, found {char or 'end of file'!r}")

    def parse_object(self) -> dict[str, Any]:
        self.expect("{")
        record: dict[str, Any] = {}
        while True:
            self.skip_trivia()
            if self.peek() == "}":
                self.pos += 1
                return record
            key = self.parse_key()
            self.expect(":")
            if key in OPAQUE_KEYS:
                self.skip_expression()
                record[key] = ""
            else:
                record[key] = self.parse_value()
            self.skip_trivia()
            if self.peek() == ",":
                self.pos += 1
                continue
            self.expect("}")
            return record

    def parse_string(self) -> str:
        quote = self.peek()
        start = self.pos
        self.pos += 1
        chunks: list[str] = []
        src = self.source
        while self.pos < len(src):
            char = src[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(chunks)
            if char == "\\":
                chunks.append(self._parse_escape())
                continue
            if quote == "`" and src.startswith("${", self.pos):
                raise self.error("template literal with interpolation")
            if char == "\n" and quote != "`":
                break
            chunks.append(char)
            self.pos += 1
        raise self.error("unterminated string", start)

    def _parse_escape(self) -> str:
        src = self.source
        self.pos += 1
        if self.pos >= len(src):
            raise self.error("unterminated escape")
        char = src[self.pos]
        if char in ("u", "x"):
            width = 4 if char == "u" else 2
            digits = src[self.pos + 1 : self.pos + 1 + width]
            if len(digits) != width or not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise self.error(f"invalid \\{char} escape")
            self.pos += 1 + width
            return chr(int(digits, 16))
        self.pos += 1
        if char == "\n":
            return ""
        return _SIMPLE_ESCAPES.get(char, char)

    # -- opaque expressions ----------------------------------------------

    def skip_expression(self) -> None:
        """Advance past one expression, stopping before a top-level `,` `}` or `]`."""
        self.skip_trivia()
        start = self.pos
        src = self.source
        closers: list[str] = []
        while self.pos < len(src):
            self.skip_trivia()
            char = self.peek()
            if not char:
                break
            if not closers and char in ",}]":
                if self.pos == start:
                    raise self.error("missing value")
                return
            if char in "\"'`":
                self._skip_string()
                continue
            if char in _OPENERS:
                closers.append(_OPENERS[char])
            elif char in ")]}":
                if not closers or closers.pop() != char:
                    raise self.error(f"unbalanced {char!r} in component expression")
            self.pos += 1
        raise self.error("unterminated component expression", start)

    def _skip_string(self) -> None:
        quote = self.peek()
        start = self.pos
        self.pos += 1
        src = self.source
        while self.pos < len(src):
            char = src[self.pos]
            if char == "\\":
                self.pos += 2
                continue
            self.pos += 1
            if char == quote:
                return
        raise self.error("unterminated string", start)


def find_route_table(source: str) -> int:
    """Return the offset of the `[` opening the route table."""
    match = ROUTES_PATTERN.search(source)
    if match is None:
        raise ArtifactShapeError(f"{ROUTER_FILE}: no `routes: [...]` table found")
    return match.end() - 1


def _join_route_path(parent: str, child: str) -> str:
    if child.startswith("/"):
        return child
    if not child:
        return parent
    return parent.rstrip("/") + "/" + child


def _collect_routes(
    records: Any,
    parent_path: str | None,
    trail: tuple[int, ...],
    out: list[Route],
) -> None:
    if not isinstance(records, list):
        owner = "route table" if not trail else f"children of route #{_label(trail)}"
        raise ArtifactShapeError(f"{ROUTER_FILE}: {owner} is not an array")
    for index, record in enumerate(records):
        where = f"route #{_label((*trail, index))}"
        if not isinstance(record, dict):
            raise ArtifactShapeError(f"{ROUTER_FILE}: {where} is not an object")
        path = record.get("path")
        if not isinstance(path, str):
            raise ArtifactShapeError(f"{ROUTER_FILE}: {where} has no string `path`")
        full_path = path if parent_path is None else _join_route_path(parent_path, path)
        name = record.get("name")
        children = record.get("children")
        if isinstance(name, str) and name:
            out.append(Route(path=full_path, name=name))
        elif children is None:
            raise ArtifactShapeError(f"{ROUTER_FILE}: {where} ({full_path}) has no string `name`")
        if children is not None:
            _collect_routes(children, full_path, (*trail, index), out)


def _label(trail: tuple[int, ...]) -> str:
    return ".".join(str(i) for i in trail)


def parse_route_table(source: str) -> list[Route]:
    """Parse the route table out of generated router source."""
    parser = _LiteralParser(source, find_route_table(source))
    table = parser.parse_array()
    routes: list[Route] = []
    _collect_routes(table, None, (), routes)
    return routes


def discover_routes(work_path: Path) -> list[Route]:
    router_path = work_path / ROUTER_FILE
    if not router_path.is_file():
        raise ArtifactShapeError(f"{ROUTER_FILE} was not generated by the build")
    routes = parse_route_table(router_path.read_text(encoding="utf-8"))
    logger.info("discovered %d routes", len(routes))
    return routes
