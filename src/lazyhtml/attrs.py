"""Attribute access on raw element text.

All helpers take the text of one element (a start tag, or a container whose
text starts with its start tag) and return new text. Only the start tag is
ever inspected or edited; everything after its closing `>` is left alone.

Values are raw: entities are neither decoded nor encoded, except that a
value holding both quote characters gets its double quotes written as
`&quot;` so the result stays well-formed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


_TAG_NAME_PATTERN = re.compile(r"<[^\s/>]*")
_ATTR_SEPARATOR_PATTERN = re.compile(r"[\s/]+")
_ATTR_PATTERN = re.compile(
    r"""(?P<name>[^\s"'<>/=]+)"""
    r"""(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<uq>[^\s>]+)))?"""
)
_TRAILING_WHITESPACE_PATTERN = re.compile(r"\s+$")


@dataclass(frozen=True, slots=True)
class Attribute:
    name: str
    value: str
    quote: str
    start: int
    end: int


def iter_attributes(element: str) -> Iterator[Attribute]:
    """Yield the attributes of the element's start tag, in source order.

    `start`/`end` are offsets into `element` covering `name="value"` (without
    the leading whitespace). Stray characters that cannot start an attribute
    (an unbalanced quote, a lone `=`) are skipped.
    """

    m = _TAG_NAME_PATTERN.match(element)
    if m is None:
        return
    pos = m.end()
    length = len(element)
    while pos < length:
        sep = _ATTR_SEPARATOR_PATTERN.match(element, pos)
        if sep is not None:
            pos = sep.end()
            continue
        if element[pos] == ">":
            return
        attr = _ATTR_PATTERN.match(element, pos)
        if attr is None:
            pos += 1
            continue
        if attr.group("dq") is not None:
            value, quote = attr.group("dq"), '"'
        elif attr.group("sq") is not None:
            value, quote = attr.group("sq"), "'"
        else:
            value, quote = attr.group("uq") or "", ""
        yield Attribute(attr.group("name"), value, quote, attr.start(), attr.end())
        pos = attr.end()


def _find(element: str, name: str) -> list[Attribute]:
    name = name.lower()
    return [a for a in iter_attributes(element) if a.name.lower() == name]


def get_attribute(element: str, name: str) -> str | None:
    """Return the raw value of `name`, `""` for a valueless attribute, or None."""

    for attr in iter_attributes(element):
        if attr.name.lower() == name.lower():
            return attr.value
    return None


def _quote_value(value: str, preferred: str = '"') -> str:
    if preferred not in ('"', "'"):
        preferred = '"'
    if preferred not in value:
        return f"{preferred}{value}{preferred}"
    other = "'" if preferred == '"' else '"'
    if other not in value:
        return f"{other}{value}{other}"
    return '"' + value.replace('"', "&quot;") + '"'


def _start_tag_insert_point(element: str) -> int:
    """Offset right after the last attribute (or the tag name)."""

    last_end = None
    for attr in iter_attributes(element):
        last_end = attr.end
    if last_end is not None:
        return last_end
    m = _TAG_NAME_PATTERN.match(element)
    return m.end() if m is not None else 0


def set_attribute(element: str, name: str, value: str, overwrite: bool = False) -> str:
    """Set `name` to `value`.

    An absent attribute is appended. A present one is replaced in place when
    `overwrite` is true; otherwise a second `name="value"` is appended and the
    original is kept, which leaves the first occurrence in effect.
    """

    value = value.strip()
    if overwrite:
        found = _find(element, name)
        if found:
            attr = found[0]
            replacement = f"{attr.name}={_quote_value(value, attr.quote)}"
            return element[: attr.start] + replacement + element[attr.end :]

    pos = _start_tag_insert_point(element)
    return f"{element[:pos]} {name}={_quote_value(value)}{element[pos:]}"


def remove_attribute(element: str, name: str) -> str:
    """Remove every occurrence of `name` together with its leading whitespace."""

    found = _find(element, name)
    for attr in reversed(found):
        head = element[: attr.start]
        ws = _TRAILING_WHITESPACE_PATTERN.search(head)
        if ws is not None:
            head = head[: ws.start()]
        element = head + element[attr.end :]
    return element


def has_class(element: str, token: str) -> bool:
    value = get_attribute(element, "class")
    if not value:
        return False
    return token in value.split()


def add_class(element: str, token: str) -> str:
    """Append `token` to the class attribute, creating it if needed."""

    value = get_attribute(element, "class")
    if value is None or not value.strip():
        return set_attribute(element, "class", token, True)
    if token in value.split():
        return element
    return set_attribute(element, "class", f"{value.strip()} {token}", True)


__all__ = [
    "Attribute",
    "add_class",
    "get_attribute",
    "has_class",
    "iter_attributes",
    "remove_attribute",
    "set_attribute",
]
