"""Locate elements in a page buffer as text spans.

This is deliberately not a parser: it finds start tags by name, skips HTML
comments and the text of `<script>`, `<style>` and `<textarea>` (and
optionally the contents of named containers such as `<noscript>`), and
hands back the exact captured text so callers can edit it with
`lazyhtml.attrs` and substitute it back.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

from .attrs import get_attribute
from .constants import LAZY_SRC_ATTRS, RAW_TEXT_ELEMENTS
from .urls import is_eligible

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator


_OPAQUE_START_PATTERN = re.compile(
    r"<!--|<(" + "|".join(RAW_TEXT_ELEMENTS) + r")(?=[\s/>])",
    re.IGNORECASE,
)
# Quote-aware run up to the closing '>' of a start tag.
_TAG_REST_PATTERN = re.compile(r"""(?:[^>"']|"[^"]*"|'[^']*')*>""")
_TAG_REST_FALLBACK_PATTERN = re.compile(r"[^>]*>")


@dataclass(frozen=True, slots=True)
class ElementSpan:
    """One element captured from a buffer: `text == buffer[start:end]`."""

    name: str
    start: int
    end: int
    text: str


@dataclass(slots=True)
class ImageScan:
    """`img` spans in document order, with the resolved image URL of each.

    `elements[i]` and `img_url[i]` describe the same element.
    """

    elements: list[ElementSpan] = field(default_factory=list)
    img_url: list[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[tuple[ElementSpan, str]]:
        return iter(zip(self.elements, self.img_url))

    def __len__(self) -> int:
        return len(self.elements)


@lru_cache(maxsize=64)
def _start_tag_pattern(tag_name: str) -> re.Pattern[str]:
    return re.compile(r"<(" + re.escape(tag_name) + r")(?=[\s/>])", re.IGNORECASE)


@lru_cache(maxsize=64)
def _end_tag_pattern(tag_name: str) -> re.Pattern[str]:
    return re.compile(r"</" + re.escape(tag_name) + r"\s*>", re.IGNORECASE)


def _tag_end(buffer: str, pos: int) -> int | None:
    m = _TAG_REST_PATTERN.match(buffer, pos)
    if m is None:
        m = _TAG_REST_FALLBACK_PATTERN.match(buffer, pos)
        if m is None:
            return None
    return m.end()


class _SkipRanges:
    """Sorted, non-overlapping [start, end) ranges that scanning must ignore."""

    __slots__ = ("ends", "starts")

    def __init__(self, ranges: list[tuple[int, int]]) -> None:
        merged: list[tuple[int, int]] = []
        for start, end in sorted(ranges):
            if merged and start <= merged[-1][1]:
                if end > merged[-1][1]:
                    merged[-1] = (merged[-1][0], end)
                continue
            merged.append((start, end))
        self.starts = [r[0] for r in merged]
        self.ends = [r[1] for r in merged]

    def covering(self, pos: int) -> int | None:
        """Return the end of the range containing `pos`, if any."""

        i = bisect_right(self.starts, pos) - 1
        if i >= 0 and pos < self.ends[i]:
            return self.ends[i]
        return None


def _opaque_ranges(buffer: str) -> list[tuple[int, int]]:
    """Comments and raw-text elements, found in one left-to-right pass.

    A `<!--` inside a script string does not open a comment, and a `<script`
    inside a comment does not open a script. Unclosed ranges run to the end
    of the buffer.
    """

    ranges: list[tuple[int, int]] = []
    pos = 0
    while True:
        m = _OPAQUE_START_PATTERN.search(buffer, pos)
        if m is None:
            return ranges
        name = m.group(1)
        if name is None:
            end = buffer.find("-->", m.end())
            end = len(buffer) if end == -1 else end + 3
        else:
            open_end = _tag_end(buffer, m.end())
            close = None if open_end is None else _end_tag_pattern(name.lower()).search(buffer, open_end)
            end = len(buffer) if close is None else close.end()
        ranges.append((m.start(), end))
        pos = end


def _iter_containers(buffer: str, tag_name: str, skip: _SkipRanges) -> Iterator[ElementSpan]:
    start_pattern = _start_tag_pattern(tag_name)
    end_pattern = _end_tag_pattern(tag_name)
    pos = 0
    while True:
        m = start_pattern.search(buffer, pos)
        if m is None:
            return
        skip_to = skip.covering(m.start())
        if skip_to is not None:
            pos = skip_to
            continue
        open_end = _tag_end(buffer, m.end())
        if open_end is None:
            return

        # Count nested elements of the same name until the matching end tag.
        depth = 1
        cursor = open_end
        close_end = None
        while depth:
            next_close = end_pattern.search(buffer, cursor)
            if next_close is None:
                break
            next_open = start_pattern.search(buffer, cursor, next_close.start())
            if next_open is not None:
                skip_to = skip.covering(next_open.start())
                if skip_to is not None:
                    cursor = skip_to
                    continue
                depth += 1
                cursor = _tag_end(buffer, next_open.end()) or next_open.end()
                continue
            skip_to = skip.covering(next_close.start())
            if skip_to is not None:
                cursor = skip_to
                continue
            depth -= 1
            cursor = next_close.end()
            if not depth:
                close_end = cursor

        if close_end is None:
            pos = open_end
            continue
        yield ElementSpan(m.group(1).lower(), m.start(), close_end, buffer[m.start() : close_end])
        pos = close_end


def _skip_ranges(buffer: str, skip_inside: Collection[str]) -> _SkipRanges:
    opaque = _SkipRanges(_opaque_ranges(buffer))
    ranges = list(zip(opaque.starts, opaque.ends))
    for name in skip_inside:
        ranges.extend((span.start, span.end) for span in _iter_containers(buffer, str(name).lower(), opaque))
    return _SkipRanges(ranges)


def find_elements(buffer: str, tag_name: str, *, skip_inside: Collection[str] = ()) -> Iterator[ElementSpan]:
    """Yield the start tags named `tag_name`, in document order.

    Matches are case-insensitive and need a delimiter after the name, so
    `"a"` never matches `<abbr>`. Tags inside comments, raw-text elements
    or any element named in `skip_inside` are not yielded.
    """

    tag_name = str(tag_name).lower()
    pattern = _start_tag_pattern(tag_name)
    skip = _skip_ranges(buffer, skip_inside)
    pos = 0
    while True:
        m = pattern.search(buffer, pos)
        if m is None:
            return
        skip_to = skip.covering(m.start())
        if skip_to is not None:
            pos = skip_to
            continue
        end = _tag_end(buffer, m.end())
        if end is None:
            return
        yield ElementSpan(tag_name, m.start(), end, buffer[m.start() : end])
        pos = end


def find_containers(buffer: str, tag_name: str, *, skip_inside: Collection[str] = ()) -> Iterator[ElementSpan]:
    """Yield whole elements (start tag through matching end tag).

    Unclosed elements are not yielded.
    """

    return _iter_containers(buffer, str(tag_name).lower(), _skip_ranges(buffer, skip_inside))


def resolve_image_url(element: str) -> str:
    """Pick the real image URL of an `img`.

    `src` wins unless it is missing, empty or a placeholder, in which case the
    first lazy-loader data attribute holding a value is used.
    """

    src = get_attribute(element, "src")
    if src and is_eligible(src):
        return src
    for name in LAZY_SRC_ATTRS:
        value = get_attribute(element, name)
        if value:
            return value
    return src or ""


def find_images(buffer: str) -> ImageScan:
    """Collect `img` elements outside comments, raw text and `<noscript>` fallbacks."""

    scan = ImageScan()
    for span in find_elements(buffer, "img", skip_inside=("noscript",)):
        scan.elements.append(span)
        scan.img_url.append(resolve_image_url(span.text))
    return scan


__all__ = [
    "ElementSpan",
    "ImageScan",
    "find_containers",
    "find_elements",
    "find_images",
    "resolve_image_url",
]
