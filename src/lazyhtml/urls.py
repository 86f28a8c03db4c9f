"""URL eligibility and WebP URL derivation."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .constants import PENDING_LOAD_QUERY, PLACEHOLDER_PATTERNS, WEBP_SUFFIX

_SRCSET_SPLIT_PATTERN = re.compile(r"(\s+)")
_SRCSET_DESCRIPTOR_PATTERN = re.compile(r"^(?:\d+(?:\.\d+)?|\.\d+)[wxh]?,?$")
# A descriptor glued to the next candidate: "300w,b.jpg".
_SRCSET_GLUED_PATTERN = re.compile(r"^((?:\d+(?:\.\d+)?|\.\d+)[wxh],)(.+)$")


def is_eligible(text: str) -> bool:
    """Return False when `text` (a URL or a whole element) holds a placeholder."""

    return not any(pattern in text for pattern in PLACEHOLDER_PATTERNS)


def add_query_arg(url: str, key: str, value: str) -> str:
    """Set `key=value` in the query string, keeping other pairs verbatim."""

    base, hash_sep, fragment = url.partition("#")
    path, _, query = base.partition("?")
    pairs = [pair for pair in query.split("&") if pair and pair.split("=", 1)[0] != key]
    pairs.append(f"{key}={value}")
    return f"{path}?{'&'.join(pairs)}{hash_sep}{fragment}"


def rewrite_url(url: str, *, delivery_domain: str = "") -> str:
    """Return the WebP counterpart of `url`.

    URLs served by the delivery domain negotiate the format with a `webp=1`
    query argument. Everything else gets `.webp` appended to the path; the
    query string is kept unless it is the pending-load marker.
    """

    if delivery_domain and delivery_domain in url:
        return add_query_arg(url, "webp", "1")
    path, _, query = url.partition("?")
    if query and query != PENDING_LOAD_QUERY:
        return f"{path}{WEBP_SUFFIX}?{query}"
    return path + WEBP_SUFFIX


def rewrite_srcset(srcset: str, *, delivery_domain: str = "") -> str | None:
    """Rewrite each eligible URL of a srcset, keeping descriptors and spacing.

    Returns None when nothing was rewritten. A srcset that contains a
    placeholder anywhere is left alone as a whole, since a data URI would not
    survive being split on its commas.
    """

    if not srcset.strip() or not is_eligible(srcset):
        return None

    parts = _SRCSET_SPLIT_PATTERN.split(srcset)
    changed = False
    for i, token in enumerate(parts):
        if not token or token.isspace() or _SRCSET_DESCRIPTOR_PATTERN.match(token):
            continue
        leading = ""
        glued = _SRCSET_GLUED_PATTERN.match(token)
        if glued is not None:
            leading, token = glued.group(1), glued.group(2)
        trailing = ""
        if token.endswith(","):
            token, trailing = token.rstrip(","), ","
        if not token:
            continue
        parts[i] = leading + rewrite_url(token, delivery_domain=delivery_domain) + trailing
        changed = True

    if not changed:
        return None
    return "".join(parts)


@dataclass(frozen=True, slots=True)
class UrlRules:
    """URL rules bound to one (possibly empty) delivery domain."""

    delivery_domain: str = ""

    def handles(self, url: str) -> bool:
        return bool(self.delivery_domain) and self.delivery_domain in url

    def is_eligible(self, text: str) -> bool:
        return is_eligible(text)

    def rewrite_url(self, url: str) -> str:
        return rewrite_url(url, delivery_domain=self.delivery_domain)

    def rewrite_srcset(self, srcset: str) -> str | None:
        return rewrite_srcset(srcset, delivery_domain=self.delivery_domain)


__all__ = [
    "UrlRules",
    "add_query_arg",
    "is_eligible",
    "rewrite_srcset",
    "rewrite_url",
]
