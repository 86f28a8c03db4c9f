"""Page filter: the single entry point that rewrites a rendered page.

A `LazyLoad` compiles the rewrite pipeline once from a `LazyLoadConfig` and
then filters any number of page buffers. Each call owns its buffer and its
counters; nothing carries over between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import LazyLoadConfig
from .constants import AMP_MARKER, BUILDER_FORM_ACTIONS, BUILDER_PATH_MARKERS, BUILDER_QUERY_ARGS, XML_MARKER
from .errors import RegistrationError
from .rewrites import apply_compiled_rewrites, compile_rewrites, default_rewrites

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .errors import RewriteNote
    from .rewrites import CompiledRewrite
    from .rewrites_spec import ReportCallback


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """What the skip-check needs to know about the current request.

    `is_admin` and `is_builder_preview` come from the host application; the
    path, query and form values are checked for known page-builder editors.
    """

    is_admin: bool = False
    is_builder_preview: bool = False
    path: str = ""
    query: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, str] = field(default_factory=dict)


def skip_reason(buffer: str, context: RequestContext | None = None) -> str | None:
    """Return why `buffer` must be passed through untouched, or None."""

    if not buffer:
        return "empty"
    if context is not None:
        if context.is_admin:
            return "admin"
        if context.is_builder_preview:
            return "builder-preview"
        if any(context.query.get(arg) for arg in BUILDER_QUERY_ARGS):
            return "builder-preview"
        if any(marker in context.path for marker in BUILDER_PATH_MARKERS):
            return "builder-preview"
        if context.form.get("action") in BUILDER_FORM_ACTIONS:
            return "builder-preview"
    # XML (not XHTML) documents are never modified.
    if XML_MARKER in buffer:
        return "xml"
    if AMP_MARKER in buffer:
        return "amp"
    return None


class LazyLoad:
    """Rewrites page output for lazy loading and WebP alternates.

    Build one per process (or per request) from a `LazyLoadConfig`; the
    compiled pipeline is immutable and safe to share between calls.
    """

    __slots__ = ("_compiled", "config")

    config: LazyLoadConfig
    _compiled: list[CompiledRewrite]

    def __init__(self, config: LazyLoadConfig | None = None, *, report: ReportCallback | None = None) -> None:
        self.config = config if config is not None else LazyLoadConfig()
        self._compiled = compile_rewrites(
            default_rewrites(
                above_the_fold=self.config.above_the_fold_count,
                use_lqip=self.config.use_low_quality_placeholder,
                integrations=self.config.enabled_integrations,
                report=report,
            ),
            delivery_domain=self.config.alternate_delivery_domain,
        )
        if self.config.alternate_delivery_domain:
            logger.debug("Parsing pages for delivery domain %s", self.config.alternate_delivery_domain)

    @property
    def strategies(self) -> tuple[str, ...]:
        """Kinds of the compiled rewrites, in the order they run."""

        return tuple(item.kind for item in self._compiled)

    def filter_page_output(
        self,
        buffer: str,
        context: RequestContext | None = None,
        *,
        notes: list[RewriteNote] | None = None,
    ) -> str:
        """Return the rewritten page, or `buffer` itself when it must be skipped."""

        reason = skip_reason(buffer, context)
        if reason is not None:
            logger.debug("Skipping page filter: %s", reason)
            return buffer
        buffer = apply_compiled_rewrites(buffer, self._compiled, notes=notes)
        logger.debug("All done parsing page for lazy load and WebP")
        return buffer

    def output_callback(self, context: RequestContext | None = None) -> Callable[[str], str]:
        """Return a `buffer -> buffer` callable for an output-buffering hook."""

        def _callback(buffer: str) -> str:
            return self.filter_page_output(buffer, context)

        return _callback


class OutputFilters:
    """Owner of the page filters registered for one process or request.

    Registration happens once. A second attempt gets a `RegistrationError`
    value back and the first filter stays in place.
    """

    __slots__ = ("_lazy_load",)

    def __init__(self) -> None:
        self._lazy_load: LazyLoad | None = None

    @property
    def lazy_load(self) -> LazyLoad | None:
        return self._lazy_load

    def register_lazy_load(
        self,
        config: LazyLoadConfig | None = None,
        *,
        report: ReportCallback | None = None,
    ) -> LazyLoad | RegistrationError:
        if self._lazy_load is not None:
            logger.debug("Lazy load is already registered")
            return RegistrationError("already-registered", "Lazy load is already registered on this owner")
        self._lazy_load = LazyLoad(config, report=report)
        return self._lazy_load

    def filter_page_output(self, buffer: str, context: RequestContext | None = None) -> str:
        """Run the registered filter, or pass the buffer through if there is none."""

        if self._lazy_load is None:
            return buffer
        return self._lazy_load.filter_page_output(buffer, context)


def filter_page_output(
    buffer: str,
    context: RequestContext | None = None,
    config: LazyLoadConfig | None = None,
    *,
    notes: list[RewriteNote] | None = None,
) -> str:
    """One-shot helper: build a `LazyLoad` for `config` and filter `buffer`."""

    return LazyLoad(config).filter_page_output(buffer, context, notes=notes)


__all__ = [
    "LazyLoad",
    "OutputFilters",
    "RequestContext",
    "filter_page_output",
    "skip_reason",
]
