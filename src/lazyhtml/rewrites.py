"""Rewrite strategies applied to a whole page buffer.

Each strategy is compiled once into an object with a `rewrite(buffer)`
method that returns the new buffer. Strategies find their elements with
`lazyhtml.scanner`, edit the element text with `lazyhtml.attrs`, and splice
the edited text back in place of the captured span.

Safety model: a page pass never raises. A strategy that fails leaves the
buffer as it found it and the failure is recorded as a `RewriteNote`.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .attrs import add_class, get_attribute, has_class, remove_attribute, set_attribute
from .constants import (
    JETPACK_ATTRS,
    LAZY_CLASS,
    NOSCRIPT_ATTRIBUTES,
    RETINA_PLACEHOLDER_MARKER,
    WEBP_LAZY_CLASS,
    WEBP_MIME_TYPE,
    WOOCOMMERCE_GALLERY_CLASS,
)
from .errors import RewriteNote
from .rewrites_spec import (
    DEFAULT_INTEGRATIONS,
    Integration,
    JetpackImages,
    LazyImages,
    NextGenLinks,
    PictureSources,
    RetinaImages,
    RevSliderImages,
    RevSliderSlides,
    VideoPosters,
    WooCommerceImages,
    WooCommerceThumbs,
)
from .scanner import find_containers, find_elements, find_images
from .urls import UrlRules, add_query_arg

if TYPE_CHECKING:
    from typing import Protocol

    from .rewrites_spec import ElementCallback, ReportCallback
    from .scanner import ElementSpan

    class BufferCallback(Protocol):
        def __call__(self, buffer: str) -> None: ...


logger = logging.getLogger(__name__)


# -----------------
# Public API
# -----------------


_NOTE_SINK: ContextVar[list[RewriteNote] | None] = ContextVar("lazyhtml_rewrite_note_sink", default=None)


def emit_note(code: str, *, message: str | None = None, element: str | None = None) -> None:
    """Record a RewriteNote from within a rewrite.

    Notes are appended to the active sink while `apply_compiled_rewrites`
    runs with `notes=`. If no sink is active, this is a no-op.
    """

    sink = _NOTE_SINK.get()
    if sink is None:
        return
    sink.append(RewriteNote(str(code), message, element=element))


@dataclass(frozen=True, slots=True)
class Stage:
    """Group rewrites into an explicit, named pass.

    Stages make the order of passes readable. Nested stages are flattened.
    The stage `callback` receives the buffer as it is when the stage starts.
    """

    name: str
    rewrites: tuple[RewriteSpec, ...]
    enabled: bool
    callback: BufferCallback | None
    report: ReportCallback | None

    def __init__(
        self,
        name: str,
        rewrites: list[RewriteSpec] | tuple[RewriteSpec, ...],
        *,
        enabled: bool = True,
        callback: BufferCallback | None = None,
        report: ReportCallback | None = None,
    ) -> None:
        object.__setattr__(self, "name", str(name))
        object.__setattr__(self, "rewrites", tuple(rewrites))
        object.__setattr__(self, "enabled", bool(enabled))
        object.__setattr__(self, "callback", callback)
        object.__setattr__(self, "report", report)


Rewrite = (
    LazyImages
    | JetpackImages
    | WooCommerceImages
    | RevSliderImages
    | RetinaImages
    | PictureSources
    | NextGenLinks
    | RevSliderSlides
    | WooCommerceThumbs
    | VideoPosters
)

_REWRITE_CLASSES: tuple[type[object], ...] = (
    LazyImages,
    JetpackImages,
    WooCommerceImages,
    RevSliderImages,
    RetinaImages,
    PictureSources,
    NextGenLinks,
    RevSliderSlides,
    WooCommerceThumbs,
    VideoPosters,
)

RewriteSpec = Rewrite | Stage


# -----------------
# Buffer editing
# -----------------


class _BufferEditor:
    """Splice edited element text back into a buffer, left to right.

    Spans are matched by their exact captured text, starting at the offset
    they were captured at (shifted by earlier edits). If the buffer no
    longer holds the text there, the first occurrence after the last edit is
    used instead. Text that has already been replaced is never searched
    again, so an element is rewritten at most once per pass.
    """

    __slots__ = ("buffer", "cursor", "delta")

    def __init__(self, buffer: str) -> None:
        self.buffer = buffer
        self.cursor = 0
        self.delta = 0

    def replace(self, span: ElementSpan, new_text: str) -> bool:
        original = span.text
        pos = span.start + self.delta
        if pos < self.cursor or not self.buffer.startswith(original, pos):
            pos = self.buffer.find(original, self.cursor)
            if pos < 0:
                emit_note("span-moved", message=f"Could not find <{span.name}> to replace", element=original)
                return False
        self.buffer = self.buffer[:pos] + new_text + self.buffer[pos + len(original) :]
        self.delta = pos + len(new_text) - span.end
        self.cursor = pos + len(new_text)
        return True


# -----------------
# Compiled rewrites
# -----------------


class _CompiledRewrite:
    """Base for compiled strategies: `rewrite(buffer) -> buffer`."""

    __slots__ = ("callback", "kind", "report", "rules")

    kind: str
    rules: UrlRules
    callback: ElementCallback | None
    report: ReportCallback | None

    def __init__(
        self,
        kind: str,
        rules: UrlRules,
        callback: ElementCallback | None,
        report: ReportCallback | None,
    ) -> None:
        self.kind = kind
        self.rules = rules
        self.callback = callback
        self.report = report

    def rewrite(self, buffer: str) -> str:
        raise NotImplementedError

    def _report(self, msg: str, element: str) -> None:
        if self.report is not None:
            self.report(msg, element=element)

    def _changed(self, element: str) -> None:
        if self.callback is not None:
            self.callback(element)

    def _add_webp(self, element: str, attr: str, webp_attr: str) -> str:
        """Attach `webp_attr` for the URL in `attr`, keeping `attr` as is."""

        value = get_attribute(element, attr)
        if not value or get_attribute(element, webp_attr) is not None:
            return element
        if not self.rules.is_eligible(value):
            self._report(f"Skipped placeholder in {attr}", element)
            return element
        self._report(f"Added {webp_attr} for {attr}", element)
        return set_attribute(element, webp_attr, self.rules.rewrite_url(value))

    def _rewrite_elements(self, buffer: str, tag_name: str) -> str:
        """Run `_edit` over every `tag_name` start tag outside `<noscript>` and raw text."""

        editor = _BufferEditor(buffer)
        for span in find_elements(buffer, tag_name, skip_inside=("noscript",)):
            new_text = self._edit(span.text)
            if new_text != span.text and editor.replace(span, new_text):
                self._changed(new_text)
        return editor.buffer

    def _edit(self, element: str) -> str:
        return element

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind!r}>"


class _CompiledLazyImages(_CompiledRewrite):
    __slots__ = ("above_the_fold", "placeholder", "use_lqip")

    def __init__(self, spec: LazyImages, rules: UrlRules) -> None:
        super().__init__("lazy_images", rules, spec.callback, spec.report)
        self.above_the_fold = spec.above_the_fold
        self.use_lqip = spec.use_lqip
        self.placeholder = spec.placeholder

    def rewrite(self, buffer: str) -> str:
        scan = find_images(buffer)
        if not scan:
            return buffer

        editor = _BufferEditor(buffer)
        # Fold counter: eligible images seen so far in this pass.
        images_processed = 0
        for span, file in scan:
            image = span.text
            if has_class(image, LAZY_CLASS):
                continue
            if not self.rules.is_eligible(image):
                self._report("Skipped lazy load placeholder", image)
                continue
            images_processed += 1
            if images_processed <= self.above_the_fold:
                self._report(f"Left image {images_processed} above the fold", image)
                continue
            if not file:
                emit_note("no-image-url", message="Image has no usable URL", element=image)
                continue

            new_image = self._lazy_image(image, file)
            if editor.replace(span, new_image + noscript_fallback(image)):
                self._report(f"Lazy loading {file}", new_image)
                self._changed(new_image)
        return editor.buffer

    def _lazy_image(self, image: str, file: str) -> str:
        image = set_attribute(image, "data-src", file, True)

        placeholder = self.placeholder
        if self.use_lqip and self.rules.handles(file):
            placeholder = add_query_arg(file, "lazy", "1")

        srcset = get_attribute(image, "srcset")
        if srcset:
            image = set_attribute(image, "data-srcset", srcset, True)
            image = remove_attribute(image, "srcset")
        image = set_attribute(image, "src", placeholder, True)
        return add_class(image, LAZY_CLASS)


def noscript_fallback(image: str, prefix: str = "data-") -> str:
    """Wrap the original `img` in a `<noscript>` carrying its known attributes."""

    nscript = "<noscript>"
    for name in NOSCRIPT_ATTRIBUTES:
        value = get_attribute(image, name)
        if value:
            nscript = set_attribute(nscript, prefix + name, value)
    return f"{nscript}{image}</noscript>"


class _CompiledJetpackImages(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: JetpackImages, rules: UrlRules) -> None:
        super().__init__("jetpack_images", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if "data-orig-file" not in buffer and "data-medium-file" not in buffer and "data-large-file" not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "img")

    def _edit(self, element: str) -> str:
        for attr in JETPACK_ATTRS:
            element = self._add_webp(element, attr, attr.replace("data-", "data-webp-", 1))
        return element


class _CompiledWooCommerceImages(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: WooCommerceImages, rules: UrlRules) -> None:
        super().__init__("woocommerce_images", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if "data-large_image" not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "img")

    def _edit(self, element: str) -> str:
        if get_attribute(element, "data-large_image") is None:
            return element
        element = self._add_webp(element, "data-large_image", "data-webp-large_image")
        return self._add_webp(element, "data-src", "data-webp-src")


class _CompiledRevSliderImages(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: RevSliderImages, rules: UrlRules) -> None:
        super().__init__("revslider_images", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if "data-lazyload" not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "img")

    def _edit(self, element: str) -> str:
        return self._add_webp(element, "data-lazyload", "data-webp-lazyload")


class _CompiledRetinaImages(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: RetinaImages, rules: UrlRules) -> None:
        super().__init__("retina_images", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if LAZY_CLASS not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "img")

    def _edit(self, element: str) -> str:
        src = get_attribute(element, "src")
        if src and RETINA_PLACEHOLDER_MARKER not in element:
            return element
        if not has_class(element, LAZY_CLASS) or get_attribute(element, "data-srcset-webp") is not None:
            return element
        srcset = get_attribute(element, "data-srcset")
        if not srcset:
            return element
        srcset_webp = self.rules.rewrite_srcset(srcset)
        if srcset_webp is None:
            return element
        self._report("Added data-srcset-webp for retina lazy load", element)
        element = set_attribute(element, "data-srcset-webp", srcset_webp)
        return add_class(element, WEBP_LAZY_CLASS)


class _CompiledPictureSources(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: PictureSources, rules: UrlRules) -> None:
        super().__init__("picture_sources", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        editor = _BufferEditor(buffer)
        for span in find_containers(buffer, "picture"):
            picture = self._rewrite_picture(span.text)
            if picture != span.text and editor.replace(span, picture):
                self._changed(picture)
        return editor.buffer

    def _rewrite_picture(self, picture: str) -> str:
        sources = list(find_elements(picture, "source"))
        for source in sources:
            source_type = get_attribute(source.text, "type")
            if source_type and source_type.strip().lower() == WEBP_MIME_TYPE:
                return picture

        pieces: list[str] = []
        last = 0
        for source in sources:
            srcset = get_attribute(source.text, "srcset")
            if not srcset:
                continue
            srcset_webp = self.rules.rewrite_srcset(srcset)
            if srcset_webp is None:
                self._report("No WebP candidates in source srcset", source.text)
                continue
            source_webp = set_attribute(source.text, "srcset", srcset_webp, True)
            source_webp = set_attribute(source_webp, "type", WEBP_MIME_TYPE, True)
            pieces.append(picture[last : source.start])
            pieces.append(source_webp)
            last = source.start
            self._report("Added WebP source", source_webp)

        if not pieces:
            return picture
        pieces.append(picture[last:])
        return "".join(pieces)


class _CompiledNextGenLinks(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: NextGenLinks, rules: UrlRules) -> None:
        super().__init__("nextgen_links", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if "data-thumbnail" not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "a")

    def _edit(self, element: str) -> str:
        if not get_attribute(element, "data-src") or not get_attribute(element, "data-thumbnail"):
            return element
        element = self._add_webp(element, "data-src", "data-webp")
        return self._add_webp(element, "data-thumbnail", "data-webp-thumbnail")


class _CompiledRevSliderSlides(_CompiledRewrite):
    __slots__ = ("param_count",)

    def __init__(self, spec: RevSliderSlides, rules: UrlRules) -> None:
        super().__init__("revslider_slides", rules, spec.callback, spec.report)
        self.param_count = spec.param_count

    def rewrite(self, buffer: str) -> str:
        if "data-title" not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "li")

    def _edit(self, element: str) -> str:
        if get_attribute(element, "data-title") != "Slide":
            return element
        if not get_attribute(element, "data-lazyload") and not get_attribute(element, "data-thumb"):
            return element
        element = self._add_webp(element, "data-thumb", "data-webp-thumb")
        for num in range(1, self.param_count + 1):
            parameter = get_attribute(element, f"data-param{num}")
            if parameter and parameter.startswith("http"):
                element = self._add_webp(element, f"data-param{num}", f"data-webp-param{num}")
        return element


class _CompiledWooCommerceThumbs(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: WooCommerceThumbs, rules: UrlRules) -> None:
        super().__init__("woocommerce_thumbs", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if WOOCOMMERCE_GALLERY_CLASS not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "div")

    def _edit(self, element: str) -> str:
        div_class = get_attribute(element, "class")
        if not div_class or WOOCOMMERCE_GALLERY_CLASS not in div_class:
            return element
        return self._add_webp(element, "data-thumb", "data-webp-thumb")


class _CompiledVideoPosters(_CompiledRewrite):
    __slots__ = ()

    def __init__(self, spec: VideoPosters, rules: UrlRules) -> None:
        super().__init__("video_posters", rules, spec.callback, spec.report)

    def rewrite(self, buffer: str) -> str:
        if "poster" not in buffer:
            return buffer
        return self._rewrite_elements(buffer, "video")

    def _edit(self, element: str) -> str:
        poster = get_attribute(element, "poster")
        if not poster or get_attribute(element, "data-poster-webp") is not None:
            return element
        if not self.rules.is_eligible(poster):
            self._report("Skipped placeholder poster", element)
            return element
        element = set_attribute(element, "data-poster-webp", self.rules.rewrite_url(poster))
        element = set_attribute(element, "data-poster-image", poster)
        self._report("Moved poster to data-poster-image", element)
        return remove_attribute(element, "poster")


class _CompiledStageHook(_CompiledRewrite):
    """Marks the start of a Stage; leaves the buffer unchanged."""

    __slots__ = ("name", "on_start")

    def __init__(self, stage: Stage, rules: UrlRules) -> None:
        super().__init__("stage_hook", rules, None, stage.report)
        self.name = stage.name
        self.on_start = stage.callback

    def rewrite(self, buffer: str) -> str:
        if self.on_start is not None:
            self.on_start(buffer)
        if self.report is not None:
            self.report(f"Stage '{self.name}'", element=None)
        return buffer


_COMPILERS: dict[type[object], type[_CompiledRewrite]] = {
    LazyImages: _CompiledLazyImages,
    JetpackImages: _CompiledJetpackImages,
    WooCommerceImages: _CompiledWooCommerceImages,
    RevSliderImages: _CompiledRevSliderImages,
    RetinaImages: _CompiledRetinaImages,
    PictureSources: _CompiledPictureSources,
    NextGenLinks: _CompiledNextGenLinks,
    RevSliderSlides: _CompiledRevSliderSlides,
    WooCommerceThumbs: _CompiledWooCommerceThumbs,
    VideoPosters: _CompiledVideoPosters,
}

CompiledRewrite = _CompiledRewrite


# -----------------
# Compilation
# -----------------


def compile_rewrites(
    rewrites: list[RewriteSpec] | tuple[RewriteSpec, ...],
    *,
    delivery_domain: str = "",
) -> list[CompiledRewrite]:
    """Validate and compile rewrite specs, preserving their order.

    Disabled specs and stages are dropped. Unknown objects raise TypeError.
    """

    if not rewrites:
        return []

    rules = UrlRules(str(delivery_domain or ""))
    compiled: list[CompiledRewrite] = []

    def _walk(items: list[RewriteSpec] | tuple[RewriteSpec, ...]) -> None:
        for item in items:
            if isinstance(item, Stage):
                if not item.enabled:
                    continue
                compiled.append(_CompiledStageHook(item, rules))
                _walk(item.rewrites)
                continue
            if not isinstance(item, _REWRITE_CLASSES):
                raise TypeError(f"Unsupported rewrite: {type(item).__name__}")
            if not item.enabled:
                continue
            compiled.append(_COMPILERS[type(item)](item, rules))

    _walk(rewrites)
    return compiled


_INTEGRATION_REWRITES: dict[Integration, type[Rewrite]] = {
    Integration.JETPACK: JetpackImages,
    Integration.WOOCOMMERCE: WooCommerceImages,
    Integration.REVSLIDER_IMAGE: RevSliderImages,
    Integration.RETINA: RetinaImages,
    Integration.PICTURE: PictureSources,
    Integration.NEXTGEN: NextGenLinks,
    Integration.REVSLIDER: RevSliderSlides,
    Integration.WOOCOMMERCE_THUMBS: WooCommerceThumbs,
    Integration.VIDEO: VideoPosters,
}


def default_rewrites(
    *,
    above_the_fold: int = 0,
    use_lqip: bool = True,
    integrations: frozenset[Integration] = DEFAULT_INTEGRATIONS,
    report: ReportCallback | None = None,
) -> list[RewriteSpec]:
    """The standard page pass: images, then pictures, then other elements."""

    def _enabled(integration: Integration) -> bool:
        return integration in integrations

    def _make(integration: Integration) -> Rewrite:
        return _INTEGRATION_REWRITES[integration](enabled=_enabled(integration), report=report)

    return [
        Stage(
            "img",
            [
                LazyImages(above_the_fold=above_the_fold, use_lqip=use_lqip, report=report),
                _make(Integration.JETPACK),
                _make(Integration.WOOCOMMERCE),
                _make(Integration.REVSLIDER_IMAGE),
                _make(Integration.RETINA),
            ],
            report=report,
        ),
        Stage("picture", [_make(Integration.PICTURE)], report=report),
        Stage(
            "elements",
            [
                _make(Integration.NEXTGEN),
                _make(Integration.REVSLIDER),
                _make(Integration.WOOCOMMERCE_THUMBS),
                _make(Integration.VIDEO),
            ],
            report=report,
        ),
    ]


# -----------------
# Application
# -----------------


def apply_compiled_rewrites(
    buffer: str,
    compiled: list[CompiledRewrite],
    *,
    notes: list[RewriteNote] | None = None,
) -> str:
    """Run compiled rewrites in order and return the final buffer."""

    if not compiled or not buffer:
        return buffer

    token = _NOTE_SINK.set(notes)
    try:
        for item in compiled:
            try:
                buffer = item.rewrite(buffer)
            except Exception as exc:
                logger.exception("Rewrite %s failed; keeping buffer unchanged", item.kind)
                emit_note("strategy-failed", message=f"{item.kind}: {exc}")
    finally:
        _NOTE_SINK.reset(token)
    return buffer


__all__ = [
    "DEFAULT_INTEGRATIONS",
    "CompiledRewrite",
    "Integration",
    "JetpackImages",
    "LazyImages",
    "NextGenLinks",
    "PictureSources",
    "RetinaImages",
    "RevSliderImages",
    "RevSliderSlides",
    "Stage",
    "VideoPosters",
    "WooCommerceImages",
    "WooCommerceThumbs",
    "apply_compiled_rewrites",
    "compile_rewrites",
    "default_rewrites",
    "emit_note",
    "noscript_fallback",
]
