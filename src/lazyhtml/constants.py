"""Shared constants for the lazy-load rewriter."""

from __future__ import annotations

# 1x1 transparent GIF used as the default lazy-load placeholder.
PLACEHOLDER_SRC = "data:image/gif;base64,R0lGODlhAQABAAAAACH5BAEKAAEALAAAAAABAAEAAAICTAEAOw=="

# Fragments that identify a placeholder image (ours or another lazy loader's).
PLACEHOLDER_PATTERNS: tuple[str, ...] = (
    "assets/images/dummy.png",
    "base64,R0lGOD",
    "lazy-load/images/1x1",
    "assets/images/transparent.png",
    "assets/images/lazy",
)

# Marker for a base64 GIF placeholder inside a URL or attribute value.
BASE64_GIF_MARKER = "64,R0lGOD"

# The tiny GIF some retina plugins use as their own placeholder.
RETINA_PLACEHOLDER_MARKER = "R0lGODlhAQABAIAAAAAAAP"

LAZY_CLASS = "lazyload"
WEBP_LAZY_CLASS = "webp-lazyload"

WEBP_SUFFIX = ".webp"
WEBP_MIME_TYPE = "image/webp"

# Query strings that are dropped when building a suffixed WebP URL.
PENDING_LOAD_QUERY = "is-pending-load=1"

# Elements whose content is text, never markup: image tags inside them are
# script strings, CSS or form values and are left alone.
RAW_TEXT_ELEMENTS: tuple[str, ...] = ("script", "style", "textarea")

# Attributes that may carry the real image URL when `src` is a placeholder.
LAZY_SRC_ATTRS: tuple[str, ...] = (
    "data-src",
    "data-lazy-src",
    "data-original",
    "data-lazyload",
)

# Attributes copied (with a `data-` prefix) onto the <noscript> fallback.
NOSCRIPT_ATTRIBUTES: tuple[str, ...] = (
    "align",
    "alt",
    "border",
    "crossorigin",
    "height",
    "hspace",
    "ismap",
    "longdesc",
    "usemap",
    "vspace",
    "width",
    "accesskey",
    "class",
    "contenteditable",
    "contextmenu",
    "dir",
    "draggable",
    "dropzone",
    "hidden",
    "id",
    "lang",
    "spellcheck",
    "style",
    "tabindex",
    "title",
    "translate",
    "sizes",
    "data-caption",
    "data-lazy-type",
    "data-attachment-id",
    "data-permalink",
    "data-orig-size",
    "data-comments-opened",
    "data-image-meta",
    "data-image-title",
    "data-image-description",
    "data-event-trigger",
    "data-highlight-color",
    "data-highlight-opacity",
    "data-highlight-border-color",
    "data-highlight-border-width",
    "data-highlight-border-opacity",
    "data-no-lazy",
    "data-lazy",
    "data-large_image_width",
    "data-large_image_height",
)

JETPACK_ATTRS: tuple[str, ...] = ("data-orig-file", "data-medium-file", "data-large-file")

WOOCOMMERCE_GALLERY_CLASS = "woocommerce-product-gallery__image"

# Revolution Slider stores extra slide images in data-param1 .. data-param10.
REVSLIDER_PARAM_COUNT = 10

# Query arguments that mark a page-builder editing request.
BUILDER_QUERY_ARGS: tuple[str, ...] = ("cornerstone", "et_fb", "tatsu")
BUILDER_PATH_MARKERS: tuple[str, ...] = ("cornerstone-endpoint",)
BUILDER_FORM_ACTIONS: tuple[str, ...] = ("tatsu_get_concepts",)

XML_MARKER = "<?xml"
AMP_MARKER = "amp-boilerplate"
