from .attrs import get_attribute, remove_attribute, set_attribute
from .config import LazyLoadConfig
from .constants import PLACEHOLDER_SRC
from .errors import RegistrationError, RewriteNote
from .filter import LazyLoad, OutputFilters, RequestContext, filter_page_output, skip_reason
from .rewrites import (
    Integration,
    JetpackImages,
    LazyImages,
    NextGenLinks,
    PictureSources,
    RetinaImages,
    RevSliderImages,
    RevSliderSlides,
    Stage,
    VideoPosters,
    WooCommerceImages,
    WooCommerceThumbs,
    apply_compiled_rewrites,
    compile_rewrites,
)
from .scanner import ElementSpan, ImageScan, find_containers, find_elements, find_images
from .urls import is_eligible, rewrite_srcset, rewrite_url

__all__ = [
    "PLACEHOLDER_SRC",
    "ElementSpan",
    "ImageScan",
    "Integration",
    "JetpackImages",
    "LazyImages",
    "LazyLoad",
    "LazyLoadConfig",
    "NextGenLinks",
    "OutputFilters",
    "PictureSources",
    "RegistrationError",
    "RequestContext",
    "RetinaImages",
    "RevSliderImages",
    "RevSliderSlides",
    "RewriteNote",
    "Stage",
    "VideoPosters",
    "WooCommerceImages",
    "WooCommerceThumbs",
    "apply_compiled_rewrites",
    "compile_rewrites",
    "filter_page_output",
    "find_containers",
    "find_elements",
    "find_images",
    "get_attribute",
    "is_eligible",
    "remove_attribute",
    "rewrite_srcset",
    "rewrite_url",
    "set_attribute",
    "skip_reason",
]
