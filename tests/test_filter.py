import unittest

from lazyhtml import (
    PLACEHOLDER_SRC,
    LazyLoad,
    LazyLoadConfig,
    OutputFilters,
    RegistrationError,
    RequestContext,
    filter_page_output,
    skip_reason,
)
from lazyhtml.attrs import get_attribute
from lazyhtml.scanner import find_elements

PAGE = (
    "<!DOCTYPE html><html><head><title>t</title></head><body>"
    '<img src="https://example.com/hero.jpg" alt="Hero">'
    '<img src="https://example.com/a.jpg" srcset="https://example.com/a.jpg 1x, https://example.com/a@2x.jpg 2x">'
    '<picture><source srcset="https://example.com/p.jpg"><img src="https://example.com/p.jpg"></picture>'
    '<a href="#" data-src="https://example.com/s.jpg" data-thumbnail="https://example.com/st.jpg">s</a>'
    '<li data-title="Slide" data-thumb="https://example.com/rt.jpg"></li>'
    '<div class="woocommerce-product-gallery__image" data-thumb="https://example.com/wt.jpg"></div>'
    '<video poster="https://example.com/v.jpg"></video>'
    "</body></html>"
)


class TestSkipReason(unittest.TestCase):
    def test_plain_page_is_filtered(self) -> None:
        assert skip_reason("<html></html>") is None
        assert skip_reason("<html></html>", RequestContext(path="/blog/")) is None

    def test_documents_that_are_passed_through(self) -> None:
        assert skip_reason("") == "empty"
        assert skip_reason('<?xml version="1.0"?><rss></rss>') == "xml"
        assert skip_reason('<html amp><style amp-boilerplate>body{}</style></html>') == "amp"

    def test_request_contexts_that_are_passed_through(self) -> None:
        page = "<html></html>"
        assert skip_reason(page, RequestContext(is_admin=True)) == "admin"
        for context in (
            RequestContext(is_builder_preview=True),
            RequestContext(query={"cornerstone": "1"}),
            RequestContext(path="/cornerstone-endpoint/save"),
            RequestContext(query={"et_fb": "1"}),
            RequestContext(query={"tatsu": "1"}),
            RequestContext(form={"action": "tatsu_get_concepts"}),
        ):
            with self.subTest(context=context):
                assert skip_reason(page, context) == "builder-preview"

    def test_empty_builder_query_values_do_not_skip(self) -> None:
        assert skip_reason("<html></html>", RequestContext(query={"et_fb": ""})) is None
        assert skip_reason("<html></html>", RequestContext(form={"action": "save"})) is None


class TestLazyLoad(unittest.TestCase):
    def test_strategies_run_in_fixed_order(self) -> None:
        assert LazyLoad().strategies == (
            "stage_hook",
            "lazy_images",
            "jetpack_images",
            "woocommerce_images",
            "stage_hook",
            "picture_sources",
            "stage_hook",
            "nextgen_links",
            "revslider_slides",
            "woocommerce_thumbs",
            "video_posters",
        )

    def test_opt_in_integrations(self) -> None:
        config = LazyLoadConfig(enabled_integrations=["retina", "revslider_image"])
        assert LazyLoad(config).strategies == (
            "stage_hook",
            "lazy_images",
            "revslider_images",
            "retina_images",
            "stage_hook",
            "stage_hook",
        )

    def test_full_page(self) -> None:
        out = LazyLoad(LazyLoadConfig(above_the_fold_count=1)).filter_page_output(PAGE)
        images = list(find_elements(out, "img", skip_inside=("noscript",)))

        assert images[0].text == '<img src="https://example.com/hero.jpg" alt="Hero">'
        assert get_attribute(images[1].text, "src") == PLACEHOLDER_SRC
        assert get_attribute(images[1].text, "srcset") is None
        assert get_attribute(images[1].text, "data-srcset") == (
            "https://example.com/a.jpg 1x, https://example.com/a@2x.jpg 2x"
        )
        assert get_attribute(images[2].text, "data-src") == "https://example.com/p.jpg"
        assert out.count("<noscript") == 2

        assert '<picture><source srcset="https://example.com/p.jpg.webp" type="image/webp">' in out
        assert 'data-webp="https://example.com/s.jpg.webp"' in out
        assert 'data-webp-thumbnail="https://example.com/st.jpg.webp"' in out
        assert 'data-webp-thumb="https://example.com/rt.jpg.webp"' in out
        assert 'data-webp-thumb="https://example.com/wt.jpg.webp"' in out
        assert '<video data-poster-webp="https://example.com/v.jpg.webp" data-poster-image="https://example.com/v.jpg">' in out

    def test_second_pass_is_idempotent(self) -> None:
        lazy = LazyLoad()
        once = lazy.filter_page_output(PAGE)
        assert once != PAGE
        assert lazy.filter_page_output(once) == once

    def test_xml_is_byte_identical(self) -> None:
        page = '<?xml version="1.0"?><rss><img src="https://example.com/a.jpg"></rss>'
        assert LazyLoad().filter_page_output(page) is page

    def test_images_in_script_strings_are_untouched(self) -> None:
        page = "<html><body><script>var t = \"<img src='https://example.com/a.jpg'>\";</script></body></html>"
        assert LazyLoad().filter_page_output(page) == page

    def test_client_side_templates_are_untouched(self) -> None:
        page = (
            '<script type="text/template"><img src="https://example.com/{{x}}.jpg"></script>'
            '<textarea><picture><source srcset="https://example.com/t.jpg"></picture></textarea>'
        )
        assert LazyLoad().filter_page_output(page) == page

    def test_images_after_scripts_are_still_rewritten(self) -> None:
        script = "<script>document.write('<img src=\"https://example.com/a.jpg\">');</script>"
        out = LazyLoad().filter_page_output(script + '<img src="https://example.com/b.jpg">')
        assert out.startswith(script)
        assert out.count("data-src=") == 1
        assert 'data-src="https://example.com/b.jpg"' in out

    def test_skipped_context_returns_buffer(self) -> None:
        assert LazyLoad().filter_page_output(PAGE, RequestContext(is_admin=True)) is PAGE

    def test_disabled_integrations_are_not_applied(self) -> None:
        out = LazyLoad(LazyLoadConfig(enabled_integrations=[])).filter_page_output(PAGE)
        assert 'poster="https://example.com/v.jpg"' in out
        assert "image/webp" not in out
        assert 'class="lazyload"' in out

    def test_delivery_domain_lqip(self) -> None:
        config = LazyLoadConfig(alternate_delivery_domain="example.com")
        out = LazyLoad(config).filter_page_output(PAGE)
        assert 'src="https://example.com/hero.jpg?lazy=1"' in out
        assert 'data-poster-webp="https://example.com/v.jpg?webp=1"' in out

    def test_output_callback(self) -> None:
        callback = LazyLoad().output_callback(RequestContext(path="/"))
        assert 'class="lazyload"' in callback(PAGE)

    def test_notes_are_collected(self) -> None:
        notes = []
        LazyLoad().filter_page_output('<img alt="x">', notes=notes)
        assert [n.code for n in notes] == ["no-image-url"]

    def test_report_callback_sees_stages(self) -> None:
        messages = []
        lazy = LazyLoad(report=lambda msg, *, element=None: messages.append(msg))
        lazy.filter_page_output("<p>nothing</p>")
        assert messages == ["Stage 'img'", "Stage 'picture'", "Stage 'elements'"]

    def test_one_shot_helper(self) -> None:
        out = filter_page_output('<img src="https://example.com/a.jpg">', config=LazyLoadConfig())
        assert out.startswith(f'<img src="{PLACEHOLDER_SRC}"')


class TestOutputFilters(unittest.TestCase):
    def test_second_registration_is_rejected(self) -> None:
        owner = OutputFilters()
        first = owner.register_lazy_load(LazyLoadConfig(above_the_fold_count=1))
        assert isinstance(first, LazyLoad)

        second = owner.register_lazy_load()
        assert isinstance(second, RegistrationError)
        assert second.code == "already-registered"
        assert not second
        assert owner.lazy_load is first

    def test_owners_are_independent(self) -> None:
        assert isinstance(OutputFilters().register_lazy_load(), LazyLoad)
        assert isinstance(OutputFilters().register_lazy_load(), LazyLoad)

    def test_filter_without_registration_passes_through(self) -> None:
        owner = OutputFilters()
        assert owner.filter_page_output(PAGE) is PAGE
        owner.register_lazy_load()
        assert owner.filter_page_output(PAGE) != PAGE
