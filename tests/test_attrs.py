import unittest

from lazyhtml.attrs import (
    add_class,
    get_attribute,
    has_class,
    iter_attributes,
    remove_attribute,
    set_attribute,
)


class TestGetAttribute(unittest.TestCase):
    def test_reads_double_single_and_unquoted_values(self) -> None:
        element = """<img src="a.jpg" alt='A' width=300>"""
        assert get_attribute(element, "src") == "a.jpg"
        assert get_attribute(element, "alt") == "A"
        assert get_attribute(element, "width") == "300"

    def test_name_match_is_case_insensitive(self) -> None:
        assert get_attribute('<IMG SRC="A.jpg">', "src") == "A.jpg"
        assert get_attribute('<img src="a.jpg">', "SRC") == "a.jpg"

    def test_missing_attribute_is_none(self) -> None:
        assert get_attribute('<img src="a.jpg">', "srcset") is None
        assert get_attribute("<img>", "src") is None

    def test_valueless_attribute_is_empty_string(self) -> None:
        assert get_attribute('<img ismap src="a.jpg">', "ismap") == ""

    def test_does_not_match_text_inside_other_values(self) -> None:
        element = '<img alt="src=x.jpg > here" data-src="d.jpg" src="real.jpg">'
        assert get_attribute(element, "src") == "real.jpg"
        assert get_attribute(element, "data-src") == "d.jpg"

    def test_only_start_tag_is_inspected(self) -> None:
        picture = '<picture><source srcset="a.jpg"></picture>'
        assert get_attribute(picture, "srcset") is None

    def test_iter_attributes_reports_offsets(self) -> None:
        element = '<img src="a.jpg" alt=\'A\'>'
        attrs = list(iter_attributes(element))
        assert [a.name for a in attrs] == ["src", "alt"]
        assert [a.quote for a in attrs] == ['"', "'"]
        assert element[attrs[0].start : attrs[0].end] == 'src="a.jpg"'


class TestSetAttribute(unittest.TestCase):
    def test_appends_missing_attribute(self) -> None:
        assert set_attribute('<img src="a.jpg">', "alt", "x") == '<img src="a.jpg" alt="x">'
        assert set_attribute("<img>", "alt", "x") == '<img alt="x">'

    def test_keeps_self_closing_slash(self) -> None:
        assert set_attribute('<img src="a.jpg" />', "alt", "x") == '<img src="a.jpg" alt="x" />'

    def test_overwrite_replaces_in_place_keeping_quote_style(self) -> None:
        element = "<img src='a.jpg' alt=\"x\">"
        assert set_attribute(element, "src", "b.jpg", True) == "<img src='b.jpg' alt=\"x\">"

    def test_overwrite_quotes_unquoted_value(self) -> None:
        assert set_attribute("<img src=a.jpg>", "src", "b.jpg", True) == '<img src="b.jpg">'

    def test_without_overwrite_existing_value_is_preserved(self) -> None:
        element = set_attribute('<img src="a.jpg">', "src", "b.jpg")
        assert element == '<img src="a.jpg" src="b.jpg">'
        assert get_attribute(element, "src") == "a.jpg"

    def test_value_is_stripped(self) -> None:
        assert set_attribute("<img>", "class", " lazyload ") == '<img class="lazyload">'

    def test_switches_quotes_for_values_containing_quotes(self) -> None:
        assert set_attribute("<img>", "title", 'say "hi"') == "<img title='say \"hi\"'>"
        assert set_attribute("<img>", "title", "both \" and '") == '<img title="both &quot; and \'">'

    def test_container_edits_only_start_tag(self) -> None:
        picture = '<picture><source srcset="a.jpg"></picture>'
        assert set_attribute(picture, "class", "p") == '<picture class="p"><source srcset="a.jpg"></picture>'


class TestRemoveAttribute(unittest.TestCase):
    def test_removes_attribute_and_leading_space(self) -> None:
        element = '<img src="a.jpg" srcset="a.jpg 1x" alt="x">'
        assert remove_attribute(element, "srcset") == '<img src="a.jpg" alt="x">'

    def test_missing_attribute_is_noop(self) -> None:
        element = '<img src="a.jpg">'
        assert remove_attribute(element, "srcset") == element

    def test_removes_every_occurrence(self) -> None:
        assert remove_attribute('<img src="a" alt="x" src="b">', "src") == '<img alt="x">'

    def test_does_not_touch_similar_names(self) -> None:
        element = '<img data-src="d.jpg" src="a.jpg">'
        assert remove_attribute(element, "src") == '<img data-src="d.jpg">'


class TestClassHelpers(unittest.TestCase):
    def test_add_class_creates_attribute(self) -> None:
        assert add_class('<img src="a.jpg">', "lazyload") == '<img src="a.jpg" class="lazyload">'

    def test_add_class_appends_token(self) -> None:
        assert add_class('<img class="wp-image">', "lazyload") == '<img class="wp-image lazyload">'

    def test_add_class_does_not_duplicate(self) -> None:
        element = '<img class="lazyload big">'
        assert add_class(element, "lazyload") == element

    def test_has_class_matches_whole_tokens(self) -> None:
        assert has_class('<img class="a lazyload">', "lazyload")
        assert not has_class('<img class="lazyloaded">', "lazyload")
        assert not has_class("<img>", "lazyload")
