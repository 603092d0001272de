"""
Markup scanner and tree tests

Tests that templates survive parsing and serialization unchanged, and that
directive text inside tags is kept whole.
"""

import pytest

from templo2twig.lib.markup import (
    MarkupParser,
    TokenKind,
    attributes_parse,
    group_findEnd,
    macroCall_match,
    markup_serialize,
    tokens_scan,
)
from templo2twig.models.markup import Element, Raw, Text, element_find


def round_trip(source):
    return markup_serialize(MarkupParser(source).parse())


class TestRoundTrip:
    """Untouched markup serializes back byte for byte"""

    @pytest.mark.parametrize("source", [
        "",
        "plain text",
        '<!DOCTYPE html>\n<html><body class="a">Hi</body></html>',
        "<DIV Class='x'>&nbsp;&amp;</DIV>",
        "<br><img src=a.png/><input type=text>",
        "<p>unclosed <b>bold</p>",
        "</stray> text",
        "<!-- ::if a:: --><p>x</p>",
        "<script>if (a < b && c > d) { x = '</p>'; }</script>",
        '<a href="::url::" ::cond ok::>::label::</a>',
        "a < b",
    ])
    def test_round_trip(self, source):
        assert round_trip(source) == source


class TestTree:
    """Structure of the parsed tree"""

    def test_nesting(self):
        document = MarkupParser("<ul><li>a</li><li>b</li></ul>").parse()
        ul = document.children[0]
        assert isinstance(ul, Element)
        assert [child.name for child in ul.children] == ["li", "li"]
        assert ul.children[1].children[0].value == "b"
        assert ul.children[0].parent is ul

    def test_void_elements_have_no_children(self):
        document = MarkupParser("<p><br>text</p>").parse()
        p = document.children[0]
        assert p.children[0].name == "br"
        assert p.children[0].children == []
        assert isinstance(p.children[1], Text)

    def test_script_body_is_text(self):
        document = MarkupParser("<script>var a = '<b>';</script>").parse()
        script = document.children[0]
        assert len(script.children) == 1
        assert script.children[0].value == "var a = '<b>';"

    def test_stray_end_tag_is_raw(self):
        document = MarkupParser("x</div>y").parse()
        assert isinstance(document.children[1], Raw)

    def test_element_find(self):
        document = MarkupParser("<html><head></head><BODY><p>x</p></BODY></html>").parse()
        body = element_find(document, "body")
        assert body is not None and body.name == "BODY"
        assert element_find(document, "table") is None

    def test_dirty_start_tag_rebuilt(self):
        document = MarkupParser('<p  id="a"   hidden>x</p>').parse()
        p = document.children[0]
        p.attribute_remove(p.attributes[1])
        assert markup_serialize(document) == '<p id="a">x</p>'

    def test_directive_with_gt_inside_tag(self):
        """A '>' inside a directive does not end the tag"""
        document = MarkupParser("<p ::cond a > 1::>x</p>").parse()
        p = document.children[0]
        assert p.attributes[0].name == "::cond a > 1::"
        assert p.children[0].value == "x"


class TestScanner:
    """Token level scanning"""

    def test_tokens_cover_source(self):
        source = "a<p x='>'>b</p><!--c-->"
        tokens = list(tokens_scan(source))
        assert "".join(source[t.start:t.end] for t in tokens) == source
        assert [t.kind for t in tokens] == [
            TokenKind.TEXT, TokenKind.START, TokenKind.TEXT, TokenKind.END, TokenKind.COMMENT,
        ]

    def test_group_end(self):
        source = "$$f(a, g(b), ')')"
        assert group_findEnd(source, 3) == len(source)

    def test_group_never_closes(self):
        assert group_findEnd("$$f(a", 3) == -1

    def test_macro_call(self):
        assert macroCall_match("$$greet(name) tail", 0) == ("greet", "(name)", 13)
        assert macroCall_match("$$ nope", 0) is None

    def test_comparison_in_directive_is_text(self):
        """The '<b' of ::if a<b:: does not open a tag"""
        tokens = list(tokens_scan("<p>::if a<b::x::end::</p>"))
        assert [t.kind for t in tokens] == [TokenKind.START, TokenKind.TEXT, TokenKind.END]

    def test_stray_delimiter_keeps_tags(self):
        tokens = list(tokens_scan("<p>a :: b</p><p>::c::</p>"))
        assert [t.kind for t in tokens] == [
            TokenKind.START, TokenKind.TEXT, TokenKind.END,
            TokenKind.START, TokenKind.TEXT, TokenKind.END,
        ]


class TestAttributes:
    """Attribute region parsing"""

    def test_kinds_of_values(self):
        attributes, self_closing = attributes_parse(" id=\"a\" hidden data-x='y' href=::url::")
        assert [(a.name, a.value, a.quote) for a in attributes] == [
            ("id", "a", '"'),
            ("hidden", None, '"'),
            ("data-x", "y", "'"),
            ("href", "::url::", ""),
        ]
        assert not self_closing

    def test_self_closing(self):
        attributes, self_closing = attributes_parse(' src="a.png" /')
        assert self_closing
        assert attributes[0].name == "src"

    def test_directive_is_one_attribute(self):
        attributes, _ = attributes_parse(" ::if s::selected::end:: value=1")
        assert attributes[0].name == "::if s::selected::end::"
        assert attributes[0].value is None
        assert attributes[1].name == "value"

    def test_render(self):
        attributes, _ = attributes_parse(" a='1' b")
        assert [a.render() for a in attributes] == ["a='1'", "b"]
