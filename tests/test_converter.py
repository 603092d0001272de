"""
End-to-end conversion tests

Tests the full engine: Templo source → pre-processor → markup tree →
directive conversion → finalization → Twig output.
"""

import pytest

from templo2twig import Converter, convert
from templo2twig.config import AppSettings
from templo2twig.lib.errors import (
    ConversionError,
    MalformedNestingError,
    UnresolvedPlaceholderError,
    UnsupportedDirectiveError,
)


IMPORT = "{% import 'macros.html' as macros %}\n"


class TestBlocks:
    """Block directives and the block stack"""

    def test_if_end(self):
        assert convert("::if a::X::end::") == "{% if a %}X{% endif %}"

    def test_nesting_order(self):
        """Innermost block closes first"""
        assert convert("::if a::::foreach i c::Y::end::::end::") == (
            "{% if a %}{% for i in c %}Y{% endfor %}{% endif %}"
        )

    def test_logical_rewrite(self):
        assert convert("::if !a && b::x::end::") == "{% if not a and b %}x{% endif %}"

    def test_blocks_across_elements(self):
        """Blocks opened in one text node are closed in another"""
        source = "<ul>::foreach u users::<li>::u.name::</li>::end::</ul>"
        assert convert(source) == "<ul>{% for u in users %}<li>{{u.name}}</li>{% endfor %}</ul>"

    def test_stack_empty_after_conversion(self):
        converter = Converter("<div>::if a::<p>::set x = 1::::x::</p>::else::-::end::</div>")
        converter.convert()
        assert converter.context.blocks.depth == 0

    def test_switch_case(self):
        source = "::switch s::<p>::case::one</p><p>::case::two</p>::end::"
        assert convert(source) == (
            "<p>{% if s.index == 0 %}one</p><p>{% elseif s.index == 1 %}two</p>{% endif %}"
        )

    def test_fill(self):
        source = "::fill title::<b>Home</b>::end::::raw title::"
        assert convert(source) == "{% set title %}<b>Home</b>{% endset %}{{ title|raw }}"

    def test_content_slot(self):
        assert convert("<main>::raw __content__::</main>") == (
            "<main>{% block __content__ %}{% endblock %}</main>"
        )

    def test_comparison_in_condition(self):
        """A '<' inside a directive does not open a tag"""
        source = "<ul>::if i<10::<li>::i::</li>::end::</ul>"
        assert convert(source) == "<ul>{% if i<10 %}<li>{{i}}</li>{% endif %}</ul>"

    def test_comparison_followed_by_letter(self):
        assert convert("<p>::if a<b::x::end::</p>") == "<p>{% if a<b %}x{% endif %}</p>"

    def test_nested_switch(self):
        """Closing an inner switch brings the outer one back"""
        source = "::switch s::::case::A::switch t::::case::X::case::Y::end::::case::B::end::"
        assert convert(source) == (
            "{% if s.index == 0 %}A"
            "{% if t.index == 0 %}X{% elseif t.index == 1 %}Y{% endif %}"
            "{% elseif s.index == 1 %}B{% endif %}"
        )

    def test_if_inside_case(self):
        """An ::end:: closing a block inside a case leaves the switch open"""
        source = "::switch s::::case::::if a::x::end::::case::y::end::"
        assert convert(source) == (
            "{% if s.index == 0 %}{% if a %}x{% endif %}{% elseif s.index == 1 %}y{% endif %}"
        )


class TestAttributes:
    """Directives in start tags"""

    def test_cond(self):
        """The element is wrapped and keeps everything but the cond"""
        source = '<ul><li class="x" ::cond user.active::>::user.name::</li></ul>'
        assert convert(source) == (
            '<ul>{% if user.active %}\n<li class="x">{{user.name}}</li>\n{% endif %}</ul>'
        )

    def test_cond_keeps_operators(self):
        assert convert("<p ::cond a && !b::>x</p>") == "{% if a && !b %}\n<p>x</p>\n{% endif %}"

    def test_class(self):
        assert convert('<li ::attr class if(sel) "on"::>x</li>') == (
            '<li class={{ sel ? "on" : "" }}>x</li>'
        )

    def test_checked(self):
        assert convert('<input type="checkbox" ::attr checked (opt.on)::>') == (
            '<input type="checkbox" checked={{ opt.on }}>'
        )

    def test_selected(self):
        assert convert("<option ::attr selected (v == 1)::>One</option>") == (
            "<option selected={{ v == 1 }}>One</option>"
        )

    def test_directive_in_value(self):
        assert convert('<a href="/u/::u.id::">x</a>') == '<a href="/u/{{u.id}}">x</a>'

    def test_bare_attribute_block(self):
        assert convert("<option ::if s::selected::end::>x</option>") == (
            "<option {% if s %}selected{% endif %}>x</option>"
        )

    def test_untouched_tags_keep_formatting(self):
        source = "<div  id='a'\n  class=\"b\">::x::</div>"
        assert convert(source) == "<div  id='a'\n  class=\"b\">{{x}}</div>"


class TestMacroCalls:
    """Macro calls and the one-time import"""

    def test_call_and_import(self):
        source = "<html><body><p>$$greet(name)</p></body></html>"
        assert convert(source) == (
            f"<html><body>{IMPORT}<p>{{{{ macros.greet(name) }}}}</p></body></html>"
        )

    def test_import_once(self):
        source = "<body>$$a(1)<p>$$b(2)</p><i $$c(3)>x</i></body>"
        output = convert(source)
        assert output.count("{% import") == 1
        assert output.startswith("<body>" + IMPORT)
        assert "{{ macros.a(1) }}" in output
        assert "{{ macros.b(2) }}" in output
        assert "<i {{ macros.c(3) }}>" in output

    def test_import_in_root_without_body(self):
        assert convert("<div><p>$$x()</p></div>") == f"<div>{IMPORT}<p>{{{{ macros.x() }}}}</p></div>"

    def test_no_calls_no_import(self):
        assert "import" not in convert("<body><p>::a::</p></body>")

    def test_arguments_lose_delimiters(self):
        assert convert("<p>$$field(::user.name::, 'Name')</p>") == (
            f"<p>{IMPORT}{{{{ macros.field(user.name, 'Name') }}}}</p>"
        )

    def test_call_as_unquoted_value(self):
        """A call used as an unquoted value is rendered once, and quoted"""
        source = "<body><a href=$$url(page)>x</a></body>"
        assert convert(source) == (
            f'<body>{IMPORT}<a href="{{{{ macros.url(page) }}}}">x</a></body>'
        )


class TestInheritance:
    """::use:: and the content block"""

    def test_use(self):
        source = "::use 'layout.mtt'::\n<div>::if a::x::end::</div>\n::end::"
        assert convert(source) == (
            "{% extends 'layout.twig' %}\n{% block content %}\n"
            "<div>{% if a %}x{% endif %}</div>\n{% endblock %}"
        )

    def test_unquoted_parent(self):
        output = convert("::use base.mtt::<p>x</p>::end::")
        assert output == '{% extends "base.twig" %}\n{% block content %}<p>x</p>{% endblock %}'

    def test_use_without_end(self):
        output = convert("::use base.mtt::<p>x</p>")
        assert output.endswith("<p>x</p>{% endblock %}")

    def test_second_use(self):
        with pytest.raises(UnsupportedDirectiveError):
            convert("::use a.mtt::<p>::use b.mtt::</p>::end::")


class TestErrors:
    """Structurally broken documents are reported, not converted"""

    def test_end_without_open_block(self):
        with pytest.raises(MalformedNestingError):
            convert("<p>x::end::</p>")

    def test_unclosed_block(self):
        with pytest.raises(MalformedNestingError, match="never closed"):
            convert("<p>::if a::x</p>")

    def test_errors_share_base(self):
        with pytest.raises(ConversionError):
            convert("::foreach i c::")

    def test_unresolved_placeholder(self):
        """A placeholder nobody recorded is an internal error"""
        with pytest.raises(UnresolvedPlaceholderError):
            convert('<p class="TEMPLATE_ATTR_CLASS_4">x</p>')


class TestFinalization:

    def test_leftover_delimiters_stripped(self):
        assert convert("<p>a :: b</p>") == "<p>a  b</p>"

    def test_leftover_delimiters_kept(self):
        settings = AppSettings(strip_leftover_delimiters=False)
        assert convert("<p>a :: b</p>", settings=settings) == "<p>a :: b</p>"

    def test_stray_delimiter_before_directive(self):
        source = "<p>a :: b</p><p>::c::</p>"
        assert convert(source) == "<p>a  b</p><p>{{c}}</p>"

    def test_raw_text_keeps_delimiters(self):
        """Style, script and comment bodies are not stripped"""
        source = '<style>p::before{content:"x"}</style><!-- a::b --><p>a :: b</p>'
        assert convert(source) == (
            '<style>p::before{content:"x"}</style><!-- a::b --><p>a  b</p>'
        )

    def test_custom_macro_import(self):
        settings = AppSettings(macro_import_file="lib.twig", macro_namespace="m")
        assert convert("<div>$$f()</div>", settings=settings) == (
            "<div>{% import 'lib.twig' as m %}\n{{ m.f() }}</div>"
        )

    def test_independent_conversions(self):
        """State never leaks from one document to the next"""
        first = convert("<body>$$a()</body>")
        second = convert("<body>$$b()</body>")
        assert first == f"<body>{IMPORT}{{{{ macros.a() }}}}</body>"
        assert second == f"<body>{IMPORT}{{{{ macros.b() }}}}</body>"
