"""
Directive grammar and token models

The fixed catalogue of Templo directives the converter recognizes, in the
priority order used when several patterns could match at the same position.
The catalogue carries no runtime state.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class DirectiveKind(Enum):
    """Kinds of Templo directives"""
    IF = "if"
    ELSEIF = "elseif"
    ELSE = "else"
    END = "end"
    FOREACH = "foreach"
    RAW = "raw"
    RAW_BLOCK = "raw_block"
    FILL = "fill"
    SET = "set"
    USE = "use"
    SWITCH = "switch"
    CASE = "case"
    PRINT = "print"
    MACRO_CALL = "macro_call"
    MACRO_DEF = "macro_def"
    COND_ATTR = "cond_attr"
    CLASS_ATTR = "class_attr"
    CHECKED_ATTR = "checked_attr"
    SELECTED_ATTR = "selected_attr"


class BlockKind(Enum):
    """Open block kinds tracked on the block stack; value is the Twig tag"""
    IF = "if"
    FOR = "for"
    SET = "set"


# Expression body: anything on one line up to the next '::' delimiter
EXPR = r"(?:(?!::).)+?"


@dataclass
class DirectiveSpec:
    """
    Specification for one Templo directive

    Attributes:
        kind: Directive kind
        pattern: Regex matching the whole directive; groups are the captures.
                 None for directives that are not found by lexing text
                 (macro calls and definitions are located structurally).
        target: Twig rendering, for documentation
        description: Human-readable description
        opens: Block kind pushed when the directive opens a block
        examples: Example source snippets
    """
    kind: DirectiveKind
    pattern: Optional[str]
    target: str
    description: str
    opens: Optional[BlockKind] = None
    examples: List[str] = field(default_factory=list)


@dataclass
class DirectiveToken:
    """
    One classified directive occurrence

    Attributes:
        kind: Directive kind
        captures: Opaque expression substrings captured from the source
        text: The exact source text of the directive

    Example:
        For source "::foreach user users::":
        DirectiveToken(kind=DirectiveKind.FOREACH,
                       captures=("user", "users"),
                       text="::foreach user users::")
    """
    kind: DirectiveKind
    captures: Tuple[str, ...] = ()
    text: str = ""


GRAMMAR: List[DirectiveSpec] = [
    DirectiveSpec(
        DirectiveKind.SWITCH, rf"::switch\s+({EXPR})::", "",
        "Start a switch; the cases render the conditions",
        opens=BlockKind.IF, examples=["::switch step::"],
    ),
    DirectiveSpec(
        DirectiveKind.CASE, r"::case::", "{% if s.index == 0 %} / {% elseif s.index == N %}",
        "Next case of the enclosing switch",
    ),
    DirectiveSpec(
        DirectiveKind.IF, rf"::if\s+({EXPR})::", "{% if expr %}",
        "Conditional block", opens=BlockKind.IF, examples=["::if user.isAdmin::"],
    ),
    DirectiveSpec(
        DirectiveKind.ELSEIF, rf"::elseif\s+({EXPR})::", "{% elseif expr %}",
        "Alternative branch of a conditional",
    ),
    DirectiveSpec(DirectiveKind.ELSE, r"::else::", "{% else %}", "Fallback branch"),
    DirectiveSpec(DirectiveKind.END, r"::end::", "{% end<kind> %}", "Close the innermost block"),
    DirectiveSpec(
        DirectiveKind.FOREACH, rf"::foreach\s+(\w+)\s+({EXPR})::", "{% for item in collection %}",
        "Loop over a collection", opens=BlockKind.FOR, examples=["::foreach user users::"],
    ),
    DirectiveSpec(
        DirectiveKind.RAW_BLOCK, r"::raw\s+__content__::", "{% block __content__ %}{% endblock %}",
        "Layout content slot",
    ),
    DirectiveSpec(
        DirectiveKind.RAW, rf"::raw\s+({EXPR})::", "{{ expr|raw }}", "Unescaped output",
    ),
    DirectiveSpec(
        DirectiveKind.FILL, rf"::fill\s+({EXPR})::", "{% set name %}",
        "Capture block output into a variable", opens=BlockKind.SET,
    ),
    DirectiveSpec(
        DirectiveKind.SET, rf"::set\s+({EXPR})::", "{% set expr %}",
        "Assignment, or capture when no value is given", opens=BlockKind.SET,
    ),
    DirectiveSpec(
        DirectiveKind.USE, rf"::use\s+({EXPR})::", '{% extends "parent" %}',
        "Inherit from a layout template",
    ),
    DirectiveSpec(
        DirectiveKind.COND_ATTR, rf"::cond\s+({EXPR})::", "{% if expr %}element{% endif %}",
        "Render the owning element only when the condition holds",
    ),
    DirectiveSpec(
        DirectiveKind.CLASS_ATTR,
        r"::attr\s+class\s+if\s*\(((?:(?!::).)+)\)\s+((?:(?!::).)+?)::",
        'class={{ cond ? "value" : "" }}',
        "Conditional class attribute",
    ),
    DirectiveSpec(
        DirectiveKind.CHECKED_ATTR, r"::attr\s+checked\s*\(((?:(?!::).)+)\)::", "checked={{ cond }}",
        "Conditional checked attribute",
    ),
    DirectiveSpec(
        DirectiveKind.SELECTED_ATTR, r"::attr\s+selected\s*\(((?:(?!::).)+)\)::", "selected={{ cond }}",
        "Conditional selected attribute",
    ),
    DirectiveSpec(DirectiveKind.PRINT, rf"::({EXPR})::", "{{expr}}", "Print an expression"),
    DirectiveSpec(
        DirectiveKind.MACRO_CALL, None, "{{ macros.name(args) }}", "Call a library macro",
        examples=["$$field(user.name)"],
    ),
    DirectiveSpec(
        DirectiveKind.MACRO_DEF, None, "{% macro name %}...{% endmacro %}",
        "Macro definition inside a library",
    ),
]


def spec_get(kind: DirectiveKind) -> DirectiveSpec:
    """Look up the grammar entry for a directive kind"""
    for spec in GRAMMAR:
        if spec.kind is kind:
            return spec
    raise KeyError(kind)
