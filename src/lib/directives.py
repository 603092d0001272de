"""
Directive renderers for templo2twig

Text is classified once into plain strings and DirectiveTokens by the
TemploLexer; each token is then rendered by the handler registered for its
kind. Handlers read and update the per-conversion ConversionContext (block
stack, switch state, macro calls) and return the Twig text that replaces the
directive.
"""

import re
from typing import Callable, Dict, List, Optional, Union

from ..config import AppSettings, appsettings
from ..models.context import ConversionContext, PlaceholderFamily, SwitchContext
from ..models.directives import BlockKind, DirectiveKind, DirectiveToken, spec_get
from .errors import MalformedNestingError, UnsupportedDirectiveError
from .lexer import TOKEN_KINDS, TemploLexer
from .log import LOG


Segment = Union[str, DirectiveToken]
Handler = Callable[[DirectiveToken, ConversionContext], str]

_STRING_LITERAL = re.compile(r'("(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\')')
_NOT = re.compile(r'!(?!=)\s*')
_AND = re.compile(r'\s*&&\s*')
_OR = re.compile(r'\s*\|\|\s*')
_STATEMENT_KINDS = {DirectiveKind.FOREACH, DirectiveKind.IF, DirectiveKind.SET}
_ASSIGNMENT = re.compile(r'(?<![=!<>])=(?!=)')

_lexer = TemploLexer()


def tokens_classify(text: str) -> List[Segment]:
    """
    Classify text into plain strings and directive tokens

    Adjacent plain text is merged, so the result alternates between strings
    and DirectiveTokens, in source order, and joining the plain strings with
    each token's text gives back the input.

    Args:
        text: Text node value (or attribute value)

    Returns:
        List of str and DirectiveToken

    Example:
        >>> tokens_classify("Hi ::user.name::!")
        ['Hi ', DirectiveToken(kind=DirectiveKind.PRINT, captures=('user.name',),
                               text='::user.name::'), '!']
    """
    segments: List[Segment] = []
    for _, tokentype, value in _lexer.get_tokens_unprocessed(text):
        kind = TOKEN_KINDS.get(tokentype)
        if kind is None:
            if segments and isinstance(segments[-1], str):
                segments[-1] += value
            else:
                segments.append(value)
            continue
        match = re.fullmatch(spec_get(kind).pattern or "", value)
        captures = tuple(group.strip() for group in match.groups()) if match else ()
        segments.append(DirectiveToken(kind=kind, captures=captures, text=value))
    return segments


def textNode_split(value: str) -> List[str]:
    """
    Partition text before every ::foreach, ::if and ::set directive

    Text preceding the first boundary stays with the first partition; a
    keyword at offset 0 does not start a new partition. Joining the
    partitions gives back the input.

    Example:
        >>> textNode_split("::if a::<li>::foreach i c::")
        ['::if a::<li>', '::foreach i c::']
    """
    boundaries = [
        index for index, tokentype, _ in _lexer.get_tokens_unprocessed(value)
        if index > 0 and TOKEN_KINDS.get(tokentype) in _STATEMENT_KINDS
    ]
    if not boundaries:
        return [value]
    edges = [0] + boundaries + [len(value)]
    return [value[start:end] for start, end in zip(edges, edges[1:])]


def condition_rewrite(expression: str) -> str:
    """
    Rewrite logical operators of a condition into Twig keywords

    '!' (unless part of '!='), '&&' and '||' become 'not ', 'and' and 'or'.
    String literals are left alone.

    Example:
        >>> condition_rewrite("!a && b != 'x!'")
        "not a and b != 'x!'"
    """
    parts = _STRING_LITERAL.split(expression)
    for index in range(0, len(parts), 2):
        part = _NOT.sub("not ", parts[index])
        part = _AND.sub(" and ", part)
        parts[index] = _OR.sub(" or ", part)
    return "".join(parts).strip()


def delimiters_strip(value: str) -> str:
    """Remove Templo '::' delimiters"""
    return value.replace("::", "")


def assignment_is(expression: str) -> bool:
    """True if the expression assigns a value (outside string literals)"""
    parts = _STRING_LITERAL.split(expression)
    return any(_ASSIGNMENT.search(part) for part in parts[0::2])


class DirectiveRegistry:
    """
    Registry of directive handlers

    Maps each DirectiveKind to the function rendering it into Twig.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        """Initialize the registry and register all built-in handlers"""
        self.settings = settings or appsettings
        self.handlers: Dict[DirectiveKind, Handler] = {}
        self.controlDirectives_register()
        self.outputDirectives_register()
        self.attributeDirectives_register()
        self.macroDirectives_register()

    def register(self, kind: DirectiveKind, handler: Handler) -> None:
        self.handlers[kind] = handler

    def render(self, token: DirectiveToken, context: ConversionContext) -> str:
        """
        Render one directive token

        Raises:
            UnsupportedDirectiveError: If no handler exists for the kind
        """
        handler = self.handlers.get(token.kind)
        if handler is None:
            raise UnsupportedDirectiveError(f"No handler for {token.kind.value}", token.text)
        rendered = handler(token, context)
        LOG(f"{token.text} -> {rendered!r} ({context.blocks})", level=3)
        return rendered

    def text_convert(self, text: str, context: ConversionContext) -> str:
        """Convert every directive in text, left to right"""
        rendered: List[str] = []
        for segment in tokens_classify(text):
            if isinstance(segment, str):
                rendered.append(segment)
            else:
                rendered.append(self.render(segment, context))
        return "".join(rendered)

    def controlDirectives_register(self) -> None:
        """Register block-structured directives"""

        def if_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::if expr:: - opens an IF block"""
            context.blocks.push(BlockKind.IF)
            return f"{{% if {condition_rewrite(token.captures[0])} %}}"

        def elseif_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::elseif expr::"""
            if not context.blocks.depth:
                raise MalformedNestingError("elseif outside of any block", token.text)
            return f"{{% elseif {condition_rewrite(token.captures[0])} %}}"

        def else_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::else:: - also valid inside a foreach"""
            if not context.blocks.depth:
                raise MalformedNestingError("else outside of any block", token.text)
            return "{% else %}"

        def end_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::end:: - closes the innermost open block"""
            kind = context.blocks.pop(token.text)
            context.switches_close()
            return f"{{% end{kind.value} %}}"

        def foreach_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::foreach item collection::"""
            item, collection = token.captures
            context.blocks.push(BlockKind.FOR)
            return f"{{% for {item} in {collection} %}}"

        def fill_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::fill name:: - captures the block into a variable"""
            context.blocks.push(BlockKind.SET)
            return f"{{% set {token.captures[0]} %}}"

        def set_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::set expr:: - inline assignment, or capture block without a value"""
            expression = token.captures[0]
            if not assignment_is(expression):
                context.blocks.push(BlockKind.SET)
            return f"{{% set {expression} %}}"

        def switch_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::switch expr:: - renders nothing, the first case opens the if"""
            context.blocks.push(BlockKind.IF)
            context.switches.append(
                SwitchContext(conditionExpr=token.captures[0], depth=context.blocks.depth)
            )
            return ""

        def case_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """Handle ::case:: - if for the first case, elseif afterwards"""
            switch = context.switch
            if switch is None:
                raise MalformedNestingError("case outside of a switch", token.text)
            statement = "if" if switch.caseIndex == 0 else "elseif"
            rendered = f"{{% {statement} {switch.conditionExpr}.index == {switch.caseIndex} %}}"
            switch.caseIndex += 1
            return rendered

        def use_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """::use:: is consumed by the pre-processor; any other is a second parent"""
            raise UnsupportedDirectiveError("Only one ::use:: per template is supported", token.text)

        self.register(DirectiveKind.IF, if_handler)
        self.register(DirectiveKind.ELSEIF, elseif_handler)
        self.register(DirectiveKind.ELSE, else_handler)
        self.register(DirectiveKind.END, end_handler)
        self.register(DirectiveKind.FOREACH, foreach_handler)
        self.register(DirectiveKind.FILL, fill_handler)
        self.register(DirectiveKind.SET, set_handler)
        self.register(DirectiveKind.SWITCH, switch_handler)
        self.register(DirectiveKind.CASE, case_handler)
        self.register(DirectiveKind.USE, use_handler)

    def outputDirectives_register(self) -> None:
        """Register expression output directives"""

        def print_handler(token: DirectiveToken, context: ConversionContext) -> str:
            return f"{{{{{token.captures[0]}}}}}"

        def raw_handler(token: DirectiveToken, context: ConversionContext) -> str:
            return f"{{{{ {token.captures[0]}|raw }}}}"

        def rawBlock_handler(token: DirectiveToken, context: ConversionContext) -> str:
            return "{% block __content__ %}{% endblock %}"

        self.register(DirectiveKind.PRINT, print_handler)
        self.register(DirectiveKind.RAW, raw_handler)
        self.register(DirectiveKind.RAW_BLOCK, rawBlock_handler)

    def attributeDirectives_register(self) -> None:
        """Register ::attr:: and ::cond:: renderers"""

        def class_handler(token: DirectiveToken, context: ConversionContext) -> str:
            condition, value = token.captures
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            return f'class={{{{ {condition} ? "{value}" : "" }}}}'

        def checked_handler(token: DirectiveToken, context: ConversionContext) -> str:
            return f"checked={{{{ {token.captures[0]} }}}}"

        def selected_handler(token: DirectiveToken, context: ConversionContext) -> str:
            return f"selected={{{{ {token.captures[0]} }}}}"

        def cond_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """::cond:: needs an owning element; outside a tag it cannot be converted"""
            raise UnsupportedDirectiveError("::cond:: is only valid inside a start tag", token.text)

        self.register(DirectiveKind.CLASS_ATTR, class_handler)
        self.register(DirectiveKind.CHECKED_ATTR, checked_handler)
        self.register(DirectiveKind.SELECTED_ATTR, selected_handler)
        self.register(DirectiveKind.COND_ATTR, cond_handler)

    def macroDirectives_register(self) -> None:
        """Register macro call and definition renderers"""

        def macroCall_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """
            Fill in a pending macro call

            captures: (placeholder index,) - the call was recorded by the
            pre-processor as '{{ macros.name(args) }}'
            """
            table = context.table(PlaceholderFamily.MACRO)
            return table.lookup(int(token.captures[0]))

        def macroDef_handler(token: DirectiveToken, context: ConversionContext) -> str:
            """captures: (signature,) e.g. ('field(label, value)',)"""
            return f"{{% macro {token.captures[0]} %}}"

        self.register(DirectiveKind.MACRO_CALL, macroCall_handler)
        self.register(DirectiveKind.MACRO_DEF, macroDef_handler)

    def macroCall_render(self, name: str, arguments: str) -> str:
        """
        Twig expression for a $$name(args) call

        Example:
            >>> DirectiveRegistry().macroCall_render("field", "(::user.name::)")
            '{{ macros.field(user.name) }}'
        """
        return f"{{{{ {self.settings.macro_namespace}.{name}{delimiters_strip(arguments)} }}}}"
