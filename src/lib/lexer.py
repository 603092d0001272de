"""
Custom Pygments lexer for Templo directives

Splits template text into plain text and directive tokens. The converter
uses it to classify text nodes once; it also works with any Pygments
formatter for highlighting .mtt sources.

Token types:
- Token.Directive.<Kind>: one per directive kind (e.g. Token.Directive.Foreach),
  the token value being the whole directive text
- Text: everything else

Rules are generated from the directive grammar, in grammar order, so the
first kind whose pattern matches at a position wins.
"""

from typing import Dict, List, Tuple

from pygments.lexer import RegexLexer
from pygments.token import Text, Token, _TokenType

from ..models.directives import GRAMMAR, DirectiveKind


Directive = Token.Directive


def tokenType_get(kind: DirectiveKind) -> _TokenType:
    """
    Pygments token type for a directive kind

    Example:
        >>> tokenType_get(DirectiveKind.RAW_BLOCK)
        Token.Directive.RawBlock
    """
    return getattr(Directive, kind.name.title().replace("_", ""))


TOKEN_KINDS: Dict[_TokenType, DirectiveKind] = {
    tokenType_get(spec.kind): spec.kind for spec in GRAMMAR
}


def rules_build() -> List[Tuple[str, _TokenType]]:
    """Lexer rules: one per lexable directive, then plain text"""
    rules: List[Tuple[str, _TokenType]] = [
        (spec.pattern, tokenType_get(spec.kind)) for spec in GRAMMAR if spec.pattern
    ]
    rules.append((r'[^:]+', Text))
    rules.append((r':', Text))
    return rules


class TemploLexer(RegexLexer):
    """
    Lexer for Templo template directives

    Example:
        ::if user.isAdmin::<b>::user.name::</b>::end::

    Tokens:
        ::if user.isAdmin:: → Token.Directive.If
        <b> → Text
        ::user.name:: → Token.Directive.Print
        </b> → Text
        ::end:: → Token.Directive.End
    """

    name = 'Templo'
    aliases = ['templo', 'mtt']
    filenames = ['*.mtt']

    tokens = {
        'root': rules_build(),
    }


def get_lexer() -> TemploLexer:
    """
    Get the TemploLexer instance

    Returns:
        TemploLexer instance ready for use with Pygments
    """
    return TemploLexer()
