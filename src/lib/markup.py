"""
Markup tokenizer, tree builder and serializer

Templates are HTML sprinkled with Templo directives, which a strict HTML
parser mangles: names get case-folded, entities decoded, and directive text
inside tags becomes garbage attributes. This module scans markup tolerantly
instead:

- Tag boundaries are found by scanning characters, treating quoted values,
  ::directive:: spans and $$macro(...) calls inside tags as atomic units
- <script> and <style> bodies are plain text up to their end tag
- Every token keeps its exact source offsets, so text and untouched tags
  serialize back unchanged

The same scanner drives the placeholder pre-processor (token level) and the
tree builder used by the converter (structure level).

Example:
    >>> document = MarkupParser('<p class="x">::name::</p>').parse()
    >>> document.children[0].children[0].value
    '::name::'
    >>> markup_serialize(document)
    '<p class="x">::name::</p>'
"""

import re
from enum import Enum
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..models.markup import (
    Attribute, Container, Document, Element, Node, Raw, Text, child_append,
)
from .log import LOG


VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}

RAW_TEXT_ELEMENTS = {"script", "style"}

_TAG_NAME = re.compile(r"[A-Za-z][^\s/>]*")
_MACRO_CALL = re.compile(r"\$\$(\w+)\(")


class TokenKind(Enum):
    TEXT = "text"
    START = "start"
    END = "end"
    COMMENT = "comment"
    DECL = "decl"


@dataclass
class MarkupToken:
    """
    One lexical unit of markup

    Attributes:
        kind: Token kind
        start: Offset of the first character in the source
        end: Offset one past the last character
        name: Tag name for START/END tokens
        region: (start, end) offsets of the attribute region of a START tag,
                i.e. everything between the tag name and the closing '>'
                (a trailing '/' included)
    """
    kind: TokenKind
    start: int
    end: int
    name: str = ""
    region: Tuple[int, int] = (0, 0)


@dataclass
class Span:
    """An atomic unit inside a tag: quoted value, directive, or macro call"""
    kind: str
    start: int
    end: int


def group_findEnd(source: str, open_pos: int) -> int:
    """
    Find the end of a parenthesised group using depth tracking

    Quoted strings inside the group are skipped, so parentheses inside
    string literals do not count.

    Args:
        source: Text to scan
        open_pos: Position of the opening '('

    Returns:
        Offset one past the matching ')', or -1 if the group never closes

    Example:
        For source "$$f(a, g(b), ')')" and open_pos 3: returns 17
    """
    depth = 0
    pos = open_pos
    while pos < len(source):
        char = source[pos]
        if char in "\"'":
            close = source.find(char, pos + 1)
            if close == -1:
                return -1
            pos = close + 1
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return pos + 1
        pos += 1
    return -1


def macroCall_match(source: str, pos: int) -> Optional[Tuple[str, str, int]]:
    """
    Match a $$name(args) macro call at pos

    Returns:
        (name, args including parentheses, end offset) or None
    """
    match = _MACRO_CALL.match(source, pos)
    if not match:
        return None
    end = group_findEnd(source, match.end() - 1)
    if end == -1:
        return None
    return match.group(1), source[match.end() - 1:end], end


def directiveSpan_end(source: str, pos: int, limit: Optional[int] = None) -> int:
    """
    End of the ::directive:: span starting at pos

    The closing '::' must be on the same line.

    Returns:
        Offset one past the closing '::', or -1 if the span never closes
    """
    end = len(source) if limit is None else limit
    close = source.find("::", pos + 2, end)
    if close == -1:
        return -1
    newline = source.find("\n", pos + 2, close)
    return close + 2 if newline == -1 else -1


def attributeValue_is(source: str, pos: int) -> bool:
    """True if the tag content at pos stands right after an '=' (whitespace aside)"""
    cursor = pos - 1
    while cursor >= 0 and source[cursor].isspace():
        cursor -= 1
    return cursor >= 0 and source[cursor] == "="


def textDirective_end(source: str, pos: int) -> int:
    """
    End of a ::directive:: span met in text, or -1

    A directive starts right after its opening '::' and never holds an
    end tag, so a stray ' :: ' does not swallow the markup that follows.
    """
    close = directiveSpan_end(source, pos)
    if close == -1:
        return -1
    inner = source[pos + 2:close - 2]
    if inner[:1].isspace() or "</" in inner:
        return -1
    return close


def tagSpans_scan(source: str, pos: int, limit: Optional[int] = None) -> Tuple[List[Span], int]:
    """
    Scan the inside of a tag for atomic spans until the closing '>'

    Args:
        source: Text to scan
        pos: Offset just after the tag name
        limit: Optional offset to stop at (scans a known region)

    Returns:
        (spans found, offset of the closing '>' or the limit/end of text)
    """
    spans: List[Span] = []
    end = len(source) if limit is None else limit
    while pos < end:
        char = source[pos]
        if source.startswith("::", pos):
            close = directiveSpan_end(source, pos, end)
            if close != -1:
                spans.append(Span("directive", pos, close))
                pos = close
                continue
        if char == "$":
            call = macroCall_match(source[:end], pos)
            if call:
                spans.append(Span("macro", pos, call[2]))
                pos = call[2]
                continue
        if char in "\"'":
            close = source.find(char, pos + 1, end)
            close = end if close == -1 else close + 1
            spans.append(Span("quoted", pos, close))
            pos = close
            continue
        if char == ">" and limit is None:
            return spans, pos
        pos += 1
    return spans, end


def tokens_scan(source: str) -> Iterator[MarkupToken]:
    """
    Split markup into text, tag, comment and declaration tokens

    Args:
        source: Markup text

    Yields:
        MarkupToken objects covering the whole source without gaps
    """
    pos = 0
    text_start = 0
    length = len(source)

    while pos < length:
        if source.startswith("::", pos):
            # ::if a<b:: is a directive, not the start of a <b> tag
            close = textDirective_end(source, pos)
            pos = pos + 2 if close == -1 else close
            continue
        if source[pos] != "<":
            stops = [stop for stop in (source.find("<", pos), source.find("::", pos)) if stop != -1]
            pos = min(stops) if stops else length
            continue

        token: Optional[MarkupToken] = None
        raw_text_name = ""

        if source.startswith("<!--", pos):
            close = source.find("-->", pos + 4)
            end = length if close == -1 else close + 3
            token = MarkupToken(TokenKind.COMMENT, pos, end)
        elif source.startswith("<!", pos) or source.startswith("<?", pos):
            close = source.find(">", pos + 2)
            end = length if close == -1 else close + 1
            token = MarkupToken(TokenKind.DECL, pos, end)
        elif source.startswith("</", pos):
            match = _TAG_NAME.match(source, pos + 2)
            if match:
                close = source.find(">", match.end())
                end = length if close == -1 else close + 1
                token = MarkupToken(TokenKind.END, pos, end, name=match.group(0))
        else:
            match = _TAG_NAME.match(source, pos + 1)
            if match:
                _, close = tagSpans_scan(source, match.end())
                end = min(close + 1, length)
                token = MarkupToken(
                    TokenKind.START, pos, end,
                    name=match.group(0), region=(match.end(), close),
                )
                self_closing = source[close - 1:close] == "/"
                if match.group(0).lower() in RAW_TEXT_ELEMENTS and not self_closing:
                    raw_text_name = match.group(0).lower()

        if token is None:
            # A lone '<' is ordinary text
            pos += 1
            continue

        if text_start < token.start:
            yield MarkupToken(TokenKind.TEXT, text_start, token.start)
        yield token
        pos = text_start = token.end

        if raw_text_name:
            close_match = re.compile(rf"</{raw_text_name}\b", re.IGNORECASE).search(source, pos)
            pos = length if close_match is None else close_match.start()
            if text_start < pos:
                yield MarkupToken(TokenKind.TEXT, text_start, pos)
            text_start = pos

    if text_start < length:
        yield MarkupToken(TokenKind.TEXT, text_start, length)


def attributes_parse(region: str) -> Tuple[List[Attribute], bool]:
    """
    Parse the attribute region of a start tag

    Directive spans and macro calls in attribute position become bare
    attributes named by their full text, so nothing is lost.

    Args:
        region: Text between the tag name and the closing '>'

    Returns:
        (attributes in source order, whether the tag is self-closing)

    Example:
        >>> attributes_parse(' id="a" hidden href=::url::')
        ([Attribute(name='id', value='a', quote='"'),
          Attribute(name='hidden', value=None, quote='"'),
          Attribute(name='href', value='::url::', quote='')], False)
    """
    spans, _ = tagSpans_scan(region, 0, len(region))
    span_at = {span.start: span for span in spans}
    attributes: List[Attribute] = []
    self_closing = False
    pos = 0
    length = len(region)

    def word_read(start: int) -> int:
        """Read an unquoted name or value, keeping atomic spans whole"""
        cursor = start
        while cursor < length and not region[cursor].isspace():
            if cursor in span_at and span_at[cursor].kind != "quoted":
                cursor = span_at[cursor].end
                continue
            if region[cursor] in "=>" or (region[cursor] == "/" and cursor == length - 1):
                break
            cursor += 1
        return cursor

    while pos < length:
        char = region[pos]
        if char.isspace():
            pos += 1
            continue
        if char == "/":
            if region[pos + 1:].strip() == "":
                self_closing = True
            pos += 1
            continue

        name_end = word_read(pos)
        if name_end == pos:
            # Stray '=' or quote in name position; keep it as a bare attribute
            name_end = span_at[pos].end if pos in span_at else pos + 1
        attribute = Attribute(name=region[pos:name_end])
        pos = name_end

        lookahead = pos
        while lookahead < length and region[lookahead].isspace():
            lookahead += 1
        if lookahead < length and region[lookahead] == "=":
            pos = lookahead + 1
            while pos < length and region[pos].isspace():
                pos += 1
            if pos in span_at and span_at[pos].kind == "quoted":
                span = span_at[pos]
                attribute.quote = region[pos]
                attribute.value = region[pos + 1:max(span.end - 1, pos + 1)]
                pos = span.end
            else:
                value_end = word_read(pos)
                attribute.quote = ""
                attribute.value = region[pos:value_end]
                pos = value_end
        attributes.append(attribute)

    return attributes, self_closing


class MarkupParser:
    """
    Builds a navigable tree from markup

    Unbalanced markup is tolerated: an end tag closes the nearest open
    element with the same name, elements it skips stay unclosed (and
    serialize without an end tag, exactly as written), and an end tag with no
    open counterpart is kept verbatim as a Raw node.
    """

    def __init__(self, source: str) -> None:
        self.source = source

    def parse(self) -> Document:
        document = Document()
        stack: List[Container] = [document]

        for token in tokens_scan(self.source):
            parent = stack[-1]
            text = self.source[token.start:token.end]

            if token.kind is TokenKind.TEXT:
                child_append(parent, Text(text))
            elif token.kind in (TokenKind.COMMENT, TokenKind.DECL):
                child_append(parent, Raw(text))
            elif token.kind is TokenKind.START:
                region = self.source[token.region[0]:token.region[1]]
                attributes, self_closing = attributes_parse(region)
                element = Element(
                    name=token.name,
                    attributes=attributes,
                    start=text,
                    self_closing=self_closing,
                )
                child_append(parent, element)
                if not self_closing and token.name.lower() not in VOID_ELEMENTS:
                    stack.append(element)
            else:
                self.element_close(stack, token.name, text)

        LOG(f"Parsed markup into {len(document.children)} top-level nodes", level=3)
        return document

    def element_close(self, stack: List[Container], name: str, text: str) -> None:
        """Close the innermost open element called name"""
        for index in range(len(stack) - 1, 0, -1):
            element = stack[index]
            if isinstance(element, Element) and element.name.lower() == name.lower():
                element.closed = True
                element.end = text
                del stack[index:]
                return
        LOG(f"Stray end tag kept verbatim: {text}", level=3)
        child_append(stack[-1], Raw(text))


def markup_serialize(node: "Node | Document") -> str:
    """
    Serialize a tree back to markup

    Clean start tags are emitted exactly as read; dirty ones are rebuilt
    from their attribute list. Elements the source never closed get no end
    tag.
    """
    if isinstance(node, Document):
        return "".join(markup_serialize(child) for child in node.children)
    if isinstance(node, (Text, Raw)):
        return node.value
    inner = "".join(markup_serialize(child) for child in node.children)
    end = (node.end or f"</{node.name}>") if node.closed else ""
    return f"{node.startTag_render()}{inner}{end}"
