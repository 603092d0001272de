"""
Placeholder pre-processor

Rewrites directive syntax that would break structural parsing into legal
placeholder markup, recording the original (already rendered) directive in
the per-conversion placeholder tables. The tree converter later swaps each
placeholder back using the same index.

Passes run in a fixed order, each over the output of the previous one:

1. Macro calls: in attribute position they become
   TEMPLATE_MACRO_0="TEMPLATE_MACRO_0"; in text and as attribute values they
   become the bare token TEMPLATE_MACRO_0
2. ::cond expr:: attributes become TEMPLATE_COND_0="TEMPLATE_COND_0"
3. ::use parent:: becomes a synthetic root element, closed where the last
   ::end:: of the file was
4. ::attr class|checked|selected ...:: become class="TEMPLATE_ATTR_CLASS_0",
   checked="TEMPLATE_ATTR_CHECKED_0" and selected="TEMPLATE_ATTR_SELECTED_0"

Tags are scanned structurally (quoted values, directive spans and macro calls
are atomic), so a directive never matches across tag boundaries.

Example:
    Input:  <input ::attr checked (user.optIn)::>
    Output: <input checked="TEMPLATE_ATTR_CHECKED_0">
    Table:  ATTR_CHECKED[0] = "checked={{ user.optIn }}"
"""

import re
from typing import Callable, List, Optional

from ..config import AppSettings, appsettings
from ..models.context import ConversionContext, PlaceholderFamily
from ..models.directives import DirectiveKind, DirectiveToken, spec_get
from .directives import DirectiveRegistry
from .errors import MalformedNestingError
from .log import LOG, WARN
from .markup import (
    MarkupToken, Span, TokenKind, attributeValue_is, macroCall_match, tagSpans_scan, tokens_scan,
)


ATTR_FAMILIES = [
    (DirectiveKind.CLASS_ATTR, PlaceholderFamily.ATTR_CLASS, "class"),
    (DirectiveKind.CHECKED_ATTR, PlaceholderFamily.ATTR_CHECKED, "checked"),
    (DirectiveKind.SELECTED_ATTR, PlaceholderFamily.ATTR_SELECTED, "selected"),
]

END_DIRECTIVE = "::end::"

SpanRewriter = Callable[[Span, str], Optional[str]]


class Preprocessor:
    """
    Rewrites attribute-position and inline directives into placeholders

    Attributes:
        context: Conversion context receiving the placeholder tables
        settings: Application settings (placeholder naming)
        registry: Directive registry used to render recorded directives
    """

    def __init__(
        self,
        context: ConversionContext,
        settings: Optional[AppSettings] = None,
        registry: Optional[DirectiveRegistry] = None,
    ) -> None:
        self.context = context
        self.settings = settings or appsettings
        self.registry = registry or DirectiveRegistry(self.settings)

    def source_preprocess(self, source: str) -> str:
        """
        Run every placeholder pass in order

        Args:
            source: Raw Templo document text

        Returns:
            Text a markup parser accepts, with placeholders in place of
            macro calls, ::cond::, ::use:: and ::attr:: directives
        """
        source = self.macros_protect(source)
        source = self.condAttributes_protect(source)
        source = self.useDirective_protect(source)
        for kind, family, attribute in ATTR_FAMILIES:
            source = self.attrAttributes_protect(source, kind, family, attribute)

        LOG(
            "Placeholders: "
            + ", ".join(f"{family.value}={len(table)}" for family, table in self.context.placeholders.items()),
            level=2,
        )
        return source

    def placeholder_record(self, family: PlaceholderFamily, entry: str) -> str:
        """Record entry in the family table and return its placeholder token"""
        index = self.context.table(family).record(entry)
        return self.settings.placeHolder_make(family.value, index)

    def tags_rewrite(
        self,
        source: str,
        span_rewrite: SpanRewriter,
        text_rewrite: Optional[Callable[[str], str]] = None,
    ) -> str:
        """
        Rebuild source, letting callbacks rewrite tag spans and text

        Args:
            source: Markup text
            span_rewrite: Called for each atomic span inside a start tag with
                          the span and its text; returns replacement text or
                          None to keep the span
            text_rewrite: Optional callback applied to every text token

        Returns:
            Rewritten source
        """
        result: List[str] = []
        for token in tokens_scan(source):
            text = source[token.start:token.end]
            if token.kind is TokenKind.TEXT and text_rewrite is not None:
                result.append(text_rewrite(text))
            elif token.kind is TokenKind.START:
                result.append(self.tag_rewrite(source, token, span_rewrite))
            else:
                result.append(text)
        return "".join(result)

    def tag_rewrite(self, source: str, token: MarkupToken, span_rewrite: SpanRewriter) -> str:
        region_start, region_end = token.region
        spans, _ = tagSpans_scan(source, region_start, region_end)
        pieces = [source[token.start:region_start]]
        pos = region_start
        for span in spans:
            replacement = span_rewrite(span, source[span.start:span.end])
            if replacement is None:
                continue
            pieces.append(source[pos:span.start])
            pieces.append(replacement)
            pos = span.end
        pieces.append(source[pos:token.end])
        return "".join(pieces)

    def macroCalls_replace(self, text: str) -> str:
        """Replace every $$name(args) in text by a bare placeholder token"""
        pieces: List[str] = []
        pos = 0
        search = text.find("$$")
        while search != -1:
            call = macroCall_match(text, search)
            if call is None:
                search = text.find("$$", search + 2)
                continue
            name, arguments, end = call
            rendered = self.registry.macroCall_render(name, arguments)
            pieces.append(text[pos:search])
            pieces.append(self.placeholder_record(PlaceholderFamily.MACRO, rendered))
            pos = end
            search = text.find("$$", pos)
        pieces.append(text[pos:])
        return "".join(pieces)

    def macros_protect(self, source: str) -> str:
        """
        Pass 1: macro calls

        Calls standing in attribute position become placeholder attributes;
        calls used as attribute values (quoted or not) and in text become
        bare tokens.
        """

        def span_rewrite(span: Span, text: str) -> Optional[str]:
            if span.kind == "macro":
                placeholder = self.macroCalls_replace(text)
                if attributeValue_is(source, span.start):
                    return placeholder
                return f'{placeholder}="{placeholder}"'
            if span.kind == "quoted" and "$$" in text:
                return self.macroCalls_replace(text)
            return None

        def text_rewrite(text: str) -> str:
            return self.macroCalls_replace(text) if "$$" in text else text

        return self.tags_rewrite(source, span_rewrite, text_rewrite)

    def condAttributes_protect(self, source: str) -> str:
        """Pass 2: ::cond expr:: in attribute position"""
        pattern = re.compile(spec_get(DirectiveKind.COND_ATTR).pattern or "")

        def span_rewrite(span: Span, text: str) -> Optional[str]:
            match = pattern.fullmatch(text) if span.kind == "directive" else None
            if not match:
                return None
            placeholder = self.placeholder_record(PlaceholderFamily.COND, match.group(1).strip())
            return f'{placeholder}="{placeholder}"'

        return self.tags_rewrite(source, span_rewrite)

    def useDirective_protect(self, source: str) -> str:
        """
        Pass 3: ::use parent::

        The directive becomes the start tag of a synthetic root element and
        the last ::end:: of the file its end tag, so the inheritance block is
        tracked apart from the block stack.
        """
        match = re.search(spec_get(DirectiveKind.USE).pattern or "", source)
        if not match:
            return source

        self.context.useParent = match.group(1).strip()
        marker = self.settings.useMarker
        wrapper = self.settings.use_wrapper_tag
        opening = f'<{wrapper} {marker}="{marker}">'
        LOG(f"Template extends {self.context.useParent}", level=2)

        head, tail = source[:match.start()], source[match.end():]
        last_end = tail.rfind(END_DIRECTIVE)
        if last_end != -1:
            tail = tail[:last_end] + f"</{wrapper}>" + tail[last_end + len(END_DIRECTIVE):]
        elif self.settings.strict_mode:
            raise MalformedNestingError("::use:: without a closing ::end::", match.group(0))
        else:
            WARN(f"{match.group(0)} has no closing ::end::; closing it at end of file")
        return head + opening + tail

    def attrAttributes_protect(
        self, source: str, kind: DirectiveKind, family: PlaceholderFamily, attribute: str
    ) -> str:
        """Pass 4: ::attr class|checked|selected ...:: in attribute position"""
        pattern = re.compile(spec_get(kind).pattern or "")

        def span_rewrite(span: Span, text: str) -> Optional[str]:
            match = pattern.fullmatch(text) if span.kind == "directive" else None
            if not match:
                return None
            token = DirectiveToken(
                kind=kind,
                captures=tuple(group.strip() for group in match.groups()),
                text=text,
            )
            rendered = self.registry.render(token, self.context)
            placeholder = self.placeholder_record(family, rendered)
            return f'{attribute}="{placeholder}"'

        return self.tags_rewrite(source, span_rewrite)
