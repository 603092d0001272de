"""
Macro subsystem

Two halves:

- Macro libraries (documents wrapped in <macros>...</macros>) are converted
  without building a tree: the container tags disappear and every
  <macro name="sig">body</macro> becomes {% macro sig %}body{% endmacro %},
  the body being converted as an independent template fragment.
- Ordinary documents call macros; the first call makes the document import
  the library once.
"""

import re
from typing import Callable, List, Optional

from ..config import AppSettings, appsettings
from ..models.context import ConversionContext
from ..models.directives import DirectiveKind, DirectiveToken
from ..models.markup import Document, Element, Text, child_prepend, element_find
from .directives import DirectiveRegistry
from .errors import MalformedNestingError, MissingMacroNameError
from .log import LOG, WARN
from .markup import MarkupToken, TokenKind, attributes_parse, tokens_scan


def document_isMacroLibrary(source: str, settings: Optional[AppSettings] = None) -> bool:
    """
    Check whether a source document is a macro library

    Example:
        >>> document_isMacroLibrary('<macros>\\n<macro name="a()">x</macro>\\n</macros>')
        True
    """
    settings = settings or appsettings
    return re.match(rf"\s*<{re.escape(settings.macro_library_tag)}[\s>]", source, re.IGNORECASE) is not None


def macros_import(document: Document, context: ConversionContext, settings: Optional[AppSettings] = None) -> None:
    """
    Make the document import the macro library, once

    The import goes first in <body>; without a body, first in the root
    element; without any element, first in the document.
    """
    if context.macros.importedFlag:
        return
    settings = settings or appsettings
    statement = Text(
        f"{{% import '{settings.macro_import_file}' as {settings.macro_namespace} %}}\n"
    )
    target = element_find(document, "body")
    if target is None:
        target = next((child for child in document.children if isinstance(child, Element)), None)
    child_prepend(target if target is not None else document, statement)
    context.macros.importedFlag = True
    LOG(f"Inserted macro import into <{target.name if target is not None else 'document'}>", level=2)


class MacroLibraryConverter:
    """
    Converts a macro library document

    Attributes:
        source: Library source text
        settings: Application settings (tag names)
        body_convert: Converts one macro body as a template fragment
        registry: Directive registry rendering the definitions
    """

    def __init__(
        self,
        source: str,
        body_convert: Callable[[str], str],
        settings: Optional[AppSettings] = None,
        registry: Optional[DirectiveRegistry] = None,
    ) -> None:
        self.source = source
        self.body_convert = body_convert
        self.settings = settings or appsettings
        self.registry = registry or DirectiveRegistry(self.settings)
        self.macroCount = 0

    def tag_is(self, token: MarkupToken, kind: TokenKind, name: str) -> bool:
        return token.kind is kind and token.name.lower() == name.lower()

    def macroName_get(self, token: MarkupToken) -> Optional[str]:
        region = self.source[token.region[0]:token.region[1]]
        attributes, _ = attributes_parse(region)
        for attribute in attributes:
            if attribute.name.lower() == "name" and attribute.value:
                return attribute.value.strip()
        return None

    def convert(self) -> str:
        """
        Convert the library

        Returns:
            Twig text with one {% macro %} block per definition

        Raises:
            MalformedNestingError: If a <macro> is never closed
            MissingMacroNameError: If a definition has no name (strict mode)
        """
        library_tag = self.settings.macro_library_tag
        macro_tag = self.settings.macro_tag
        tokens = list(tokens_scan(self.source))
        output: List[str] = []
        index = 0

        while index < len(tokens):
            token = tokens[index]
            text = self.source[token.start:token.end]

            if self.tag_is(token, TokenKind.START, library_tag) or self.tag_is(token, TokenKind.END, library_tag):
                index += 1
                continue

            if not self.tag_is(token, TokenKind.START, macro_tag):
                output.append(text)
                index += 1
                continue

            close = next(
                (j for j in range(index + 1, len(tokens)) if self.tag_is(tokens[j], TokenKind.END, macro_tag)),
                None,
            )
            if close is None:
                raise MalformedNestingError(f"<{macro_tag}> is never closed", text)

            name = self.macroName_get(token)
            if not name:
                if self.settings.strict_mode:
                    raise MissingMacroNameError("Macro definition without a name", text)
                WARN(f"Skipping macro definition without a name: {text}")
                index = close + 1
                continue

            body = self.source[token.end:tokens[close].start]
            definition = DirectiveToken(kind=DirectiveKind.MACRO_DEF, captures=(name,), text=text)
            output.append(self.registry.render(definition, ConversionContext()))
            output.append(self.body_convert(body))
            output.append("{% endmacro %}")
            self.macroCount += 1
            index = close + 1

        LOG(f"Converted {self.macroCount} macro definitions", level=2)
        return "".join(output)
