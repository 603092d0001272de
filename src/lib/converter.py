"""
Templo to Twig converter

Entry point of the conversion engine. One Converter instance converts one
document and owns all of its state:

1. Placeholder pre-processing (macro calls, ::cond::, ::use::, ::attr::)
2. Markup parsing into a tree
3. Tree conversion: attributes of each element first, then its children;
   text nodes are partitioned before each ::foreach/::if/::set, classified
   into directive tokens and rendered left to right
4. Serialization
5. Finalization: leftover '::' removal, inheritance wrapping, placeholder
   check

Example:
    >>> convert("<p>::if a::X::end::</p>")
    '<p>{% if a %}X{% endif %}</p>'
"""

import re
from typing import Optional

from ..config import AppSettings, appsettings
from ..models.context import ConversionContext, PlaceholderFamily
from ..models.directives import DirectiveKind, DirectiveToken
from ..models.markup import Attribute, Document, Element, Node, Raw, Text, sibling_insert
from .directives import DirectiveRegistry, delimiters_strip, textNode_split
from .errors import MalformedNestingError, UnresolvedPlaceholderError
from .log import LOG
from .macros import MacroLibraryConverter, macros_import
from .markup import RAW_TEXT_ELEMENTS, MarkupParser, markup_serialize
from .placeholders import Preprocessor


ATTR_FAMILIES = {
    PlaceholderFamily.ATTR_CLASS.value,
    PlaceholderFamily.ATTR_CHECKED.value,
    PlaceholderFamily.ATTR_SELECTED.value,
}


class Converter:
    """
    Converts one Templo document to Twig

    Attributes:
        source: Templo source text
        is_macro_library: Source is a <macros> library
        settings: Application settings
        context: Per-conversion state (fresh for every instance)
        registry: Directive renderers
        document: Parsed tree, available after convert() for documents
    """

    def __init__(
        self,
        source: str,
        is_macro_library: bool = False,
        settings: Optional[AppSettings] = None,
    ) -> None:
        self.source = source
        self.is_macro_library = is_macro_library
        self.settings = settings or appsettings
        self.context = ConversionContext()
        self.registry = DirectiveRegistry(self.settings)
        self.document: Optional[Document] = None
        self.macroPattern = self.settings.placeHolder_pattern(PlaceholderFamily.MACRO.value)

    def convert(self) -> str:
        """
        Run the whole conversion

        Returns:
            Twig template text

        Raises:
            ConversionError: If the document is structurally broken
        """
        if self.is_macro_library:
            return MacroLibraryConverter(
                self.source, self.fragment_convert, self.settings, self.registry
            ).convert()

        preprocessed = Preprocessor(self.context, self.settings, self.registry).source_preprocess(self.source)
        self.document = MarkupParser(preprocessed).parse()
        self.node_convert(self.document)
        self.blocks_verifyClosed()
        if self.settings.strip_leftover_delimiters:
            self.delimiters_stripLeftover(self.document)
        return self.output_finalize(markup_serialize(self.document))

    def fragment_convert(self, fragment: str) -> str:
        """Convert a fragment (a macro body) with its own fresh state"""
        return Converter(fragment, settings=self.settings).convert()

    def node_convert(self, node: "Node | Document") -> None:
        """
        Recursively convert a node and its descendants

        Element attributes are handled before the children, since a ::cond::
        wraps the element itself. Children are iterated over a snapshot:
        nodes inserted during the walk (cond wrappers, the macro import) are
        already Twig and are not visited.
        """
        if isinstance(node, Text):
            node.value = self.text_convert(node.value)
            return
        if isinstance(node, Raw):
            return
        if isinstance(node, Element):
            self.attributes_check(node)
        for child in list(node.children):
            self.node_convert(child)

    def text_convert(self, value: str) -> str:
        """
        Convert all directives of a text value

        The value is partitioned before each ::foreach, ::if and ::set, the
        partitions are converted in order against the shared block stack and
        concatenated back; pending macro calls are filled in last.
        """
        if "::" not in value and not self.macroPattern.search(value):
            return value
        converted = "".join(
            self.registry.text_convert(partition, self.context)
            for partition in textNode_split(value)
        )
        return self.macroCalls_fillIn(converted)

    def macroCall_fill(self, index: int, text: str) -> str:
        """Render pending macro call number index, importing the library first"""
        if self.document is not None:
            macros_import(self.document, self.context, self.settings)
        token = DirectiveToken(kind=DirectiveKind.MACRO_CALL, captures=(str(index),), text=text)
        return self.registry.render(token, self.context)

    def macroCalls_fillIn(self, value: str) -> str:
        return self.macroPattern.sub(lambda m: self.macroCall_fill(int(m.group(1)), m.group(0)), value)

    def attributes_check(self, element: Element) -> None:
        """
        Convert the placeholder and directive attributes of an element

        - TEMPLATE_COND_i: wrap the element in {% if %} / {% endif %}
        - TEMPLATE_MACRO_i: the attribute becomes the macro call itself
        - class/checked/selected="TEMPLATE_ATTR_*_i": the attribute becomes
          its rendered Twig expression
        - any other attribute: directives in its value, or in its name when
          it is bare, are converted
        """
        for attribute in list(element.attributes):
            parsed = self.settings.placeHolder_parse(attribute.name)
            if parsed is not None:
                family, index = parsed
                if family == PlaceholderFamily.COND.value:
                    self.condAttribute_convert(element, attribute, index)
                elif family == PlaceholderFamily.MACRO.value:
                    attribute.name = self.macroCall_fill(index, attribute.name)
                    attribute.value = None
                    element.dirty = True
                continue

            if attribute.name.lower() == self.settings.useMarker.lower():
                continue

            if attribute.value is None:
                # <option ::if s::selected::end::> parses as one bare attribute
                converted = self.text_convert(attribute.name)
                if converted != attribute.name:
                    attribute.name = converted
                    element.dirty = True
                continue

            parsed = self.settings.placeHolder_parse(attribute.value)
            if parsed is not None and parsed[0] in ATTR_FAMILIES:
                family, index = parsed
                attribute.name = self.context.table(PlaceholderFamily(family)).lookup(index)
                attribute.value = None
                element.dirty = True
                continue

            converted = self.text_convert(attribute.value)
            if converted != attribute.value:
                attribute.value = converted
                element.dirty = True

    def condAttribute_convert(self, element: Element, attribute: Attribute, index: int) -> None:
        """Wrap element in {% if cond %} ... {% endif %} and drop the attribute"""
        condition = self.context.table(PlaceholderFamily.COND).lookup(index)
        sibling_insert(element, Text(f"{{% if {condition} %}}\n"))
        sibling_insert(element, Text("\n{% endif %}"), after=True)
        element.attribute_remove(attribute)

    def delimiters_stripLeftover(self, node: "Node | Document") -> None:
        """
        Remove '::' delimiters that survived conversion

        Comments, declarations and the bodies of <script> and <style> keep
        theirs (p::before stays a CSS selector).
        """
        if isinstance(node, Text):
            node.value = delimiters_strip(node.value)
            return
        if isinstance(node, Raw):
            return
        if isinstance(node, Element):
            if node.dirty:
                for attribute in node.attributes:
                    attribute.name = delimiters_strip(attribute.name)
                    if attribute.value is not None:
                        attribute.value = delimiters_strip(attribute.value)
            else:
                node.start = delimiters_strip(node.start)
            if node.name.lower() in RAW_TEXT_ELEMENTS:
                return
        for child in node.children:
            self.delimiters_stripLeftover(child)

    def blocks_verifyClosed(self) -> None:
        """
        Raises:
            MalformedNestingError: If blocks are still open at end of document
        """
        if self.context.blocks.depth:
            raise MalformedNestingError(
                f"{self.context.blocks.depth} block(s) never closed: {self.context.blocks}"
            )

    def parentTemplate_name(self, parent: str) -> str:
        """
        Twig name of the template given to ::use::

        Example:
            'layout.mtt' -> 'layout.twig'; layout.mtt -> "layout.twig"
        """
        quote = parent[0] if len(parent) >= 2 and parent[0] == parent[-1] and parent[0] in "\"'" else ""
        name = parent[1:-1] if quote else parent
        if name.endswith(self.settings.source_extension):
            name = name[: -len(self.settings.source_extension)] + self.settings.target_extension
        quote = quote or '"'
        return f"{quote}{name}{quote}"

    def useTemplate_fillIn(self, output: str) -> str:
        """Replace the synthetic ::use:: root by {% extends %} and the content block"""
        if not self.context.useParent:
            return output
        marker = self.settings.useMarker
        wrapper = self.settings.use_wrapper_tag
        opening = f'<{wrapper} {marker}="{marker}">'
        closing = f"</{wrapper}>"
        extends = (
            f"{{% extends {self.parentTemplate_name(self.context.useParent)} %}}\n"
            "{% block content %}"
        )
        output = output.replace(opening, extends, 1)
        head, found, tail = output.rpartition(closing)
        if found:
            return f"{head}{{% endblock %}}{tail}"
        return output + "{% endblock %}"

    def output_finalize(self, output: str) -> str:
        """
        Final text-level clean-up

        Raises:
            UnresolvedPlaceholderError: If a placeholder survived conversion
        """
        output = self.useTemplate_fillIn(output)

        families = "|".join(family.value for family in PlaceholderFamily)
        leftover = re.search(
            rf"{re.escape(self.settings.placeholder_prefix)}(?:{families})_\d+", output, re.IGNORECASE
        )
        if leftover:
            raise UnresolvedPlaceholderError("Placeholder left in output", leftover.group(0))

        LOG(
            f"Converted document: {len(self.source)} -> {len(output)} characters, "
            f"macros imported: {self.context.macros.importedFlag}",
            level=2,
        )
        return output


def convert(source: str, is_macro_library: bool = False, settings: Optional[AppSettings] = None) -> str:
    """
    Convert one Templo document to Twig

    Args:
        source: Templo source text
        is_macro_library: Source is a <macros> library
        settings: Optional settings overriding the environment-derived ones

    Returns:
        Twig template text

    Raises:
        ConversionError: If the document is structurally broken

    Example:
        >>> convert("::foreach u users::::u.name::::end::")
        '{% for u in users %}{{u.name}}{% endfor %}'
    """
    return Converter(source, is_macro_library, settings).convert()
