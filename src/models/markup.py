"""
Markup tree models

Nodes produced by the markup tree builder and walked by the converter. The
tree keeps the raw text of every tag it did not have to touch, so untouched
markup serializes back byte for byte.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(eq=False)
class Attribute:
    """
    One attribute of a start tag

    Attributes:
        name: Attribute name as written (may be a rendered Twig expression
              once a placeholder has been filled in)
        value: Unquoted value, None for a bare attribute
        quote: Quote character used around the value ('"', "'" or "")
    """
    name: str
    value: Optional[str] = None
    quote: str = '"'

    def render(self) -> str:
        if self.value is None:
            return self.name
        quote = self.quote
        if not quote and any(char.isspace() for char in self.value):
            quote = '"'
        return f"{self.name}={quote}{self.value}{quote}"


@dataclass(eq=False)
class Text:
    """Character data between tags"""
    value: str
    parent: Optional["Container"] = field(default=None, repr=False)


@dataclass(eq=False)
class Raw:
    """Markup passed through verbatim: comments, declarations, stray end tags"""
    value: str
    parent: Optional["Container"] = field(default=None, repr=False)


@dataclass(eq=False)
class Element:
    """
    An element and its children

    Attributes:
        name: Tag name as written in the source
        attributes: Ordered attribute list
        children: Child nodes in document order
        start: Raw start tag text, used verbatim while the element is clean
        end: Raw end tag text
        closed: Whether the source closed the element explicitly
        self_closing: Start tag ended with '/>'
        dirty: Attributes were modified, so the start tag must be rebuilt
    """
    name: str
    attributes: List[Attribute] = field(default_factory=list)
    children: List["Node"] = field(default_factory=list)
    start: str = ""
    end: str = ""
    closed: bool = False
    self_closing: bool = False
    dirty: bool = False
    parent: Optional["Container"] = field(default=None, repr=False)

    def attribute_remove(self, attribute: Attribute) -> None:
        self.attributes.remove(attribute)
        self.dirty = True

    def startTag_render(self) -> str:
        if not self.dirty:
            return self.start
        parts = [self.name] + [attribute.render() for attribute in self.attributes]
        return f"<{' '.join(parts)}{'/' if self.self_closing else ''}>"


@dataclass(eq=False)
class Document:
    """Root of a parsed template"""
    children: List["Node"] = field(default_factory=list)


Node = Union[Text, Raw, Element]
Container = Union[Element, Document]


def child_append(parent: Container, child: Node) -> None:
    """Append child, merging adjacent text nodes"""
    if isinstance(child, Text) and parent.children and isinstance(parent.children[-1], Text):
        parent.children[-1].value += child.value
        return
    child.parent = parent
    parent.children.append(child)


def sibling_insert(node: Node, new: Node, after: bool = False) -> None:
    """Insert new next to node under node's parent"""
    parent = node.parent
    if parent is None:
        raise ValueError("Cannot insert a sibling next to a detached node")
    index = next(i for i, child in enumerate(parent.children) if child is node)
    new.parent = parent
    parent.children.insert(index + 1 if after else index, new)


def child_prepend(parent: Container, new: Node) -> None:
    new.parent = parent
    parent.children.insert(0, new)


def element_find(root: Container, name: str) -> Optional[Element]:
    """Depth-first search for the first element with the given tag name"""
    for child in root.children:
        if isinstance(child, Element):
            if child.name.lower() == name.lower():
                return child
            found = element_find(child, name)
            if found is not None:
                return found
    return None
