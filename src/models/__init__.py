"""
Models package for templo2twig

Contains data structures and type definitions for the conversion pipeline.
"""

from .state import ProgramState, pipeline
from .directives import DirectiveSpec, DirectiveKind, DirectiveToken, BlockKind, GRAMMAR
from .context import (
    BlockStack,
    ConversionContext,
    MacroRegistry,
    PlaceholderFamily,
    PlaceholderTable,
    SwitchContext,
)
from .markup import Attribute, Document, Element, Raw, Text

__all__ = [
    "ProgramState",
    "pipeline",
    "DirectiveSpec",
    "DirectiveKind",
    "DirectiveToken",
    "BlockKind",
    "GRAMMAR",
    "BlockStack",
    "ConversionContext",
    "MacroRegistry",
    "PlaceholderFamily",
    "PlaceholderTable",
    "SwitchContext",
    "Attribute",
    "Document",
    "Element",
    "Raw",
    "Text",
]
