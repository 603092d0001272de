"""
templo2twig - Templo to Twig template translator

Conversion engine: directive lexing and rendering, placeholder
pre-processing, markup tree handling and macro support.
"""

__version__ = "1.0.0"

from .converter import Converter, convert
from .directives import DirectiveRegistry
from .macros import document_isMacroLibrary
from .errors import (
    ConversionError,
    MalformedNestingError,
    MissingMacroNameError,
    UnresolvedPlaceholderError,
    UnsupportedDirectiveError,
)
from .log import LOG, state_connectToLogger

__all__ = [
    "Converter",
    "convert",
    "DirectiveRegistry",
    "document_isMacroLibrary",
    "ConversionError",
    "MalformedNestingError",
    "MissingMacroNameError",
    "UnresolvedPlaceholderError",
    "UnsupportedDirectiveError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
