"""
templo2twig - Templo to Twig template translator

Rewrites Templo (.mtt) templates into equivalent Twig (.twig) templates,
leaving the surrounding markup untouched.
"""

__version__ = "1.0.0"

from .lib import convert, Converter, DirectiveRegistry, LOG, state_connectToLogger

__all__ = ["convert", "Converter", "DirectiveRegistry", "LOG", "state_connectToLogger", "__version__"]
