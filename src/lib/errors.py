"""
Exception types raised by the conversion engine

Every error that aborts the conversion of one document derives from
ConversionError, so a batch driver can report it and move on to the next file.
"""

from typing import Optional


class ConversionError(Exception):
    """Base class for errors that abort the conversion of a single document"""

    def __init__(self, message: str, directive: Optional[str] = None) -> None:
        self.directive = directive
        if directive:
            message = f"{message} (at '{directive}')"
        super().__init__(message)


class MalformedNestingError(ConversionError):
    """An ::end:: without an open block, or blocks left open at end of input"""
    pass


class UnresolvedPlaceholderError(ConversionError):
    """A placeholder index has no entry in its table (pre-processing bug)"""
    pass


class MissingMacroNameError(ConversionError):
    """A <macro> definition without a name attribute (strict mode only)"""
    pass


class UnsupportedDirectiveError(ConversionError):
    """A directive used somewhere it cannot be converted"""
    pass
