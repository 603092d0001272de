"""
Per-conversion state

Everything a single conversion mutates lives here and is bundled in a
ConversionContext built fresh for every convert() call, so documents never
see each other's placeholder indices, import flags or open blocks.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .directives import BlockKind
from ..lib.errors import MalformedNestingError, UnresolvedPlaceholderError


class PlaceholderFamily(Enum):
    """Directive families that need attribute-position placeholders"""
    MACRO = "MACRO"
    COND = "COND"
    ATTR_CLASS = "ATTR_CLASS"
    ATTR_CHECKED = "ATTR_CHECKED"
    ATTR_SELECTED = "ATTR_SELECTED"


class BlockStack:
    """
    LIFO record of the blocks currently open

    Generic ::end:: directives close whatever block was opened last, so the
    stack decides which Twig end tag each of them becomes.
    """

    def __init__(self) -> None:
        self.kinds: List[BlockKind] = []

    def push(self, kind: BlockKind) -> None:
        self.kinds.append(kind)

    def pop(self, directive: str = "::end::") -> BlockKind:
        """
        Close the innermost open block

        Raises:
            MalformedNestingError: If no block is open
        """
        if not self.kinds:
            raise MalformedNestingError("Closing directive without an open block", directive)
        return self.kinds.pop()

    def peek(self) -> Optional[BlockKind]:
        return self.kinds[-1] if self.kinds else None

    @property
    def depth(self) -> int:
        return len(self.kinds)

    def __repr__(self) -> str:
        return f"BlockStack({[kind.value for kind in self.kinds]})"


@dataclass
class PlaceholderTable:
    """
    Append-only list of original directives replaced by placeholders

    The index returned by record() is the one embedded in the placeholder,
    and the one lookup() expects back.
    """
    family: PlaceholderFamily
    entries: List[str] = field(default_factory=list)

    def record(self, entry: str) -> int:
        self.entries.append(entry)
        return len(self.entries) - 1

    def lookup(self, index: int) -> str:
        """
        Fetch the entry recorded at index

        Raises:
            UnresolvedPlaceholderError: If nothing was recorded at index
        """
        if not 0 <= index < len(self.entries):
            raise UnresolvedPlaceholderError(
                f"No {self.family.value} placeholder recorded at index {index}"
            )
        return self.entries[index]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class MacroRegistry:
    """Macro call bookkeeping for one document"""
    importedFlag: bool = False
    calls: PlaceholderTable = field(
        default_factory=lambda: PlaceholderTable(PlaceholderFamily.MACRO)
    )


@dataclass
class SwitchContext:
    """
    Condition of an open ::switch:: and the number of cases seen so far

    depth is the block stack depth right after the switch pushed its IF; the
    switch is over once an ::end:: pops the stack below it.
    """
    conditionExpr: str
    caseIndex: int = 0
    depth: int = 0


@dataclass
class ConversionContext:
    """
    All mutable state of one conversion pass

    Attributes:
        blocks: Open block kinds
        placeholders: Placeholder table per family (the MACRO table is shared
                      with the macro registry)
        macros: Macro call bookkeeping
        switches: Open switches, innermost last
        useParent: Parent template named by ::use::, if any
    """
    blocks: BlockStack = field(default_factory=BlockStack)
    macros: MacroRegistry = field(default_factory=MacroRegistry)
    placeholders: Dict[PlaceholderFamily, PlaceholderTable] = field(default_factory=dict)
    switches: List[SwitchContext] = field(default_factory=list)
    useParent: Optional[str] = None

    def __post_init__(self) -> None:
        for family in PlaceholderFamily:
            if family is PlaceholderFamily.MACRO:
                self.placeholders[family] = self.macros.calls
            else:
                self.placeholders.setdefault(family, PlaceholderTable(family))

    def table(self, family: PlaceholderFamily) -> PlaceholderTable:
        return self.placeholders[family]

    @property
    def switch(self) -> Optional[SwitchContext]:
        """Innermost open switch, None outside of any switch"""
        return self.switches[-1] if self.switches else None

    def switches_close(self) -> None:
        """Forget the switches whose IF block has just been closed"""
        while self.switches and self.blocks.depth < self.switches[-1].depth:
            self.switches.pop()
