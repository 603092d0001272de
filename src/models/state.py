"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Optional, Type, TypeVar, List, Callable
from dataclasses import dataclass, field, fields
from functools import reduce


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class FileConversion:
    """
    Outcome of converting one template file

    Attributes:
        source: Path of the .mtt source
        output: Path of the written .twig file, None if conversion failed
        isMacroLibrary: Source was a <macros> library
        error: Error message if conversion failed
    """
    source: Path
    output: Optional[Path] = None
    isMacroLibrary: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ProgramState:
    """
    Central state container for the conversion pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the run progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, pattern
        - env_check: envOK
        - sources_scan: sourceFiles
        - templates_convert: conversions
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory scanned for Templo templates
        outputdir: Directory receiving the Twig templates
        verbosity: Logging verbosity level (1-3)
        pattern: Glob selecting source files inside inputdir
        envOK: Environment validation passed
        sourceFiles: Templates found by the scan, sorted by name
        conversions: One FileConversion per source file
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    pattern: str = field(default="*.mtt")

    # Pipeline state
    envOK: bool = field(default=False)
    sourceFiles: List[Path] = field(default_factory=list)
    conversions: List[FileConversion] = field(default_factory=list)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Build the initial state of a run.

        Options argparse knows about but the state does not (e.g. the ones
        chris_plugin adds) are ignored.

        Args:
            options: Parsed CLI arguments (pattern, verbosity)
            inputdir: Directory containing Templo templates
            outputdir: Directory receiving Twig templates
        """
        known = {f.name for f in fields(cls)}
        selected = {name: value for name, value in vars(options).items() if name in known}
        selected.update(inputdir=Path(inputdir), outputdir=Path(outputdir))
        return cls(**selected)

    def copy(self: PS) -> PS:
        """Shallow copy, so a stage never mutates the state it was given"""
        return type(self)(**self.__dict__)

    @property
    def failures(self) -> List[FileConversion]:
        return [conversion for conversion in self.conversions if not conversion.ok]


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Run stages in order, feeding each the state returned by the previous one.

    Example:
        pipeline(state, env_check, sources_scan, templates_convert, results_report)
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
