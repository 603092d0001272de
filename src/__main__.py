#!/usr/bin/env python3
"""
templo2twig - Templo to Twig template translator

Converts every Templo template (.mtt) found in an input directory into a
Twig template (.twig) of the same base name in an output directory.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework: the input and output
directories are the two positional arguments.

Usage:
    templo2twig inputdir/ outputdir/

Examples:
    # Convert every .mtt file of templates/ into twig/
    templo2twig templates/ twig/

    # Only the layout templates, with per-file details
    templo2twig templates/ twig/ --pattern 'layout*.mtt' -vv

Exit status is 1 when at least one template failed to convert; the other
templates are still written.
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .config import appsettings
from .lib import convert, document_isMacroLibrary, ConversionError, __version__, LOG, state_connectToLogger
from .models import ProgramState, pipeline
from .models.state import FileConversion


DISPLAY_TITLE = r"""
  _                       _       ___ _            _
 | |_ ___ _ __  _ __  ___| |___  |_  ) |___ __ _(_)__ _
 |  _/ -_) '  \| '_ \/ _ \ / _ \  / /|  _\ V  V / / _` |
  \__\___|_|_|_| .__/\___/_\___/ /___|\__|\_/\_/|_\__, |
               |_|                                |___/
  Templo to Twig template translator
"""

# Define CLI arguments
parser = ArgumentParser(
    description="templo2twig - Templo to Twig template translator",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--pattern",
    default=f"*{appsettings.source_extension}",
    type=str,
    help="Glob selecting the templates to convert (non-recursive)",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the input directory and create the output directory.

    An unreadable or missing input directory is reported and the run goes
    on with nothing to convert.

    Returns:
        ProgramState with envOK set
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputdir is None or not state.inputdir.is_dir():
        print(f"Error: Input directory not found: {state.inputdir}", file=sys.stderr)
        state.envOK = False
        return state

    assert state.outputdir is not None
    state.outputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Input directory: {state.inputdir}", level=2)
    LOG(f"Output directory: {state.outputdir}", level=2)

    state.envOK = True
    return state


def sources_scan(inputstate: ProgramState) -> ProgramState:
    """
    Find the templates to convert (non-recursive).

    Returns:
        ProgramState with sourceFiles set
    """

    state = inputstate.copy()
    if not state.envOK or state.inputdir is None:
        state.sourceFiles = []
        return state

    LOG(f"Will scan {state.inputdir} for Templo files.", level=1)
    try:
        state.sourceFiles = sorted(path for path in state.inputdir.glob(state.pattern) if path.is_file())
    except OSError as e:
        print(f"Unable to scan directory: {e}", file=sys.stderr)
        state.sourceFiles = []

    LOG(f"Found {len(state.sourceFiles)} template(s)", level=2)
    return state


def template_convert(source_file: Path, outputdir: Path) -> FileConversion:
    """
    Convert one template file and write the result.

    Read and conversion failures are reported in the returned FileConversion;
    write failures propagate.
    """
    conversion = FileConversion(source=source_file)

    LOG(f"Found Templo file: {source_file.name}", level=1)
    try:
        source = source_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        conversion.error = f"cannot read: {e}"
        print(f"Error reading {source_file}: {e}", file=sys.stderr)
        return conversion

    conversion.isMacroLibrary = document_isMacroLibrary(source)
    LOG(
        f"Converting {'macro library' if conversion.isMacroLibrary else 'template'} {source_file.name}...",
        level=2,
    )
    try:
        output = convert(source, conversion.isMacroLibrary)
    except ConversionError as e:
        conversion.error = str(e)
        print(f"Conversion error in {source_file.name}: {e}", file=sys.stderr)
        return conversion

    output_file = outputdir / source_file.with_suffix(appsettings.target_extension).name
    output_file.write_text(output, encoding="utf-8")
    conversion.output = output_file
    LOG(f"The converted Twig file has been saved to {output_file}", level=1)
    return conversion


def templates_convert(inputstate: ProgramState) -> ProgramState:
    """
    Convert every scanned template.

    Returns:
        ProgramState with conversions set
    """

    state = inputstate.copy()
    assert state.outputdir is not None
    state.conversions = [template_convert(path, state.outputdir) for path in state.sourceFiles]
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display a summary of the run.

    Exits:
        1 if any template failed to convert
    """
    state: ProgramState = inputstate.copy()
    converted = len(state.conversions) - len(state.failures)

    LOG(f"\n✓ Converted {converted} of {len(state.conversions)} template(s)", level=1)
    LOG(f"  Output: {state.outputdir}", level=1)
    for failure in state.failures:
        LOG(f"  ✗ {failure.source.name}: {failure.error}", level=1)

    if state.failures:
        sys.exit(1)
    return state


@chris_plugin(
    parser=parser,
    title="templo2twig - Templo to Twig template translator",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - convert a directory of Templo templates to Twig.

    Orchestrates the pipeline:
        1. env_check: Validate input directory, create output directory
        2. sources_scan: List the templates to convert
        3. templates_convert: Convert and write each template
        4. results_report: Summarize, set exit status

    Args:
        options: CLI arguments from argparse
            - pattern: str - Glob selecting templates
            - verbosity: int - Logging verbosity level (1-3)
        inputdir: Directory containing Templo templates
        outputdir: Directory where Twig templates are written
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, sources_scan, templates_convert, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
