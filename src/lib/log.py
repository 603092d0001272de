"""
Verbosity-gated logging for the conversion run.

The command line binds its ProgramState once with state_connectToLogger();
from then on any engine module can call LOG() and the message is shown only
if the run's verbosity (-v count) reaches the message level. Nothing has to
be threaded through the converter for this.

When convert() is used as a library no state is bound and both LOG() and
WARN() stay silent.

Usage:
    from templo2twig.lib.log import LOG, WARN, state_connectToLogger

    state_connectToLogger(state)
    LOG("Converted page.mtt", level=1)
    LOG("Placeholders: COND=2, MACRO=1", level=2)
    LOG("::end:: -> '{% endif %}'", level=3)
    WARN("Skipping macro definition without a name")
"""

from loguru import logger
from typing import Any, Dict, Optional
from contextvars import ContextVar
import sys

# ProgramState of the current run, if any
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

# Loguru level used for each verbosity level
_LEVELS: Dict[int, str] = {1: "INFO", 2: "DEBUG", 3: "TRACE"}

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <7}</level> │ "
    "<cyan>{module: <12}</cyan>:<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="TRACE")


def state_connectToLogger(state: Any) -> None:
    """
    Bind a ProgramState to the logging context.

    Args:
        state: Object with a verbosity attribute (normally ProgramState)
    """
    _program_state.set(state)


def verbosity_get() -> int:
    """Verbosity of the bound state, 0 when nothing is bound"""
    state = _program_state.get()
    return getattr(state, 'verbosity', 0) if state is not None else 0


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if the run's verbosity allows.

    Args:
        message: Text to display
        level: Minimum verbosity required (1=normal, 2=-v, 3=-vv and more)
        **kwargs: Extra loguru formatting arguments
    """
    if verbosity_get() >= level:
        logger.opt(depth=1).log(_LEVELS.get(level, "TRACE"), message, **kwargs)


def WARN(message: str, **kwargs: Any) -> None:
    """
    Report a recoverable problem in the input.

    Shown whenever a state is bound, whatever its verbosity.
    """
    if _program_state.get() is not None:
        logger.opt(depth=1).warning(message, **kwargs)
