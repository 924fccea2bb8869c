"""
Verbosity-gated logging for gosp, built on Loguru.

LOG() consults the verbosity of the ProgramState connected by the running
command (gosp2py or gosp-server) and drops messages above it, so library
code never has to be handed the state.

The execution server answers each connection on its own thread and runs
each page on another. Context variables do not follow a new thread, so the
most recently connected state also serves as the process-wide default, and
every record names the thread that produced it.

Usage:
    from gosp.lib.log import LOG, state_connectToLogger

    state_connectToLogger(state)          # once, at the start of main()

    LOG("Listening on /run/page.sock")    # shown by default
    LOG("Scanned 12 page regions", level=2)    # -v
    LOG("Line 3: block directive", level=3)    # -vv
"""

from loguru import logger
from typing import Any, Dict, Optional
from contextvars import ContextVar
import sys

# State connected in the current context
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

# State connected last, seen by threads that start with an empty context
_process_state: Optional[Any] = None

# Loguru level used for each verbosity level
LEVEL_NAMES: Dict[int, str] = {1: "INFO", 2: "DEBUG", 3: "TRACE"}

logger_format = (
    "<green>{time:HH:mm:ss.SSS}</green> │ "
    "<level>{level: <5}</level> │ "
    "<magenta>{thread.name: <16}</magenta> │ "
    "<cyan>{name}:{function}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="TRACE")


def state_connectToLogger(state: Any) -> None:
    """
    Make state's verbosity govern LOG() here and in threads started later.

    Args:
        state: ProgramState (anything with a verbosity attribute)
    """
    global _process_state
    _program_state.set(state)
    _process_state = state


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if the connected verbosity is at least level.

    Args:
        message: Text to log
        level: 1 = normal, 2 = verbose (-v), 3 = debug (-vv or more)
        **kwargs: Passed through to loguru

    Nothing is logged before a state has been connected, which keeps the
    library silent when it is used without one of the commands.
    """
    state = _program_state.get() or _process_state
    if state is None or getattr(state, 'verbosity', 0) < level:
        return
    logger.opt(depth=1).log(LEVEL_NAMES.get(level, "TRACE"), message, **kwargs)
