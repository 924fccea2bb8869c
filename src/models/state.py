"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages. Both gosp2py
and gosp-server carry their state through the same container.
"""

from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the command-line pipelines (state bus pattern).

    gosp2py stages and their state additions:
        - Initial: inputFile, outFile, run, highlight, maxTop, allowed,
          maxIncludeDepth, httpHeaders, verbosity
        - env_check: includeDir, allowList
        - source_read: pageSource
        - page_compile: generatedSource
        - imports_check: (no additions)
        - output_write: (no additions, terminal stage)

    gosp-server stages and their state additions:
        - Initial: plugin, socket, file, maxIdle, httpHeaders, verbosity
        - plugin_load: generator
        - requests_serve: (no additions, terminal stage)
    """

    # Shared CLI arguments
    verbosity: int = field(default=1)
    httpHeaders: str = field(default="structured")

    # gosp2py arguments
    inputFile: str = field(default="-")
    outFile: str = field(default="-")
    run: bool = field(default=False)
    highlight: bool = field(default=False)
    maxTop: int = field(default=1)
    allowed: str = field(default="ALL")
    maxIncludeDepth: int = field(default=10)

    # gosp-server arguments
    plugin: str = field(default="")
    socket: str = field(default="")
    file: str = field(default="")
    maxIdle: float = field(default=0.0)

    # Pipeline state
    includeDir: str = field(default="/")
    allowList: Optional[Any] = field(default=None)       # ImportAllowList at runtime
    pageSource: Optional[str] = field(default=None)
    generatedSource: Optional[str] = field(default=None)
    generator: Optional[Callable] = field(default=None)  # PageGenerator at runtime

    @classmethod
    def state_createFromNamespace(cls: Type["ProgramState"], options: Namespace) -> "ProgramState":
        """
        Create ProgramState from an argparse Namespace.

        Options that do not name a ProgramState field are dropped.
        """
        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}
        return cls(**filtered_options)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            source_read,
            page_compile,
            output_write
        )

    This is equivalent to:
        output_write(page_compile(source_read(env_check(initial_state))))

    But reads left-to-right instead of inside-out.
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
