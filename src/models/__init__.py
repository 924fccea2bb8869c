"""
Models package for gosp

Contains data structures and type definitions for the compiler, the
wire protocol and the command-line pipelines.
"""

from .state import ProgramState, pipeline
from .directives import DirectiveKind, CompilePolicy, MAX_INCLUDE_DEPTH
from .parser import PageNode
from .request import RequestData, ServiceRequest, serviceRequest_decode

__all__ = [
    "ProgramState",
    "pipeline",
    "DirectiveKind",
    "CompilePolicy",
    "MAX_INCLUDE_DEPTH",
    "PageNode",
    "RequestData",
    "ServiceRequest",
    "serviceRequest_decode",
]
