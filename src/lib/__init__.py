"""
gosp - Go Server Pages, compiled to Python

Pages mix literal text with embedded Python; the compiler turns a page into
a Python module and the execution server answers requests with it.
"""

__version__ = "1.0.0"

from .parser import Parser
from .compiler import Compiler, page_compile
from .imports import ImportAllowList, imports_validate
from .dispatch import Dispatcher
from .server import ExecutionServer, serve_file, serve_once
from .log import LOG, state_connectToLogger

__all__ = [
    "Parser",
    "Compiler",
    "page_compile",
    "ImportAllowList",
    "imports_validate",
    "Dispatcher",
    "ExecutionServer",
    "serve_file",
    "serve_once",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
