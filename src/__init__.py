"""
gosp - Go Server Pages, compiled to Python

A page mixes literal text with <?go:top ?>, <?go:block ?>, <?go:expr ?> and
<?go:include ?> directives. gosp2py compiles a page to a Python module and
gosp-server answers web-server requests with it.

This package is also the one module every generated page imports; the
runtime names below are what generated code calls.
"""

__version__ = "1.0.0"

from .lib import Parser, Compiler, page_compile, LOG, state_connectToLogger
from .lib.errors import (
    GospError,
    SandboxViolation,
    IncludeDepthExceeded,
    TooManyTopBlocks,
    ImportRejected,
    DecodeError,
    IncompleteRequest,
    MetadataClosed,
    PageLoadError,
)
from .lib.runtime import (
    KeyValue,
    Metadata,
    PageGenerator,
    STATUS_OK,
    STATUS_INTERNAL_SERVER_ERROR,
    fprint,
    set_http_status,
    set_mime_type,
    set_header_field,
    set_keep_alive,
    error_message,
    debug_message,
    report_failure,
    open,
)
from .models.request import RequestData

__all__ = [
    "Parser",
    "Compiler",
    "page_compile",
    "LOG",
    "state_connectToLogger",
    "GospError",
    "SandboxViolation",
    "IncludeDepthExceeded",
    "TooManyTopBlocks",
    "ImportRejected",
    "DecodeError",
    "IncompleteRequest",
    "MetadataClosed",
    "PageLoadError",
    "KeyValue",
    "Metadata",
    "PageGenerator",
    "STATUS_OK",
    "STATUS_INTERNAL_SERVER_ERROR",
    "fprint",
    "set_http_status",
    "set_mime_type",
    "set_header_field",
    "set_keep_alive",
    "error_message",
    "debug_message",
    "report_failure",
    "open",
    "RequestData",
    "__version__",
]
