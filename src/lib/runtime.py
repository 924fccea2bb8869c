"""
Runtime support for generated pages

Everything a generated page module touches lives here and is re-exported
from the top-level gosp package, which is the one module every page may
import. A page writes its body to a byte sink and reports status, MIME
type and header fields as KeyValue events on a Metadata channel that it
must close when done.
"""

import queue
import threading
import traceback
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, BinaryIO, Callable, Iterator, Optional, TYPE_CHECKING

from .errors import MetadataClosed
from .paths import open_guarded

if TYPE_CHECKING:
    from ..models.request import RequestData

STATUS_OK = int(HTTPStatus.OK)
STATUS_INTERNAL_SERVER_ERROR = int(HTTPStatus.INTERNAL_SERVER_ERROR)

# Separator framing the traceback in failure reports
FAILURE_SEPARATOR = "-" * 60
FAILURE_PREFIX = "  | "

# Names of the gosp package that page code may reach
PAGE_API = frozenset({
    "KeyValue", "Metadata", "RequestData", "STATUS_OK", "STATUS_INTERNAL_SERVER_ERROR",
    "fprint", "set_http_status", "set_mime_type", "set_header_field", "set_keep_alive",
    "error_message", "debug_message", "report_failure", "open",
})


@dataclass(frozen=True)
class KeyValue:
    """One metadata event"""
    key: str
    value: str


_CLOSED = object()


class Metadata:
    """
    Bounded channel of KeyValue events from a page to the dispatcher

    A page emits any number of events and then closes the channel;
    iterating over the channel yields events in emission order until it is
    closed. Emitting blocks while the channel is full.
    """

    def __init__(self, capacity: int = 5) -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=capacity)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, key: str, value: Any) -> None:
        """
        Queue one event

        Raises:
            MetadataClosed: if the channel has already been closed
        """
        with self._lock:
            if self._closed:
                raise MetadataClosed(f"Metadata channel closed; cannot send {key!r}")
            self._queue.put(KeyValue(key, str(value)))

    def close(self) -> None:
        """Signal that no more events follow (idempotent)"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[KeyValue]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


# A page generator: (request or None, body sink, metadata channel) -> None
PageGenerator = Callable[[Optional["RequestData"], BinaryIO, Metadata], None]


def fprint(out: BinaryIO, *values: Any) -> None:
    """Write each value to out, bytes as-is and anything else as UTF-8 text"""
    for value in values:
        if isinstance(value, (bytes, bytearray)):
            out.write(value)
        else:
            out.write(str(value).encode("utf-8"))


def set_http_status(meta: Metadata, status: int) -> None:
    """Tell the web server what HTTP status code it should return."""
    meta.emit("http-status", int(status))


def set_mime_type(meta: Metadata, mime_type: str) -> None:
    """Tell the web server what MIME type it should return."""
    meta.emit("mime-type", mime_type)


def set_header_field(meta: Metadata, key: str, value: str, replace: bool = False) -> None:
    """
    Provide a header field for the web server to include in the response

    If replace is true, the value replaces any prior value for the field;
    otherwise the field is appended to those already set.
    """
    meta.emit("header-field", f"{'true' if replace else 'false'} {key} {value}")


def set_keep_alive(meta: Metadata, keep_alive: bool) -> None:
    """Ask the web server to keep the client connection open (or not)."""
    meta.emit("keep-alive", "true" if keep_alive else "false")


def error_message(meta: Metadata, message: str) -> None:
    meta.emit("error-message", message)


def debug_message(meta: Metadata, message: str) -> None:
    meta.emit("debug-message", message)


def report_failure(meta: Metadata, exc: BaseException) -> None:
    """
    Report an unexpected page failure as an internal server error

    Emits http-status 500 followed by error-message events: the exception
    itself, a separator, each traceback line prefixed for readability, and
    a closing separator.
    """
    set_http_status(meta, STATUS_INTERNAL_SERVER_ERROR)
    error_message(meta, f"{type(exc).__name__}: {exc}")
    error_message(meta, FAILURE_SEPARATOR)
    for chunk in traceback.format_exception(type(exc), exc, exc.__traceback__):
        for line in chunk.rstrip("\n").split("\n"):
            error_message(meta, FAILURE_PREFIX + line)
    error_message(meta, FAILURE_SEPARATOR)


def open(name: str, mode: str = "r", base: Optional[str] = None, **kwargs: Any) -> Any:
    """
    Open a file that lies within or below base (default: current directory)

    Raises:
        SandboxViolation: for any file outside of base
    """
    return open_guarded(name, mode, base=base, **kwargs)
