"""
Request dispatch

Runs a page generator on its own thread with a private body buffer and a
metadata channel, renders the metadata in the configured wire format while
the page runs, and writes the body only if the page finished with status
200.
"""

import io
import os
import threading
from typing import BinaryIO, Iterable, Iterator, Optional

from ..models.request import RequestData
from .log import LOG
from .metadata import OK_STATUS, MetadataWriter, sanitize, write_structured
from .runtime import KeyValue, Metadata, PageGenerator, report_failure


class Dispatcher:
    """
    Invokes one page generator per request

    Attributes:
        generator: The loaded page
        write_metadata: Writer for the response wire format
        capacity: Metadata channel capacity
        change_directory: If True, chdir into the page's directory before
                          running it. This is process-wide and races with
                          concurrent requests for pages in other
                          directories; by default the directory is only
                          handed to the page as request.base_dir.
    """

    def __init__(
        self,
        generator: PageGenerator,
        write_metadata: MetadataWriter = write_structured,
        capacity: int = 5,
        change_directory: bool = False,
    ) -> None:
        self.generator = generator
        self.write_metadata = write_metadata
        self.capacity = capacity
        self.change_directory = change_directory

    def directory_enter(self, request: Optional[RequestData]) -> None:
        """
        Check (and, if configured, change to) the requested page's directory

        Raises:
            OSError: if the directory does not exist or cannot be entered
        """
        if request is None or request.base_dir is None:
            return
        if self.change_directory:
            os.chdir(request.base_dir)
        elif not os.path.isdir(request.base_dir):
            raise NotADirectoryError(f"No such directory: {request.base_dir}")

    def generator_run(self, request: Optional[RequestData], body: BinaryIO, meta: Metadata) -> None:
        """Run the page, turning an escaped failure into a 500 and always closing meta"""
        try:
            self.generator(request, body, meta)
        except BaseException as e:
            LOG(f"Page generator failed: {e}", level=1)
            if not meta.closed:
                report_failure(meta, e)
        finally:
            meta.close()

    def dispatch(self, out: BinaryIO, request: Optional[RequestData] = None) -> str:
        """
        Produce one response on out

        Args:
            out: Sink for the rendered metadata and, on success, the body
            request: Request data, or None for a request-less run

        Returns:
            The final HTTP status as a string
        """
        self.directory_enter(request)

        body = io.BytesIO()
        meta = Metadata(self.capacity)

        # Queued before the page starts, so it precedes all of its events.
        meta.emit("debug-message", sanitize(f"Handling {request!r}"))

        worker = threading.Thread(
            target=self.generator_run,
            args=(request, body, meta),
            name="gosp-page",
            daemon=True,
        )
        worker.start()

        status = self.write_metadata(out, self.events_log(meta))
        if status == OK_STATUS:
            out.write(body.getvalue())
        else:
            LOG(f"Suppressing {len(body.getvalue())}-byte body; status {status}", level=2)
        out.flush()
        return status

    @staticmethod
    def events_log(meta: Iterable[KeyValue]) -> Iterator[KeyValue]:
        """Pass events through, logging diagnostics as they go by"""
        for kv in meta:
            if kv.key == "error-message":
                LOG(f"Page error: {kv.value}", level=1)
            elif kv.key == "debug-message":
                LOG(f"Page debug: {kv.value}", level=3)
            yield kv
