"""
Shared fixtures for gosp tests
"""

import io
import tempfile
from typing import Optional, Tuple

import pytest

from gosp.lib.compiler import page_compile
from gosp.lib.dispatch import Dispatcher
from gosp.lib.loader import source_load
from gosp.lib.metadata import write_none
from gosp.models import CompilePolicy, RequestData


def page_render(
    source: str,
    policy: Optional[CompilePolicy] = None,
    request: Optional[RequestData] = None,
    writer=write_none,
) -> Tuple[str, str]:
    """Compile a page, run it once and return (status, output text)"""
    generator = source_load(page_compile(source, policy))
    out = io.BytesIO()
    status = Dispatcher(generator, writer).dispatch(out, request)
    return status, out.getvalue().decode("utf-8")


@pytest.fixture
def render():
    """Function that compiles and runs a page"""
    return page_render


@pytest.fixture
def sockdir():
    """Short-named directory for Unix sockets (socket paths are length-limited)"""
    with tempfile.TemporaryDirectory(prefix="gosp") as d:
        yield d
