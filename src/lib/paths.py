"""
Containment checks for filesystem access

Every include performed by the compiler and every file a page opens through
gosp.open() passes through path_isWithin(). Paths are compared in canonical
form: absolute and free of symbolic links, even when the final components
do not exist yet.
"""

import os
from typing import IO, Any, Optional

from .errors import SandboxViolation


def path_canonical(path: str) -> str:
    """
    Return an absolute, symlink-free form of path

    Symbolic links are resolved in every existing ancestor; any trailing
    components that do not exist are joined back on unchanged.

    Raises:
        OSError: if resolving an existing ancestor fails for a reason other
                 than non-existence (e.g. a symlink loop or EACCES)
    """
    if path == "":
        return ""
    path = os.path.abspath(path)
    missing = []
    head = path
    while True:
        try:
            real = os.path.realpath(head, strict=True)
            break
        except FileNotFoundError:
            parent, tail = os.path.split(head)
            if parent == head:
                # Nothing above us exists (not even the root).
                real = head
                break
            missing.append(tail)
            head = parent
    return os.path.join(real, *reversed(missing)) if missing else real


def path_isWithin(child: str, parent: str) -> bool:
    """
    Return True if child lies in or below parent (or is parent)

    Both paths are canonicalised first, so neither '..' components nor
    symbolic links can be used to escape the parent directory.

    Example:
        >>> path_isWithin("/a/b/c.gosp", "/a/b")
        True
        >>> path_isWithin("/a/b/../../etc/passwd", "/a/b")
        False
    """
    p = path_canonical(parent)
    c = path_canonical(child)
    if p == os.sep:
        return True
    if c == p:
        return True
    return c.startswith(p + os.sep)


def open_guarded(name: str, mode: str = "r", base: Optional[str] = None, **kwargs: Any) -> IO[Any]:
    """
    Open a file only if it lies within or below base

    Args:
        name: File name; relative names are resolved against base
        mode: Mode passed to open()
        base: Directory the file must lie in (default: current directory)
        **kwargs: Passed through to open()

    Raises:
        SandboxViolation: if name resolves outside of base
    """
    if base is None:
        base = os.getcwd()
    full = os.path.join(base, name)
    if not path_isWithin(full, base):
        raise SandboxViolation(name, base)
    return open(full, mode, **kwargs)
