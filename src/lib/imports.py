"""
Import allow-listing for generated page modules

An ImportAllowList is built left-to-right from a comma-separated list such
as "NONE,os,json". "NONE" empties the list, "ALL" empties it and allows
everything, and any other name is added unless everything is already
allowed.

The gosp package itself is always allowed, but only its page API
(runtime.PAGE_API): unless the list is universal or names gosp, page code
that imports or refers to anything else under gosp, such as gosp.lib, is
rejected. The check is syntactic. It keeps honest pages to an agreed set of
modules and is not a security sandbox; getattr() and aliasing get past it.
"""

import ast
import itertools
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from .errors import ImportRejected
from .runtime import PAGE_API

IMPLICIT_IMPORT = "gosp"


class ImportAllowList:
    """
    Set of module names that page code may import

    Attributes:
        names: Allowed module names (empty when universal)
        universal: True when every import is allowed ("ALL")
    """

    def __init__(self, names: Iterable[str] = (), universal: bool = False) -> None:
        self.names: Set[str] = set() if universal else set(names)
        self.universal = universal

    @classmethod
    def parse(cls, spec: str) -> "ImportAllowList":
        """
        Build an allow-list from a comma-separated specification

        Example:
            >>> ImportAllowList.parse("NONE,foo,bar").names == {"foo", "bar"}
            True
            >>> ImportAllowList.parse("foo,ALL,bar").universal
            True
        """
        allowed = cls()
        allowed.update(spec)
        return allowed

    def update(self, spec: str) -> None:
        """Apply each element of a comma-separated list in turn"""
        if spec.strip() == "":
            raise ValueError("Argument must be non-empty")
        for name in spec.split(","):
            name = name.strip()
            if name == "":
                raise ValueError(f"Empty element in list {spec!r}")
            if name == "NONE":
                self.names = set()
                self.universal = False
            elif name == "ALL":
                self.names = set()
                self.universal = True
            elif not self.universal:
                self.names.add(name)

    def allows(self, name: str) -> bool:
        """
        Return True if name, or any package containing it, is allowed

        Example:
            >>> ImportAllowList.parse("NONE").allows("gosp.fprint")
            True
            >>> ImportAllowList.parse("NONE").allows("gosp.lib.paths")
            False
        """
        if self.universal or name == IMPLICIT_IMPORT:
            return True
        package, _, member = name.partition(".")
        if package == IMPLICIT_IMPORT and member in PAGE_API:
            return True
        parts = name.split(".")
        return any(".".join(parts[:i]) in self.names for i in range(len(parts), 0, -1))

    def __str__(self) -> str:
        if self.universal:
            return "ALL"
        return ",".join(sorted(self.names))

    def __repr__(self) -> str:
        return f"ImportAllowList({str(self)!r})"


def _callee_name(func: ast.expr) -> Optional[str]:
    """Return "__import__" or "importlib.import_module" for dynamic-import calls"""
    if isinstance(func, ast.Name) and func.id in ("__import__", "import_module"):
        return func.id
    if (
        isinstance(func, ast.Attribute)
        and func.attr == "import_module"
        and isinstance(func.value, ast.Name)
        and func.value.id == "importlib"
    ):
        return "importlib.import_module"
    return None


def imports_find(source: str, filename: str = "<page>") -> Iterator[Tuple[str, int]]:
    """
    Yield (module name, line number) for every import in Python source

    Covers import statements, from-imports (relative ones are reported with
    their leading dots) and calls to __import__()/importlib.import_module().
    A dynamic import whose argument is not a string literal is reported
    under the name of the function that performs it.

    Raises:
        SyntaxError: if source does not parse
    """
    tree = ast.parse(source, filename=filename)
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield alias.name, node.lineno
        elif isinstance(node, ast.ImportFrom):
            yield "." * node.level + (node.module or ""), node.lineno
        elif isinstance(node, ast.Call):
            callee = _callee_name(node.func)
            if callee is None:
                continue
            if node.args and isinstance(node.args[0], ast.Constant) and isinstance(node.args[0].value, str):
                yield node.args[0].value, node.lineno
            else:
                yield callee, node.lineno


def gosp_references(source: str, filename: str = "<page>") -> Iterator[Tuple[str, int]]:
    """
    Yield ("gosp.<name>", line number) for every gosp member page code uses

    Covers attribute access on the gosp module and from-imports of it.
    """
    tree = ast.parse(source, filename=filename)
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name) and node.value.id == IMPLICIT_IMPORT:
            yield f"{IMPLICIT_IMPORT}.{node.attr}", node.lineno
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module == IMPLICIT_IMPORT:
            for alias in node.names:
                yield f"{IMPLICIT_IMPORT}.{alias.name}", node.lineno


def imports_validate(source: str, allowed: ImportAllowList, filename: str = "<page>") -> None:
    """
    Reject generated source that imports a module not on the allow-list

    Members of gosp outside its page API count as modules of their own.

    Args:
        source: Generated Python module text
        allowed: Allow-list to check against
        filename: Page name used in diagnostics

    Raises:
        ImportRejected: naming the first offending module
        SyntaxError: if source does not parse
    """
    if allowed.universal:
        return
    # Sort by position so the first offending import is reported.
    found: List[Tuple[str, int]] = sorted(
        itertools.chain(imports_find(source, filename), gosp_references(source, filename)),
        key=lambda item: item[1],
    )
    for name, _ in found:
        if name.startswith(".") or not allowed.allows(name):
            raise ImportRejected(name, allowed, filename)
