"""
Loading page generators

A page generator can come from a generated module on disk, from a page
compiled in-process, or from a function registered directly. Every loader
yields the same PageGenerator callable; nothing downstream knows which
mechanism produced it.
"""

import hashlib
import importlib.util
import types
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from ..models.directives import CompilePolicy
from .boilerplate import ENTRY_POINT
from .compiler import Compiler
from .errors import PageLoadError
from .imports import ImportAllowList, imports_validate
from .log import LOG
from .runtime import PageGenerator


def _entryPoint_get(namespace: Any, origin: str) -> PageGenerator:
    generator = getattr(namespace, ENTRY_POINT, None)
    if generator is None:
        raise PageLoadError(f"{origin} does not define {ENTRY_POINT}()")
    if not callable(generator):
        raise PageLoadError(f"{ENTRY_POINT} in {origin} is a {type(generator).__name__}, not a function")
    return generator


def _module_name(origin: str) -> str:
    return "gosp_page_" + hashlib.sha1(origin.encode("utf-8")).hexdigest()[:12]


class PageLoader(ABC):
    """Source of one page generator"""

    @abstractmethod
    def load(self) -> PageGenerator:
        """Return the page generator, raising PageLoadError on failure"""


class ModuleFileLoader(PageLoader):
    """Loads a module previously written by gosp2py"""

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def load(self) -> PageGenerator:
        origin = str(self.path.resolve())
        spec = importlib.util.spec_from_file_location(_module_name(origin), origin)
        if spec is None or spec.loader is None:
            raise PageLoadError(f"Cannot load {self.path} as a Python module")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise PageLoadError(f"Failed to load {self.path}: {e}") from e
        LOG(f"Loaded page module {origin}", level=2)
        return _entryPoint_get(module, str(self.path))


class PageSourceLoader(PageLoader):
    """Compiles a .gosp page in-process and loads the result"""

    def __init__(
        self,
        path: str,
        policy: Optional[CompilePolicy] = None,
        allowed: Optional[ImportAllowList] = None,
    ) -> None:
        self.path = Path(path)
        self.policy = policy or CompilePolicy(include_dir=str(self.path.resolve().parent))
        self.allowed = allowed or ImportAllowList(universal=True)

    def load(self) -> PageGenerator:
        source = self.path.read_text(encoding="utf-8")
        generated = Compiler(self.policy).compile(source)
        imports_validate(generated, self.allowed, str(self.path))
        return source_load(generated, str(self.path))


class CallableLoader(PageLoader):
    """Wraps a page generator registered in-process"""

    def __init__(self, generator: PageGenerator) -> None:
        self.generator = generator

    def load(self) -> PageGenerator:
        if not callable(self.generator):
            raise PageLoadError(f"{self.generator!r} is not callable")
        return self.generator


def source_load(generated: str, origin: str = "<page>") -> PageGenerator:
    """Execute generated module text and return its page generator"""
    module = types.ModuleType(_module_name(origin))
    module.__file__ = origin
    try:
        code = compile(generated, origin, "exec")
    except SyntaxError as e:
        raise PageLoadError(f"Generated code for {origin} does not compile: {e}") from e
    try:
        exec(code, module.__dict__)
    except Exception as e:
        raise PageLoadError(f"Top-level code of {origin} failed: {e}") from e
    return _entryPoint_get(module, origin)


def loader_forPath(
    path: str,
    policy: Optional[CompilePolicy] = None,
    allowed: Optional[ImportAllowList] = None,
) -> PageLoader:
    """Choose a loader by file suffix: .gosp pages are compiled, anything else is imported"""
    if Path(path).suffix == ".gosp":
        return PageSourceLoader(path, policy, allowed)
    return ModuleFileLoader(path)
