"""
Error taxonomy for gosp

Compile-time policy violations (sandbox, include depth, top blocks, imports)
are fatal to the compile call. DecodeError is raised for malformed wire
messages and is never fatal to the server.
"""

from typing import Any


class GospError(Exception):
    """Base class of every error raised by gosp itself"""
    pass


class SandboxViolation(GospError):
    """Raised when an include or open targets a path outside its base directory"""

    def __init__(self, path: str, base: str) -> None:
        self.path = path
        self.base = base
        super().__init__(f"{path} lies outside of {base}")


class IncludeDepthExceeded(GospError):
    """Raised when <?go:include ?> nesting grows deeper than allowed"""

    def __init__(self, maximum: int) -> None:
        self.maximum = maximum
        super().__init__(f"Inclusion depth exceeded the maximum of {maximum}")


class TooManyTopBlocks(GospError):
    """Raised when a page holds more <?go:top ?> blocks than allowed"""

    def __init__(self, count: int, maximum: int) -> None:
        self.count = count
        self.maximum = maximum
        super().__init__(f"Too many go:top blocks ({count} versus a maximum of {maximum})")


class ImportRejected(GospError):
    """Raised when generated code imports a module that is not allow-listed"""

    def __init__(self, name: str, allowed: Any, source_name: str = "<page>") -> None:
        self.name = name
        self.allowed = allowed
        super().__init__(
            f"{name!r} is not in the list of approved modules for {source_name} ({str(allowed)!r})"
        )


class DecodeError(GospError):
    """Raised when an incoming service request cannot be decoded"""
    pass


class IncompleteRequest(DecodeError):
    """Raised when a service request stops before its JSON value is complete"""
    pass


class MetadataClosed(GospError):
    """Raised when a page emits metadata after closing its channel"""
    pass


class PageLoadError(GospError):
    """Raised when a page generator cannot be loaded or lacks its entry point"""
    pass
