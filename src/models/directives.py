"""
Directive kinds and compile policy

Defines the four directive forms a page may contain and the policy that
bounds what a page is allowed to do at compile time.
"""

import os
from enum import Enum
from dataclasses import dataclass, field


class DirectiveKind(Enum):
    """
    Kinds of page directives

    TEXT is not a directive proper; it marks the literal page text found
    between directives.
    """
    TOP = "top"          # <?go:top ... ?>      module-level code
    BLOCK = "block"      # <?go:block ... ?>    statements
    EXPR = "expr"        # <?go:expr ... ?>     a single expression
    INCLUDE = "include"  # <?go:include path ?> textual inclusion
    TEXT = "text"


MAX_INCLUDE_DEPTH = 10


@dataclass
class CompilePolicy:
    """
    Limits applied while compiling one page

    Attributes:
        max_top: Maximum number of <?go:top ?> blocks per page
        include_dir: Directory the include sandbox starts from (normally the
                     directory holding the page)
        max_include_depth: Deepest allowed nesting of <?go:include ?>
    """
    max_top: int = 1
    include_dir: str = field(default_factory=os.getcwd)
    max_include_depth: int = MAX_INCLUDE_DEPTH
