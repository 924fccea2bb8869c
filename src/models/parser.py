"""
Parser-specific data models

Type-safe structures produced by the directive scanner.
"""

from dataclasses import dataclass

from .directives import DirectiveKind


@dataclass
class PageNode:
    """
    One region of a page, in source order

    Attributes:
        kind: TEXT for literal page text, otherwise the directive kind
        text: Literal text (TEXT) or the directive's inner code, verbatim
        trailing: Whitespace that followed the closing ?> (only re-emitted
                  for EXPR)
        indent: Indentation the first line of code is taken to have, so that
                multi-line code can be dedented as a unit
        line_number: Line of the expanded source where the region starts

    Example:
        For source "Hi <?go:expr name ?> there" the scanner yields:
        PageNode(kind=TEXT, text="Hi ")
        PageNode(kind=EXPR, text="name ", trailing=" ", indent="   ")
        PageNode(kind=TEXT, text="there")
    """
    kind: DirectiveKind
    text: str
    trailing: str = ""
    indent: str = ""
    line_number: int = 1
