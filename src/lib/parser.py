"""
Scanner for <?go: ... ?> directives

Turns page source into an ordered list of PageNodes (literal text and code
directives) after recursively expanding <?go:include ?> directives.

The scanner operates in two phases:
1. Inclusion: splice each included file in place of its directive, with
   every include confined to the directory of the file that names it
2. Scanning: locate <?go:top ?>, <?go:block ?> and <?go:expr ?> directives
   leftmost-first and record the literal text between them

Example:
    >>> nodes = Parser("Hi <?go:expr name ?> there").parse()
    >>> [node.kind.value for node in nodes]
    ['text', 'expr', 'text']
    >>> nodes[1].trailing
    ' '
"""

import os
import re
from pathlib import Path
from typing import List, Optional

from ..models.directives import CompilePolicy, DirectiveKind
from ..models.parser import PageNode
from .errors import IncludeDepthExceeded, SandboxViolation
from .log import LOG
from .paths import path_canonical, path_isWithin

# <?go:include path ?>, plus one optional run of trailing blanks and newline
INCLUDE_RE = re.compile(r'<\?go:include\s+(\S.*?)\s*\?>([\t ]*\n?)')

# <?go:top|block|expr code ?>, plus one optional run of trailing blanks and newline
DIRECTIVE_RE = re.compile(r'<\?go:(top|block|expr)(\s+)(.*?)\?>([\t ]*\n?)', re.DOTALL)


class Parser:
    """
    Parser for Go Server Page directive syntax

    Handles:
    - Recursive, sandboxed <?go:include ?> expansion
    - Leftmost-first discovery of code directives
    - Exact literal-text boundaries between directives
    - Trailing whitespace kept for <?go:expr ?> only
    """

    def __init__(self, source: str, policy: Optional[CompilePolicy] = None, debug: bool = False):
        """
        Initialize parser with source text

        Args:
            source: Raw page source (.gosp file contents)
            policy: Compile policy giving the include sandbox and depth limit
            debug: Enable debug output for parser operations

        Attributes:
            dir_stack: Canonical directories of the files being included,
                       starting with the page's own directory
        """
        self.source = source
        self.policy = policy or CompilePolicy()
        self.debug = debug
        self.dir_stack: List[str] = [path_canonical(self.policy.include_dir)]

    def includes_expand(self, source: str) -> str:
        """
        Replace every <?go:include ?> in source with the included file

        Inclusion is recursive: directives inside an included file are
        expanded relative to that file's own directory.

        Raises:
            SandboxViolation: if a target lies outside the including file's directory
            IncludeDepthExceeded: if inclusion nests too deeply
            OSError: if an included file cannot be read
        """
        result = []
        pos = 0
        for match in INCLUDE_RE.finditer(source):
            result.append(source[pos:match.start()])
            result.append(self.include_read(match.group(1)))
            pos = match.end()
        result.append(source[pos:])
        return ''.join(result)

    def include_read(self, target: str) -> str:
        """
        Read and expand one included file

        Args:
            target: Path named by the directive, relative to the directory
                    on top of the include stack

        Returns:
            The included file's fully expanded text
        """
        base = self.dir_stack[-1]
        path = os.path.join(base, target)
        if not path_isWithin(path, base):
            raise SandboxViolation(target, base)
        if len(self.dir_stack) > self.policy.max_include_depth:
            raise IncludeDepthExceeded(self.policy.max_include_depth)

        text = Path(path).read_text(encoding='utf-8')
        if self.debug:
            LOG(f"Including {path} ({len(text)} characters)", level=3)

        self.dir_stack.append(os.path.dirname(path_canonical(path)))
        try:
            return self.includes_expand(text)
        finally:
            self.dir_stack.pop()

    def parse(self) -> List[PageNode]:
        """
        Expand inclusions and split the page into PageNodes

        Returns:
            PageNodes in source order. Empty text between adjacent
            directives produces no node; empty source yields [].

        Example:
            >>> Parser("<?go:top import json ?>{}").parse()[0].kind
            <DirectiveKind.TOP: 'top'>
        """
        text = self.includes_expand(self.source)
        nodes: List[PageNode] = []
        pos = 0
        line_number = 1

        for match in DIRECTIVE_RE.finditer(text):
            if match.start() > pos:
                literal = text[pos:match.start()]
                nodes.append(PageNode(kind=DirectiveKind.TEXT, text=literal, line_number=line_number))
                line_number += literal.count('\n')

            kind = DirectiveKind(match.group(1))
            nodes.append(PageNode(
                kind=kind,
                text=match.group(3),
                trailing=match.group(4),
                indent=self.indent_find(text, match),
                line_number=line_number,
            ))
            if self.debug:
                LOG(f"Line {line_number}: {kind.value} directive", level=3)
            line_number += match.group(0).count('\n')
            pos = match.end()

        if pos < len(text):
            nodes.append(PageNode(kind=DirectiveKind.TEXT, text=text[pos:], line_number=line_number))
        return nodes

    @staticmethod
    def indent_find(text: str, match: 're.Match[str]') -> str:
        """
        Return the indentation of a directive's first line of code

        Code that starts on a line of its own keeps that line's indentation.
        Code that starts right after the keyword is treated as if it began
        in the column of the opening <?go:, so its continuation lines line
        up with it.
        """
        spacing = match.group(2)
        if '\n' in spacing:
            return spacing.rsplit('\n', 1)[1]
        line_start = text.rfind('\n', 0, match.start()) + 1
        return re.sub(r'\S', ' ', text[line_start:match.start()])
