"""
Compiler for Go Server Pages to Python

Transforms parsed PageNodes into a complete Python module whose
gosp_generate_page() function writes the page.
"""

import io
import re
import textwrap
import tokenize
from typing import List, Optional, Tuple

from ..models.directives import CompilePolicy, DirectiveKind
from ..models.parser import PageNode
from .boilerplate import BODY_BEGIN, BODY_END, BODY_INDENT, HEADER
from .errors import TooManyTopBlocks
from .log import LOG
from .parser import Parser

# Width of one level of generated indentation
INDENT = 4

# Clauses that continue the statement whose suite precedes them
CONTINUATION_RE = re.compile(r'(else|elif|except|finally)\b')


def statement_tail(code: str) -> Tuple[bool, int]:
    """
    Describe how code ends: (opens a suite, column of its last logical line)

    The column is that of the first token of the last logical line, so
    continuation lines inside brackets never count. Comment lines that
    follow the last statement count instead, which lets a dedented comment
    end an indented block.

    Example:
        >>> statement_tail("for row in rows:  # each row")
        (True, 0)
        >>> statement_tail("x = max(1,\\n        2)")
        (False, 0)
        >>> statement_tail("if x:\\n    y = 1")
        (False, 4)
    """
    last: Optional[tokenize.TokenInfo] = None
    column = 0
    comment_column: Optional[int] = None
    line_start = True
    try:
        for token in tokenize.generate_tokens(io.StringIO(code).readline):
            if token.type == tokenize.NEWLINE:
                line_start = True
            elif token.type == tokenize.COMMENT:
                if line_start:
                    comment_column = token.start[1]
            elif token.type not in (tokenize.NL, tokenize.INDENT, tokenize.DEDENT, tokenize.ENDMARKER):
                if line_start:
                    column = token.start[1]
                    line_start = False
                comment_column = None
                last = token
    except (tokenize.TokenError, SyntaxError):
        # Unbalanced brackets and the like; fall back on the physical last line
        final = code.rstrip('\n').rsplit('\n', 1)[-1]
        column = len(final) - len(final.lstrip())
        comment_column = None
    opens = last is not None and last.type == tokenize.OP and last.string == ':'
    if comment_column is not None and not opens:
        column = comment_column
    return opens, column


def suite_opens(code: str) -> bool:
    """
    Return True if the last token of code is the colon of a compound statement

    Example:
        >>> suite_opens("for row in rows:  # each row")
        True
        >>> suite_opens("x = 1  # note:")
        False
    """
    return statement_tail(code)[0]


class Compiler:
    """
    Compiles a page to a standalone Python module

    Responsibilities:
    - Hoist <?go:top ?> code to module level
    - Emit literal text and <?go:expr ?> values as writes to gosp_out
    - Place <?go:block ?> statements, tracking the suites they open so
      that later text lands inside them
    - Enforce the <?go:top ?> limit
    - Wrap the body in boilerplate that always closes the metadata channel

    Body indentation rules:
    - A block whose last token is ':' opens a suite; following fragments
      are indented one level deeper
    - A block that ends indented leaves following fragments at that indent
    - A block holding only comments (e.g. <?go:block # end ?>) closes the
      innermost suite
    - A block starting with else/elif/except/finally closes the innermost
      suite before it is placed
    """

    def __init__(self, policy: Optional[CompilePolicy] = None, debug: bool = False) -> None:
        """
        Initialize compiler

        Args:
            policy: Top-block limit and include sandbox to compile under
            debug: Enable debug output
        """
        self.policy = policy or CompilePolicy()
        self.debug = debug
        self.top: List[str] = []
        self.body: List[str] = []
        self.column = 0
        self.suites: List[int] = []

    def compile(self, source: str) -> str:
        """
        Compile page source to Python source

        Returns:
            Text of a complete Python module

        Raises:
            SandboxViolation, IncludeDepthExceeded: from include expansion
            TooManyTopBlocks: if the page exceeds policy.max_top
        """
        self.top = []
        self.body = []
        self.column = 0
        self.suites = []

        nodes = Parser(source, policy=self.policy, debug=self.debug).parse()
        LOG(f"Scanned {len(nodes)} page regions", level=2)
        self.nodes_translate(nodes)

        if len(self.top) > self.policy.max_top:
            raise TooManyTopBlocks(len(self.top), self.policy.max_top)

        return self.source_assemble()

    def nodes_translate(self, nodes: List[PageNode]) -> None:
        """Route each node to the top-level list or the body"""
        for node in nodes:
            if node.kind == DirectiveKind.TEXT:
                self.text_emit(node.text)
            elif node.kind == DirectiveKind.TOP:
                self.top_add(node)
            elif node.kind == DirectiveKind.BLOCK:
                self.block_emit(node)
            elif node.kind == DirectiveKind.EXPR:
                self.expr_emit(node)
            else:
                raise ValueError(f"Unexpected {node.kind.value} node on line {node.line_number}")

    @staticmethod
    def code_dedent(node: PageNode) -> str:
        """Return a directive's code with its common indentation removed"""
        return textwrap.dedent(node.indent + node.text)

    def line_emit(self, line: str) -> None:
        if line.strip():
            self.body.append(' ' * (BODY_INDENT + self.column) + line + '\n')
        else:
            self.body.append('\n')

    def text_emit(self, text: str) -> None:
        """Emit a write of literal page text"""
        if text:
            self.line_emit(f'gosp.fprint(gosp_out, {text!r})')

    def expr_emit(self, node: PageNode) -> None:
        """Emit a write of an expression's value followed by its trailing whitespace"""
        expr = node.text.strip()
        if '\n' in expr or '#' in expr:
            # Keep the expression on lines of its own so a comment or a
            # line break cannot swallow the closing parenthesis.
            self.line_emit('gosp.fprint(gosp_out, (')
            for line in textwrap.dedent(node.indent + node.text).strip('\n').split('\n'):
                self.line_emit(' ' * INDENT + line)
            self.line_emit(f'), {node.trailing!r})')
        else:
            self.line_emit(f'gosp.fprint(gosp_out, {expr}, {node.trailing!r})')

    def top_add(self, node: PageNode) -> None:
        """Hoist module-level code, newline-terminated"""
        code = self.code_dedent(node).strip('\n') if node.text.strip() else ''
        if code and not code.endswith('\n'):
            code += '\n'
        self.top.append(code)

    def block_emit(self, node: PageNode) -> None:
        """Place one or more statements in the body at the current indentation"""
        lines = self.code_dedent(node).split('\n')
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        if not lines:
            return

        significant = [line for line in lines if line.strip() and not line.lstrip().startswith('#')]
        if not significant:
            self.suite_close()
            for line in lines:
                self.line_emit(line)
            return

        if CONTINUATION_RE.match(significant[0].lstrip()):
            self.suite_close()
        for line in lines:
            self.line_emit(line)

        opens, tail = statement_tail('\n'.join(lines))
        if opens:
            self.suites.append(self.column)
            self.column += tail + INDENT
            self.line_emit('pass')
            return

        column = self.column + tail
        if column > self.column:
            self.suites.append(self.column)
            self.column = column

    def suite_close(self) -> None:
        if self.suites:
            self.column = self.suites.pop()

    def source_assemble(self) -> str:
        """Concatenate header, top-level code, body and trailer"""
        parts = [HEADER]
        parts.extend(self.top)
        parts.append(BODY_BEGIN)
        parts.extend(self.body)
        parts.append(BODY_END)
        return ''.join(parts)


def page_compile(source: str, policy: Optional[CompilePolicy] = None) -> str:
    """Compile page source under policy and return the generated module text"""
    return Compiler(policy).compile(source)
