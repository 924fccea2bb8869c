#!/usr/bin/env python3
"""
gosp2py - compile a Go Server Page to Python

Reads a page that mixes literal text with <?go:top ?>, <?go:block ?>,
<?go:expr ?> and <?go:include ?> directives and writes the equivalent
Python module, or runs that module once and writes the page it produces.

Usage:
    gosp2py [options] [input_file.gosp]

Examples:
    # Print the generated module
    gosp2py index.gosp

    # Write the module to a file, allowing only two imports
    gosp2py --allowed=NONE,json,datetime -o index.py index.gosp

    # Run the page once and print its output with raw HTTP headers
    gosp2py --run --http-headers=raw index.gosp
"""

import os
import sys
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter
from typing import List, Optional

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers.python import PythonLexer

from .config import appsettings
from .lib import Compiler, ImportAllowList, imports_validate, Dispatcher, serve_once
from .lib import __version__, LOG, state_connectToLogger
from .lib.errors import GospError
from .lib.lexer import HtmlGospLexer
from .lib.loader import source_load
from .lib.metadata import METADATA_WRITERS, writer_get
from .models import CompilePolicy, ProgramState, pipeline


# Define CLI arguments
parser = ArgumentParser(
    prog="gosp2py",
    description="gosp2py - compile a Go Server Page to Python",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "inputFile", nargs="?", default="-", help='Go Server Page to compile ("-" = standard input)'
)

parser.add_argument(
    "-o", "--outfile", dest="outFile", default="-", help='Output file ("-" = standard output)'
)

parser.add_argument(
    "-r", "--run", action="store_true", help="Execute the generated code and output the page instead"
)

parser.add_argument(
    "-t",
    "--max-top",
    dest="maxTop",
    type=int,
    default=appsettings.max_top,
    help="Allow at most this many <?go:top ... ?> blocks per page",
)

parser.add_argument(
    "-a",
    "--allowed",
    default=appsettings.allowed_imports,
    help='Comma-separated list of allowed imports; "ALL" allows all, "NONE" allows none',
)

parser.add_argument(
    "-H",
    "--http-headers",
    dest="httpHeaders",
    choices=sorted(METADATA_WRITERS),
    default=appsettings.http_headers,
    help="HTTP header format used by --run",
)

parser.add_argument(
    "--max-include-depth",
    dest="maxIncludeDepth",
    type=int,
    default=appsettings.max_include_depth,
    help="Deepest allowed nesting of <?go:include ... ?>",
)

parser.add_argument(
    "--highlight", action="store_true", help="Colorize the generated code for a terminal"
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def fail(message: object) -> None:
    """Report a fatal error and exit"""
    print(f"gosp2py: {message}", file=sys.stderr)
    sys.exit(1)


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate options and set up the include sandbox.

    Returns:
        ProgramState with added fields:
            - includeDir: Directory includes are confined to (the page's own
              directory, or the current directory for standard input)
            - allowList: Parsed ImportAllowList

    Exits:
        1 if the input file is missing or --allowed is malformed
    """
    state = inputstate.copy()

    if state.inputFile == "-":
        state.includeDir = os.getcwd()
    else:
        if not os.path.isfile(state.inputFile):
            fail(f"Input file not found: {state.inputFile}")
        state.includeDir = os.path.dirname(os.path.abspath(state.inputFile))
    LOG(f"Include directory: {state.includeDir}", level=2)

    try:
        state.allowList = ImportAllowList.parse(state.allowed)
    except ValueError as e:
        fail(e)
    LOG(f"Allowed imports: {state.allowList}", level=2)

    if state.run and state.highlight:
        fail("--run and --highlight are mutually exclusive")
    return state


def source_read(inputstate: ProgramState) -> ProgramState:
    """
    Read the page source.

    Returns:
        ProgramState with added field:
            - pageSource: Text of the page

    Exits:
        1 if the file cannot be read
    """
    state = inputstate.copy()

    try:
        if state.inputFile == "-":
            state.pageSource = sys.stdin.read()
        else:
            with open(state.inputFile, encoding="utf-8") as f:
                state.pageSource = f.read()
    except (OSError, UnicodeDecodeError) as e:
        fail(f"Error reading input file: {e}")

    LOG(f"Read {len(state.pageSource or '')} characters from {state.inputFile}", level=2)
    if state.verbosity >= 3:
        LOG(highlight(state.pageSource or "", HtmlGospLexer(), TerminalFormatter()), level=3)
    return state


def page_compile(inputstate: ProgramState) -> ProgramState:
    """
    Compile the page source to a Python module.

    Returns:
        ProgramState with added field:
            - generatedSource: Text of the generated module

    Exits:
        1 on a sandbox, include-depth or top-block violation
    """
    state = inputstate.copy()

    policy = CompilePolicy(
        max_top=state.maxTop,
        include_dir=state.includeDir,
        max_include_depth=state.maxIncludeDepth,
    )
    try:
        state.generatedSource = Compiler(policy, debug=state.verbosity >= 3).compile(state.pageSource or "")
    except (GospError, OSError) as e:
        fail(e)

    LOG(f"Generated {len(state.generatedSource or '')} characters of Python", level=2)
    return state


def imports_check(inputstate: ProgramState) -> ProgramState:
    """
    Reject generated code that imports modules not on the allow-list.

    Exits:
        1 if an import is rejected or the generated code does not parse
    """
    state = inputstate.copy()

    name = "<standard input>" if state.inputFile == "-" else state.inputFile
    try:
        imports_validate(state.generatedSource or "", state.allowList, name)
    except (GospError, SyntaxError) as e:
        fail(e)
    return state


def output_write(inputstate: ProgramState) -> ProgramState:
    """
    Write the generated module, or run it and write the page.

    Returns:
        ProgramState unchanged (terminal pipeline stage)
    """
    state = inputstate.copy()

    if state.run:
        try:
            generator = source_load(state.generatedSource or "", state.inputFile)
        except GospError as e:
            fail(e)
        dispatcher = Dispatcher(
            generator,
            writer_get(state.httpHeaders),
            capacity=appsettings.metadata_capacity,
            change_directory=appsettings.change_directory,
        )
        if state.outFile == "-":
            serve_once(dispatcher, sys.stdout.buffer)
        else:
            with open(state.outFile, "wb") as out:
                serve_once(dispatcher, out)
        return state

    text = state.generatedSource or ""
    if state.highlight:
        text = highlight(text, PythonLexer(), TerminalFormatter())
    if state.outFile == "-":
        sys.stdout.write(text)
    else:
        with open(state.outFile, "w", encoding="utf-8") as out:
            out.write(text)
        LOG(f"Wrote {state.outFile}", level=2)
    return state


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point - compile (and optionally run) one page.

    Orchestrates the pipeline:
        1. env_check: Validate options and locate the include sandbox
        2. source_read: Read the page
        3. page_compile: Expand includes and translate directives
        4. imports_check: Enforce the import allow-list
        5. output_write: Write the module, or run it and write the page
    """
    options: Namespace = parser.parse_args(argv)
    state: ProgramState = ProgramState.state_createFromNamespace(options)

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, source_read, page_compile, imports_check, output_write)


if __name__ == "__main__":
    main()
