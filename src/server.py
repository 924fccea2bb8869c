#!/usr/bin/env python3
"""
gosp-server - serve a Go Server Page over a Unix-domain socket

Loads one page, either a module written by gosp2py or a .gosp page that is
compiled on the spot, and answers JSON service requests with it.

Usage:
    gosp-server --plugin PAGE [--socket PATH | --file JSON] [options]

Examples:
    # Serve a compiled page until told to exit
    gosp-server --plugin index.py --socket /tmp/index.sock

    # Exit after five minutes without a request
    gosp-server --plugin index.gosp --socket /tmp/index.sock --max-idle 300

    # Answer the single request stored in a file
    gosp-server --plugin index.py --file request.json
"""

import os
import sys
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter
from typing import List, Optional

from .config import appsettings
from .lib import Dispatcher, ExecutionServer, ImportAllowList, serve_file, serve_once
from .lib import __version__, LOG, state_connectToLogger
from .lib.errors import GospError
from .lib.loader import loader_forPath
from .lib.metadata import METADATA_WRITERS, writer_get
from .models import CompilePolicy, ProgramState, pipeline


parser = ArgumentParser(
    prog="gosp-server",
    description="gosp-server - serve a Go Server Page over a Unix-domain socket",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--plugin", required=True, help="Page to serve (a generated .py module or a .gosp page)"
)

mode = parser.add_mutually_exclusive_group()
mode.add_argument("--socket", default="", help="Unix-domain socket on which to listen")
mode.add_argument("--file", default="", help="Answer the single JSON service request in this file")

parser.add_argument(
    "--max-idle",
    dest="maxIdle",
    type=float,
    default=appsettings.max_idle,
    help="Exit after this many seconds without a connection (0 = never)",
)

parser.add_argument(
    "-H",
    "--http-headers",
    dest="httpHeaders",
    choices=sorted(METADATA_WRITERS),
    default=appsettings.http_headers,
    help="HTTP header format",
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
    print(f"gosp-server: {message}", file=sys.stderr)
    sys.exit(1)


def plugin_load(inputstate: ProgramState) -> ProgramState:
    """
    Load the page generator.

    Returns:
        ProgramState with added field:
            - generator: The page's entry point

    Exits:
        1 if the page cannot be compiled or loaded
    """
    state = inputstate.copy()

    # .gosp pages include relative to their own directory
    policy = CompilePolicy(
        max_top=appsettings.max_top,
        include_dir=os.path.dirname(os.path.abspath(state.plugin)),
        max_include_depth=appsettings.max_include_depth,
    )
    try:
        allowed = ImportAllowList.parse(appsettings.allowed_imports)
    except ValueError as e:
        fail(e)
    loader = loader_forPath(state.plugin, policy, allowed)

    try:
        state.generator = loader.load()
    except (GospError, OSError, SyntaxError) as e:
        fail(e)
    LOG(f"Loaded {state.plugin}", level=2)
    return state


def requests_serve(inputstate: ProgramState) -> ProgramState:
    """
    Answer requests in the selected mode.

    Returns:
        ProgramState unchanged (terminal pipeline stage)
    """
    state = inputstate.copy()

    dispatcher = Dispatcher(
        state.generator,
        writer_get(state.httpHeaders),
        capacity=appsettings.metadata_capacity,
        change_directory=appsettings.change_directory,
    )

    try:
        if state.socket:
            server = ExecutionServer(
                dispatcher,
                state.socket,
                max_idle=state.maxIdle,
                request_timeout=appsettings.request_timeout,
                poll_interval=appsettings.poll_interval,
            )
            server.serve()
        elif state.file:
            serve_file(dispatcher, state.file, sys.stdout.buffer)
        else:
            serve_once(dispatcher, sys.stdout.buffer)
    except (GospError, OSError) as e:
        fail(e)
    return state


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point - load a page and serve it.

    Orchestrates the pipeline:
        1. plugin_load: Compile or import the page
        2. requests_serve: Answer requests on a socket, from a file, or once
    """
    options: Namespace = parser.parse_args(argv)
    state: ProgramState = ProgramState.state_createFromNamespace(options)

    state_connectToLogger(state)

    pipeline(state, plugin_load, requests_serve)


if __name__ == "__main__":
    main()
