# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Command line front end: render one function from compiler output."""

import argparse
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

from showasm import ipc
from showasm.errors import ShowAsmError
from showasm.finder import FinderError, InteractiveSession, find_finder
from showasm.items import Item, find_items
from showasm.options import Format, McaOptions
from showasm.renderer import Renderer, write_listing
from showasm.renderers import AsmRenderer, McaRenderer, MirRenderer
from showasm.renderers import mir
from showasm.selection import (
    ByIndex,
    Everything,
    Fatal,
    Function,
    Goal,
    Interactive,
    Outcome,
    Selected,
    Suggest,
    Unspecified,
    get_dump_range,
    write_suggestions,
)
from showasm.sources import SourceCache
from showasm.statements import parse_file, split_lines

logger = logging.getLogger(__name__)

LOG_LEVELS: dict[int, int] = {0: logging.WARNING, 1: logging.INFO}


def configure_logging(level: int = logging.WARNING) -> None:
    """Configure application logging with Rich handler on stderr.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                show_path=False,
            )
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(
        prog="show-asm",
        description="Show the code of one function from compiler output.",
    )
    parser.add_argument("path", nargs="?", help="Compiler output file (.s or .mir).")
    parser.add_argument(
        "function", nargs="?", help="Show the item whose name contains this text."
    )
    parser.add_argument(
        "nth", nargs="?", type=int, help="Zero based index among matching items."
    )
    parser.add_argument(
        "--mode",
        choices=("asm", "mca", "mir"),
        default="asm",
        help="Kind of listing to produce.",
    )

    goal = parser.add_mutually_exclusive_group()
    goal.add_argument(
        "--select", type=int, help="Zero based item index in the full list."
    )
    goal.add_argument(
        "--everything", action="store_true", help="Render the whole file."
    )
    goal.add_argument(
        "-i", "--interactive", action="store_true", help="Pick with a fuzzy finder."
    )

    parser.add_argument(
        "--rust", action="store_true", help="Interleave source lines."
    )
    parser.add_argument(
        "--simplify", action="store_true", help="Drop directives and unknown lines."
    )
    parser.add_argument(
        "--keep-labels", action="store_true", help="Keep unused local labels."
    )
    parser.add_argument(
        "--full-name", action="store_true", help="Show symbol hashes."
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More output, repeatable."
    )
    parser.add_argument(
        "--sysroot", help="Compiler sysroot used to find standard library sources."
    )

    parser.add_argument(
        "--mca-arg",
        action="append",
        default=[],
        help="Extra llvm-mca argument, repeatable.",
    )
    parser.add_argument(
        "--mca-intel", action="store_true", help="Use Intel syntax for llvm-mca."
    )
    parser.add_argument("--target", help="Target triple for llvm-mca.")
    parser.add_argument("--target-cpu", help="Target CPU for llvm-mca.")

    parser.add_argument(
        "--client", action="store_true", help="Request an item from a running server."
    )
    parser.add_argument("--server-name", help="Server address for --client.")
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    logging.getLogger().setLevel(LOG_LEVELS.get(args.verbose, logging.DEBUG))

    if args.client:
        return _run_client(args=args, stdout=stdout, stderr=stderr)

    if args.path is None:
        stderr.write("Path to the compiler output file is required\n")
        return 2
    path = Path(args.path)
    if not path.is_file():
        logger.warning(f"Path does not exist (path={path})")
        stderr.write(f"Path does not exist: {path}\n")
        return 2

    try:
        return _run_listing(args=args, path=path, stdout=stdout)
    except BrokenPipeError:
        return 0
    except ShowAsmError as exc:
        logger.debug(f"Run failed (error={exc!r})")
        stderr.write(f"{exc}\n")
        return 1
    except OSError as exc:
        logger.warning(f"Run failed (path={path} error={exc})")
        stderr.write(f"{exc}\n")
        return 1


def _run_client(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Run client mode: fetch one render from a server.

    Args:
        args: Parsed CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    if args.server_name is None or args.select is None:
        stderr.write("--client requires --server-name and --select\n")
        return 2
    try:
        ipc.request(args.server_name, args.select, stdout)
    except BrokenPipeError:
        return 0
    except OSError as exc:
        logger.warning(
            f"Failed to reach server (server_name={args.server_name} error={exc})"
        )
        stderr.write(f"Failed to connect to server: {exc}\n")
        return 1
    return 0


def _run_listing(args: argparse.Namespace, path: Path, stdout: TextIO) -> int:
    """Parse the input, pick an item and render it.

    Args:
        args: Parsed CLI arguments.
        path: Compiler output file.
        stdout: Standard output stream.

    Returns:
        Exit code.
    """
    fmt = Format(
        verbosity=args.verbose,
        rust=args.rust,
        simplify=args.simplify,
        keep_labels=args.keep_labels,
        full_name=args.full_name,
    )
    items, renderer = _load(args=args, path=path, fmt=fmt)
    logger.info(f"Items found (path={path} items={len(items)})")

    goal = build_goal(args)
    if isinstance(goal, Interactive) and len(items) > 1:
        finder = find_finder()
        if finder is None:
            raise FinderError("No fuzzy finder found in PATH, install one of fzf, sk or fzy")
        program = [sys.executable, "-m", "cli.show_asm"]
        span = InteractiveSession(items, renderer, finder, program).select()
        outcome: Outcome = Selected(span=span)
    elif isinstance(goal, Interactive) and not items:
        outcome = Suggest(items=[])
    else:
        outcome = get_dump_range(goal, items)
    return _dispatch(outcome=outcome, renderer=renderer, fmt=fmt, stdout=stdout)


def _load(
    args: argparse.Namespace, path: Path, fmt: Format
) -> tuple[dict[Item, range], Renderer]:
    """Read the input file and build the item map and renderer."""
    text = path.read_text(encoding="utf-8", errors="replace")
    if args.mode == "mir":
        lines = split_lines(text)
        return mir.find_items(lines), MirRenderer(lines)

    statements = parse_file(text)
    items = find_items(statements)
    if args.mode == "mca":
        options = McaOptions(
            args=list(args.mca_arg),
            intel=args.mca_intel,
            triple=args.target,
            target_cpu=args.target_cpu,
        )
        return items, McaRenderer(split_lines(text), fmt, options)

    sources = None
    if fmt.rust:
        sysroot = Path(args.sysroot) if args.sysroot else detect_sysroot()
        sources = SourceCache.from_statements(sysroot, statements)
    return items, AsmRenderer(statements, fmt, sources)


def build_goal(args: argparse.Namespace) -> Goal:
    """Translate CLI arguments into a selection goal."""
    if args.everything:
        return Everything()
    if args.select is not None:
        return ByIndex(value=args.select)
    if args.interactive:
        return Interactive()
    if args.function is not None:
        return Function(function=args.function, nth=args.nth)
    return Unspecified()


def detect_sysroot() -> Path:
    """Ask ``rustc`` for its sysroot; empty path when unavailable."""
    rustc = shutil.which("rustc")
    if rustc is None:
        return Path()
    try:
        result = subprocess.run(
            [rustc, "--print", "sysroot"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.warning(f"Failed to query rustc sysroot (error={exc})")
        return Path()
    if result.returncode != 0:
        logger.warning(f"rustc sysroot query failed (stderr={result.stderr.strip()})")
        return Path()
    return Path(result.stdout.strip())


def _dispatch(
    outcome: Outcome, renderer: Renderer, fmt: Format, stdout: TextIO
) -> int:
    """Turn a selection outcome into output and an exit code.

    Raises:
        ShowAsmError: If the outcome is fatal or rendering fails.
    """
    if isinstance(outcome, Fatal):
        raise ShowAsmError(outcome.reason)
    if isinstance(outcome, Suggest):
        console = Console(file=stdout, force_terminal=False, highlight=False)
        write_suggestions(console, outcome, full_name=fmt.full_name)
        return 1
    if outcome.span is None:
        logger.info("Going to print the whole file")
    write_listing(renderer, outcome.span, stdout)
    return 0


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    try:
        sys.stdout.flush()
    except BrokenPipeError:
        # Keep the interpreter from failing again on the final flush.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
