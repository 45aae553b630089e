# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Interactive item selection through an external fuzzy finder."""

import logging
import re
import shlex
import shutil
import subprocess
import threading
from dataclasses import dataclass
from io import StringIO
from typing import TextIO

from showasm import ipc
from showasm.errors import ShowAsmError
from showasm.items import Item
from showasm.renderer import Renderer

logger = logging.getLogger(__name__)

DELIMITER = ": "
PREVIEW_WINDOW = "up:60%:border-horizontal"

_INDEX_RE = re.compile(r"[0-9]+")


class FinderError(ShowAsmError):
    """Represent a failure of the interactive selection process."""


@dataclass(frozen=True)
class Finder:
    """Describe a fuzzy finder executable.

    Attributes:
        executable: Program name looked up on ``PATH``.
        args: Arguments that search and display only the item name.
        preview: Whether the finder supports a preview command.
    """

    executable: str
    args: tuple[str, ...] = ()
    preview: bool = False


_FZF_ARGS = ("--no-sort", "--tac", "--delimiter", DELIMITER, "--nth", "2", "--with-nth", "2")

FZF = Finder(executable="fzf", args=_FZF_ARGS, preview=True)
SKIM = Finder(executable="sk", args=_FZF_ARGS, preview=True)
FZY = Finder(executable="fzy")

# In order of preference.
KNOWN_FINDERS: tuple[Finder, ...] = (FZF, SKIM, FZY)


def find_finder() -> Finder | None:
    """Return the preferred fuzzy finder available on ``PATH``."""
    for finder in KNOWN_FINDERS:
        if shutil.which(finder.executable) is not None:
            return finder
    return None


def build_command(finder: Finder, program: list[str], address: str | None) -> list[str]:
    """Build the finder command line.

    Args:
        finder: Finder to run.
        program: Command that runs this tool, used for previews.
        address: IPC server address; ``None`` disables the preview.

    Returns:
        Command and arguments.
    """
    cmd = [finder.executable, *finder.args]
    if finder.preview and address is not None:
        preview = (
            f"{shlex.join(program)} --client "
            f"--server-name={shlex.quote(address)} --select {{1}}"
        )
        cmd.extend(["--preview-window", PREVIEW_WINDOW, "--preview", preview])
    return cmd


def serialize(writer: TextIO, items: dict[Item, range]) -> None:
    """Write one ``<index>: <name>`` line per item, zero padded."""
    width = len(str(len(items))) if items else 1
    for index, item in enumerate(items):
        writer.write(f"{index:0{width}d}{DELIMITER}{item.name}\n")
    writer.flush()


def deserialize(line: str) -> int:
    """Parse the index back out of a chosen finder line.

    Raises:
        FinderError: If the line does not start with ``<index>: ``.
    """
    head, sep, _ = line.strip().partition(DELIMITER)
    if not sep or not _INDEX_RE.fullmatch(head.strip()):
        raise FinderError(f"Expected format (num: text), got {line!r}")
    return int(head)


class InteractiveSession:
    """Run the finder and the preview server for one selection.

    The server thread is always stopped and joined before :meth:`select`
    returns, so it never outlives the session.
    """

    def __init__(
        self,
        items: dict[Item, range],
        renderer: Renderer,
        finder: Finder,
        program: list[str],
    ) -> None:
        """Initialize the session.

        Args:
            items: Item map published to the finder.
            renderer: Renderer used by the preview server.
            finder: Finder to run.
            program: Command that runs this tool, used for previews.
        """
        self._items = items
        self._renderer = renderer
        self._finder = finder
        self._program = program

    def select(self) -> range:
        """Let the user pick an item.

        Returns:
            Range of the chosen item.

        Raises:
            FinderError: If the finder fails or returns an unusable line.
            AddressInUseError: If the preview server cannot bind its address.
        """
        server = None
        if self._finder.preview and ipc.is_supported():
            server = ipc.IpcServer.bind()
        address = server.address if server is not None else None

        listing = StringIO()
        serialize(listing, self._items)
        cmd = build_command(self._finder, self._program, address)

        if server is None:
            returncode, output = self._run_finder(cmd, listing.getvalue())
        else:
            worker = threading.Thread(
                target=server.serve,
                args=(self._items, self._renderer),
                name="show-asm-ipc",
            )
            worker.start()
            try:
                returncode, output = self._run_finder(cmd, listing.getvalue())
            finally:
                self._stop_server(server, worker)

        if returncode != 0:
            raise FinderError("Interactive process failed")

        index = deserialize(output)
        spans = list(self._items.values())
        if index >= len(spans):
            raise FinderError("Invalid index selected")
        return spans[index]

    def _run_finder(self, cmd: list[str], listing: str) -> tuple[int, str]:
        logger.debug(f"Starting finder (cmd={cmd})")
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise FinderError(f"Failed to start interactive process: {exc}") from exc
        output, _ = process.communicate(listing)
        return process.returncode, output

    def _stop_server(self, server: ipc.IpcServer, worker: threading.Thread) -> None:
        try:
            ipc.send_stop(server.address)
        except OSError as exc:
            logger.warning(f"Failed to send stop to IPC server (error={exc})")
            server.close()
        worker.join()
