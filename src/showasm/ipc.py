# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Local socket service that renders items by index.

The protocol is line oriented, one request per connection:

- ``Request: <index>\\n`` renders the item at ``index`` in enumeration order.
  The reply is the rendered text, or a line starting with ``Error: `` on
  failure. The end of the reply is the connection close.
- ``Stop\\n`` makes the server return; nothing is sent back.

Unix systems use an ``AF_UNIX`` socket. Windows uses a named pipe under
``\\\\.\\pipe\\`` with the same protocol.
"""

import errno
import logging
import os
import re
import shutil
import socket
import sys
import tempfile
import time
from pathlib import Path
from typing import Protocol, TextIO

from showasm.errors import ShowAsmError
from showasm.items import Item
from showasm.renderer import Renderer

if sys.platform == "win32":
    from showasm import pipes

logger = logging.getLogger(__name__)

MSG_REQUEST = "Request: "
MSG_STOP = "Stop\n"
CONNECT_RETRY_DELAY = 0.1
PIPE_PREFIX = "\\\\.\\pipe\\"

_INDEX_RE = re.compile(r"[0-9]+")


class AddressInUseError(ShowAsmError):
    """Raised when the server address is already bound."""


class _RequestError(ShowAsmError):
    """A request that was answered with an ``Error:`` line."""


class Connection(Protocol):
    """Connected stream as returned by :func:`connect` and ``accept``."""

    def makefile(
        self,
        mode: str = ...,
        encoding: str | None = ...,
        newline: str | None = ...,
        errors: str | None = ...,
    ) -> TextIO: ...

    def sendall(self, data: bytes) -> None: ...

    def close(self) -> None: ...

    def __enter__(self) -> "Connection": ...

    def __exit__(self, *exc_info: object) -> None: ...


class Listener(Protocol):
    """Bound transport the server accepts connections from."""

    def accept(self) -> Connection: ...

    def close(self) -> None: ...


def is_supported() -> bool:
    return sys.platform == "win32" or hasattr(socket, "AF_UNIX")


def get_address(pid: int | None = None) -> str:
    """Derive the server address from a process id.

    Linux uses the abstract namespace (``@`` prefix), Windows a named pipe,
    and other systems a socket file under the temporary directory.
    """
    pid = os.getpid() if pid is None else pid
    if sys.platform.startswith("linux"):
        return f"@show_asm.server{pid}.sock"
    if sys.platform == "win32":
        return f"{PIPE_PREFIX}show_asm.server{pid}"
    return str(Path(tempfile.gettempdir()) / "show_asm" / f"server{pid}.sock")


def _is_pipe(address: str) -> bool:
    return address.startswith(PIPE_PREFIX)


def _socket_address(address: str) -> str:
    if address.startswith("@"):
        return "\0" + address[1:]
    return address


def parse_request(line: str) -> int | None:
    """Extract the index from a request line, ``None`` if malformed."""
    head, sep, index = line.strip().partition(MSG_REQUEST.strip())
    if head or not sep:
        return None
    index = index.strip()
    if not _INDEX_RE.fullmatch(index):
        return None
    return int(index)


class _UnixListener:
    """Listening ``AF_UNIX`` socket; closing it removes the socket file."""

    def __init__(self, address: str) -> None:
        self.address = address
        if not address.startswith("@"):
            Path(address).parent.mkdir(parents=True, exist_ok=True)
        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            self._sock.bind(_socket_address(address))
            self._sock.listen()
        except OSError:
            self._sock.close()
            raise

    def accept(self) -> socket.socket:
        conn, _ = self._sock.accept()
        return conn

    def close(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            logger.debug(f"Listener shutdown failed (error={exc})")
        self._sock.close()
        if not self.address.startswith("@"):
            Path(self.address).unlink(missing_ok=True)


class IpcServer:
    """Serve item renders over a local socket or named pipe."""

    def __init__(self, listener: Listener, address: str) -> None:
        """Initialize the server around a bound listener.

        Args:
            listener: Transport listener, already accepting connections.
            address: Address the listener is bound to.
        """
        self._listener = listener
        self._closed = False
        self.address = address

    @classmethod
    def bind(cls, address: str | None = None) -> "IpcServer":
        """Bind a listener to ``address`` (derived from the pid by default).

        Raises:
            AddressInUseError: If the address is already bound, which also
                covers a socket file left behind by a killed run.
        """
        address = address or get_address()
        try:
            listener = pipes.PipeListener(address) if _is_pipe(address) else _UnixListener(address)
        except OSError as exc:
            if exc.errno == errno.EADDRINUSE:
                raise AddressInUseError(f"Socket {address} is already in use") from exc
            raise
        logger.debug(f"IPC server listening (address={address})")
        return cls(listener=listener, address=address)

    def serve(self, items: dict[Item, range], renderer: Renderer) -> None:
        """Answer requests one connection at a time until ``Stop``.

        Args:
            items: Item map; its iteration order defines request indexes.
            renderer: Renderer used for every reply.
        """
        spans = list(items.values())
        try:
            while True:
                try:
                    conn = self._listener.accept()
                except OSError as exc:
                    if self._closed:
                        break
                    logger.warning(f"Incoming connection failed (error={exc})")
                    continue
                try:
                    if not self._handle(conn, spans, renderer):
                        break
                except (OSError, _RequestError) as exc:
                    logger.warning(f"Request failed (error={exc})")
        finally:
            self.close()

    def close(self) -> None:
        """Close the listener, waking up a blocked :meth:`serve`."""
        if self._closed:
            return
        self._closed = True
        self._listener.close()
        logger.debug(f"IPC server closed (address={self.address})")

    def _handle(self, conn: Connection, spans: list[range], renderer: Renderer) -> bool:
        """Handle one connection; ``False`` means stop serving."""
        with (
            conn,
            conn.makefile("r", encoding="utf-8", newline="\n", errors="replace") as reader,
            conn.makefile("w", encoding="utf-8", newline="\n") as writer,
        ):
            line = reader.readline()
            if line == MSG_STOP:
                return False

            index = parse_request(line)
            if index is None:
                writer.write("Error: Malformed Message Expected:\nRequest: idx\n")
                raise _RequestError(f"Malformed message {line!r}")
            if index >= len(spans):
                writer.write(f"Error: the requested index {index} is not found\n")
                raise _RequestError(f"Index {index} is not found")

            try:
                renderer.render_range(spans[index], writer)
            except ShowAsmError as exc:
                writer.write(f"Error: {exc}\n")
                raise _RequestError(f"Render failed: {exc}") from exc
            except Exception as exc:
                # One broken item must not take the server down.
                logger.exception(f"Unexpected render failure (index={index})")
                writer.write(f"Error: {type(exc).__name__}: {exc}\n")
                raise _RequestError(f"Unexpected error while rendering: {exc}") from exc
        return True


def _connect(address: str) -> Connection:
    if _is_pipe(address):
        return pipes.connect(address)
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(_socket_address(address))
    except OSError:
        sock.close()
        raise
    return sock


def connect(address: str) -> Connection:
    """Connect to a server, retrying once while it may still be starting."""
    try:
        return _connect(address)
    except OSError as exc:
        logger.debug(f"Server not ready, retrying (address={address} error={exc})")
        time.sleep(CONNECT_RETRY_DELAY)
        return _connect(address)


def request(address: str, index: int, out: TextIO) -> None:
    """Ask the server for item ``index`` and copy the reply into ``out``.

    Raises:
        OSError: If the server cannot be reached.
    """
    with (
        connect(address) as conn,
        conn.makefile("w", encoding="utf-8", newline="\n") as writer,
        conn.makefile("r", encoding="utf-8", newline="\n") as reader,
    ):
        writer.write(f"{MSG_REQUEST}{index}\n")
        writer.flush()
        shutil.copyfileobj(reader, out)
    out.flush()


def send_stop(address: str) -> None:
    """Tell the server at ``address`` to stop serving."""
    with connect(address) as conn:
        conn.sendall(MSG_STOP.encode("utf-8"))
