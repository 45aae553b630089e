# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Windows named pipe transport with a socket-like surface.

Only importable on Windows. :class:`PipeListener` mirrors a listening socket
(``accept``/``close``) and :class:`PipeStream` mirrors a connected socket
(``makefile``/``close`` and context management), so the line protocol in
:mod:`showasm.ipc` runs unchanged over either transport.
"""

import errno
import io
import logging
import threading
from typing import TextIO

import pywintypes
import win32file
import win32pipe
import winerror

logger = logging.getLogger(__name__)

BUFFER_SIZE = 65536
BUSY_WAIT_MS = 1000


def _os_error(exc: pywintypes.error) -> OSError:
    return OSError(exc.winerror, f"{exc.funcname}: {exc.strerror}")


def _create_instance(address: str, first: bool) -> int:
    open_mode = win32pipe.PIPE_ACCESS_DUPLEX
    if first:
        open_mode |= win32file.FILE_FLAG_FIRST_PIPE_INSTANCE
    try:
        return win32pipe.CreateNamedPipe(
            address,
            open_mode,
            win32pipe.PIPE_TYPE_BYTE | win32pipe.PIPE_READMODE_BYTE | win32pipe.PIPE_WAIT,
            win32pipe.PIPE_UNLIMITED_INSTANCES,
            BUFFER_SIZE,
            BUFFER_SIZE,
            0,
            None,
        )
    except pywintypes.error as exc:
        if first and exc.winerror in {
            winerror.ERROR_ACCESS_DENIED,
            winerror.ERROR_PIPE_BUSY,
        }:
            raise OSError(errno.EADDRINUSE, f"Pipe {address} is already in use") from exc
        raise _os_error(exc) from exc


class _PipeIO(io.RawIOBase):
    """Raw byte stream over a pipe handle; closing it leaves the handle open."""

    def __init__(self, handle: int) -> None:
        self._handle = handle

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        try:
            _, data = win32file.ReadFile(self._handle, len(buffer))
        except pywintypes.error as exc:
            if exc.winerror == winerror.ERROR_BROKEN_PIPE:
                return 0
            raise _os_error(exc) from exc
        buffer[: len(data)] = data
        return len(data)

    def write(self, data) -> int:
        try:
            _, written = win32file.WriteFile(self._handle, bytes(data))
        except pywintypes.error as exc:
            if exc.winerror in {winerror.ERROR_BROKEN_PIPE, winerror.ERROR_NO_DATA}:
                raise BrokenPipeError(errno.EPIPE, "Pipe closed by peer") from exc
            raise _os_error(exc) from exc
        return written


class PipeStream:
    """One connected end of a named pipe."""

    def __init__(self, handle: int, server: bool) -> None:
        """Initialize the stream.

        Args:
            handle: Connected pipe handle, owned by this stream.
            server: Whether this is the server end, which must disconnect.
        """
        self._handle = handle
        self._server = server
        self._closed = False

    def makefile(
        self,
        mode: str = "r",
        encoding: str = "utf-8",
        newline: str | None = None,
        errors: str | None = None,
    ) -> TextIO:
        raw = _PipeIO(self._handle)
        buffered = io.BufferedReader(raw) if "r" in mode else io.BufferedWriter(raw)
        return io.TextIOWrapper(buffered, encoding=encoding, errors=errors, newline=newline)

    def sendall(self, data: bytes) -> None:
        raw = _PipeIO(self._handle)
        view = memoryview(data)
        while view:
            view = view[raw.write(view) :]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._server:
                win32file.FlushFileBuffers(self._handle)
                win32pipe.DisconnectNamedPipe(self._handle)
        except pywintypes.error as exc:
            logger.debug(f"Pipe disconnect failed (error={exc.strerror})")
        finally:
            win32file.CloseHandle(self._handle)

    def __enter__(self) -> "PipeStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PipeListener:
    """Accept connections on a named pipe, one instance per client."""

    def __init__(self, address: str) -> None:
        """Create the first pipe instance.

        Raises:
            OSError: ``EADDRINUSE`` if another server owns ``address``.
        """
        self.address = address
        self._lock = threading.Lock()
        self._closed = False
        self._accepting = False
        self._pending = _create_instance(address, first=True)

    def accept(self) -> PipeStream:
        """Wait for a client and hand over the connected instance.

        Raises:
            OSError: If waiting fails or the listener is closed.
        """
        with self._lock:
            if self._closed:
                raise OSError(errno.EBADF, "Listener is closed")
            handle = self._pending
            self._accepting = True
        try:
            win32pipe.ConnectNamedPipe(handle, None)
        except pywintypes.error as exc:
            if exc.winerror != winerror.ERROR_PIPE_CONNECTED:
                self._finish_accept()
                raise _os_error(exc) from exc

        closed = self._finish_accept()
        if closed:
            win32file.CloseHandle(handle)
            raise OSError(errno.EBADF, "Listener is closed")
        return PipeStream(handle, server=True)

    def _finish_accept(self) -> bool:
        with self._lock:
            self._accepting = False
            if not self._closed:
                # A new instance keeps the name reachable while this one is busy.
                self._pending = _create_instance(self.address, first=False)
            return self._closed

    def close(self) -> None:
        """Stop accepting; a thread blocked in :meth:`accept` is woken up."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            accepting = self._accepting
            if not accepting:
                win32file.CloseHandle(self._pending)
        if accepting:
            try:
                connect(self.address).close()
            except OSError as exc:
                logger.debug(f"Pipe wake-up connection failed (error={exc})")


def connect(address: str) -> PipeStream:
    """Open the client end of ``address``.

    Raises:
        OSError: If no server listens on ``address``.
    """
    for attempt in range(2):
        try:
            handle = win32file.CreateFile(
                address,
                win32file.GENERIC_READ | win32file.GENERIC_WRITE,
                0,
                None,
                win32file.OPEN_EXISTING,
                0,
                None,
            )
        except pywintypes.error as exc:
            if exc.winerror != winerror.ERROR_PIPE_BUSY or attempt > 0:
                raise _os_error(exc) from exc
            try:
                win32pipe.WaitNamedPipe(address, BUSY_WAIT_MS)
            except pywintypes.error as wait_exc:
                raise _os_error(wait_exc) from wait_exc
            continue
        return PipeStream(handle, server=False)
    raise OSError(errno.EBUSY, f"Pipe {address} stayed busy")
