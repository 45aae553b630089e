# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Locate and cache source files referenced by debug-info directives.

Debug info can point at three kinds of files:

1. a real file that simply exists;
2. a standard library file from the compiler build tree, available under
   ``$sysroot/lib/rustlib/src/rust`` once ``rust-src`` is installed, e.g.
   ``/rustc/a55dd71d5fb0ec5a6a3a9e8c27b2127ba491ce52/library/core/src/iter/range.rs``
   or ``/private/tmp/rust-20230325-7327-rbrpyq/rustc-1.68.1-src/library/core/src/option.rs``;
3. a dependency from the cargo registry, e.g.
   ``/cargo/registry/src/github.com-1ecc6299db9ec823/hashbrown-0.12.3/src/map.rs``.
"""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from showasm.errors import ShowAsmError
from showasm.statements import FileDirective, Statement

logger = logging.getLogger(__name__)

RUST_SRC_SUBDIR = Path("lib") / "rustlib" / "src" / "rust"


class SourceLocationError(ShowAsmError):
    """Represent a referenced source that should exist but does not."""


class MissingRustSourcesError(SourceLocationError):
    """Raised when standard library sources are not installed."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            "You need to install rustc sources to be able to see the rust "
            "annotations, try\n\trustup component add rust-src"
        )
        self.path = path


class RegistrySourceError(SourceLocationError):
    """Raised when a cargo registry reference cannot be found locally."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            f"{str(path)!r} looks like it can be a cargo registry reference "
            "but we failed to get it"
        )
        self.path = path


def locate_sources(sysroot: Path, path: Path) -> Path | None:
    """Resolve a debug-info path to a readable local file.

    Args:
        sysroot: Compiler sysroot, used for standard library sources.
        path: Path as written in the ``.file`` directive.

    Returns:
        Local path, or ``None`` when the file is simply not available.

    Raises:
        MissingRustSourcesError: If a standard library path cannot be mapped
            into the sysroot.
        RegistrySourceError: If a registry path is missing from the local
            cargo home.
    """
    if path.exists():
        return path

    parts = PurePosixPath(path.as_posix()).parts

    # Linux style: /rustc/<commit>/library/...
    if parts[:2] == ("/", "rustc"):
        return _rust_source(sysroot, path, parts[3:])

    # macOS style: /private/tmp/<build>/<rustc-src>/library/...
    if parts[:3] == ("/", "private", "tmp") and "library" in parts:
        return _rust_source(sysroot, path, parts[5:])

    for ix, part in enumerate(parts[:-1]):
        if part in {"cargo", ".cargo"} and parts[ix + 1] == "registry":
            source = Path.home().joinpath(".cargo", *parts[ix + 1 :])
            if source.exists():
                return source
            raise RegistrySourceError(path)

    return None


def _rust_source(sysroot: Path, path: Path, suffix: tuple[str, ...]) -> Path:
    source = sysroot.joinpath(RUST_SRC_SUBDIR, *suffix)
    if source.exists():
        return source
    logger.warning(f"Standard library source is missing (path={path} source={source})")
    raise MissingRustSourcesError(path)


@dataclass(frozen=True)
class SourceFile:
    """Represent one cached source file.

    Attributes:
        path: Path as referenced by debug info.
        lines: File lines without endings; ``None`` when unavailable.
    """

    path: Path
    lines: list[str] | None


class SourceCache:
    """Lazily resolve and read source files by debug-info file index."""

    def __init__(self, sysroot: Path, paths: dict[int, Path]) -> None:
        """Initialize the cache.

        Args:
            sysroot: Compiler sysroot used by :func:`locate_sources`.
            paths: Declared file index to referenced path.
        """
        self._sysroot = sysroot
        self._paths = paths
        self._files: dict[int, SourceFile] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_statements(
        cls, sysroot: Path, statements: Iterable[Statement]
    ) -> "SourceCache":
        """Build a cache from the ``.file`` directives of a file.

        The first declaration of an index wins.
        """
        paths: dict[int, Path] = {}
        for statement in statements:
            if isinstance(statement, FileDirective):
                paths.setdefault(statement.index, statement.full_path)
        return cls(sysroot=sysroot, paths=paths)

    def lookup(self, index: int) -> SourceFile | None:
        """Return the source file for ``index``.

        Args:
            index: File index from a ``.loc`` directive.

        Returns:
            Cached file entry, or ``None`` when the index was never declared.

        Raises:
            SourceLocationError: If the path must exist but does not.
        """
        with self._lock:
            cached = self._files.get(index)
            if cached is not None:
                return cached
            path = self._paths.get(index)
            if path is None:
                return None
            entry = SourceFile(path=path, lines=self._load(index, path))
            self._files[index] = entry
            return entry

    def _load(self, index: int, path: Path) -> list[str] | None:
        logger.debug(f"Reading file #{index} {path}")
        located = locate_sources(self._sysroot, path)
        if located is None:
            logger.info(f"File not found {path}")
            return None
        try:
            return located.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as exc:
            logger.warning(f"Failed to read source file (path={located} error={exc})")
            return None
