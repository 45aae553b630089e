# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Assembly listing renderer with source interleaving and label pruning."""

import logging
from collections.abc import Sequence
from typing import TextIO

from showasm.demangle import local_labels
from showasm.options import Format
from showasm.sources import SourceCache
from showasm.statements import (
    DIRECTIVE_TYPES,
    Dunno,
    FileDirective,
    GenericDirective,
    Instruction,
    Label,
    Loc,
    LocDirective,
    SectionStart,
    Statement,
)

logger = logging.getLogger(__name__)


def used_labels(statements: Sequence[Statement]) -> set[str]:
    """Collect local labels referenced anywhere in ``statements``.

    Args:
        statements: Render scope.

    Returns:
        Referenced label identifiers.
    """
    used: set[str] = set()
    for statement in statements:
        if isinstance(statement, GenericDirective):
            text = statement.text
        elif isinstance(statement, SectionStart):
            text = statement.name
        elif isinstance(statement, Instruction):
            text = statement.args
        elif isinstance(statement, Dunno):
            text = statement.text
        else:
            continue
        if text:
            used.update(local_labels(text))
    return used


class AsmRenderer:
    """Render parsed assembly statements."""

    def __init__(
        self,
        statements: Sequence[Statement],
        fmt: Format,
        sources: SourceCache | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            statements: All statements of the parsed file.
            fmt: Rendering options.
            sources: Source cache; required for ``fmt.rust``.
        """
        self._statements = statements
        self._fmt = fmt
        self._sources = sources

    def render_range(self, span: range | None, writer: TextIO) -> None:
        """Render ``span`` (or the whole file) into ``writer``.

        Raises:
            SourceLocationError: If a referenced source must exist but does not.
        """
        fmt = self._fmt
        statements = (
            self._statements
            if span is None
            else self._statements[span.start : span.stop]
        )
        used = set() if fmt.keep_labels else used_labels(statements)

        prev_loc: Loc | None = None
        empty_line = False
        for statement in statements:
            if fmt.verbosity > 2:
                writer.write(f"{statement!r}\n")

            if isinstance(statement, FileDirective):
                continue
            if isinstance(statement, LocDirective):
                if not fmt.rust or statement.line == 0 or statement.loc == prev_loc:
                    continue
                prev_loc = statement.loc
                self._write_location(statement, writer)
                empty_line = False
                continue
            if isinstance(statement, Label) and statement.kind in {"local", "temp"}:
                if fmt.keep_labels or statement.id in used:
                    writer.write(f"{statement.display(fmt.full_name)}\n")
                elif not empty_line and statement.kind != "temp":
                    writer.write("\n")
                    empty_line = True
                continue
            if fmt.simplify and isinstance(statement, (*DIRECTIVE_TYPES, Dunno)):
                continue

            empty_line = False
            writer.write(f"{statement.display(fmt.full_name)}\n")

    def _write_location(self, loc: LocDirective, writer: TextIO) -> None:
        source = self._sources.lookup(loc.file) if self._sources else None
        if source is None:
            logger.warning(f"Location refers to an undeclared file (file={loc.file})")
            writer.write(f"\t\t// file #{loc.file} : {loc.line}\n")
            return

        marker = f"\t\t// {source.path} : {loc.line}\n"
        if source.lines is None:
            if self._fmt.verbosity > 0:
                writer.write("\t\t// Can't locate the file\n")
            writer.write(marker)
            return
        if loc.line > len(source.lines):
            logger.debug(
                f"Location is past the end of file (path={source.path} line={loc.line})"
            )
            writer.write(marker)
            return
        writer.write(marker)
        writer.write(f"\t\t{source.lines[loc.line - 1].lstrip()}\n")
