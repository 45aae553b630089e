# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Mid-level IR item extraction and rendering."""

import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import TextIO

from showasm.items import Item

logger = logging.getLogger(__name__)

_NAME_SUFFIXES = (" {", " =", " -> ()")


def item_name(line: str) -> str:
    """Strip trailing ``{``, ``=`` and unit return markers from a header."""
    name = line
    stripped = True
    while stripped:
        stripped = False
        for suffix in _NAME_SUFFIXES:
            if name.endswith(suffix):
                name = name[: -len(suffix)]
                stripped = True
    return name


def find_items(lines: Sequence[str]) -> dict[Item, range]:
    """Find MIR bodies.

    A body starts at the first unindented line (or the comment block right
    above it) and ends at a line consisting of ``}``, inclusive.

    Args:
        lines: MIR file lines.

    Returns:
        Mapping of items to half-open line ranges, in item order.
    """
    found: list[tuple[Item, range]] = []
    current: Item | None = None
    block_start: int | None = None

    for ix, line in enumerate(lines):
        if line.startswith("//"):
            if block_start is None:
                block_start = ix
        elif line == "}":
            if current is not None:
                span = range(current.len, ix + 1)
                found.append((replace(current, len=len(span)), span))
                current = None
        elif not (line.startswith(" ") or not line) and current is None:
            start = block_start if block_start is not None else ix
            block_start = None
            name = item_name(line)
            current = Item(name=name, hashed=name, index=len(found), len=start)

    logger.debug(f"MIR scan completed (lines={len(lines)} items={len(found)})")
    return dict(sorted(found, key=lambda pair: pair[0]))


class MirRenderer:
    """Render MIR lines verbatim."""

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = lines

    def render_range(self, span: range | None, writer: TextIO) -> None:
        lines = self._lines if span is None else self._lines[span.start : span.stop]
        for line in lines:
            writer.write(f"{line}\n")
