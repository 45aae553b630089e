# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Partition a statement sequence into per-function items."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from showasm.demangle import Demangled, demangled
from showasm.statements import (
    Label,
    SectionStart,
    Statement,
    is_end_of_fn,
    is_global,
    is_section_start,
)

logger = logging.getLogger(__name__)

Demangler = Callable[[str], Demangled | None]

# A global declaration opens a new boundary only this far past the section
# start, so the declarations right after a ``.section`` do not re-trigger.
GLOBAL_BOUNDARY_GAP = 3


@dataclass(frozen=True, order=True)
class Item:
    """Represent one discovered function-like unit.

    Items order by ``(name, hashed, index)``; that order is the enumeration
    shown to users and used by index-based requests.

    Attributes:
        name: Demangled display name.
        hashed: Display name including the compiler disambiguation hash.
        index: Occurrence number among items sharing ``name``.
        len: Number of statements from the item label to its end marker.
    """

    name: str
    hashed: str
    index: int
    len: int


@dataclass(frozen=True)
class _Idle:
    """No section seen yet."""

    start: int = 0


@dataclass(frozen=True)
class _InSection:
    start: int


@dataclass(frozen=True)
class _InItem:
    """An item label was seen; ``pending.len`` holds the label index."""

    start: int
    pending: Item


_ScanState = _Idle | _InSection | _InItem


class _NameCounter:
    """Count item occurrences per display name within one scan."""

    def __init__(self) -> None:
        self._seen: dict[str, int] = {}

    def next(self, name: str) -> int:
        current = self._seen.get(name, 0)
        self._seen[name] = current + 1
        return current


class ItemExtractor:
    """Find function items with a single forward scan."""

    def __init__(self, demangler: Demangler = demangled) -> None:
        """Initialize the extractor.

        Args:
            demangler: Maps a raw symbol to its display forms.
        """
        self._demangler = demangler

    def extract(self, statements: Sequence[Statement]) -> dict[Item, range]:
        """Scan statements and collect item ranges.

        Args:
            statements: Parsed statements of one file.

        Returns:
            Mapping of items to half-open statement ranges, in item order.
        """
        state: _ScanState = _Idle()
        counter = _NameCounter()
        found: list[tuple[Item, range]] = []
        floor = 0

        for index, statement in enumerate(statements):
            if is_section_start(statement):
                state = self._on_section_start(state, index)
            elif is_global(statement) and index - state.start > GLOBAL_BOUNDARY_GAP:
                state = self._on_global(state, index)
            elif is_end_of_fn(statement):
                if isinstance(state, _InItem):
                    item = replace(state.pending, len=index - state.pending.len)
                    span = range(max(state.start, floor), index)
                    found.append((item, span))
                    floor = index
                    state = _InSection(start=state.start)
            elif isinstance(statement, Label):
                state = self._on_label(state, index, statement, statements, counter)

        logger.debug(f"Item scan completed (statements={len(statements)} items={len(found)})")
        return dict(sorted(found, key=lambda pair: pair[0]))

    def _on_section_start(self, state: _ScanState, index: int) -> _ScanState:
        # Exception-handling side tables repeat the function's own .section
        # directive inside the body; those must not split the item.
        if isinstance(state, _InItem):
            return state
        return _InSection(start=index)

    def _on_global(self, state: _ScanState, index: int) -> _ScanState:
        if isinstance(state, _InItem):
            return _InItem(start=index, pending=state.pending)
        return _InSection(start=index)

    def _on_label(
        self,
        state: _ScanState,
        index: int,
        label: Label,
        statements: Sequence[Statement],
        counter: _NameCounter,
    ) -> _ScanState:
        result = self._demangler(label.id)
        if result is not None:
            item = Item(
                name=result.name,
                hashed=result.hashed,
                index=counter.next(result.name),
                len=index,
            )
            return _InItem(start=state.start, pending=item)

        if label.kind != "unknown" or state.start >= len(statements):
            return state
        section = statements[state.start]
        if (
            isinstance(section, SectionStart)
            and section.section_name == f".text.{label.id}"
        ):
            item = Item(
                name=label.id,
                hashed=label.id,
                index=counter.next(label.id),
                len=index,
            )
            return _InItem(start=state.start, pending=item)
        return state


def find_items(
    statements: Sequence[Statement], demangler: Demangler = demangled
) -> dict[Item, range]:
    """Extract items from parsed statements.

    Args:
        statements: Parsed statements of one file.
        demangler: Maps a raw symbol to its display forms.

    Returns:
        Mapping of items to half-open statement ranges, in item order.
    """
    return ItemExtractor(demangler=demangler).extract(statements)
