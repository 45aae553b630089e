# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Resolve what the user asked for into a range or a typed outcome."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from rich.console import Console
from rich.text import Text

from showasm.items import Item

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Everything:
    """Render the whole file."""


@dataclass(frozen=True)
class ByIndex:
    """Render the item at ``value`` in the full enumeration."""

    value: int


@dataclass(frozen=True)
class Function:
    """Render an item whose name contains ``function``.

    Attributes:
        function: Substring to look for in item names.
        nth: Index among the matching items.
    """

    function: str
    nth: int | None = None


@dataclass(frozen=True)
class Interactive:
    """Pick the item with a fuzzy finder."""


@dataclass(frozen=True)
class Unspecified:
    """Nothing was requested; list what is available."""


Goal = Everything | ByIndex | Function | Interactive | Unspecified


@dataclass(frozen=True)
class Selected:
    """A range to render; ``None`` renders the whole file."""

    span: range | None


@dataclass(frozen=True)
class Suggest:
    """Ask the user to pick from ``items``."""

    items: list[Item]
    search: str = ""


@dataclass(frozen=True)
class Fatal:
    """No answer exists; ``reason`` is shown to the user."""

    reason: str


Outcome = Selected | Suggest | Fatal


def get_dump_range(goal: Goal, items: dict[Item, range]) -> Outcome:
    """Pick the range to render for ``goal``.

    Args:
        goal: What the user asked for.
        items: Item map in enumeration order.

    Returns:
        The outcome; a single item is always selected directly.

    Raises:
        ValueError: If an interactive goal reaches here with more than one item.
    """
    if len(items) == 1:
        return Selected(span=next(iter(items.values())))

    if isinstance(goal, Everything):
        return Selected(span=None)

    if isinstance(goal, ByIndex):
        spans = list(items.values())
        if 0 <= goal.value < len(spans):
            return Selected(span=spans[goal.value])
        return Fatal(
            reason=(
                f"You asked to display item #{goal.value} (zero based), "
                f"but there's only {len(spans)} items"
            )
        )

    if isinstance(goal, Function):
        filtered = [(item, span) for item, span in items.items() if goal.function in item.name]
        if goal.nth is None and len(filtered) == 1:
            return Selected(span=filtered[0][1])
        if goal.nth is not None:
            if 0 <= goal.nth < len(filtered):
                return Selected(span=filtered[goal.nth][1])
            return Fatal(
                reason=(
                    f"You asked to display item #{goal.nth} (zero based), "
                    f"but there's only {len(filtered)} matching items"
                )
            )
        if not filtered:
            return Fatal(reason=f"Can't find any items matching {goal.function!r}")
        return Suggest(items=[item for item, _ in filtered], search=goal.function)

    if isinstance(goal, Unspecified):
        return Suggest(items=list(items))

    raise ValueError("Interactive goal must be resolved by the finder session")


def group_suggestions(items: Iterable[Item], full_name: bool) -> list[tuple[int, str, list[int]]]:
    """Group items by display name.

    Args:
        items: Items in enumeration order.
        full_name: Group by hashed names instead of plain names.

    Returns:
        Rows of ``(first enumeration index, name, statement counts)``.
    """
    names: dict[str, list[int]] = {}
    for item in items:
        names.setdefault(item.hashed if full_name else item.name, []).append(item.len)

    rows: list[tuple[int, str, list[int]]] = []
    ix = 0
    for name in sorted(names):
        rows.append((ix, name, names[name]))
        ix += len(names[name])
    return rows


def write_suggestions(console: Console, suggest: Suggest, full_name: bool) -> None:
    """Print item suggestions.

    Args:
        console: Output console.
        suggest: Suggestion outcome.
        full_name: Show hashed names.
    """
    rows = group_suggestions(suggest.items, full_name=full_name)
    if not rows:
        if suggest.search:
            console.print("No matching functions, try relaxing your search request")
        else:
            console.print("This target defines no functions (or show-asm can't find them)")
        console.print("You can pass --everything to see the demangled contents of a file")
    else:
        console.print("Try one of those by name or a sequence number")

    width = len(str(max(len(suggest.items) - 1, 0)))
    for ix, name, lens in rows:
        line = Text(f"{ix:>{width}} ")
        line.append(repr(name), style="green")
        line.append(" ")
        line.append(repr(lens), style="cyan")
        console.print(line, soft_wrap=True)
