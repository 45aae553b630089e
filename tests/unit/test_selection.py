# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for goal resolution and suggestions."""

import io

import pytest
from rich.console import Console

from showasm.items import Item
from showasm.selection import (
    ByIndex,
    Everything,
    Fatal,
    Function,
    Interactive,
    Selected,
    Suggest,
    Unspecified,
    get_dump_range,
    group_suggestions,
    write_suggestions,
)

ITEMS = {
    Item(name="demo::first", hashed="demo::first::h01", index=0, len=4): range(2, 10),
    Item(name="demo::second", hashed="demo::second::h02", index=0, len=4): range(14, 22),
    Item(name="main", hashed="main", index=0, len=6): range(26, 36),
}


def _console(buffer: io.StringIO) -> Console:
    return Console(file=buffer, force_terminal=False, width=200)


def test_ph5_sel_001_single_item_wins_for_every_goal() -> None:
    only = {Item(name="main", hashed="main", index=0, len=1): range(0, 3)}

    goals = (
        Everything(),
        ByIndex(value=9),
        Function(function="x"),
        Interactive(),
        Unspecified(),
    )
    for goal in goals:
        assert get_dump_range(goal, only) == Selected(span=range(0, 3))


def test_ph5_sel_002_everything_selects_whole_file() -> None:
    assert get_dump_range(Everything(), ITEMS) == Selected(span=None)


def test_ph5_sel_003_by_index_selects_or_reports_out_of_range() -> None:
    assert get_dump_range(ByIndex(value=1), ITEMS) == Selected(span=range(14, 22))
    assert get_dump_range(ByIndex(value=3), ITEMS) == Fatal(
        reason="You asked to display item #3 (zero based), but there's only 3 items"
    )


def test_ph5_sel_004_function_filter_resolves_unique_and_nth_matches() -> None:
    assert get_dump_range(Function(function="main"), ITEMS) == Selected(span=range(26, 36))
    assert get_dump_range(Function(function="demo", nth=1), ITEMS) == Selected(
        span=range(14, 22)
    )
    assert get_dump_range(Function(function="demo", nth=2), ITEMS) == Fatal(
        reason="You asked to display item #2 (zero based), but there's only 2 matching items"
    )


def test_ph5_sel_005_function_filter_suggests_or_fails() -> None:
    outcome = get_dump_range(Function(function="demo"), ITEMS)

    assert isinstance(outcome, Suggest)
    assert [item.name for item in outcome.items] == ["demo::first", "demo::second"]
    assert outcome.search == "demo"
    assert get_dump_range(Function(function="nope"), ITEMS) == Fatal(
        reason="Can't find any items matching 'nope'"
    )


def test_ph5_sel_006_unspecified_suggests_everything() -> None:
    outcome = get_dump_range(Unspecified(), ITEMS)

    assert outcome == Suggest(items=list(ITEMS))


def test_ph5_sel_007_interactive_goal_must_go_through_finder() -> None:
    with pytest.raises(ValueError):
        get_dump_range(Interactive(), ITEMS)


def test_ph5_sel_008_suggestions_group_by_name() -> None:
    items = [
        Item(name="a", hashed="a::h1", index=0, len=3),
        Item(name="a", hashed="a::h2", index=1, len=5),
        Item(name="b", hashed="b::h3", index=0, len=2),
    ]

    assert group_suggestions(items, full_name=False) == [(0, "a", [3, 5]), (2, "b", [2])]
    assert group_suggestions(items, full_name=True) == [
        (0, "a::h1", [3]),
        (1, "a::h2", [5]),
        (2, "b::h3", [2]),
    ]


def test_ph5_sel_009_write_suggestions_prints_rows() -> None:
    buffer = io.StringIO()

    write_suggestions(_console(buffer), Suggest(items=list(ITEMS)), full_name=False)

    output = buffer.getvalue()
    assert output.startswith("Try one of those by name or a sequence number\n")
    assert "0 'demo::first' [4]" in output
    assert "2 'main' [6]" in output


def test_ph5_sel_010_write_suggestions_explains_empty_results() -> None:
    empty = io.StringIO()
    no_match = io.StringIO()

    write_suggestions(_console(empty), Suggest(items=[]), full_name=False)
    write_suggestions(_console(no_match), Suggest(items=[], search="zzz"), full_name=False)

    assert "This target defines no functions" in empty.getvalue()
    assert "No matching functions, try relaxing your search request" in no_match.getvalue()
    assert "--everything" in no_match.getvalue()
