# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for source location and caching."""

from pathlib import Path

import pytest

from showasm.sources import (
    MissingRustSourcesError,
    RegistrySourceError,
    SourceCache,
    locate_sources,
)
from showasm.statements import FileDirective, parse_file


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_ph3_src_001_existing_path_is_returned_unchanged(tmp_path: Path) -> None:
    source = tmp_path / "src" / "main.rs"
    _write_file(source, "fn main() {}\n")

    assert locate_sources(tmp_path / "sysroot", source) == source


def test_ph3_src_002_linux_std_path_maps_into_sysroot(tmp_path: Path) -> None:
    sysroot = tmp_path / "sysroot"
    expected = sysroot / "lib/rustlib/src/rust/library/core/src/option.rs"
    _write_file(expected, "// option\n")

    located = locate_sources(
        sysroot, Path("/rustc/a55dd71d5fb0ec5a6a3a9e8c27b2127ba491ce52/library/core/src/option.rs")
    )

    assert located == expected


def test_ph3_src_003_macos_std_path_maps_into_sysroot(tmp_path: Path) -> None:
    sysroot = tmp_path / "sysroot"
    expected = sysroot / "lib/rustlib/src/rust/library/core/src/option.rs"
    _write_file(expected, "// option\n")

    located = locate_sources(
        sysroot,
        Path("/private/tmp/rust-20230325-7327-rbrpyq/rustc-1.68.1-src/library/core/src/option.rs"),
    )

    assert located == expected


def test_ph3_src_004_missing_std_sources_raise_actionable_error(tmp_path: Path) -> None:
    with pytest.raises(MissingRustSourcesError) as excinfo:
        locate_sources(tmp_path, Path("/rustc/0123abcd/library/std/src/rt.rs"))

    assert "rustup component add rust-src" in str(excinfo.value)


def test_ph3_src_005_registry_path_maps_into_cargo_home(
    tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    crate_file = "registry/src/github.com-1ecc6299db9ec823/hashbrown-0.12.3/src/map.rs"
    expected = tmp_path / ".cargo" / crate_file
    _write_file(expected, "// map\n")

    located = locate_sources(tmp_path / "sysroot", Path("/cargo") / crate_file)

    assert located == expected


def test_ph3_src_006_missing_registry_source_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(Path, "home", lambda: tmp_path)

    with pytest.raises(RegistrySourceError):
        locate_sources(
            tmp_path / "sysroot",
            Path(
                "/home/ci/.cargo/registry/src/index.crates.io-6f17d22bba15001f"
                "/libc-0.2.150/src/lib.rs"
            ),
        )


def test_ph3_src_007_unknown_missing_path_is_not_an_error(tmp_path: Path) -> None:
    assert locate_sources(tmp_path, tmp_path / "gone" / "lib.rs") is None


def test_ph3_src_008_cache_keeps_first_declaration_and_reads_lazily(tmp_path: Path) -> None:
    _write_file(tmp_path / "a.rs", "fn a() {}\n    let x = 1;\n")
    statements = parse_file(
        f'\t.file\t1 "{tmp_path}" "a.rs"\n'
        f'\t.file\t1 "{tmp_path}" "b.rs"\n'
        f'\t.file\t2 "{tmp_path}/missing.rs"\n'
    )
    cache = SourceCache.from_statements(tmp_path, statements)

    first = cache.lookup(1)
    assert first is not None
    assert first.path == tmp_path / "a.rs"
    assert first.lines == ["fn a() {}", "    let x = 1;"]
    assert cache.lookup(1) is first

    missing = cache.lookup(2)
    assert missing is not None and missing.lines is None
    assert cache.lookup(3) is None


def test_ph3_src_009_file_directive_without_name_uses_path_directly() -> None:
    directive = FileDirective(index=1, path="/work/src/lib.rs")

    assert directive.full_path == Path("/work/src/lib.rs")
