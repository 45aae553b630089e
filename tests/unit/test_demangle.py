# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
from showasm.demangle import Demangled, contents, demangled, label_kind, local_labels


def test_ph1_dmg_001_demangles_legacy_symbol_with_hash() -> None:
    result = demangled("_ZN4core3fmt5write17h0123456789abcdefE")

    assert result == Demangled(
        name="core::fmt::write",
        hashed="core::fmt::write::h0123456789abcdef",
        kind="global",
    )


def test_ph1_dmg_002_accepts_macos_prefix_and_llvm_suffix() -> None:
    macos = demangled("__ZN4demo3add17h0123456789abcdefE")
    suffixed = demangled("_ZN4demo3add17h0123456789abcdefE.llvm.8812")

    assert macos is not None and macos.name == "demo::add"
    assert suffixed is not None and suffixed.name == "demo::add"


def test_ph1_dmg_003_decodes_escapes_in_path_segments() -> None:
    result = demangled("_ZN20$LT$impl$u20$Foo$GT$3new17h0123456789abcdefE")
    dotted = demangled("_ZN4a..b1c17h0123456789abcdefE")

    assert result is not None and result.name == "<impl Foo>::new"
    assert dotted is not None and dotted.name == "a::b::c"


def test_ph1_dmg_004_rejects_symbols_that_are_not_mangled() -> None:
    assert demangled("main") is None
    assert demangled("_ZN3fooX") is None
    assert demangled("_ZN3foo") is None
    assert demangled("_ZN3fooEjunk") is None


def test_ph1_dmg_005_classifies_label_kinds() -> None:
    assert label_kind(".Ltmp3") == "temp"
    assert label_kind("Ltmp3") == "temp"
    assert label_kind(".LBB0_1") == "local"
    assert label_kind(".Lanon.fad58de7366495db4650cfefac2fcd61.1") == "local"
    assert label_kind("_ZN4demo3add17h0123456789abcdefE") == "global"
    assert label_kind("main") == "unknown"


def test_ph1_dmg_006_contents_replaces_symbols_inside_text() -> None:
    text = "callq\t_ZN4demo3add17h0123456789abcdefE@PLT"

    assert contents(text, full_name=False) == "callq\tdemo::add@PLT"
    assert contents(text, full_name=True) == "callq\tdemo::add::h0123456789abcdef@PLT"
    assert contents("movl\t$1, %eax", full_name=False) == "movl\t$1, %eax"


def test_ph1_dmg_007_local_labels_finds_references_only_at_word_starts() -> None:
    found = list(local_labels("jne\t.LBB0_1 # ALBB not a label, .Ltmp2-.Lfunc_begin0"))

    assert found == [".LBB0_1", ".Ltmp2", ".Lfunc_begin0"]


def test_ph1_dmg_008_only_compiler_label_shapes_are_local() -> None:
    assert label_kind("LinearSearch") == "unknown"
    assert label_kind("Lookup") == "unknown"
    assert label_kind("Lloh0") == "local"
    assert label_kind("Lfunc_end0") == "local"
    assert label_kind("L__unnamed_1") == "local"
    assert list(local_labels("bl\tLinearSearch\n\tb\tLBB2_3")) == ["LBB2_3"]
