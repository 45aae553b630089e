import sys
from pathlib import Path

import pytest


def _add_src_to_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_add_src_to_path()


LINUX_ASM = """\
\t.text
\t.file\t"demo.4a1f0c2b-cgu.0"
\t.section\t.text._ZN4demo5first17h0123456789abcdefE,"ax",@progbits
\t.globl\t_ZN4demo5first17h0123456789abcdefE
\t.p2align\t4, 0x90
\t.type\t_ZN4demo5first17h0123456789abcdefE,@function
_ZN4demo5first17h0123456789abcdefE:
\t.cfi_startproc
\tmovl\t$1, %eax
\tretq
.Lfunc_end0:
\t.size\t_ZN4demo5first17h0123456789abcdefE, .Lfunc_end0-_ZN4demo5first17h0123456789abcdefE
\t.cfi_endproc

\t.section\t.text._ZN4demo6second17hfedcba9876543210E,"ax",@progbits
\t.globl\t_ZN4demo6second17hfedcba9876543210E
\t.p2align\t4, 0x90
\t.type\t_ZN4demo6second17hfedcba9876543210E,@function
_ZN4demo6second17hfedcba9876543210E:
\t.cfi_startproc
\tmovl\t$2, %eax
\tretq
.Lfunc_end1:
\t.size\t_ZN4demo6second17hfedcba9876543210E, .Lfunc_end1-_ZN4demo6second17hfedcba9876543210E
\t.cfi_endproc

\t.section\t.text.main,"ax",@progbits
\t.globl\tmain
\t.p2align\t4, 0x90
\t.type\tmain,@function
main:
\t.cfi_startproc
\tpushq\t%rax
\tcallq\t_ZN4demo5first17h0123456789abcdefE
\tpopq\t%rcx
\tretq
.Lfunc_end2:
\t.size\tmain, .Lfunc_end2-main
\t.cfi_endproc

\t.section\t".note.GNU-stack","",@progbits
"""

MACOS_ASM = """\
\t.section\t__TEXT,__text,regular,pure_instructions
\t.globl\t__ZN4demo5first17h0123456789abcdefE
\t.p2align\t4, 0x90
__ZN4demo5first17h0123456789abcdefE:
\t.cfi_startproc
\tmovl\t$1, %eax
\tretq
\t.cfi_endproc
\t.globl\t__ZN4demo6second17hfedcba9876543210E
\t.p2align\t4, 0x90
__ZN4demo6second17hfedcba9876543210E:
\t.cfi_startproc
\tmovl\t$2, %eax
\tretq
\t.cfi_endproc
.subsections_via_symbols
"""

MIR_TEXT = """\
// WARNING: This output format is intended for human consumers only
// and is subject to change without notice. Knock yourself out.
fn add(_1: u32, _2: u32) -> u32 {
    let mut _0: u32;

    bb0: {
        _0 = Add(copy _1, copy _2);
        return;
    }
}

fn main() -> () {
    let mut _0: ();

    bb0: {
        return;
    }
}
"""


@pytest.fixture
def linux_asm() -> str:
    return LINUX_ASM


@pytest.fixture
def macos_asm() -> str:
    return MACOS_ASM


@pytest.fixture
def mir_text() -> str:
    return MIR_TEXT
