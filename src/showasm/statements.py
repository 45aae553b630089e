# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Statement model and line-level parser for compiler-emitted assembly.

Every input line becomes exactly one statement, so a statement index is also
the 0-based line index in the input. ``str(statement)`` gives the raw
re-serialization; ``statement.display(full_name)`` gives the human form with
mangled symbols replaced.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from showasm.demangle import LabelKind, contents, label_kind
from showasm.errors import ShowAsmError

logger = logging.getLogger(__name__)

# Leftovers shorter than this are reported verbatim, longer ones by prefix.
LEFTOVERS_LIMIT = 1000
LEFTOVERS_PREFIX = 200

_LABEL_ID = r"[A-Za-z0-9_.$]+"
_PLAIN_LABEL = re.compile(_LABEL_ID)
_LABEL_RE = re.compile(
    rf'^(?:({_LABEL_ID})|"([^"]+)"):[ \t]*(?:((?:#|//|;).*?))?[ \t]*$'
)
_FILE_RE = re.compile(
    r'^\t\.file[ \t]+(\d+)[ \t]+"([^"]*)"'
    r'(?:[ \t]+"([^"]*)")?'
    r"(?:[ \t]+md5[ \t]+0x([0-9A-Fa-f]+))?[ \t]*$"
)
_LOC_RE = re.compile(
    r"^\t\.loc[ \t]+(\d+)[ \t]+(\d+)(?:[ \t]+(\d+))?(?:[ \t]+(\S.*?))?[ \t]*$"
)
_SECTION_RE = re.compile(r"^\t\.section[ \t]+(\S.*?)[ \t]*$")
_SET_RE = re.compile(r"^\t?\.set[ \t]+([^,]+?)[ \t]*,[ \t]*(.*?)[ \t]*$")
_SSVS_RE = re.compile(r"^\t?\.subsections_via_symbols[ \t]*$")
_GENERIC_RE = re.compile(r"^\t\.(\S.*?)[ \t]*$")
_SHARP_RE = re.compile(r"^\t(#{1,2}.*?)[ \t]*$")
_INSTRUCTION_RE = re.compile(r"^\t([A-Za-z0-9_.]+)(?:[ \t]+(\S.*?))?[ \t]*$")

# Compiler text never contains C0 controls other than tab, VT, FF and CR.
_UNPARSEABLE_RE = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")


class ParseError(ShowAsmError):
    """Represent input that does not reduce to the statement grammar."""

    def __init__(self, leftovers: str) -> None:
        """Initialize the error from the unconsumed input.

        Args:
            leftovers: Input text starting at the first unparseable line.
        """
        if len(leftovers) < LEFTOVERS_LIMIT:
            message = f"Didn't consume everything, leftovers: {leftovers!r}"
        else:
            head = leftovers[:LEFTOVERS_PREFIX]
            message = f"Didn't consume everything, leftovers prefix: {head!r}"
        super().__init__(message)
        self.leftovers = leftovers


@dataclass(frozen=True)
class Loc:
    """Source position referenced by a ``.loc`` directive."""

    file: int
    line: int


@dataclass(frozen=True)
class Label:
    """Represent a label definition such as ``.LBB0_1:``.

    Attributes:
        id: Label identifier without quotes and colon.
        kind: Label kind derived from the identifier.
        comment: Trailing assembler comment, e.g. ``# %bb.2``; not displayed.
    """

    id: str
    kind: LabelKind
    comment: str | None = None

    def __str__(self) -> str:
        text = f"{self.id}:" if _PLAIN_LABEL.fullmatch(self.id) else f'"{self.id}":'
        if self.comment is not None:
            text += f"\t{self.comment}"
        return text

    def display(self, full_name: bool = False) -> str:
        return f"{contents(self.id, full_name)}:"


@dataclass(frozen=True)
class FileDirective:
    """Represent ``.file N "path" ["name"] [md5 0x...]``.

    Attributes:
        index: Compilation-unit-relative file index.
        path: First quoted string, a directory when ``name`` is present.
        name: Optional file name relative to ``path``.
        md5: Optional hex checksum without the ``0x`` prefix.
    """

    index: int
    path: str
    name: str | None = None
    md5: str | None = None

    @property
    def full_path(self) -> Path:
        if self.name is None:
            return Path(self.path)
        return Path(self.path) / self.name

    def __str__(self) -> str:
        text = f'\t.file\t{self.index} "{self.path}"'
        if self.name is not None:
            text += f' "{self.name}"'
        if self.md5 is not None:
            text += f" md5 0x{self.md5}"
        return text

    def display(self, full_name: bool = False) -> str:
        return str(self)


@dataclass(frozen=True)
class LocDirective:
    """Represent ``.loc FILE LINE [COLUMN] [extra...]``."""

    file: int
    line: int
    column: int | None = None
    extra: str | None = None

    @property
    def loc(self) -> Loc:
        return Loc(file=self.file, line=self.line)

    def __str__(self) -> str:
        text = f"\t.loc\t{self.file} {self.line}"
        if self.column is not None:
            text += f" {self.column}"
        if self.extra is not None:
            text += f" {self.extra}"
        return text

    def display(self, full_name: bool = False) -> str:
        return str(self)


@dataclass(frozen=True)
class SectionStart:
    """Represent ``.section`` with its raw argument text."""

    name: str

    @property
    def section_name(self) -> str:
        """Section name without flags, e.g. ``.text.main``."""
        return self.name.split(",", 1)[0].strip()

    def __str__(self) -> str:
        return f"\t.section\t{self.name}"

    def display(self, full_name: bool = False) -> str:
        return f"\t.section\t{contents(self.name, full_name)}"


@dataclass(frozen=True)
class SetDirective:
    """Represent ``.set NAME, VALUE``."""

    name: str
    value: str

    def __str__(self) -> str:
        return f"\t.set\t{self.name}, {self.value}"

    def display(self, full_name: bool = False) -> str:
        return contents(str(self), full_name)


@dataclass(frozen=True)
class SubsectionsViaSym:
    """Represent the macOS ``.subsections_via_symbols`` marker."""

    def __str__(self) -> str:
        return "\t.subsections_via_symbols"

    def display(self, full_name: bool = False) -> str:
        return str(self)


@dataclass(frozen=True)
class GenericDirective:
    """Represent any other directive, kept as text after the leading dot."""

    text: str

    def __str__(self) -> str:
        return f"\t.{self.text}"

    def display(self, full_name: bool = False) -> str:
        return f"\t.{contents(self.text, full_name)}"


@dataclass(frozen=True)
class Instruction:
    """Represent one instruction line, or a ``#`` comment line in code."""

    mnemonic: str
    args: str | None = None

    def __str__(self) -> str:
        if self.args is None:
            return f"\t{self.mnemonic}"
        return f"\t{self.mnemonic}\t{self.args}"

    def display(self, full_name: bool = False) -> str:
        if self.args is None:
            return f"\t{self.mnemonic}"
        return f"\t{self.mnemonic}\t{contents(self.args, full_name)}"


@dataclass(frozen=True)
class Dunno:
    """Represent a line that matches no other statement class."""

    text: str

    def __str__(self) -> str:
        return self.text

    def display(self, full_name: bool = False) -> str:
        return contents(self.text, full_name)


@dataclass(frozen=True)
class Nothing:
    """Represent a blank line."""

    def __str__(self) -> str:
        return ""

    def display(self, full_name: bool = False) -> str:
        return ""


Directive = (
    FileDirective
    | LocDirective
    | SectionStart
    | SetDirective
    | SubsectionsViaSym
    | GenericDirective
)
Statement = Label | Directive | Instruction | Dunno | Nothing

DIRECTIVE_TYPES = (
    FileDirective,
    LocDirective,
    SectionStart,
    SetDirective,
    SubsectionsViaSym,
    GenericDirective,
)


def split_lines(text: str) -> list[str]:
    """Split input into lines the same way the parser does.

    A trailing newline does not produce an extra empty line and carriage
    returns before the newline are dropped.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_file(text: str) -> list[Statement]:
    """Parse a whole compiler output file.

    Args:
        text: File contents.

    Returns:
        One statement per input line, in input order.

    Raises:
        ParseError: If a line cannot belong to compiler-emitted text.
    """
    statements: list[Statement] = []
    offset = 0
    for raw_line in text.split("\n"):
        if _UNPARSEABLE_RE.search(raw_line):
            leftovers = text[offset:]
            logger.warning(
                f"Parse stopped on an unparseable line (line={len(statements) + 1})"
            )
            raise ParseError(leftovers)
        offset += len(raw_line) + 1
    for line in split_lines(text):
        statements.append(parse_statement(line))
    return statements


def parse_statement(line: str) -> Statement:
    """Parse one line (without its newline) into a statement."""
    match = _LABEL_RE.match(line)
    if match:
        label_id = match.group(1) or match.group(2)
        return Label(id=label_id, kind=label_kind(label_id), comment=match.group(3))

    directive = _parse_directive(line)
    if directive is not None:
        return directive

    match = _SHARP_RE.match(line)
    if match:
        return Instruction(mnemonic=match.group(1))
    match = _INSTRUCTION_RE.match(line)
    if match:
        return Instruction(mnemonic=match.group(1), args=match.group(2))

    if not line.strip():
        return Nothing()
    return Dunno(text=line)


def _parse_directive(line: str) -> Directive | None:
    match = _FILE_RE.match(line)
    if match:
        return FileDirective(
            index=int(match.group(1)),
            path=match.group(2),
            name=match.group(3),
            md5=match.group(4),
        )
    match = _LOC_RE.match(line)
    if match:
        column = match.group(3)
        return LocDirective(
            file=int(match.group(1)),
            line=int(match.group(2)),
            column=int(column) if column is not None else None,
            extra=match.group(4),
        )
    match = _SET_RE.match(line)
    if match:
        return SetDirective(name=match.group(1), value=match.group(2))
    if _SSVS_RE.match(line):
        return SubsectionsViaSym()
    match = _SECTION_RE.match(line)
    if match:
        return SectionStart(name=match.group(1))
    match = _GENERIC_RE.match(line)
    if match:
        return GenericDirective(text=match.group(1))
    return None


def is_section_start(statement: Statement) -> bool:
    return isinstance(statement, SectionStart)


def is_global(statement: Statement) -> bool:
    """Check for a ``.globl``/``.global`` symbol declaration."""
    if not isinstance(statement, GenericDirective):
        return False
    keyword = statement.text.split(maxsplit=1)[0]
    return keyword in {"globl", "global"}


def is_end_of_fn(statement: Statement) -> bool:
    """Check for ``.cfi_endproc`` or a ``Lfunc_end`` label."""
    if isinstance(statement, GenericDirective):
        return statement.text == "cfi_endproc"
    if isinstance(statement, Label):
        return statement.id.lstrip(".").startswith("Lfunc_end")
    return False
