# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Symbol demangling and label classification helpers."""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

LabelKind = Literal["global", "local", "temp", "unknown"]

# .Ltmp12, Ltmp3
_TEMP_LABEL = re.compile(r"\.?Ltmp\d+")

# .LBB0_1, .Lanon.fad58de7366495db4650cfefac2fcd61.1, and the undotted macOS
# forms LBB0_1, Ltmp0, Lloh0, Lfunc_end0, L__unnamed_1
_LOCAL_LABEL = re.compile(
    r"(?<![\w.$])(?:\.L[\w.$]*[\w$]|L(?:BB|tmp|loh|func_begin|func_end|exception|__unnamed_)\w*)"
)

# _ZN3foo3bar17h0123456789abcdefE, __ZN..E (macOS), _RNvCs..._3foo
_GLOBAL_LABEL = re.compile(r"_?_(?:ZN|R)[\w.$]+")

_LEGACY_HASH = re.compile(r"h[0-9a-f]{16}")

_ESCAPES: dict[str, str] = {
    "SP": "@",
    "BP": "*",
    "RF": "&",
    "LT": "<",
    "GT": ">",
    "LP": "(",
    "RP": ")",
    "C": ",",
}


@dataclass(frozen=True)
class Demangled:
    """Represent a successfully demangled symbol.

    Attributes:
        name: Display form without the disambiguation hash.
        hashed: Display form including the hash suffix when present.
        kind: Label kind of the raw symbol.
    """

    name: str
    hashed: str
    kind: LabelKind


def label_kind(label_id: str) -> LabelKind:
    """Classify a label by the naming conventions compilers use.

    Args:
        label_id: Raw label identifier without the trailing colon.

    Returns:
        The label kind.
    """
    if _TEMP_LABEL.fullmatch(label_id):
        return "temp"
    if _LOCAL_LABEL.fullmatch(label_id):
        return "local"
    if _GLOBAL_LABEL.fullmatch(label_id):
        return "global"
    return "unknown"


def local_labels(text: str) -> Iterator[str]:
    """Yield every local-label-shaped substring of ``text``."""
    for match in _LOCAL_LABEL.finditer(text):
        yield match.group(0)


def demangled(symbol: str) -> Demangled | None:
    """Demangle a Rust legacy (``_ZN...E``) symbol.

    Args:
        symbol: Raw symbol, optionally with the macOS extra underscore and an
            LLVM ``.llvm.NNN`` style suffix.

    Returns:
        Demangled forms, or ``None`` when ``symbol`` is not a mangled name.
    """
    if symbol.startswith("__ZN"):
        inner = symbol[4:]
    elif symbol.startswith("_ZN"):
        inner = symbol[3:]
    else:
        return None

    parts: list[str] = []
    pos = 0
    while pos < len(inner) and inner[pos] != "E":
        digits = re.match(r"[1-9]\d*", inner[pos:])
        if digits is None:
            return None
        size = int(digits.group(0))
        pos += digits.end()
        part = inner[pos : pos + size]
        if len(part) != size:
            return None
        parts.append(part)
        pos += size

    if pos >= len(inner) or not parts:
        return None
    suffix = inner[pos + 1 :]
    if suffix and not suffix.startswith("."):
        return None

    hash_part = None
    if len(parts) > 1 and _LEGACY_HASH.fullmatch(parts[-1]):
        hash_part = parts.pop()

    name = "::".join(_unescape(part) for part in parts)
    hashed = f"{name}::{hash_part}" if hash_part else name
    return Demangled(name=name, hashed=hashed, kind=label_kind(symbol))


def contents(text: str, full_name: bool) -> str:
    """Replace every mangled symbol in ``text`` with its demangled form.

    Args:
        text: Arbitrary text, usually an instruction argument.
        full_name: Keep the hash suffix in the replacement.

    Returns:
        Text with demangled symbols; unknown symbols are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        result = demangled(match.group(0))
        if result is None:
            return match.group(0)
        return result.hashed if full_name else result.name

    return _GLOBAL_LABEL.sub(_replace, text)


def _unescape(part: str) -> str:
    if part.startswith("_$"):
        part = part[1:]
    out: list[str] = []
    pos = 0
    while pos < len(part):
        if part.startswith("..", pos):
            out.append("::")
            pos += 2
            continue
        if part[pos] == "$":
            end = part.find("$", pos + 1)
            if end != -1:
                decoded = _decode_escape(part[pos + 1 : end])
                if decoded is not None:
                    out.append(decoded)
                    pos = end + 1
                    continue
        out.append(part[pos])
        pos += 1
    return "".join(out)


def _decode_escape(code: str) -> str | None:
    if code in _ESCAPES:
        return _ESCAPES[code]
    if len(code) > 1 and code[0] == "u":
        try:
            return chr(int(code[1:], 16))
        except ValueError:
            return None
    return None
