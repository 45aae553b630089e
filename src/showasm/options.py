# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Rendering and tool configuration."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Format:
    """Control how listings are rendered.

    Attributes:
        verbosity: 0 is quiet; above 0 adds diagnostics, above 2 adds a raw
            per-statement trace.
        rust: Interleave source lines resolved from ``.loc`` directives.
        simplify: Drop directives and unrecognized lines.
        keep_labels: Keep every local and temporary label.
        full_name: Show symbols with their disambiguation hash.
    """

    verbosity: int = 0
    rust: bool = False
    simplify: bool = False
    keep_labels: bool = False
    full_name: bool = False


@dataclass(frozen=True)
class McaOptions:
    """Options forwarded to ``llvm-mca``.

    Attributes:
        args: Extra command line arguments.
        intel: Feed the input as Intel syntax.
        triple: Target triple passed as ``--mtriple``.
        target_cpu: Target CPU passed as ``--mcpu``.
    """

    args: list[str] = field(default_factory=list)
    intel: bool = False
    triple: str | None = None
    target_cpu: str | None = None
