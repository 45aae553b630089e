# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Exception hierarchy shared by the show-asm components."""


class ShowAsmError(RuntimeError):
    """Base exception for all show-asm failures."""
