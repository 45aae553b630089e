# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Renderer implementations for the supported listing kinds."""

from showasm.renderers.asm import AsmRenderer
from showasm.renderers.mca import McaError, McaRenderer
from showasm.renderers.mir import MirRenderer

__all__ = ["AsmRenderer", "McaError", "McaRenderer", "MirRenderer"]
