# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Renderer contract shared by direct output and the IPC server."""

import logging
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Render a range of one parsed file."""

    def render_range(self, span: range | None, writer: TextIO) -> None:
        """Write the listing for ``span`` into ``writer``.

        Args:
            span: Half-open statement range; ``None`` renders everything.
            writer: Text sink.
        """


def write_listing(renderer: Renderer, span: range | None, writer: TextIO) -> bool:
    """Render into ``writer`` and flush it.

    Args:
        renderer: Renderer for the parsed file.
        span: Range to render; ``None`` renders everything.
        writer: Output stream, usually stdout.

    Returns:
        ``False`` when the consumer closed the stream before the end.
    """
    try:
        renderer.render_range(span, writer)
        writer.flush()
    except BrokenPipeError:
        logger.debug("Output stream closed by consumer")
        return False
    return True
