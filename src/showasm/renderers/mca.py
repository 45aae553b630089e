# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Machine-code analysis renderer backed by ``llvm-mca``."""

import logging
import shlex
import subprocess
from collections.abc import Sequence
from typing import TextIO

from showasm.demangle import contents
from showasm.errors import ShowAsmError
from showasm.options import Format, McaOptions

logger = logging.getLogger(__name__)

MCA_BINARY = "llvm-mca"
_SKIPPED_DIRECTIVES = (".loc", ".file")


class McaError(ShowAsmError):
    """Represent a failure to run ``llvm-mca``."""


def build_mca_command(options: McaOptions) -> list[str]:
    """Build the ``llvm-mca`` command line.

    Args:
        options: Analysis options.

    Returns:
        Command and arguments.
    """
    cmd = [MCA_BINARY, *options.args]
    if options.triple:
        cmd.extend(["--mtriple", options.triple])
    if options.target_cpu:
        cmd.extend(["--mcpu", options.target_cpu])
    return cmd


def build_mca_input(lines: Sequence[str], intel: bool) -> str:
    """Prepare assembly text for ``llvm-mca``.

    Debug location and file directives are dropped and the procedure is
    closed with ``.cfi_endproc``.
    """
    out: list[str] = []
    if intel:
        out.append(".intel_syntax")
    for line in lines:
        stripped = line.strip()
        if stripped.startswith(_SKIPPED_DIRECTIVES):
            continue
        out.append(stripped)
    out.append(".cfi_endproc")
    return "\n".join(out) + "\n"


class McaRenderer:
    """Render machine-code analysis of raw file lines."""

    def __init__(self, lines: Sequence[str], fmt: Format, options: McaOptions) -> None:
        """Initialize the renderer.

        Args:
            lines: Raw input lines; statement indexes address them directly.
            fmt: Rendering options.
            options: Analysis tool options.
        """
        self._lines = lines
        self._fmt = fmt
        self._options = options

    def render_range(self, span: range | None, writer: TextIO) -> None:
        """Run ``llvm-mca`` over ``span`` and write its output.

        Raises:
            McaError: If the tool cannot be started or exits with failure.
        """
        lines = self._lines if span is None else self._lines[span.start : span.stop]
        cmd = build_mca_command(self._options)
        if self._fmt.verbosity >= 2:
            writer.write(f"running {shlex.join(cmd)}\n")

        try:
            result = subprocess.run(
                cmd,
                input=build_mca_input(lines, intel=self._options.intel),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            logger.warning(f"Failed to start {MCA_BINARY} (error={exc})")
            raise McaError(
                f"Failed to start {MCA_BINARY}, do you have it installed? "
                f"The error was: {exc}"
            ) from exc

        for line in result.stdout.splitlines():
            writer.write(f"{contents(line, self._fmt.full_name)}\n")
        for line in result.stderr.splitlines():
            writer.write(f"{line}\n")

        if result.returncode != 0:
            raise McaError(f"{MCA_BINARY} exited with status {result.returncode}")
