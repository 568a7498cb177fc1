#!/usr/bin/env python3
"""
blazer/reporter.py
══════════════════

Finding output.

Output formats
──────────────
  • Plain    : one log line per finding (default when not a TTY)
                 function=<name> file=<path> line=<startLine>
  • Terminal : colourful rendering with the offending source line,
               followed by the plain line dimmed

Usage
─────
    with Reporter() as rep:
        for finding in findings:
            rep.report(finding)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, TextIO, Union

from termcolor import colored

from blazer.detector import Finding

ERROR_ID = "eliminatedBranch"
MESSAGE = "branch with calls or returns produced no machine code"


# ═════════════════════════════════════════════════════════════════════════
#  STATISTICS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class ReporterStats:
    """Counts of what was reported."""
    findings: int = 0
    files: Set[str] = field(default_factory=set)

    def record(self, finding: Finding) -> None:
        self.findings += 1
        self.files.add(finding.file)

    def summary_line(self) -> str:
        if not self.findings:
            return "no eliminated branches found"
        plural = "es" if self.findings != 1 else ""
        return (
            f"{self.findings} eliminated branch{plural} in "
            f"{len(self.files)} file{'s' if len(self.files) != 1 else ''}"
        )


# ═════════════════════════════════════════════════════════════════════════
#  TERMINAL RENDERER
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Render findings to a terminal with colours."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._sources: Dict[str, List[str]] = {}

    def render(self, finding: Finding) -> None:
        lines: List[str] = []

        header = colored(f"warning[{ERROR_ID}]", "yellow", attrs=["bold"])
        lines.append(f"{header}: {colored(MESSAGE, 'white', attrs=['bold'])}")

        arrow = colored("-->", "blue", attrs=["bold"])
        lines.append(f"  {arrow} {finding.file}:{finding.line}")

        source = self._source_line(finding.file, finding.line)
        if source is not None:
            gutter = colored(str(finding.line), "blue", attrs=["bold"])
            pipe = colored("|", "blue", attrs=["bold"])
            lines.append(f" {gutter} {pipe} {source}")

        prefix = colored("note", "cyan", attrs=["bold"])
        lines.append(f"  = {prefix}: in function {finding.function}")
        lines.append(colored(finding.log_line(), attrs=["dark"]))

        lines.append("")
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()

    def _source_line(self, path: str, line: int) -> Optional[str]:
        """Return the source text at *line*, or None if unreadable."""
        if path not in self._sources:
            try:
                with open(path, "r", encoding="utf-8", errors="replace") as fh:
                    self._sources[path] = fh.read().splitlines()
            except OSError:
                self._sources[path] = []
        text = self._sources[path]
        if 1 <= line <= len(text):
            return text[line - 1].rstrip()
        return None


# ═════════════════════════════════════════════════════════════════════════
#  PLAIN RENDERER
# ═════════════════════════════════════════════════════════════════════════

class _PlainRenderer:
    """Non-coloured renderer, one line per finding."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, finding: Finding) -> None:
        self._stream.write(finding.log_line() + "\n")
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Routes findings to the selected renderer and counts them.

    Parameters
    ----------
    stream:
        Destination of the findings (default ``sys.stdout``).
    colour:
        Force colour on or off; ``None`` enables it when *stream* is a TTY.
    summary_stream:
        Where :meth:`finish` writes the summary (default ``sys.stderr``).
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        colour: Optional[bool] = None,
        summary_stream: Optional[TextIO] = None,
    ) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._summary_stream = summary_stream if summary_stream is not None else sys.stderr
        self.stats = ReporterStats()

        use_colour = colour if colour is not None else (
            hasattr(self._stream, "isatty") and self._stream.isatty()
        )
        if use_colour:
            self._renderer: Union[_TerminalRenderer, _PlainRenderer] = _TerminalRenderer(
                self._stream
            )
        else:
            self._renderer = _PlainRenderer(self._stream)

    @property
    def coloured(self) -> bool:
        return isinstance(self._renderer, _TerminalRenderer)

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self.finish()

    def report(self, finding: Finding) -> None:
        self.stats.record(finding)
        self._renderer.render(finding)

    def finish(self) -> ReporterStats:
        """Print the summary line and return the final stats."""
        summary = self.stats.summary_line()
        if self.coloured:
            colour = "yellow" if self.stats.findings else "green"
            line = colored(f"  ╰─ {summary}", colour, attrs=["bold"])
            self._summary_stream.write(line + "\n")
        else:
            self._summary_stream.write(f"  {summary}\n")
        self._summary_stream.flush()
        return self.stats


__all__ = ["Reporter", "ReporterStats", "ERROR_ID", "MESSAGE"]
