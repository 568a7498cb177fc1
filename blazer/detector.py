"""
blazer/detector.py
══════════════════

Correlates the syntax forest with the emitted-line index.

A conditional is reported when its body looks effectful (it contains a
call or a return) yet the compiler emitted no code for any line of the
statement.  The walk is top-down with an explicit "do not descend"
decision: a conditional judged trivial hides everything beneath it,
including nested conditionals that would be complex on their own.

Emitted code anywhere inside ``[start, end]`` counts as retention, even
if it was inlined from elsewhere.  The detector therefore prefers false
negatives over false positives.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from blazer.heuristic import conditional_is_complex
from blazer.line_index import DiagnosticLineIndex
from blazer.syntax import NodeKind, SourceFile, SyntaxNode

logger = logging.getLogger(__name__)

# Reported as the enclosing function of conditionals outside any function
# declaration (e.g. in a package-level function literal).
PACKAGE_SCOPE = "<package>"


@dataclass(frozen=True)
class Finding:
    """A complex conditional for which the compiler emitted no code."""
    function: str
    file: str
    line: int
    end_line: int = 0

    def log_line(self) -> str:
        return f"function={self.function} file={self.file} line={self.line}"

    def __str__(self) -> str:
        return self.log_line()


def has_emitted_code(lines: Sequence[int], start: int, end: int) -> bool:
    """
    True if the sorted *lines* contain a value in ``[start, end]``.

    Uses the insertion point of *start*: emitted code need not begin on
    the statement's first line.
    """
    position = bisect_left(lines, start)
    return position < len(lines) and lines[position] <= end


class SuppressionManager:
    """
    Inline suppressions read from comments.

    A conditional is suppressed when the marker comment sits on its
    first line or on the line right above it.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def is_suppressed(self, source: SourceFile, line: int) -> bool:
        if not self.enabled or not source.suppressed_lines:
            return False
        return any((line - offset) in source.suppressed_lines for offset in (0, 1))


@dataclass
class DetectorStats:
    files_scanned: int = 0
    files_generated: int = 0
    files_unanalyzable: int = 0
    conditionals_checked: int = 0
    conditionals_trivial: int = 0
    conditionals_suppressed: int = 0
    findings: int = 0

    def summary_line(self) -> str:
        return (
            f"{self.files_scanned} file(s) scanned, "
            f"{self.files_generated} generated, "
            f"{self.files_unanalyzable} without emitted code; "
            f"{self.conditionals_checked} complex conditional(s) checked, "
            f"{self.conditionals_trivial} trivial, "
            f"{self.conditionals_suppressed} suppressed, "
            f"{self.findings} finding(s)"
        )


class EliminationDetector:
    """
    Finds effectful-looking conditionals that produced no machine code.

    Parameters
    ----------
    index:
        Finalised emitted-line index; only read.
    generated_marker:
        Case-sensitive substring of a file's absolute path marking it as
        generated.  Generated files are never traversed.
    suppressions:
        Inline suppression policy; ``None`` disables suppressions.
    """

    def __init__(
        self,
        index: DiagnosticLineIndex,
        generated_marker: str = "generated",
        suppressions: Optional[SuppressionManager] = None,
    ) -> None:
        self.index = index
        self.generated_marker = generated_marker
        self.suppressions = suppressions or SuppressionManager(enabled=False)
        self.stats = DetectorStats()

    def is_generated(self, source: SourceFile) -> bool:
        return bool(self.generated_marker) and self.generated_marker in source.path

    def detect(self, files: Iterable[SourceFile]) -> Iterator[Finding]:
        """Yield findings for every file, in file then source order."""
        for source in files:
            yield from self.detect_file(source)

    def detect_file(self, source: SourceFile) -> List[Finding]:
        if self.is_generated(source):
            self.stats.files_generated += 1
            logger.debug("%s: generated, skipped", source.relative_path)
            return []
        self.stats.files_scanned += 1
        lines = self.index.lines_for(source.path)
        if lines is None:
            self.stats.files_unanalyzable += 1
            logger.debug("%s: no emitted code, not analyzable", source.relative_path)
            return []

        findings: List[Finding] = []
        stack: List[Tuple[SyntaxNode, str]] = [(source.root, PACKAGE_SCOPE)]
        while stack:
            node, function = stack.pop()
            if node.kind is NodeKind.FUNCTION:
                function = node.name or function
            elif node.kind is NodeKind.CONDITIONAL:
                if not conditional_is_complex(node):
                    self.stats.conditionals_trivial += 1
                    continue
                finding = self._check(source, lines, node, function)
                if finding is not None:
                    findings.append(finding)
            stack.extend((child, function) for child in reversed(node.children))
        return findings

    def _check(
        self,
        source: SourceFile,
        lines: Sequence[int],
        node: SyntaxNode,
        function: str,
    ) -> Optional[Finding]:
        self.stats.conditionals_checked += 1
        if has_emitted_code(lines, node.start_line, node.end_line):
            return None
        if self.suppressions.is_suppressed(source, node.start_line):
            self.stats.conditionals_suppressed += 1
            logger.debug(
                "%s:%d: eliminated branch suppressed", source.relative_path, node.start_line
            )
            return None
        self.stats.findings += 1
        return Finding(
            function=function,
            file=source.path,
            line=node.start_line,
            end_line=node.end_line,
        )


__all__ = [
    "PACKAGE_SCOPE",
    "Finding",
    "SuppressionManager",
    "DetectorStats",
    "EliminationDetector",
    "has_emitted_code",
]
