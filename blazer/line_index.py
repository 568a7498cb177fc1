"""
blazer/line_index.py
════════════════════

Index of source lines that produced machine code.

The Go compiler, run with ``-gcflags -S``, prints one assembly line per
emitted instruction on its error stream, each tagged with the source
position it came from::

    0x0012 00018 (/home/me/proj/pkg/a.go:14)	CALL	pkg.f(SB)

Only positions inside the project directory matter.  The builder keeps
``file → line numbers`` for those and, once the stream is closed,
freezes them into a :class:`DiagnosticLineIndex` whose per-file
sequences are sorted and duplicate-free.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from blazer.errors import MalformedDiagnosticLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticRecord:
    """One ``(file, line)`` position read from the diagnostic stream."""
    path: str
    line: int


def parse_diagnostic_line(text: str, anchor: str) -> Optional[DiagnosticRecord]:
    """
    Extract the project position from one diagnostic line.

    Parameters
    ----------
    text:
        Raw line, with or without its trailing newline.
    anchor:
        Absolute working directory.  Lines that do not contain it are
        irrelevant.

    Returns
    -------
    DiagnosticRecord or None
        ``None`` when the line does not mention the project at all.

    Raises
    ------
    MalformedDiagnosticLine
        The line mentions the project but the ``path:line<c>\\t`` shape
        is broken, or the line field is not a positive decimal.
    """
    start = text.find(anchor)
    if start == -1:
        return None

    colon = text.find(":", start + len(anchor))
    if colon == -1:
        raise MalformedDiagnosticLine(text, "no ':' after file path")
    tab = text.find("\t", colon + 1)
    if tab == -1:
        raise MalformedDiagnosticLine(text, "no tab after line number")

    # The character right before the tab closes the position: ')' in
    # "(file.go:12)\t" or ':' in "file.go:12:\t".
    number = text[colon + 1:tab - 1]
    if not (number.isascii() and number.isdigit()):
        raise MalformedDiagnosticLine(text, f"line number {number!r} is not an integer")
    line = int(number)
    if line < 1:
        raise MalformedDiagnosticLine(text, f"line number {line} is not positive")
    return DiagnosticRecord(path=text[start:colon], line=line)


class DiagnosticLineIndex:
    """
    Read-only ``file → emitted lines`` mapping.

    Every sequence is strictly increasing.  Instances are produced by
    :meth:`LineIndexBuilder.build` (or :meth:`from_mapping` in tests) and
    never change afterwards, so the detection phase needs no locking.
    """

    __slots__ = ("_lines",)

    def __init__(self, lines: Mapping[str, Tuple[int, ...]]) -> None:
        self._lines: Dict[str, Tuple[int, ...]] = dict(lines)

    @classmethod
    def from_mapping(cls, lines: Mapping[str, Iterable[int]]) -> DiagnosticLineIndex:
        """Build an index from unsorted, possibly repeated line numbers."""
        return cls({path: _sorted_unique(numbers) for path, numbers in lines.items()})

    def lines_for(self, path: str) -> Optional[Tuple[int, ...]]:
        """Emitted lines of *path*, or ``None`` if it produced no code at all."""
        return self._lines.get(path)

    @property
    def files(self) -> List[str]:
        return sorted(self._lines)

    def __contains__(self, path: object) -> bool:
        return path in self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def __repr__(self) -> str:
        total = sum(len(v) for v in self._lines.values())
        return f"<DiagnosticLineIndex files={len(self._lines)} lines={total}>"


class LineIndexBuilder:
    """
    Accumulates diagnostic lines in arrival order.

    Usage::

        builder = LineIndexBuilder(anchor="/home/me/proj")
        for text in stream:
            builder.feed(text)
        index = builder.build()
    """

    def __init__(self, anchor: str) -> None:
        if not anchor:
            raise ValueError("anchor must be a non-empty directory path")
        self.anchor = anchor
        self._collected: Dict[str, List[int]] = defaultdict(list)
        self.lines_seen = 0
        self.records = 0
        self.malformed = 0

    def feed(self, text: str) -> None:
        """Consume one raw line; malformed lines are logged and dropped."""
        self.lines_seen += 1
        try:
            record = parse_diagnostic_line(text.rstrip("\r\n"), self.anchor)
        except MalformedDiagnosticLine as exc:
            self.malformed += 1
            logger.debug("Skipping diagnostic line: %s", exc)
            return
        if record is None:
            return
        self.records += 1
        self._collected[record.path].append(record.line)

    def feed_all(self, lines: Iterable[str]) -> LineIndexBuilder:
        for text in lines:
            self.feed(text)
        return self

    def build(self) -> DiagnosticLineIndex:
        """Sort and deduplicate every file's lines and freeze the result."""
        index = DiagnosticLineIndex.from_mapping(self._collected)
        logger.info(
            "Indexed %d position(s) in %d file(s) from %d diagnostic line(s) "
            "(%d malformed)",
            self.records, len(index), self.lines_seen, self.malformed,
        )
        return index


def _sorted_unique(numbers: Iterable[int]) -> Tuple[int, ...]:
    result: List[int] = []
    for n in sorted(numbers):
        if not result or result[-1] != n:
            result.append(n)
    return tuple(result)


__all__ = [
    "DiagnosticRecord",
    "DiagnosticLineIndex",
    "LineIndexBuilder",
    "parse_diagnostic_line",
]
