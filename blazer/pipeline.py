"""
blazer/pipeline.py
══════════════════

One blazer run, end to end:

    compiler stderr ──► LineIndexBuilder ──► DiagnosticLineIndex ─┐
                                                                  ├─► EliminationDetector ──► findings
    Go sources ──────► load_forest ─────────► SyntaxForest ───────┘

The index is finalised only after the compiler's error stream reached
end of file and the process exited successfully; the forest is loaded
and walked afterwards, single-threaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from blazer.compiler import stream_diagnostics
from blazer.config import BlazerConfig
from blazer.detector import DetectorStats, EliminationDetector, Finding, SuppressionManager
from blazer.line_index import DiagnosticLineIndex, LineIndexBuilder
from blazer.syntax import SyntaxForest, load_forest

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Everything a run produced."""
    working_dir: str
    index: DiagnosticLineIndex
    findings: List[Finding] = field(default_factory=list)
    stats: DetectorStats = field(default_factory=DetectorStats)


def build_line_index(config: BlazerConfig, working_dir: str) -> DiagnosticLineIndex:
    """Run the compiler and index its diagnostic stream."""
    builder = LineIndexBuilder(anchor=working_dir)
    builder.feed_all(
        stream_diagnostics(config.command(), cwd=working_dir, timeout=config.timeout_seconds)
    )
    logger.info("Assembly information indexed, preparing it for queries")
    return builder.build()


def load_project(config: BlazerConfig, working_dir: str) -> SyntaxForest:
    return load_forest(
        working_dir,
        include_tests=config.include_tests,
        suppression_marker=config.suppression_marker,
    )


def run(
    config: BlazerConfig,
    on_finding: Optional[Callable[[Finding], None]] = None,
) -> RunResult:
    """
    Execute one run.

    Parameters
    ----------
    config:
        Run configuration; validated first.
    on_finding:
        Called with each finding as soon as it is detected.

    Raises
    ------
    SetupError
        Invalid configuration, unusable working directory, compiler
        not launchable, or syntax forest not loadable.
    CompilerError
        The compiler failed or timed out.  No finding is produced.
    """
    config.check()
    working_dir = config.resolve_working_dir()
    logger.info("Current working directory: %s", working_dir)

    index = build_line_index(config, working_dir)
    forest = load_project(config, working_dir)

    detector = EliminationDetector(
        index,
        generated_marker=config.generated_marker,
        suppressions=SuppressionManager(enabled=True),
    )
    result = RunResult(working_dir=working_dir, index=index, stats=detector.stats)
    for finding in detector.detect(forest):
        logger.info("The compiler removed this block: %s", finding.log_line())
        result.findings.append(finding)
        if on_finding is not None:
            on_finding(finding)
    logger.info("%s", detector.stats.summary_line())
    return result


__all__ = ["RunResult", "build_line_index", "load_project", "run"]
