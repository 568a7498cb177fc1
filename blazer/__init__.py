"""blazer — find Go branches the compiler optimised away.

A branch whose body calls a function or returns looks load-bearing to a
reader.  When the Go compiler emits no machine code for any of its lines,
the branch can never run, and blazer reports it.

Submodules
----------
line_index
    Parses the compiler's assembly listing (``-gcflags -S``) into a
    per-file index of lines that produced code.

syntax
    Go syntax forest built with tree-sitter: ``SyntaxNode``,
    ``SourceFile``, ``SyntaxForest`` and ``load_forest``.

heuristic
    Decides whether a conditional body looks effectful.

detector
    ``EliminationDetector``, ``Finding`` and inline suppressions.

compiler
    Runs the compiler while a reader thread drains its error stream.

pipeline
    Wires the above into one run.

reporter, main
    Finding output and the ``blazer`` command line.

Usage
-----
Command-line::

    blazer -C path/to/module -v

Programmatic::

    from blazer.config import BlazerConfig
    from blazer.pipeline import run

    result = run(BlazerConfig(working_dir="path/to/module"))
    for finding in result.findings:
        print(finding.log_line())
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "compiler",
    "config",
    "detector",
    "errors",
    "heuristic",
    "line_index",
    "main",
    "pipeline",
    "reporter",
    "syntax",
]
