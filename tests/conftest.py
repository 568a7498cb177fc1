# tests/conftest.py
"""
Shared helpers for the blazer test-suite.

Syntax trees are built by hand with the ``make_*`` helpers so detector
tests do not depend on the Go parser; ``go_project`` and ``make_fake_compiler``
lay out a throw-away Go module and a stand-in compiler that replays a
canned diagnostic stream on stderr.
"""

from __future__ import annotations

import logging
import shlex
import sys
import textwrap
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from blazer.syntax import NodeKind, SourceFile, SyntaxNode


# ═════════════════════════════════════════════════════════════════════════
#  SYNTAX NODE HELPERS
# ═════════════════════════════════════════════════════════════════════════

def make_node(kind: NodeKind, start: int, end: Optional[int] = None, *children: SyntaxNode,
              name: str = "") -> SyntaxNode:
    return SyntaxNode(
        kind=kind,
        start_line=start,
        end_line=start if end is None else end,
        name=name,
        children=list(children),
    )


def make_call(line: int) -> SyntaxNode:
    return make_node(NodeKind.CALL, line)


def make_return(line: int) -> SyntaxNode:
    return make_node(NodeKind.RETURN, line)


def make_assign(line: int) -> SyntaxNode:
    """A pure assignment: only OTHER nodes."""
    return make_node(
        NodeKind.OTHER, line, line,
        make_node(NodeKind.OTHER, line),
        make_node(NodeKind.OTHER, line),
    )


def make_if(start: int, end: int, *statements: SyntaxNode,
            condition: Optional[SyntaxNode] = None,
            alternative: Optional[SyntaxNode] = None) -> SyntaxNode:
    """An ``if`` whose consequence block spans ``start..end``."""
    cond = condition or make_node(NodeKind.OTHER, start)
    block = make_node(NodeKind.OTHER, start, end, *statements)
    node = make_node(NodeKind.CONDITIONAL, start, end, cond, block)
    node.body.append(block)
    if alternative is not None:
        node.children.append(alternative)
        node.body.append(alternative)
        node.end_line = max(node.end_line, alternative.end_line)
    return node


def make_func(name: str, start: int, end: int, *statements: SyntaxNode) -> SyntaxNode:
    block = make_node(NodeKind.OTHER, start, end, *statements)
    return make_node(NodeKind.FUNCTION, start, end, block, name=name)


def make_source(path: str, *decls: SyntaxNode, relative_path: Optional[str] = None,
                suppressed: Iterable[int] = ()) -> SourceFile:
    end = max((d.end_line for d in decls), default=1)
    return SourceFile(
        path=path,
        relative_path=relative_path if relative_path is not None else path.lstrip("/"),
        root=make_node(NodeKind.OTHER, 1, end, *decls),
        suppressed_lines=frozenset(suppressed),
    )


# ═════════════════════════════════════════════════════════════════════════
#  GO PROJECT / FAKE COMPILER
# ═════════════════════════════════════════════════════════════════════════

# One ``if`` on lines 3-7 whose body calls g().
SINGLE_IF_SOURCE = textwrap.dedent("""\
    package a
    func f(x int) {
    \tif x > 0 {
    \t\tg()
    \t\tg()
    \t\tg()
    \t}
    }
    func g() {}
""")

_FAKE_COMPILER = textwrap.dedent("""\
    import sys
    with open(sys.argv[1], encoding="utf-8") as fh:
        sys.stderr.write(fh.read())
    sys.stdout.write("ok\\tfake\\n")
    sys.exit(int(sys.argv[2]))
""")


def write_go_project(root: Path, files: Dict[str, str]) -> Path:
    for relative, text in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return root


def make_fake_compiler(bin_dir: Path, lines: Sequence[str], exit_code: int = 0) -> Tuple[str, ...]:
    """Return a command that writes *lines* to stderr and exits with *exit_code*."""
    bin_dir.mkdir(parents=True, exist_ok=True)
    script = bin_dir / "fake_go.py"
    script.write_text(_FAKE_COMPILER, encoding="utf-8")
    stream = bin_dir / "stream.txt"
    stream.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return (sys.executable, str(script), str(stream), str(exit_code))


def command_string(command: Sequence[str]) -> str:
    return shlex.join(command)


@pytest.fixture
def go_project(tmp_path: Path) -> Path:
    """A module directory holding ``a.go`` with :data:`SINGLE_IF_SOURCE`."""
    return write_go_project(tmp_path / "proj", {"a.go": SINGLE_IF_SOURCE})


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    return tmp_path / "bin"


def asm_line(path: str, line: int, text: str = "MOVQ\tAX, BX") -> str:
    """A line in the shape printed by ``go build -gcflags -S``."""
    return f"\t0x0000 00000 ({path}:{line})\t{text}"


def asm_lines(path: str, lines: Iterable[int]) -> List[str]:
    return [asm_line(path, n) for n in lines]


@pytest.fixture(autouse=True)
def _reset_cli_logging():
    """Drop the handler the CLI installs so it never outlives a test's capture."""
    yield
    logger = logging.getLogger("blazer")
    for handler in list(logger.handlers):
        if getattr(handler, "_blazer_cli", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
