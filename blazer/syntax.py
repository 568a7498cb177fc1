"""
blazer/syntax.py
════════════════

Syntax forest for a Go project.

The detector only needs a handful of facts about each node: its kind,
the lines it spans, its children and, for conditionals, which children
form the body.  Go sources are parsed with tree-sitter and converted
into owned :class:`SyntaxNode` trees that carry exactly that.

Project discovery follows the Go tool's package rules: ``vendor`` and
``testdata`` directories are skipped, as is anything whose name starts
with ``.`` or ``_``.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

import tree_sitter_go as tsgo
from tree_sitter import Language, Node, Parser

from blazer.errors import SyntaxForestError

logger = logging.getLogger(__name__)


class NodeKind(enum.Enum):
    FUNCTION = "function"
    CONDITIONAL = "conditional"
    CALL = "call"
    RETURN = "return"
    OTHER = "other"


@dataclass(eq=False)
class SyntaxNode:
    """
    A node of the syntax forest.

    ``start_line``/``end_line`` are 1-based and inclusive.  ``body`` is
    only populated for conditionals and holds the nodes (already present
    in ``children``) that run when a branch is taken.
    """
    kind: NodeKind
    start_line: int
    end_line: int
    name: str = ""
    children: List[SyntaxNode] = field(default_factory=list)
    body: List[SyntaxNode] = field(default_factory=list)

    def walk(self) -> Iterator[SyntaxNode]:
        """Pre-order traversal of this node and all its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __repr__(self) -> str:
        label = f" {self.name}" if self.name else ""
        return f"<SyntaxNode {self.kind.value}{label} {self.start_line}-{self.end_line}>"


@dataclass
class SourceFile:
    """One parsed source file."""
    path: str
    relative_path: str
    root: SyntaxNode
    suppressed_lines: FrozenSet[int] = frozenset()
    has_errors: bool = False


@dataclass
class SyntaxForest:
    """All source files of a project, in path order."""
    root_dir: str
    files: List[SourceFile] = field(default_factory=list)

    def __iter__(self) -> Iterator[SourceFile]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)


# ═════════════════════════════════════════════════════════════════════════
#  TREE-SITTER CONVERSION
# ═════════════════════════════════════════════════════════════════════════

_GO_LANGUAGE = Language(tsgo.language())

_KIND_BY_TYPE: Dict[str, NodeKind] = {
    "function_declaration": NodeKind.FUNCTION,
    "method_declaration": NodeKind.FUNCTION,
    "if_statement": NodeKind.CONDITIONAL,
    "call_expression": NodeKind.CALL,
    "return_statement": NodeKind.RETURN,
}

_BODY_FIELDS: Tuple[str, ...] = ("consequence", "alternative")


def _node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _make_node(ts_node: Node) -> SyntaxNode:
    kind = _KIND_BY_TYPE.get(ts_node.type, NodeKind.OTHER)
    name = ""
    if kind is NodeKind.FUNCTION:
        name = _node_text(ts_node.child_by_field_name("name"))
    return SyntaxNode(
        kind=kind,
        start_line=ts_node.start_point[0] + 1,
        end_line=ts_node.end_point[0] + 1,
        name=name,
    )


def convert_tree(ts_root: Node, suppression_marker: str = "") -> Tuple[SyntaxNode, FrozenSet[int]]:
    """
    Convert a tree-sitter tree into a :class:`SyntaxNode` tree.

    Comments are not kept as nodes; when *suppression_marker* is set,
    the lines of comments containing it are returned alongside the root.
    """
    root = _make_node(ts_root)
    suppressed: List[int] = []
    stack: List[Tuple[Node, SyntaxNode]] = [(ts_root, root)]
    while stack:
        ts_node, node = stack.pop()
        body_ids = set()
        if node.kind is NodeKind.CONDITIONAL:
            for field_name in _BODY_FIELDS:
                part = ts_node.child_by_field_name(field_name)
                if part is not None:
                    body_ids.add(part.id)
        for ts_child in ts_node.named_children:
            if ts_child.type == "comment":
                if suppression_marker and suppression_marker in _node_text(ts_child):
                    suppressed.append(ts_child.start_point[0] + 1)
                continue
            child = _make_node(ts_child)
            node.children.append(child)
            if ts_child.id in body_ids:
                node.body.append(child)
            stack.append((ts_child, child))
    return root, frozenset(suppressed)


def parse_go_source(
    source: bytes,
    path: str,
    relative_path: Optional[str] = None,
    suppression_marker: str = "",
) -> SourceFile:
    """Parse one Go file held in memory."""
    tree = Parser(_GO_LANGUAGE).parse(source)
    root, suppressed = convert_tree(tree.root_node, suppression_marker)
    return SourceFile(
        path=path,
        relative_path=relative_path if relative_path is not None else path,
        root=root,
        suppressed_lines=suppressed,
        has_errors=tree.root_node.has_error,
    )


# ═════════════════════════════════════════════════════════════════════════
#  PROJECT LOADING
# ═════════════════════════════════════════════════════════════════════════

_SKIPPED_DIRS: FrozenSet[str] = frozenset({"vendor", "testdata"})


def _ignored_name(name: str) -> bool:
    return name.startswith(".") or name.startswith("_")


def discover_go_files(root_dir: str, include_tests: bool = True) -> List[str]:
    """Return the project's Go source files as sorted relative paths."""
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = sorted(
            d for d in dirnames if d not in _SKIPPED_DIRS and not _ignored_name(d)
        )
        for filename in filenames:
            if not filename.endswith(".go") or _ignored_name(filename):
                continue
            if not include_tests and filename.endswith("_test.go"):
                continue
            full = os.path.join(dirpath, filename)
            found.append(os.path.relpath(full, root_dir))
    return sorted(found)


def load_forest(
    root_dir: str,
    include_tests: bool = True,
    suppression_marker: str = "",
    paths: Optional[Sequence[str]] = None,
) -> SyntaxForest:
    """
    Parse every Go file of the project rooted at *root_dir*.

    File paths in the forest are ``os.path.join(root_dir, relative)``
    without resolving symlinks, so they match the positions the compiler
    prints when it runs with the same working directory.

    Raises
    ------
    SyntaxForestError
        *root_dir* is not a directory or a source file cannot be read.
    """
    if not os.path.isdir(root_dir):
        raise SyntaxForestError("not a directory", root_dir)
    relative_paths = list(paths) if paths is not None else discover_go_files(
        root_dir, include_tests=include_tests
    )
    forest = SyntaxForest(root_dir=root_dir)
    for relative in relative_paths:
        full = os.path.join(root_dir, relative)
        try:
            with open(full, "rb") as fh:
                source = fh.read()
        except OSError as exc:
            raise SyntaxForestError(exc.strerror or str(exc), full) from exc
        parsed = parse_go_source(
            source, full, relative_path=relative, suppression_marker=suppression_marker
        )
        if parsed.has_errors:
            logger.warning("%s: syntax errors, analysing the recoverable tree", relative)
        forest.files.append(parsed)
    logger.info("Loaded %d Go file(s) from %s", len(forest), root_dir)
    return forest


__all__ = [
    "NodeKind",
    "SyntaxNode",
    "SourceFile",
    "SyntaxForest",
    "convert_tree",
    "parse_go_source",
    "discover_go_files",
    "load_forest",
]
