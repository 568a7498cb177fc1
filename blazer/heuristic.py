"""Effect heuristic: does a conditional body look like it does something?"""

from __future__ import annotations

from typing import FrozenSet, Iterable

from blazer.syntax import NodeKind, SyntaxNode

# Calls (including builtins such as panic) and explicit returns are what a
# reader takes as proof that a branch matters.
EFFECT_KINDS: FrozenSet[NodeKind] = frozenset({NodeKind.CALL, NodeKind.RETURN})


def is_complex(roots: Iterable[SyntaxNode]) -> bool:
    """True if any node under *roots*, at any depth, is a call or a return."""
    for root in roots:
        for node in root.walk():
            if node.kind in EFFECT_KINDS:
                return True
    return False


def conditional_is_complex(node: SyntaxNode) -> bool:
    """Apply :func:`is_complex` to the body of a conditional statement."""
    return is_complex(node.body)


__all__ = ["EFFECT_KINDS", "is_complex", "conditional_is_complex"]
