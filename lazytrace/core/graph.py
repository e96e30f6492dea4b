"""
Graph utilities for passes over traced IR.

Passes never mutate nodes. They rebuild the parts of the graph that change
through ``Node.clone``, which keeps each variant's scalar parameters and
recomputes the dag hash from the new operands.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Set

from .exceptions import InvalidArgumentError
from .node import Node, Operand, Value, as_value

logger = logging.getLogger(__name__)


def post_order(roots: Iterable[Node]) -> List[Node]:
    """
    Nodes reachable from ``roots``, every node after all of its operands.

    Iterative so that deep traces do not hit the recursion limit.
    """
    visited: Set[int] = set()
    order: List[Node] = []

    for root in roots:
        if id(root) in visited:
            continue
        stack = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if id(node) in visited:
                continue
            visited.add(id(node))
            stack.append((node, True))
            for value in reversed(node.operand_values):
                if id(value.node) not in visited:
                    stack.append((value.node, False))
    return order


def node_count(roots: Iterable[Node]) -> int:
    """Number of distinct node objects reachable from ``roots``."""
    return len(post_order(roots))


def replace_operands(node: Node, replacements: Mapping[int, Operand]) -> Node:
    """
    Clone ``node`` with the operands at the given positions substituted.

    Args:
        node: Node to rebuild
        replacements: operand position -> new operand

    Returns:
        A new node of the same variant and scalar parameters
    """
    operands = list(node.operand_values)
    for position, operand in replacements.items():
        if not 0 <= position < len(operands):
            raise InvalidArgumentError(
                "Operand position out of range",
                context={'op': node.op, 'position': position, 'num_operands': len(operands)},
            )
        operands[position] = as_value(operand)
    return node.clone(operands)


def deduplicate(roots: Iterable[Node]) -> List[Node]:
    """
    Common-subexpression elimination keyed by ``hash()``.

    Structurally identical subgraphs collapse onto the first instance seen
    in post order; users of collapsed nodes are rebuilt with ``clone``.

    Returns:
        The rewritten roots, in the order given
    """
    roots = list(roots)
    by_hash: Dict[int, Node] = {}
    replacement: Dict[int, Node] = {}
    merged = 0

    for node in post_order(roots):
        existing = by_hash.get(node.hash())
        if existing is not None:
            replacement[id(node)] = existing
            merged += 1
            continue

        new_operands = [
            Value(replacement[id(v.node)], v.index) for v in node.operand_values
        ]
        changed = any(
            new.node is not old.node
            for new, old in zip(new_operands, node.operand_values)
        )
        rebuilt = node.clone(new_operands) if changed else node
        by_hash[node.hash()] = rebuilt
        replacement[id(node)] = rebuilt

    if merged:
        logger.debug(f"deduplicate merged {merged} nodes")
    return [replacement[id(r)] for r in roots]


__all__ = ['post_order', 'node_count', 'replace_operands', 'deduplicate']
