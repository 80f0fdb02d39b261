from __future__ import annotations

from typing import List, Optional

from .shadow_tree import IndexedNode, find_node


def recompute_visibility(index: List[IndexedNode]) -> None:
    """Derive `visible` from the expansion flags.

    The root is always visible. A visible, expanded node reveals its direct
    children. Because the index is pre-order, a node's own visibility is
    settled before its children are scanned, so one forward pass is enough.
    """
    for i, node in enumerate(index):
        node.visible = i == 0

    for i, node in enumerate(index):
        if not (node.visible and node.expanded):
            continue
        parent_depth = node.depth
        for j in range(i + 1, len(index)):
            child = index[j]
            if child.depth <= parent_depth:
                break
            if child.depth == parent_depth + 1:
                child.visible = True


def toggle_expanded(index: List[IndexedNode], address: str) -> Optional[IndexedNode]:
    """Flip the expanded flag of the node at `address` and refresh visibility."""
    node = find_node(index, address)
    if node is not None:
        node.expanded = not node.expanded
    recompute_visibility(index)
    return node


def apply_filter(index: List[IndexedNode], text: str) -> int:
    """Show only nodes whose address or name contains `text` (case-sensitive).

    An empty filter shows everything. This replaces expansion-based
    visibility; call `recompute_visibility` to get it back.
    Returns the number of visible nodes.
    """
    if not text or not text.strip():
        for node in index:
            node.visible = True
        return len(index)

    visible = 0
    for node in index:
        node.visible = text in node.address or text in node.name
        visible += node.visible
    return visible
