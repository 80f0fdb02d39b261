"""Shadow tree: a flat, pre-order index of a JSON document.

Each entry records where a node lives (its address), what it is and a short
preview, without copying large values. The UI and the product pipeline work
off this index; the document itself is only consulted through addresses.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Tuple

from .config import DEFAULT_CONFIG
from .paths import ROOT, field_address, index_address


class NodeKind(str, Enum):
    OBJECT = 'Object'
    ARRAY = 'Array'
    STRING = 'String'
    NUMBER = 'Number'
    BOOL = 'Bool'
    NULL = 'Null'

    @property
    def is_scalar(self) -> bool:
        return self not in (NodeKind.OBJECT, NodeKind.ARRAY)


SCALAR_KINDS = frozenset(k for k in NodeKind if k.is_scalar)


@dataclass
class IndexedNode:
    name: str
    address: str
    kind: NodeKind
    children: int
    preview: str
    depth: int
    expanded: bool = False
    visible: bool = True


def kind_of(value: Any) -> NodeKind:
    if isinstance(value, dict):
        return NodeKind.OBJECT
    if isinstance(value, list):
        return NodeKind.ARRAY
    if isinstance(value, str):
        return NodeKind.STRING
    if isinstance(value, bool):
        return NodeKind.BOOL
    if isinstance(value, (int, float)):
        return NodeKind.NUMBER
    if value is None:
        return NodeKind.NULL
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def preview_of(value: Any, max_chars: int = DEFAULT_CONFIG.preview_length) -> str:
    """Short display text for a node; containers only report their size."""
    if isinstance(value, str):
        s = value.strip()
        if len(s) > max_chars:
            return f'"{s[:max_chars]}..."'
        return f'"{s}"'
    if isinstance(value, dict):
        return f"{{..}} ({len(value)} keys)"
    if isinstance(value, list):
        return f"[..] ({len(value)} items)"
    # Numbers, booleans and null use their JSON spelling.
    return json.dumps(value)


def build_shadow_tree(document: Any, preview_length: int = DEFAULT_CONFIG.preview_length) -> List[IndexedNode]:
    """Index every node of `document` in pre-order.

    Uses an explicit stack so very deep documents do not hit the recursion limit.
    """
    out: List[IndexedNode] = []
    stack: List[Tuple[Any, str, str, int]] = [(document, ROOT, ROOT, 0)]
    while stack:
        value, address, name, depth = stack.pop()
        kind = kind_of(value)
        children = len(value) if kind in (NodeKind.OBJECT, NodeKind.ARRAY) else 0
        out.append(IndexedNode(
            name=name,
            address=address,
            kind=kind,
            children=children,
            preview=preview_of(value, preview_length),
            depth=depth,
        ))
        if kind == NodeKind.OBJECT:
            pending = [(child, field_address(address, key), key, depth + 1) for key, child in value.items()]
        elif kind == NodeKind.ARRAY:
            pending = [(child, index_address(address, idx), f"[{idx}]", depth + 1) for idx, child in enumerate(value)]
        else:
            continue
        stack.extend(reversed(pending))
    return out


def find_node(index: List[IndexedNode], address: str):
    for node in index:
        if node.address == address:
            return node
    return None
