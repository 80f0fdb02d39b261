"""Intermediate product: a numbered listing of the nodes matching a filter.

For every selected node the listing carries its own value and the value of
its `name` sibling (the field called `name` in the same object), which is
usually the human-readable label of the record the node belongs to.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .accessors import find_first
from .errors import AddressError
from .io_utils import dumps_guarded
from .paths import derive_name_address
from .shadow_tree import SCALAR_KINDS, IndexedNode

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]

STAGE = 'intermediate2'


class _Missing:
    def __repr__(self) -> str:
        return '<missing>'


_MISSING = _Missing()


def report_progress(progress: Optional[ProgressCallback], fraction: float, label: str) -> None:
    if progress is None:
        return
    try:
        progress(fraction, label)
    except Exception:
        # The listener may be gone; progress is best-effort.
        logger.warning("Progress callback failed at %.0f%% (%s)", fraction * 100, label, exc_info=True)


def value_as_text(value: Any) -> str:
    """Strings verbatim, everything else as compact JSON."""
    if isinstance(value, str):
        return value
    return dumps_guarded(value, 'build the intermediate product', separators=(',', ':'))


def select_nodes(index: List[IndexedNode], filter_text: str, leaf_only: bool = False) -> List[IndexedNode]:
    if leaf_only:
        return [n for n in index if n.visible and filter_text in n.name and n.kind in SCALAR_KINDS]
    return [n for n in index if n.visible and (filter_text in n.address or filter_text in n.name)]


def resolve_addresses(document: Any, addresses) -> Dict[str, Any]:
    """Resolve each distinct address once; unmatched addresses map to `_MISSING`."""
    cache: Dict[str, Any] = {}
    for address in addresses:
        if address in cache:
            continue
        try:
            match = find_first(document, address)
        except AddressError:
            logger.debug("Skipping unparseable address %s", address)
            match = None
        cache[address] = _MISSING if match is None else match[1]
    return cache


def build_intermediate_product(
    index: List[IndexedNode],
    document: Any,
    filter_text: str,
    leaf_only: bool = False,
    progress: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """Build the `intermediate2` artifact for `filter_text`.

    Items follow index order (document pre-order) and are numbered 0..n-1.
    An empty filter yields an empty dict and reports no progress.
    """
    if not filter_text or not filter_text.strip():
        return {}

    report_progress(progress, 0.1, 'Selecting matching nodes...')
    started = time.perf_counter()
    matched = select_nodes(index, filter_text, leaf_only)
    if matched:
        logger.info("Intermediate product: %d nodes match %r (leaf_only=%s)", len(matched), filter_text, leaf_only)
    else:
        logger.warning("Intermediate product: no visible node matches %r (leaf_only=%s)", filter_text, leaf_only)
    logger.debug("Selection took %.1fms", (time.perf_counter() - started) * 1000)
    report_progress(progress, 0.5, f"Processing {len(matched)} matched nodes...")

    name_paths: Dict[str, Optional[str]] = {}
    wanted: List[str] = []
    for node in matched:
        wanted.append(node.address)
        derived = derive_name_address(node.address, node.name)
        name_paths[node.address] = derived
        if derived is not None and derived != node.address:
            wanted.append(derived)

    report_progress(progress, 0.5, 'Resolving addresses...')
    started = time.perf_counter()
    values = resolve_addresses(document, wanted)
    logger.debug("Resolved %d distinct addresses in %.1fms", len(values), (time.perf_counter() - started) * 1000)

    report_progress(progress, 0.9, 'Assembling items...')
    items: List[Dict[str, Any]] = []
    for seq, node in enumerate(matched):
        own = values.get(node.address, _MISSING)
        derived = name_paths[node.address]
        if derived is None:
            name_path, name_value = node.address, _MISSING
        else:
            name_path, name_value = derived, values.get(derived, _MISSING)
        items.append({
            'source_path': node.address,
            'name_path': name_path,
            'name': '' if own is _MISSING else value_as_text(own),
            'field_name': node.name,
            'name_field_value': '' if name_value is _MISSING else value_as_text(name_value),
            'seq': seq,
        })

    report_progress(progress, 1.0, 'Done')
    return {
        'stage': STAGE,
        'filter': filter_text,
        'count': len(items),
        'items': items,
    }


def dump_product(product: Dict[str, Any]) -> str:
    return dumps_guarded(product, 'serialize the product', indent=2)
