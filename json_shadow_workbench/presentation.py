"""Display helpers for the tree listing and long product texts.

These shape what the UI shows; they never change the index itself.
"""

from __future__ import annotations

from typing import List, Tuple

from .config import DEFAULT_CONFIG
from .shadow_tree import IndexedNode

CHAR_FILTERS = ('all', 'chinese', 'english')

LISTING_HEADERS = ['Name', 'Address', 'Kind', 'Children', 'Preview', 'Depth', 'Expanded']


def is_cjk_char(c: str) -> bool:
    code = ord(c)
    return (
        0x4E00 <= code <= 0x9FFF
        or 0x3400 <= code <= 0x4DBF
        or 0xF900 <= code <= 0xFAFF
    )


def is_english_char(c: str) -> bool:
    return c.isascii() and c.isalpha()


def matches_char_filter(text: str, char_filter: str) -> bool:
    """'chinese' keeps CJK-only text, 'english' keeps ASCII-letter-only text."""
    if char_filter == 'chinese':
        return any(is_cjk_char(c) for c in text) and not any(is_english_char(c) for c in text)
    if char_filter == 'english':
        return any(is_english_char(c) for c in text) and not any(is_cjk_char(c) for c in text)
    return True


def is_empty_preview(node: IndexedNode) -> bool:
    kind = node.kind.value
    if kind == 'Null':
        return True
    if kind == 'String':
        return node.preview.strip('"').strip() == ''
    if kind == 'Array':
        return node.children == 0
    if kind == 'Object':
        return node.children == 0
    return False


def listing_rows(
    index: List[IndexedNode],
    char_filter: str = 'all',
    hide_empty: bool = False,
    flatten: bool = False,
) -> List[list]:
    """Rows for the visible nodes, with optional display filters applied."""
    rows = []
    for node in index:
        if not node.visible:
            continue
        if char_filter != 'all' and not matches_char_filter(node.preview, char_filter):
            continue
        if hide_empty and is_empty_preview(node):
            continue
        depth = 0 if flatten else node.depth
        indent = '  ' * depth
        rows.append([
            f"{indent}{node.name}",
            node.address,
            node.kind.value,
            node.children,
            node.preview,
            depth,
            node.expanded,
        ])
    return rows


def search_listing(index: List[IndexedNode], filter_text: str) -> List[Tuple[str, str, str]]:
    """Case-insensitive `(name, address, kind)` matches over the whole index."""
    if not filter_text or not filter_text.strip():
        return []
    needle = filter_text.lower()
    return [
        (n.name, n.address, n.kind.value)
        for n in index
        if needle in n.name.lower() or needle in n.address.lower()
    ]


def paginate_text(text: str, page: int, lines_per_page: int = DEFAULT_CONFIG.page_lines) -> Tuple[str, int]:
    """Return the lines of `page` (1-based) and the total page count (at least 1)."""
    lines = text.splitlines()
    total_pages = max(1, (len(lines) + lines_per_page - 1) // lines_per_page)
    if page < 1 or page > total_pages:
        return '', total_pages
    start = (page - 1) * lines_per_page
    return '\n'.join(lines[start:start + lines_per_page]), total_pages
