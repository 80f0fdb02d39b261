from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from .errors import ParseFailure
from .io_utils import parse_json_text

logger = logging.getLogger(__name__)


def load_product_items(intermediate_text: str) -> List[Dict[str, Any]]:
    """Parse an intermediate product and return its `items` list."""
    data = parse_json_text(intermediate_text, 'intermediate product')
    items = data.get('items') if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ParseFailure('intermediate product', detail="missing 'items' array")
    return items


def project_items(items: List[Dict[str, Any]]) -> Dict[str, str]:
    """Map each item's seq (as text) to its resolved value.

    Keys are ordered as text, so "10" comes before "2".
    """
    out: Dict[str, str] = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        seq = item.get('seq')
        if not isinstance(seq, int) or isinstance(seq, bool) or seq < 0:
            seq = 0
        name = item.get('name', '')
        out[str(seq)] = name if isinstance(name, str) else ''
    return dict(sorted(out.items()))


def project_final_product(intermediate_text: str) -> str:
    """Turn intermediate product text into the final `{seq: value}` text."""
    items = load_product_items(intermediate_text)
    final = project_items(items)
    logger.info("Final product built with %d entries", len(final))
    return json.dumps(final, indent=2, ensure_ascii=False)


def same_shape(a: Any, b: Any) -> bool:
    """Structural comparison: same keys, same lengths, same scalar kinds."""
    if isinstance(a, dict) and isinstance(b, dict):
        if len(a) != len(b):
            return False
        return all(k in b and same_shape(v, b[k]) for k, v in a.items())
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return False
        return all(same_shape(x, y) for x, y in zip(a, b))
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    if isinstance(a, str) and isinstance(b, str):
        return True
    return a is None and b is None


def validate_upload_shape(upload_text: str, final_text: str) -> None:
    """Check that an uploaded corrections file has the final product's shape.

    An empty final product skips the check.
    """
    if not final_text or not final_text.strip():
        return
    upload = parse_json_text(upload_text, 'corrections upload')
    final = parse_json_text(final_text, 'final product')
    if not same_shape(upload, final):
        raise ParseFailure('corrections upload', detail='structure does not match the final product (field count or types differ)')
