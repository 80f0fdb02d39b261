"""Apply an uploaded `{seq: new value}` file back onto the document.

Each seq refers to an item of the intermediate product; the item's
`source_path` is the address that gets rewritten. Edits run against a deep
copy, so the caller's document is never seen half-updated.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .accessors import copy_value, set_value_by_address
from .errors import AddressError, ParseFailure
from .io_utils import parse_json_text
from .pipeline import ProgressCallback, report_progress
from .projection import load_product_items

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100


@dataclass
class CorrectionsResult:
    modified: int
    skipped: int
    document: Any

    @property
    def total(self) -> int:
        return self.modified + self.skipped


def correction_text(value: Any) -> Optional[str]:
    """Text to write for an uploaded value, or None when the entry must be skipped."""
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return json.dumps(value)
    # null, arrays and objects are not accepted as corrections.
    return None


def parse_corrections(corrections_text: str) -> Dict[str, Any]:
    data = parse_json_text(corrections_text, 'corrections upload')
    if not isinstance(data, dict):
        raise ParseFailure('corrections upload', detail='top level must be a JSON object')
    return data


def apply_corrections(
    document: Any,
    intermediate_text: str,
    corrections_text: str,
    progress: Optional[ProgressCallback] = None,
    copy_document: bool = True,
) -> CorrectionsResult:
    """Apply every valid entry to a copy of `document`.

    Pass `copy_document=False` when `document` is already a private snapshot.

    Bad entries (non-numeric seq, seq without an item, item without a
    source_path, rejected value, address that no longer resolves) are counted
    as skipped and do not stop the batch.
    """
    corrections = parse_corrections(corrections_text)
    items: List[Dict[str, Any]] = load_product_items(intermediate_text)
    snapshot = copy_value(document) if copy_document else document

    total = len(corrections)
    logger.info("Applying %d corrections against %d product items", total, len(items))
    modified = 0
    skipped = 0
    for key, new_value in corrections.items():
        done = modified + skipped
        if done % PROGRESS_EVERY == 0:
            report_progress(progress, done / total if total else 1.0, f"Applying {done + 1}/{total}")

        if not (isinstance(key, str) and key.isascii() and key.isdigit()):
            logger.warning("Skipping correction with invalid seq %r", key)
            skipped += 1
            continue
        seq = int(key)
        if seq >= len(items) or not isinstance(items[seq], dict):
            logger.warning("Skipping correction %s: no product item with that seq", key)
            skipped += 1
            continue
        source_path = items[seq].get('source_path')
        if not isinstance(source_path, str):
            skipped += 1
            continue
        text = correction_text(new_value)
        if text is None:
            skipped += 1
            continue
        try:
            snapshot, _ = set_value_by_address(snapshot, source_path, text)
        except AddressError as e:
            logger.warning("Skipping correction %s: %s", key, e)
            skipped += 1
            continue
        modified += 1

    logger.info("Corrections applied: %d modified, %d skipped", modified, skipped)
    report_progress(progress, 1.0, f"Done: {modified} modified, {skipped} skipped")
    return CorrectionsResult(modified=modified, skipped=skipped, document=snapshot)
