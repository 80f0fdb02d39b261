"""Session state: the loaded document, its shadow index and where it came from.

A `Session` has one owner. Mutations take a non-blocking guard, so a second
mutation started while one is running fails with `SessionBusy` instead of
interleaving. Long work runs elsewhere (see `workers.py`) and hands its result
back to the owner, which installs it with `install_document`.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .accessors import copy_value, find_first, set_value_by_address
from .classifier import detect_candidate_fields
from .config import DEFAULT_CONFIG, WorkbenchConfig
from .corrections import CorrectionsResult, apply_corrections
from .errors import AddressError, IoFailure, NotLoaded, SessionBusy
from .io_utils import dump_json_pretty, file_location, parse_json_text, read_json_content, write_json_file
from .pipeline import ProgressCallback, build_intermediate_product, dump_product
from .projection import project_final_product, validate_upload_shape
from .shadow_tree import IndexedNode, build_shadow_tree, find_node
from .visibility import apply_filter, recompute_visibility, toggle_expanded

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, config: WorkbenchConfig = DEFAULT_CONFIG):
        self.config = config
        self.document: Any = None
        self.loaded = False
        self.index: List[IndexedNode] = []
        self.source_path: Optional[str] = None
        self.original_path: Optional[str] = None
        self.intermediate_text = ''
        self.final_text = ''
        self._guard = threading.Lock()

    @contextmanager
    def _mutating(self, operation: str):
        if not self._guard.acquire(blocking=False):
            raise SessionBusy(operation)
        try:
            yield
        finally:
            self._guard.release()

    def _require_document(self, operation: str) -> Any:
        if not self.loaded:
            raise NotLoaded(operation)
        return self.document

    def _rebuild(self) -> None:
        self.index = build_shadow_tree(self.document, self.config.preview_length)

    # --- loading and saving ---

    def load(self, file_obj) -> None:
        """Load a document from a path or uploaded file and index it."""
        document = read_json_content(file_obj)
        location = file_location(file_obj) or None
        self.load_document(document, location)

    def load_text(self, text: str, location: Optional[str] = None) -> None:
        self.load_document(parse_json_text(text, location or 'JSON text'), location)

    def load_document(self, document: Any, location: Optional[str] = None) -> None:
        index = build_shadow_tree(document, self.config.preview_length)
        with self._mutating('load'):
            self.document = document
            self.index = index
            self.loaded = True
            self.source_path = location
            self.original_path = location
            self.intermediate_text = ''
            self.final_text = ''
        logger.info("Loaded document from %s: %d nodes", location or '(memory)', len(index))

    @contextmanager
    def exclusive(self, operation: str):
        """Hold the mutation guard for a whole read-modify-install operation.

        Yields an installer for the finished document. Any other mutation
        attempted before the block exits fails with `SessionBusy`.
        """
        with self._mutating(operation):
            yield self._install_held

    def install_document(self, document: Any) -> None:
        """Replace the whole document (e.g. after corrections) and rebuild the index.

        Expansion flags are carried over by address and visibility is recomputed.
        """
        with self._mutating('install'):
            self._install_held(document)

    def _install_held(self, document: Any) -> None:
        # Caller holds the guard.
        expanded = {n.address for n in self.index if n.expanded}
        self.document = document
        self.loaded = True
        self._rebuild()
        for node in self.index:
            node.expanded = node.address in expanded
        recompute_visibility(self.index)
        logger.info("Installed updated document: %d nodes", len(self.index))

    def save(self, target=None) -> str:
        """Write the whole document; defaults to the location it was loaded from."""
        document = self._require_document('save')
        if target is None:
            target = self.original_path
            if not target:
                raise IoFailure(None, ValueError('No original file location recorded.'))
        return write_json_file(target, document)

    # --- reading and writing by address ---

    def extract(self, address: str) -> str:
        document = self._require_document('extract')
        match = find_first(document, address)
        if match is None:
            raise AddressError(address, AddressError.NO_MATCH)
        return dump_json_pretty(match[1], 'extract')

    def mutate(self, address: str, new_text: str) -> str:
        """Replace the first node matching `address` with the string `new_text`.

        The text is stored as a string even when it looks like JSON.
        Returns the concrete address written.
        """
        document = self._require_document('mutate')
        with self._mutating('mutate'):
            self.document, written = set_value_by_address(document, address, new_text)
            self._rebuild()
        logger.info("Updated %s; index rebuilt with %d nodes", written, len(self.index))
        return written

    # --- visibility ---

    def toggle_expanded(self, address: str) -> Optional[IndexedNode]:
        return toggle_expanded(self.index, address)

    def recompute_visibility(self) -> None:
        recompute_visibility(self.index)

    def apply_filter(self, text: str) -> int:
        return apply_filter(self.index, text)

    def find_node(self, address: str) -> Optional[IndexedNode]:
        return find_node(self.index, address)

    def visible_nodes(self) -> List[IndexedNode]:
        return [n for n in self.index if n.visible]

    # --- products ---

    def extract_search_results(self, filter_text: str) -> str:
        """Extract every visible node matching `filter_text` into one JSON text."""
        if not filter_text or not filter_text.strip():
            return ''
        self._require_document('extract_search_results')
        matched = [
            n for n in self.index
            if n.visible and (filter_text in n.address or filter_text in n.name)
        ]
        if not matched:
            logger.warning("No visible node matches %r", filter_text)
            return '{}'
        if len(matched) == 1:
            return self.extract(matched[0].address)

        results: Dict[str, Any] = {}
        for i, node in enumerate(matched, start=1):
            entry: Dict[str, Any] = {'path': node.address, 'name': node.name, 'type': node.kind.value}
            try:
                entry['content'] = json.loads(self.extract(node.address))
                results[f"match_{i}_{node.name}"] = entry
            except AddressError as e:
                logger.error("Could not extract %s: %s", node.address, e)
                entry['error'] = str(e)
                results[f"match_{i}_{node.name}_error"] = entry
        return dump_json_pretty({
            'search_filter': filter_text,
            'total_matches': len(matched),
            'displayed_matches': len(matched),
            'truncated': False,
            'results': results,
        }, 'extract search results')

    def build_intermediate(
        self,
        filter_text: str,
        leaf_only: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        if not filter_text or not filter_text.strip():
            return ''
        document = self._require_document('build_intermediate')
        product = build_intermediate_product(self.index, document, filter_text, leaf_only, progress)
        return self.record_intermediate(product)

    def record_intermediate(self, product: Dict[str, Any]) -> str:
        """Keep a freshly built intermediate product; any older final product is dropped."""
        self.intermediate_text = dump_product(product) if product else ''
        self.final_text = ''
        return self.intermediate_text

    def snapshot(self):
        """Private copies of the index and document for work done off the owner."""
        document = self._require_document('snapshot')
        return [replace(n) for n in self.index], copy_value(document)

    def build_final(self, intermediate_text: Optional[str] = None) -> str:
        text = self.intermediate_text if intermediate_text is None else intermediate_text
        self.final_text = project_final_product(text)
        return self.final_text

    def detect_candidate_fields(self, leaf_only: bool = False) -> List[str]:
        document = self._require_document('detect_candidate_fields')
        return detect_candidate_fields(document, leaf_only, self.config)

    def apply_corrections(
        self,
        corrections_text: str,
        progress: Optional[ProgressCallback] = None,
        write_back: bool = True,
    ) -> CorrectionsResult:
        """Apply uploaded corrections synchronously and install the result."""
        self._require_document('apply_corrections')
        validate_upload_shape(corrections_text, self.final_text)
        with self.exclusive('apply_corrections') as install:
            result = apply_corrections(self.document, self.intermediate_text, corrections_text, progress)
            install(result.document)
        if write_back and self.original_path:
            self.save()
        return result
