from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, List, Optional

import gradio as gr

from .config import DEFAULT_CONFIG, WorkbenchConfig
from .errors import WorkbenchError
from .io_utils import read_text_content
from .presentation import listing_rows, paginate_text, search_listing
from .session import Session
from .workers import BackgroundWorker, run_corrections, run_final_product, run_intermediate, run_projection

logger = logging.getLogger(__name__)

_config: WorkbenchConfig = DEFAULT_CONFIG


def configure(config: WorkbenchConfig) -> None:
    """Set the configuration used for new sessions and product paging."""
    global _config
    _config = config


def _rows(session: Optional[Session], char_filter='all', hide_empty=False, flatten=False) -> List[list]:
    if session is None:
        return []
    return listing_rows(session.index, char_filter or 'all', bool(hide_empty), bool(flatten))


def _page(text: str, page=1):
    page = int(page or 1)
    page_text, total = paginate_text(text or '', page, _config.page_lines)
    return page_text, f"Page {page} / {total}"


def _progress_adapter(progress):
    if progress is None:
        return None

    def report(fraction: float, label: str) -> None:
        progress(fraction, desc=label)

    return report


def load_file_handler(file_obj, char_filter, hide_empty, flatten):
    if file_obj is None:
        return None, [], "No file uploaded.", ''

    session = Session(_config)
    try:
        session.load(file_obj)
    except WorkbenchError as e:
        return None, [], f"Error loading JSON: {e}", ''

    # Start collapsed: only the root is shown.
    session.recompute_visibility()
    status = f"Loaded {len(session.index)} nodes."
    return session, _rows(session, char_filter, hide_empty, flatten), status, session.original_path or ''


def refresh_listing_handler(session, char_filter, hide_empty, flatten):
    return _rows(session, char_filter, hide_empty, flatten)


def apply_filter_handler(session, filter_text, char_filter, hide_empty, flatten):
    if session is None:
        return [], [], "No data loaded."
    visible = session.apply_filter(filter_text or '')
    matches = [list(row) for row in search_listing(session.index, filter_text or '')]
    if not (filter_text or '').strip():
        status = "Search filter cleared."
    else:
        status = f"Search filter: {filter_text} ({visible} nodes shown)"
    return _rows(session, char_filter, hide_empty, flatten), matches, status


def reset_expansion_handler(session, char_filter, hide_empty, flatten):
    if session is None:
        return [], "No data loaded."
    session.recompute_visibility()
    return _rows(session, char_filter, hide_empty, flatten), "Showing the expanded tree."


def toggle_node_handler(session, address, char_filter, hide_empty, flatten):
    if session is None:
        return [], "No data loaded."
    node = session.toggle_expanded((address or '').strip())
    if node is None:
        status = f"No node at {address}."
    else:
        status = f"{'Expanded' if node.expanded else 'Collapsed'}: {node.name}"
    return _rows(session, char_filter, hide_empty, flatten), status


def select_row_handler(rows, evt: gr.SelectData):
    """Copy the address of the clicked listing row into the address box."""
    row_idx = evt.index[0] if isinstance(evt.index, (list, tuple)) else evt.index
    try:
        return rows.iloc[row_idx, 1]
    except AttributeError:
        return rows[row_idx][1]


def extract_handler(session, address):
    if session is None:
        return '', "No data loaded."
    try:
        text = session.extract((address or '').strip())
    except WorkbenchError as e:
        return '', str(e)
    return text, f"Extracted {address}."


def extract_search_results_handler(session, filter_text):
    if session is None:
        return '', "No data loaded."
    if not (filter_text or '').strip():
        return '', "Search filter is empty."
    try:
        text = session.extract_search_results(filter_text)
    except WorkbenchError as e:
        return '', str(e)
    return text, f"Extracted search results for {filter_text}."


def update_node_handler(session, address, new_text, char_filter, hide_empty, flatten):
    if session is None:
        return [], "No data loaded."
    try:
        written = session.mutate((address or '').strip(), new_text or '')
    except WorkbenchError as e:
        return _rows(session, char_filter, hide_empty, flatten), f"Update failed: {e}"
    session.recompute_visibility()
    return _rows(session, char_filter, hide_empty, flatten), f"Updated {written}."


def save_handler(session, target):
    if session is None:
        return "No data loaded."
    target = (target or '').strip() or None
    try:
        path = session.save(target)
    except WorkbenchError as e:
        return f"Save failed: {e}"
    return f"Saved to {path}"


def build_intermediate_handler(session, filter_text, leaf_only, progress=gr.Progress()):
    if session is None:
        return '', '', "No data loaded."
    if not (filter_text or '').strip():
        return '', '', "Search filter is empty."
    try:
        with BackgroundWorker() as worker:
            text = run_intermediate(worker, session, filter_text, bool(leaf_only), _progress_adapter(progress))
    except WorkbenchError as e:
        return '', '', f"Intermediate product failed: {e}"
    count = json.loads(text).get('count', 0) if text else 0
    page_text, page_label = _page(text, 1)
    return page_text, page_label, f"Intermediate product built: {count} items."


def build_final_handler(session):
    if session is None:
        return '', '', "No data loaded."
    if not session.intermediate_text:
        return '', '', "Build the intermediate product first."
    try:
        with BackgroundWorker() as worker:
            text = run_projection(worker, session)
    except WorkbenchError as e:
        return '', '', f"Final product failed: {e}"
    page_text, page_label = _page(text, 1)
    return page_text, page_label, "Final product built."


def one_click_final_handler(session, filter_text, leaf_only, progress=gr.Progress()):
    """Intermediate and final product from one click; both pages are refreshed."""
    if session is None:
        return '', '', '', '', "No data loaded."
    if not (filter_text or '').strip():
        return '', '', '', '', "Search filter is empty."
    try:
        with BackgroundWorker() as worker:
            intermediate, final = run_final_product(
                worker, session, filter_text, bool(leaf_only), _progress_adapter(progress),
            )
    except WorkbenchError as e:
        logger.error("One-click final product failed: %s", e)
        return '', '', '', '', f"Final product failed: {e}"
    count = json.loads(intermediate).get('count', 0) if intermediate else 0
    return (*_page(intermediate, 1), *_page(final, 1), f"Final product built from {count} items.")


def intermediate_page_handler(session, page):
    return _page(session.intermediate_text if session is not None else '', page)


def final_page_handler(session, page):
    return _page(session.final_text if session is not None else '', page)


def export_product_handler(session, which: str):
    """Write the chosen product text to a temp file for download."""
    if session is None:
        return None, "No data loaded."
    text = session.final_text if which == 'final' else session.intermediate_text
    if not text:
        return None, f"No {which} product to export."
    path = os.path.join(tempfile.gettempdir(), f"{which}_product.json")
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
    except OSError as e:
        return None, f"Error during export: {e}"
    return path, f"Export successful! Saved to {path}"


def detect_fields_handler(session, leaf_only):
    if session is None:
        return gr.update(choices=[], value=None), "No data loaded."
    try:
        fields = session.detect_candidate_fields(bool(leaf_only))
    except WorkbenchError as e:
        return gr.update(choices=[], value=None), str(e)
    return gr.update(choices=fields, value=None), f"Detected {len(fields)} candidate fields."


def pick_candidate_handler(field: Any):
    return field or ''


def apply_corrections_handler(session, file_obj, write_back, char_filter, hide_empty, flatten, progress=gr.Progress()):
    if session is None:
        return [], "No data loaded.", ''
    if file_obj is None:
        return _rows(session, char_filter, hide_empty, flatten), "No corrections file uploaded.", ''
    try:
        content = read_text_content(file_obj)
        with BackgroundWorker() as worker:
            result = run_corrections(worker, session, content, _progress_adapter(progress), bool(write_back))
    except WorkbenchError as e:
        logger.error("Corrections failed: %s", e)
        return _rows(session, char_filter, hide_empty, flatten), f"Corrections failed: {e}", ''
    summary = f"Modified: {result.modified} | Skipped: {result.skipped}"
    if write_back and session.original_path:
        summary += f" | Saved to {session.original_path}"
    return _rows(session, char_filter, hide_empty, flatten), "Corrections applied.", summary
