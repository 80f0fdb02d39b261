"""Core logic for JSON Shadow Workbench.

The Gradio UI lives in `app.py`. This package contains the pieces that:
- index a JSON document into a flat, addressable shadow tree
- expand/collapse and filter that tree
- extract or rewrite any node by address
- build numbered field listings and their `{seq: value}` projections
- apply uploaded corrections back onto the document
"""

__version__ = '0.1.0'
