from __future__ import annotations

import json
import logging
import os
from typing import Any

from .errors import IoFailure, NestingTooDeep, ParseFailure

logger = logging.getLogger(__name__)


def file_location(file_obj) -> str:
    """Path of an uploaded file, a path-like, or '' for anonymous streams."""
    if file_obj is None:
        return ''
    if isinstance(file_obj, (str, os.PathLike)):
        return os.fspath(file_obj)
    name = getattr(file_obj, 'name', None)
    return os.fspath(name) if isinstance(name, (str, os.PathLike)) else ''


def _reject_constant(name: str):
    raise ValueError(f"{name} is not a valid JSON value")


def parse_json_text(content, source: str = 'JSON input') -> Any:
    """Parse strict JSON text; `NaN` and `Infinity` are rejected."""
    if isinstance(content, bytes):
        try:
            content = content.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ParseFailure(source, e) from e
    try:
        return json.loads(content, parse_constant=_reject_constant)
    except RecursionError as e:
        raise ParseFailure(source, e, detail='nesting is too deep') from e
    except (TypeError, ValueError) as e:
        raise ParseFailure(source, e) from e


def dumps_guarded(data: Any, operation: str, **kwargs) -> str:
    """`json.dumps` that reports over-deep documents as `NestingTooDeep`."""
    try:
        return json.dumps(data, ensure_ascii=False, **kwargs)
    except RecursionError as e:
        raise NestingTooDeep(operation) from e


def read_text_content(file_obj) -> str:
    """Read text from an uploaded file, a file-like object, or a path."""
    if file_obj is None:
        raise IoFailure(None, ValueError('No file uploaded.'))

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, bytes):
            try:
                content = content.decode('utf-8')
            except UnicodeDecodeError as e:
                raise ParseFailure(file_location(file_obj) or 'upload', e) from e
        return content

    path = file_location(file_obj)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise ParseFailure(path, e) from e
    except OSError as e:
        raise IoFailure(path, e) from e


def read_json_content(file_obj) -> Any:
    """Read and parse JSON content from an uploaded file or file path."""
    return parse_json_text(read_text_content(file_obj), file_location(file_obj) or 'upload')


def dump_json_pretty(data: Any, operation: str = 'serialize') -> str:
    return dumps_guarded(data, operation, indent=2)


def write_json_file(path, data: Any) -> str:
    """Write `data` pretty-printed to `path`; returns the path written."""
    path = os.fspath(path)
    text = dump_json_pretty(data, 'save')
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
    except OSError as e:
        raise IoFailure(path, e) from e
    logger.info("Saved JSON (%d chars) to %s", len(text), path)
    return path
