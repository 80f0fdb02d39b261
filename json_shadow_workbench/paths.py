from __future__ import annotations

import re
from typing import List, NamedTuple, Optional, Union

from .errors import AddressError

ROOT = '$'

_SIMPLE_KEY = re.compile(r'[A-Za-z0-9_]+')


class Segment(NamedTuple):
    """One step of an address: a field name, an array index, or a wildcard."""

    kind: str
    value: Union[str, int, None] = None


FIELD = 'field'
INDEX = 'index'
WILDCARD = 'wildcard'


def escape_path_segment(segment: str) -> str:
    """Escape a key for the bracket form `['key']`.

    - Single quotes are escaped as "\\'" so the key stays inside the brackets.
    - Backslashes are escaped as '\\\\' to preserve round-tripping.
    """
    if not isinstance(segment, str):
        segment = str(segment)
    return segment.replace('\\', '\\\\').replace("'", "\\'")


def unescape_path_segment(segment: str) -> str:
    if segment is None:
        return ''
    out: List[str] = []
    i = 0
    while i < len(segment):
        ch = segment[i]
        if ch == '\\' and i + 1 < len(segment):
            out.append(segment[i + 1])
            i += 2
        else:
            out.append(ch)
            i += 1
    return ''.join(out)


def is_simple_key(key: str) -> bool:
    return bool(key) and key.isascii() and _SIMPLE_KEY.fullmatch(key) is not None


def field_address(parent: str, key: str) -> str:
    """Address of an object member: `parent.key` or `parent['key']`."""
    if is_simple_key(key):
        return f"{parent}.{key}"
    return f"{parent}['{escape_path_segment(key)}']"


def index_address(parent: str, index: int) -> str:
    return f"{parent}[{index}]"


def format_address(segments: List[Segment]) -> str:
    """Render segments back to the canonical address form."""
    out = ROOT
    for seg in segments:
        if seg.kind == FIELD:
            out = field_address(out, seg.value)
        elif seg.kind == INDEX:
            out = index_address(out, seg.value)
        else:
            out = f"{out}[*]"
    return out


def parse_address(address: str) -> List[Segment]:
    """Split an address such as `$.items[2]['a b']` into segments.

    Accepts the root `$`, dot fields `.name`, bracketed fields `['name']` or
    `["name"]`, array indexes `[n]` (negative counts from the end) and the
    wildcards `.*` / `[*]`. Anything else raises `AddressError`.
    """
    if not isinstance(address, str):
        raise AddressError(str(address), AddressError.INVALID, 'address must be a string')
    text = address.strip()
    if not text.startswith(ROOT):
        raise AddressError(address, AddressError.INVALID, "address must start with '$'")

    segments: List[Segment] = []
    i = 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '.':
            if i + 1 < n and text[i + 1] == '.':
                raise AddressError(address, AddressError.INVALID, 'recursive descent is not supported')
            j = i + 1
            while j < n and text[j] not in '.[':
                j += 1
            name = text[i + 1:j]
            if not name:
                raise AddressError(address, AddressError.INVALID, f"empty field name at position {i}")
            segments.append(Segment(WILDCARD) if name == '*' else Segment(FIELD, name))
            i = j
        elif ch == '[':
            seg, i = _parse_bracket(address, text, i)
            segments.append(seg)
        else:
            raise AddressError(address, AddressError.INVALID, f"unexpected character {ch!r} at position {i}")
    return segments


def _parse_bracket(address: str, text: str, start: int):
    i = start + 1
    n = len(text)
    if i < n and text[i] in '\'"':
        quote = text[i]
        buf: List[str] = []
        i += 1
        closed = False
        while i < n:
            ch = text[i]
            if ch == '\\' and i + 1 < n:
                # Keep the escape pair so unescape_path_segment can process it.
                buf.append(ch)
                buf.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                closed = True
                i += 1
                break
            buf.append(ch)
            i += 1
        if not closed or i >= n or text[i] != ']':
            raise AddressError(address, AddressError.INVALID, f"unterminated bracket at position {start}")
        return Segment(FIELD, unescape_path_segment(''.join(buf))), i + 1

    end = text.find(']', i)
    if end < 0:
        raise AddressError(address, AddressError.INVALID, f"unterminated bracket at position {start}")
    body = text[i:end].strip()
    if body == '*':
        return Segment(WILDCARD), end + 1
    try:
        return Segment(INDEX, int(body)), end + 1
    except ValueError:
        raise AddressError(address, AddressError.INVALID, f"bad array index {body!r}") from None


def derive_name_address(address: str, field_name: Optional[str] = None) -> Optional[str]:
    """Address of the `name` sibling of the node at `address`.

    The last '.' outside brackets is the start of the node's own field; it is
    replaced by `.name`. A node already called `name` is its own name sibling.
    Returns None when the address has no top-level '.'.
    """
    if field_name == 'name':
        return address
    depth = 0
    last_dot = -1
    for i, ch in enumerate(address):
        if ch == '[':
            depth += 1
        elif ch == ']':
            depth -= 1
        elif ch == '.' and depth == 0:
            last_dot = i
    if last_dot < 0:
        return None
    if field_name is None and address[last_dot + 1:] == 'name':
        return address
    return f"{address[:last_dot]}.name"
