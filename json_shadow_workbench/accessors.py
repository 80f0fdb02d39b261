from __future__ import annotations

from typing import Any, Iterator, List, Optional, Tuple

from .errors import AddressError
from .paths import FIELD, INDEX, ROOT, Segment, format_address, parse_address

Location = Tuple[Any, ...]


def iter_matches(data: Any, address: str) -> Iterator[Tuple[Location, Any]]:
    """Yield `(location, value)` for every node matching `address`, in document order.

    A location is the tuple of concrete keys/indices leading to the node.
    Wildcards fan out over object values and array items. Matching is lazy, so
    taking the first result never walks the rest of the document.
    """
    segments = parse_address(address)
    stack: List[Tuple[int, Location, Any]] = [(0, (), data)]
    while stack:
        pos, loc, val = stack.pop()
        if pos == len(segments):
            yield loc, val
            continue
        seg = segments[pos]
        if seg.kind == FIELD:
            if isinstance(val, dict) and seg.value in val:
                stack.append((pos + 1, loc + (seg.value,), val[seg.value]))
        elif seg.kind == INDEX:
            if isinstance(val, list):
                idx = seg.value
                if idx < 0:
                    idx += len(val)
                if 0 <= idx < len(val):
                    stack.append((pos + 1, loc + (idx,), val[idx]))
        else:
            if isinstance(val, dict):
                members = list(val.items())
            elif isinstance(val, list):
                members = list(enumerate(val))
            else:
                members = []
            # Reverse so the first member is popped first.
            for key, child in reversed(members):
                stack.append((pos + 1, loc + (key,), child))


def find_first(data: Any, address: str) -> Optional[Tuple[Location, Any]]:
    for match in iter_matches(data, address):
        return match
    return None


def get_value_by_address(data: Any, address: str, default: Any = None) -> Any:
    """Return the first value matching `address`, or `default` when nothing matches."""
    match = find_first(data, address)
    if match is None:
        return default
    return match[1]


def location_to_address(location: Location) -> str:
    segments = [Segment(INDEX, part) if isinstance(part, int) else Segment(FIELD, part) for part in location]
    return format_address(segments)


def set_value_at_location(data: Any, location: Location, value: Any) -> None:
    """Replace the slot at a concrete location in place.

    The root has no parent slot; `set_value_by_address` handles it by returning the new root.
    """
    address = location_to_address(location)
    if not location:
        raise AddressError(address, AddressError.NOT_UPDATABLE, 'the root has no parent slot')
    current = data
    for part in location[:-1]:
        try:
            current = current[part]
        except (KeyError, IndexError, TypeError):
            raise AddressError(address, AddressError.NOT_UPDATABLE, 'location no longer exists') from None
    last = location[-1]
    if isinstance(current, dict) and isinstance(last, str):
        current[last] = value
    elif isinstance(current, list) and isinstance(last, int) and 0 <= last < len(current):
        current[last] = value
    else:
        raise AddressError(address, AddressError.NOT_UPDATABLE, 'parent is not a container for this key')


def set_value_by_address(data: Any, address: str, value: Any) -> Tuple[Any, str]:
    """Replace the first node matching `address` with `value`.

    Returns `(document, written)`: the document to keep using and the concrete
    address that was written. Containers are updated in place; when the match
    is the root itself the returned document is `value`. Raises `AddressError`
    when nothing matches or the match cannot be assigned into; the document is
    left untouched in both cases.
    """
    match = find_first(data, address)
    if match is None:
        raise AddressError(address, AddressError.NO_MATCH)
    location, _ = match
    if not location:
        return value, ROOT
    set_value_at_location(data, location, value)
    return data, location_to_address(location)


def copy_value(value: Any) -> Any:
    """Deep copy of a JSON value, built with an explicit stack."""
    if not isinstance(value, (dict, list)):
        return value
    root: Any = {} if isinstance(value, dict) else []
    stack: List[Tuple[Any, Any]] = [(value, root)]
    while stack:
        src, dst = stack.pop()
        members = src.items() if isinstance(src, dict) else enumerate(src)
        for key, child in members:
            if isinstance(child, dict):
                child_copy: Any = {}
                stack.append((child, child_copy))
            elif isinstance(child, list):
                child_copy = []
                stack.append((child, child_copy))
            else:
                child_copy = child
            if isinstance(dst, dict):
                dst[key] = child_copy
            else:
                dst.append(child_copy)
    return root
