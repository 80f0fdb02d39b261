"""Heuristics that pick out likely natural-language fields in a document.

Keys whose string values look like timestamps or version numbers are ignored;
URL values are collected themselves instead of their key. None of this is
locale-aware: "letters" means ASCII letters.
"""

from __future__ import annotations

from typing import Any, List, Set

from .config import DEFAULT_CONFIG, WorkbenchConfig

_URL_SCHEMES = ('http://', 'https://', 'ftp://', 'ftps://')


def _all_digits(s: str) -> bool:
    return all('0' <= c <= '9' for c in s)


def is_timestamp_like(s: str) -> bool:
    """True for strings shaped like `2023-01-01`, `12:34:56` or ISO 8601 date-times."""
    n = len(s)
    if n < 8 or n > 30:
        return False
    if not any(c in s for c in '-:TZ'):
        return False

    if 'T' in s and '-' in s and ':' in s:
        return True

    if s.count('-') == 2 and 8 <= n <= 12:
        parts = s.split('-')
        if (
            len(parts[0]) == 4 and _all_digits(parts[0])
            and len(parts[1]) == 2 and _all_digits(parts[1])
            and len(parts[2]) == 2 and _all_digits(parts[2])
        ):
            return True

    if s.count(':') == 2 and 6 <= n <= 10:
        if all(_all_digits(p) for p in s.split(':')):
            return True

    return False


def is_version_like(s: str) -> bool:
    """True for `1.0`, `v1.2.3`, `V10.0.0.1` and similar."""
    n = len(s)
    if n < 3 or n > 20 or '.' not in s:
        return False

    body = s[1:] if s[0] in 'vV' else s
    dots = body.count('.')
    if dots < 1 or dots > 3:
        return False
    parts = body.split('.')
    return 2 <= len(parts) <= 4 and all(p and _all_digits(p) for p in parts)


def is_url_like(s: str) -> bool:
    n = len(s)
    if n < 7 or n > 2000:
        return False
    lower = s.lower()
    for scheme in _URL_SCHEMES:
        if lower.startswith(scheme):
            rest = s[len(scheme):]
            return '.' in rest or rest.startswith('localhost')
    return False


def _is_ascii_letter(c: str) -> bool:
    return ('a' <= c <= 'z') or ('A' <= c <= 'Z')


def is_pure_candidate(s: str) -> bool:
    """Letters, '_' and '-' only, with no timestamp/version shape."""
    letters = sum(1 for c in s if _is_ascii_letter(c))
    if letters == 0:
        return False
    if is_timestamp_like(s) or is_version_like(s):
        return False
    digits = sum(1 for c in s if _all_digits(c))
    if digits > letters:
        return False
    return all(_is_ascii_letter(c) or c in '_-' for c in s)


def collect_field_strings(document: Any, leaf_only: bool = False) -> Set[str]:
    """Walk the document and collect keys (or URL values) of string members.

    Only string members qualify, and a string is always a leaf, so
    `leaf_only` cannot narrow the result further; it is accepted to keep the
    signature in line with the product pipeline.
    """
    found: Set[str] = set()
    stack: List[Any] = [document]
    while stack:
        value = stack.pop()
        if isinstance(value, list):
            stack.extend(value)
        elif isinstance(value, dict):
            for key, val in value.items():
                if isinstance(val, str):
                    trimmed_key = key.strip()
                    trimmed_val = val.strip()
                    if trimmed_key and not is_timestamp_like(trimmed_val) and not is_version_like(trimmed_val):
                        found.add(trimmed_val if is_url_like(trimmed_val) else trimmed_key)
                if isinstance(val, (dict, list)):
                    stack.append(val)
    return found


def detect_candidate_fields(
    document: Any,
    leaf_only: bool = False,
    config: WorkbenchConfig = DEFAULT_CONFIG,
) -> List[str]:
    """Sorted, de-duplicated candidate field names (at most `config.max_candidates`)."""
    result = []
    for s in collect_field_strings(document, leaf_only):
        trimmed = s.strip()
        if not config.candidate_min_length <= len(trimmed) <= config.candidate_max_length:
            continue
        if is_pure_candidate(trimmed):
            result.append(trimmed)
    return sorted(set(result))[:config.max_candidates]
