"""Composite key building for device storage.

``build_cache_key`` must be injective: two different part sequences never
produce the same key.  Joining on a separator is not enough (``["a::b"]``
vs ``["a", "b"]``), so every part is length-prefixed instead::

    build_cache_key(["a", "b"])      == "1:a|1:b"
    build_cache_key(["ab"])          == "2:ab"
    build_cache_key(["a", "b", ""])  == "1:a|1:b|0:"
    build_cache_key(["a", None])     == "1:a|~"
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Union

KeyPart = Union[str, int, date, datetime, None]

CACHE_PREFIX = "peri.cache::"
VIEW_MODE_PREFIX = "peri.view_mode::"

_NONE_MARKER = "~"
_SEPARATOR = "|"


def build_cache_key(parts: Iterable[KeyPart]) -> str:
    """Deterministic, order-sensitive, collision-free key from ``parts``.

    Dates and datetimes render as ISO-8601 and ints as their decimal text, so
    ``5`` and ``"5"`` are the same part.  ``None`` renders as a marker no
    string part can produce (string parts always carry a ``<len>:`` prefix).
    """
    encoded: list[str] = []
    for part in parts:
        if part is None:
            encoded.append(_NONE_MARKER)
            continue
        text = _render(part)
        encoded.append(f"{len(text)}:{text}")
    return _SEPARATOR.join(encoded)


def view_mode_storage_key(viewer_email: str) -> str:
    return f"{VIEW_MODE_PREFIX}{normalise_email(viewer_email)}"


def cache_storage_key(key: str) -> str:
    return f"{CACHE_PREFIX}{key}"


def normalise_email(email: str) -> str:
    return email.strip().lower()


def _render(part: KeyPart) -> str:
    if isinstance(part, (date, datetime)):
        return part.isoformat()
    if isinstance(part, bool):
        return "true" if part else "false"
    return str(part)
