"""Helpers for safe debug logging.

Fast-stream diffs routinely carry hundreds of raw transaction blobs, and RPC
URLs may embed provider API keys. This module produces a compact, redacted
view of a payload before it reaches a log record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "api_key",
        "authorization",
        "token",
        "secret",
        "password",
    }
)


def redact_url(url: str) -> str:
    """Drop userinfo and query string from *url* (both commonly hold keys)."""
    parts = urlsplit(url)
    netloc = parts.hostname or ""
    if parts.port is not None:
        netloc = f"{netloc}:{parts.port}"
    query = "<redacted>" if parts.query else ""
    return urlunsplit((parts.scheme, netloc, parts.path, query, ""))


def summarize_for_log(
    value: Any,
    *,
    max_string: int = 80,
    max_items: int = 5,
    _depth: int = 0,
) -> Any:
    """Return a truncated, redacted copy of *value* suitable for logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        summary: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                summary[key] = "<redacted>"
            else:
                summary[key] = summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
        return summary

    if isinstance(value, Sequence):
        items = [
            summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for v in list(value)[:max_items]
        ]
        if len(value) > max_items:
            items.append(f"…<{len(value) - max_items} more>")
        return items

    return repr(value)
