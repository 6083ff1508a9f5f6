"""Helpers for safe debug logging.

Timeline tokens grant write access to a user's watch timeline, so they
must never reach log output in full.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset({"x-user-token", "timeline_token", "token", "authorization"})


def mask_token(token: Any, *, visible: int = 8) -> str:
    """Return the first *visible* characters of *token* followed by ``...``."""
    if token is None:
        return "<none>"
    text = str(token)
    if len(text) <= visible:
        return "<redacted>"
    return f"{text[:visible]}..."


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of a JSON-like pin *value* with credentials hidden.

    Strings longer than *max_string* are cut short.
    """
    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>"
            if str(key).lower() in _SENSITIVE_KEYS
            else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}...<truncated>"
    return value
