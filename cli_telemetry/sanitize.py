"""Strip sensitive entries from event properties before they leave the process."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

# Substring match on purpose: "apikey", "token_expiry" and "monkey" all go.
SENSITIVE_SUBSTRINGS = ("key", "password", "token")


def is_sensitive_key(key: Any) -> bool:
    """Check whether a property name looks like it could carry a secret."""
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_SUBSTRINGS)


def sanitize(properties: Optional[Mapping[Any, Any]]) -> dict[Any, Any]:
    """Return a copy of ``properties`` without sensitive keys.

    Values are passed through untouched, and the input is never mutated.
    """
    if not properties:
        return {}
    return {key: value for key, value in properties.items() if not is_sensitive_key(key)}
