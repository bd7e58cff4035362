"""Redaction helpers for safe logging of account data."""

import hashlib
import re
from typing import Any


# Patterns that should be redacted in log payloads
_SENSITIVE_PATTERNS = [
    re.compile(r"\b\d{10,11}\b"),  # Phone numbers
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),  # Email
    re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b"),  # JWT
]

_SENSITIVE_KEYS = {"email", "password", "password_hash", "token", "access_token",
                   "authorization", "phone", "name"}

_DROP_KEYS = {"password", "password_hash"}


def redact_value(value: str) -> str:
    """Hash a sensitive string value so log lines can still be correlated."""
    return f"REDACTED:{hashlib.sha256(value.encode()).hexdigest()[:12]}"


def redact_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively redact sensitive fields from a dictionary.

    Secrets are dropped outright; identifying fields are replaced by a
    short hash.
    """
    result = {}
    for key, value in data.items():
        lowered = key.lower()
        if lowered in _DROP_KEYS:
            result[key] = "[REDACTED]" if value else None
        elif lowered in _SENSITIVE_KEYS:
            result[key] = redact_value(str(value)) if value else None
        elif isinstance(value, dict):
            result[key] = redact_dict(value)
        elif isinstance(value, str):
            redacted = value
            for pattern in _SENSITIVE_PATTERNS:
                redacted = pattern.sub("[REDACTED]", redacted)
            result[key] = redacted
        else:
            result[key] = value
    return result
