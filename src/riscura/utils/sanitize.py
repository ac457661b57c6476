"""Redaction of credentials and local paths in user-visible error text."""

from __future__ import annotations

import os
import re

REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"sk-ant-[a-zA-Z0-9_-]+"), "[REDACTED_KEY]"),
    (re.compile(r"sk-[a-zA-Z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"(x-api-key|api-key|Authorization):\s*\S+", re.IGNORECASE), r"\1: [REDACTED]"),
]


def sanitize_error(message: str) -> str:
    """Strip API keys, auth headers and the user's home directory from a message."""
    if not message:
        return message

    for pattern, replacement in REDACTIONS:
        message = pattern.sub(replacement, message)

    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or ""
    if home and home != "/":
        message = message.replace(home, "[USER_HOME]")
    return message
