from __future__ import annotations

import re
from typing import List

_WHITESPACE_RE = re.compile(r"\s{2,}")
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")


def sanitize_name(value: str) -> str:
    """Reduce a file stem to ASCII letters, digits and dashes."""
    collapsed = _WHITESPACE_RE.sub(" ", value.strip())
    sanitized = _UNSAFE_RE.sub("-", collapsed)
    return sanitized or "book"


def split_formats(value: str) -> List[str]:
    """Parse a comma-separated format list such as 'epub, .azw3'."""
    formats: List[str] = []
    for item in value.split(","):
        fmt = item.strip().lstrip(".").lower()
        if fmt and fmt not in formats:
            formats.append(fmt)
    return formats
