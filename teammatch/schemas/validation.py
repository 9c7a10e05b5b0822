from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlparse

_WS = re.compile(r"\s+")
_ZERO_WIDTH = re.compile("[\u200B-\u200D\uFEFF]")


def sanitize_text(text: str) -> str:
    """Trim, collapse runs of whitespace, drop zero-width characters."""
    return _ZERO_WIDTH.sub("", _WS.sub(" ", text.strip()))


def sanitize_optional(text: Optional[str]) -> Optional[str]:
    return sanitize_text(text) if text else text


def is_linkedin_url(url: str) -> bool:
    if not url:
        return True
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    host = parsed.hostname or ""
    return parsed.scheme in {"http", "https"} and host.endswith("linkedin.com")
