"""Cache key derivation.

A key looks like ``example.com-5d41402abc4b2a76b9719d911017c592.json``: the
host keeps the cache directory readable, the MD5 of the percent-encoded URL
keeps keys unique and filesystem-safe whatever the URL contains.
"""

from __future__ import annotations

import hashlib
import re
from urllib.parse import quote_plus, urlsplit

_UNSAFE_HOST_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def derive_key(url: str) -> str:
    """Map *url* to its cache file name.  Pure and deterministic."""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        # e.g. an unbalanced IPv6 bracket
        host = ""
    host = _UNSAFE_HOST_CHARS.sub("_", host) or "unknown"
    digest = hashlib.md5(quote_plus(url, safe="").encode("utf-8")).hexdigest()
    return f"{host}-{digest}.json"
