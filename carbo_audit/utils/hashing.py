"""Short stable digests for rule-corpus fingerprints and offline owner ids."""

from __future__ import annotations

import hashlib

DIGEST_CHARS = 16


def short_digest(content: str | bytes, length: int = DIGEST_CHARS) -> str:
    """First ``length`` hex chars of the SHA-256 of ``content`` (str is UTF-8 encoded)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()[:length]
