from __future__ import annotations

import hashlib


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """Digest of the UTF-8 encoding; callers normalize line endings first."""
    return sha256_bytes(text.encode("utf-8", errors="strict"))
