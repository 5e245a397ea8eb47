"""
File hashing utility — stable document identifiers for uploads.
"""

import hashlib


def md5_hash(data: bytes) -> str:
    """Return hex MD5 digest of raw bytes."""
    return hashlib.md5(data).hexdigest()


def document_id(data: bytes | str) -> str:
    """Stable id for an uploaded document: same bytes, same id."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return f"doc-{md5_hash(data)[:16]}"
