"""Content hashes used to correlate an upload across log lines."""

from __future__ import annotations

import hashlib


def compute_file_hash(file_bytes: bytes) -> str:
    """SHA-256 hex digest of the raw upload."""
    return hashlib.sha256(file_bytes).hexdigest()


def compute_string_hash(text: str) -> str:
    """SHA-256 hex digest of OCR text, UTF-8 encoded."""
    return compute_file_hash(text.encode("utf-8"))
