"""Utility modules for note analysis."""

from .hashing import dedup_key, fingerprint, normalize_text, short_hash, string_hash32

__all__ = [
    "dedup_key",
    "fingerprint",
    "normalize_text",
    "short_hash",
    "string_hash32",
]
