"""Content hashing helpers.

Fingerprints are computed from normalized text so that whitespace-only
differences (trailing spaces, CRLF line endings, runs of blank lines) map to
the same cache entry.
"""

import hashlib
import json
import re
from typing import Any

_INLINE_WHITESPACE = re.compile(r"[ \t\u3000\f\v]+")
_BLANK_LINES = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """Normalize article text before hashing.

    Trims the text and each line, collapses runs of spaces and tabs into a
    single space and keeps paragraph breaks as exactly one blank line.

    Args:
        text: Raw article text

    Returns:
        The normalized text
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_INLINE_WHITESPACE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def fingerprint(endpoint: str, text: str) -> str:
    """Compute the request fingerprint for an endpoint and article.

    Args:
        endpoint: Route path, e.g. ``/api/analyze-article``
        text: Raw article text

    Returns:
        SHA-256 hex digest of the endpoint and normalized text
    """
    payload = f"{endpoint}\n{normalize_text(text)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def short_hash(text: str, length: int = 16) -> str:
    """Short SHA-256 prefix of normalized text, used in response metadata."""
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()[:length]


def dedup_key(client_id: str, payload: Any) -> str:
    """Compute the de-duplication key for a client and request payload.

    String payloads are normalized like article text; other payloads are
    serialized to canonical JSON first.
    """
    if isinstance(payload, str):
        body = normalize_text(payload)
    else:
        body = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    digest = hashlib.sha256(f"{client_id}\n{body}".encode("utf-8")).hexdigest()
    return f"{client_id}:{digest}"


def string_hash32(value: str) -> int:
    """Deterministic 32-bit polynomial string hash.

    Computes ``h = h * 31 + ord(c)`` wrapped to a signed 32-bit integer and
    returns its absolute value, so bucket assignment is stable across
    processes and restarts.
    """
    h = 0
    for char in value:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return abs(h)
