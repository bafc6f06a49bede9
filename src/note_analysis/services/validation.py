"""Article input validation and sanitization."""

import logging
import re
from typing import Any

from note_analysis.config import settings
from note_analysis.exceptions import ValidationError

logger = logging.getLogger(__name__)

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_IFRAME_TAG = re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"""on\w+\s*=\s*["'][^"']*["']""", re.IGNORECASE)
_HTML_DATA_URI = re.compile(r"data:text/html[^,]*,", re.IGNORECASE)
_SUSPICIOUS = (
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
)

# Share of the input that sanitization may strip before it is rejected
MAX_REMOVED_PERCENT = 10


def sanitize_text(text: str) -> str:
    """Strip script-like markup from ``text``."""
    sanitized = _SCRIPT_TAG.sub("", text)
    sanitized = _IFRAME_TAG.sub("", sanitized)
    sanitized = _EVENT_HANDLER.sub("", sanitized)
    sanitized = _HTML_DATA_URI.sub("", sanitized)
    for pattern in _SUSPICIOUS:
        if pattern.search(sanitized):
            logger.warning("Suspicious pattern in input: %s", pattern.pattern)
            sanitized = pattern.sub("", sanitized)
    return sanitized


def validate_article_input(
    text: Any,
    min_length: int | None = None,
    max_length: int | None = None,
) -> str:
    """Validate raw article text and return its sanitized form.

    Args:
        text: The ``articleText`` value from the request body.
        min_length: Minimum length after trimming. Defaults to settings.
        max_length: Maximum length after trimming. Defaults to settings.

    Returns:
        Trimmed, sanitized article text

    Raises:
        ValidationError: If the text is missing, not a string, too short,
            too long, or mostly markup
    """
    min_length = settings.min_article_length if min_length is None else min_length
    max_length = max_length or settings.max_article_length

    if not isinstance(text, str):
        raise ValidationError("Article text must be a string")

    trimmed = text.strip()
    if not trimmed:
        raise ValidationError("記事のテキストを入力してください（Article text is required）")

    if len(trimmed) < min_length:
        raise ValidationError(
            f"記事が短すぎます。最低{min_length}文字以上入力してください"
            f"（Article is too short, minimum {min_length} characters required）"
        )

    if len(trimmed) > max_length:
        raise ValidationError(
            f"記事が長すぎます。最大{max_length:,}文字まで入力できます"
            f"（Article is too long: maximum length is {max_length:,} characters）"
        )

    sanitized = sanitize_text(trimmed)
    removed_percent = (len(trimmed) - len(sanitized)) / len(trimmed) * 100
    if removed_percent > MAX_REMOVED_PERCENT:
        raise ValidationError("入力に不適切な内容が含まれています（Input contains inappropriate content）")

    return sanitized.strip()
