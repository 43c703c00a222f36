"""Message text normalization, hashing and language detection."""

import hashlib
import math
import re

_DISALLOWED = re.compile(r"[^\u0400-\u04FFa-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_CYRILLIC = re.compile(r"[\u0400-\u04FF]")
_LATIN = re.compile(r"[a-z]")


def normalize_text(text: str) -> str:
    """
    Lowercase text and keep only Cyrillic/Latin letters, digits and single spaces.

    Args:
        text: Raw message text

    Returns:
        Normalized text
    """
    lowered = (text or "").lower()
    stripped = _DISALLOWED.sub("", lowered)
    return _WHITESPACE.sub(" ", stripped).strip()


def detect_language(text: str) -> str:
    """Return 'ru' when Cyrillic letters outnumber Latin ones, else 'en'."""
    cyrillic = len(_CYRILLIC.findall(text))
    latin = len(_LATIN.findall(text))
    return "ru" if cyrillic > latin else "en"


def text_hash(text: str) -> str:
    """MD5 hex digest of the text."""
    return hashlib.md5(text.encode()).hexdigest()


def estimate_tokens(text: str) -> int:
    # ~1.3 tokens per whitespace-separated word
    return math.ceil(len(text.split(" ")) * 1.3)
