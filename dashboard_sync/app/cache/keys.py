"""
Cache key handling and value equality helpers.
"""

from typing import Any, Optional

MAX_KEY_LENGTH = 256
KEY_SEPARATOR = "-"


def validate_key(key: Any) -> str:
    """Validate a cache key and return it as a string.

    Raises:
        TypeError: If the key is not a string.
        ValueError: If the key is empty, too long or contains control characters.
    """
    if not isinstance(key, str):
        raise TypeError(f"Cache key must be a string, got {type(key).__name__}")
    if not key:
        raise ValueError("Cache key cannot be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise ValueError(f"Cache key too long: {len(key)} chars (max {MAX_KEY_LENGTH})")
    if any(c in key for c in "\x00\r\n\t"):
        raise ValueError("Cache key cannot contain control characters")
    return key


def make_key(family: str, *parts: Any) -> str:
    """Build a key from a resource family and optional qualifiers.

    ``None`` qualifiers render as ``current``, so ``make_key("monthly-trends", None)``
    is ``"monthly-trends-current"`` and ``make_key("monthly-trends", 2024)`` is
    ``"monthly-trends-2024"``.
    """
    rendered = [family] + ["current" if part is None else str(part) for part in parts]
    return validate_key(KEY_SEPARATOR.join(rendered))


def key_family(key: str, known_families: Optional[list] = None) -> str:
    """Resource family of a key, matched against ``known_families`` when given."""
    if known_families:
        for family in sorted(known_families, key=len, reverse=True):
            if key == family or key.startswith(family + KEY_SEPARATOR):
                return family
    return key


def values_equal(left: Any, right: Any) -> bool:
    """Structural equality for cached payloads (models, lists, dicts, scalars)."""
    if left is right:
        return True
    if type(left) is not type(right):
        return False
    try:
        return bool(left == right)
    except Exception:
        return False


def same_entity(left: Any, right: Any) -> bool:
    """Whether two records carry the same ``id``."""
    left_id = getattr(left, "id", None)
    return left_id is not None and left_id == getattr(right, "id", None)
