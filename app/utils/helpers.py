"""
Common utility functions and helpers.
"""
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional
import re


def strip_punctuation(text: str) -> str:
    """
    Remove every character that is neither a word character nor whitespace.

    Args:
        text: Raw text string

    Returns:
        Text with punctuation removed
    """
    return re.sub(r'[^\w\s]', '', text)


def unique_preserving_order(items: Iterable[Any]) -> List[Any]:
    """
    Deduplicate *items* while keeping the first occurrence order.

    Args:
        items: Hashable values

    Returns:
        List of unique values
    """
    seen = set()
    result = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def tags_overlap(tags: Optional[Iterable[str]], wanted: Iterable[str]) -> bool:
    """True when *tags* and *wanted* share at least one exact value."""
    if not tags:
        return False
    return not set(tags).isdisjoint(wanted)


def as_list(value: Any) -> List[Any]:
    """Return *value* when it is a list, otherwise an empty list."""
    return value if isinstance(value, list) else []


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def first_name(full_name: Optional[str], default: str = "friend") -> str:
    """Return the first word of *full_name*, or *default*."""
    if not full_name or not full_name.strip():
        return default
    return full_name.split()[0]

