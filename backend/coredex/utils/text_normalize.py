"""
text_normalize.py - Text cleanup helpers

Small helpers used before model output is pattern-matched and before
user content is sent to the remote scorer.
"""
import re
from typing import List, Optional

_LINE_BREAKS = re.compile(r"\r\n?")
_LIST_SEPARATORS = re.compile(r"[\r\n;•\-–]+")


def normalize_text(text: Optional[str]) -> str:
    """
    Coerce to string, unify line breaks and strip surrounding whitespace.

    Args:
        text: Raw input text (may be None)

    Returns:
        Normalized text, "" for None
    """
    if text is None:
        return ""
    return _LINE_BREAKS.sub("\n", str(text)).strip()


def collapse_lines(text: str, separator: str = " | ") -> str:
    """Join the non-empty trimmed lines of text into a single line."""
    lines = (line.strip() for line in normalize_text(text).split("\n"))
    return separator.join(line for line in lines if line)


def split_list_items(text: str, max_items: int = 10) -> List[str]:
    """Split a loosely formatted list on newlines, semicolons, bullets and dashes."""
    parts = (part.strip() for part in _LIST_SEPARATORS.split(text or ""))
    return [part for part in parts if part][:max_items]
