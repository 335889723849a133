"""Whole-word keyword matching used to filter article titles."""

from __future__ import annotations

from functools import lru_cache
import re
from typing import Iterable, List, Optional, Pattern

MIN_KEYWORD_LENGTH = 2

# A boundary is any character that is not a letter or digit (underscore included),
# or the edge of the string.
_LEFT_BOUNDARY = r"(?<![^\W_])"
_RIGHT_BOUNDARY = r"(?![^\W_])"
_REGEX_SPECIAL = re.compile(r"[.*+?^${}()|\[\]\\]")


@lru_cache(maxsize=256)
def _keyword_pattern(keyword: str) -> Pattern[str]:
    return re.compile(f"{_LEFT_BOUNDARY}{re.escape(keyword)}{_RIGHT_BOUNDARY}", re.IGNORECASE)


def _usable(keyword: Optional[str]) -> bool:
    return bool(keyword and keyword.strip())


def find_matching_keywords(text: Optional[str], keywords: Optional[Iterable[str]]) -> List[str]:
    """Return the keywords that occur in ``text`` as whole words, in input order."""
    if not text or not keywords:
        return []
    matched: List[str] = []
    for keyword in keywords:
        if not _usable(keyword):
            continue
        if _keyword_pattern(keyword.strip()).search(text):
            matched.append(keyword)
    return matched


def highlight_keywords(text: str, keywords: Optional[Iterable[str]]) -> str:
    """Wrap each whole-word keyword occurrence in Markdown bold markers."""
    if not text or not keywords:
        return text
    highlighted = text
    for keyword in keywords:
        if not _usable(keyword):
            continue
        highlighted = _keyword_pattern(keyword.strip()).sub(lambda m: f"**{m.group(0)}**", highlighted)
    return highlighted


def validate_keywords(keywords: Iterable[str]) -> List[str]:
    """Return blocking validation errors. Multi-word phrases are allowed."""
    errors: List[str] = []
    for keyword in keywords:
        trimmed = (keyword or "").strip()
        if not trimmed:
            errors.append("Empty keyword detected")
            continue
        if len(trimmed) < MIN_KEYWORD_LENGTH:
            errors.append(
                f'Keyword "{trimmed}" is too short (minimum {MIN_KEYWORD_LENGTH} characters)'
            )
    return errors


def keyword_warnings(keywords: Iterable[str]) -> List[str]:
    """Non-blocking diagnostics; special characters are escaped before matching."""
    warnings: List[str] = []
    for keyword in keywords:
        trimmed = (keyword or "").strip()
        if trimmed and _REGEX_SPECIAL.search(trimmed):
            warnings.append(
                f'Keyword "{trimmed}" contains special regex characters; they are matched literally'
            )
    return warnings


def parse_keywords(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip().lower() for item in value.split(",") if item.strip()]
