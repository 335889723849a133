from __future__ import annotations

import re
from typing import Iterable, List, Optional

MAX_DESCRIPTION_LENGTH = 300
MIN_PARAGRAPH_LENGTH = 30

_BOILERPLATE_RE = re.compile(
    r"\b(?:advertisement|iklan|scroll to continue|gulir untuk melanjutkan|baca juga|lihat juga|"
    r"see also|read more|simak juga|tonton juga|copyright|hak cipta|all rights reserved)\b|©",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")


def build_preview(paragraphs: Iterable[str], max_sentences: int = 2) -> Optional[str]:
    """Take the first sentences of the first real body paragraph."""
    for paragraph in paragraphs:
        text = normalize(paragraph)
        if len(text) < MIN_PARAGRAPH_LENGTH or is_boilerplate(text):
            continue
        sentences = _split_sentences(text)
        if not sentences:
            continue
        return truncate(" ".join(sentences[:max_sentences]))
    return None


def is_boilerplate(text: str) -> bool:
    return bool(_BOILERPLATE_RE.search(text))


def normalize(text: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def truncate(text: Optional[str], max_length: int = MAX_DESCRIPTION_LENGTH) -> Optional[str]:
    text = normalize(text)
    if not text:
        return None
    if len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text


def _split_sentences(text: str) -> List[str]:
    split = re.split(r"(?<=[.!?])\s+", text.strip())
    return [sentence.strip() for sentence in split if sentence.strip()]
