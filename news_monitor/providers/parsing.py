"""Normalization helpers shared by the source adapters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin, urlparse

from dateutil import parser as date_parser

from ..models import ArticleStub

logger = logging.getLogger(__name__)

WIB = timezone(timedelta(hours=7), "WIB")

TZINFOS = {
    "WIB": WIB,
    "WITA": timezone(timedelta(hours=8)),
    "WIT": timezone(timedelta(hours=9)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
}

_MONTHS: Dict[str, int] = {
    "januari": 1,
    "februari": 2,
    "maret": 3,
    "april": 4,
    "mei": 5,
    "juni": 6,
    "juli": 7,
    "agustus": 8,
    "september": 9,
    "oktober": 10,
    "november": 11,
    "desember": 12,
    # Abbreviations that differ from English; the shared ones (Jan, Feb, ...) are
    # left to dateutil so RFC 2822 offsets are kept.
    "agu": 8,
    "agt": 8,
    "ags": 8,
    "okt": 10,
    "des": 12,
}

_WEEKDAY_RE = re.compile(r"^(?:senin|selasa|rabu|kamis|jumat|jum'at|sabtu|minggu)\s*,?\s*", re.IGNORECASE)
_INDONESIAN_DATE_RE = re.compile(
    r"(\d{1,2})\s+(" + "|".join(sorted(_MONTHS, key=len, reverse=True)) + r")\.?\s+(\d{4})"
    r"(?:\D{1,3}(\d{1,2})[:.](\d{2}))?",
    re.IGNORECASE,
)
_SLASH_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})(?:\D{1,3}(\d{1,2})[:.](\d{2}))?")
_RELATIVE_RE = re.compile(r"(\d+)\s*(detik|menit|jam|hari|minggu)\s+(?:yang\s+)?lalu", re.IGNORECASE)
_RELATIVE_UNITS = {
    "detik": "seconds",
    "menit": "minutes",
    "jam": "hours",
    "hari": "days",
    "minggu": "weeks",
}
_ZONE_RE = re.compile(r"\b(WIB|WITA|WIT)\b", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def clean_title(title: Optional[str]) -> str:
    if not title:
        return ""
    cleaned = _WHITESPACE_RE.sub(" ", title).strip()
    cleaned = cleaned.strip("|-").strip()
    return cleaned


def normalize_whitespace(text: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def is_valid_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def make_absolute_url(url: str, base_url: str) -> str:
    url = (url or "").strip()
    if is_valid_url(url):
        return url
    try:
        return urljoin(base_url if base_url.endswith("/") else f"{base_url}/", url)
    except ValueError:
        logger.warning("Could not create absolute URL from %r against %s", url, base_url)
        return url


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=WIB)
    return value.astimezone(timezone.utc)


def _zone_for(text: str) -> timezone:
    match = _ZONE_RE.search(text)
    if match:
        return TZINFOS[match.group(1).upper()]
    return WIB


def parse_date(value: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Parse the date formats used by Indonesian news sites.

    Accepts ISO 8601, RFC 2822, ``15 Januari 2024, 10:30 WIB``, ``15/01/2024`` and
    relative strings such as ``5 menit yang lalu``. Naive values are taken to be
    WIB. Anything unparseable yields ``now`` (UTC) rather than an error.
    """
    now = now or datetime.now(timezone.utc)
    text = normalize_whitespace(value)
    if not text:
        return now

    match = _INDONESIAN_DATE_RE.search(text)
    if match:
        parsed = _build(match, _MONTHS[match.group(2).lower()], text)
        if parsed is not None:
            return parsed

    match = _RELATIVE_RE.search(text)
    if match:
        amount = int(match.group(1))
        unit = _RELATIVE_UNITS[match.group(2).lower()]
        return now - timedelta(**{unit: amount})

    match = _SLASH_DATE_RE.search(text)
    if match:
        parsed = _build(match, int(match.group(2)), text)
        if parsed is not None:
            return parsed

    try:
        return _as_utc(date_parser.parse(_WEEKDAY_RE.sub("", text), tzinfos=TZINFOS))
    except (ValueError, OverflowError) as exc:
        logger.debug("Could not parse date %r, using current time: %s", text, exc)
    return now


def _build(match: "re.Match[str]", month: int, text: str) -> Optional[datetime]:
    day = int(match.group(1))
    year = int(match.group(3))
    hour = int(match.group(4)) if match.group(4) else 0
    minute = int(match.group(5)) if match.group(5) else 0
    try:
        local = datetime(year, month, day, hour, minute, tzinfo=_zone_for(text))
    except ValueError:
        logger.debug("Invalid calendar date in %r", text)
        return None
    return local.astimezone(timezone.utc)


def is_stale(published_at: datetime, max_age_hours: float, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return (now - published_at) > timedelta(hours=max_age_hours)


def newest_first(articles: Iterable[ArticleStub], limit: int) -> List[ArticleStub]:
    """Drop repeated URLs (first occurrence wins), sort newest first and cap."""
    seen: set[str] = set()
    unique: List[ArticleStub] = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    unique.sort(key=lambda item: item.published_at, reverse=True)
    return unique[:limit]
