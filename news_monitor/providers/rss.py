"""Feed channel shared by the source adapters."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Mapping, Optional, Sequence

import feedparser
import requests

from ..models import ArticleStub
from .parsing import clean_title, is_stale, is_valid_url, newest_first, parse_date

FEED_TIMEOUT = 10

logger = logging.getLogger(__name__)


def fetch_feed_articles(
    session: requests.Session,
    feed_urls: Sequence[str],
    source: str,
    max_age_hours: float,
    limit: int,
    now: Optional[datetime] = None,
) -> List[ArticleStub]:
    """Collect fresh entries from every feed URL, newest first and capped.

    A feed that fails is logged and skipped so the remaining feeds are still read.
    """
    now = now or datetime.now(timezone.utc)
    collected: List[ArticleStub] = []
    for feed_url in feed_urls:
        try:
            entries = _load_entries(session, feed_url)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("%s: feed %s failed: %s", source, feed_url, exc)
            continue
        if not entries:
            logger.warning("%s: no items found in feed %s", source, feed_url)
            continue
        kept = 0
        for entry in entries[:limit]:
            stub = _parse_entry(entry, source, now)
            if stub is None or is_stale(stub.published_at, max_age_hours, now):
                continue
            collected.append(stub)
            kept += 1
        logger.debug("%s: kept %d of %d entries from %s", source, kept, len(entries), feed_url)
    return newest_first(collected, limit)


def _load_entries(session: requests.Session, feed_url: str) -> list:
    response = session.get(feed_url, timeout=FEED_TIMEOUT)
    response.raise_for_status()
    feed = feedparser.parse(response.content)
    if feed.bozo and not feed.entries:
        raise ValueError(f"unparseable feed: {feed.get('bozo_exception')}")
    return list(feed.entries or [])


def _parse_entry(entry: Mapping[str, object], source: str, now: datetime) -> Optional[ArticleStub]:
    title = clean_title(str(entry.get("title") or ""))
    url = str(entry.get("link") or "").strip()
    if not title or not is_valid_url(url):
        return None
    return ArticleStub(
        title=title,
        url=url,
        published_at=_parse_published(entry, now),
        source=source,
    )


def _parse_published(entry: Mapping[str, object], now: datetime) -> datetime:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                pass
    raw = entry.get("published") or entry.get("updated")
    if isinstance(raw, str) and raw.strip():
        return parse_date(raw, now=now)
    return now
