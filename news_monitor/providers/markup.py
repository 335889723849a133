"""Markup (listing page) channel used when a source's feed yields nothing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..models import ArticleStub
from .parsing import clean_title, is_stale, is_valid_url, make_absolute_url, newest_first, parse_date

MIN_TITLE_LENGTH = 10

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MarkupRules:
    """How to find article links on a source's listing page.

    ``container_selectors`` are tried in order; the first one that yields at least
    one article wins.
    """

    container_selectors: Sequence[str]
    link_selector: str = "a"
    title_selectors: str = "h1, h2, h3, h4, .title"
    date_selectors: str = "time, .date, .time"
    url_contains: Tuple[str, ...] = field(default_factory=tuple)
    min_title_length: int = MIN_TITLE_LENGTH

    def accepts_url(self, url: str) -> bool:
        if not self.url_contains:
            return True
        return any(fragment in url for fragment in self.url_contains)


def extract_markup_articles(
    html: str | bytes,
    base_url: str,
    source: str,
    rules: MarkupRules,
    max_age_hours: float,
    limit: int,
    now: Optional[datetime] = None,
) -> List[ArticleStub]:
    now = now or datetime.now(timezone.utc)
    soup = BeautifulSoup(html, "html.parser")
    for selector in rules.container_selectors:
        elements = soup.select(selector)
        if not elements:
            continue
        logger.debug("%s: %d elements match selector %r", source, len(elements), selector)
        articles: List[ArticleStub] = []
        seen: set[str] = set()
        for element in elements:
            stub = _extract_stub(element, base_url, source, rules, now)
            if stub is None or stub.url in seen:
                continue
            if is_stale(stub.published_at, max_age_hours, now):
                continue
            seen.add(stub.url)
            articles.append(stub)
        if articles:
            logger.debug("%s: extracted %d articles with selector %r", source, len(articles), selector)
            return newest_first(articles, limit)
    return []


def _extract_stub(
    element: Tag,
    base_url: str,
    source: str,
    rules: MarkupRules,
    now: datetime,
) -> Optional[ArticleStub]:
    title, href = _find_title_and_link(element, rules)
    if not title or not href:
        return None
    title = clean_title(title)
    if len(title) < rules.min_title_length:
        return None
    url = make_absolute_url(href, base_url)
    if not is_valid_url(url) or not rules.accepts_url(url):
        return None
    return ArticleStub(
        title=title,
        url=url,
        published_at=_find_published(element, rules, now),
        source=source,
    )


def _find_title_and_link(element: Tag, rules: MarkupRules) -> Tuple[str, str]:
    link = element.select_one(rules.link_selector)
    if link is not None:
        heading = link.select_one(rules.title_selectors)
        title = _text(heading) or _text(link) or str(link.get("aria-label") or "").strip()
        href = str(link.get("href") or "")
        if title and href:
            return title, href

    heading = element.select_one(rules.title_selectors)
    if heading is not None:
        anchor = heading if heading.name == "a" else heading.find("a") or element.find("a")
        if anchor is not None:
            return _text(heading), str(anchor.get("href") or "")

    if element.name == "a":
        return _text(element), str(element.get("href") or "")
    return "", ""


def _find_published(element: Tag, rules: MarkupRules, now: datetime) -> datetime:
    date_el = element.select_one(rules.date_selectors)
    if date_el is None:
        return now
    timestamp = str(date_el.get("d-time") or "").strip()
    if timestamp.isdigit():
        return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    raw = str(date_el.get("datetime") or "").strip() or _text(date_el)
    return parse_date(raw, now=now) if raw else now


def _text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return element.get_text(" ", strip=True)
