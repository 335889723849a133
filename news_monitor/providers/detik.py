from __future__ import annotations

from typing import List

from ..models import ArticleStub
from .base import BaseProvider
from .markup import MarkupRules

INDEX_URL = "https://news.detik.com/indeks"


class DetikProvider(BaseProvider):
    """Detik.com news and finance channels."""

    name = "Detik.com"
    base_url = "https://www.detik.com"
    feed_urls = (
        "https://news.detik.com/berita/rss",
        "https://finance.detik.com/rss",
    )
    max_age_hours = 48
    feed_limit = 20
    markup_limit = 15
    markup_rules = MarkupRules(
        container_selectors=(
            ".list-content .list-item",
            ".list-news .item",
            ".list li",
            "article",
            ".media",
        ),
        link_selector='a[href*="/read/"], a[href*="/d-"]',
        title_selectors=".media__title, .title, h2, h3",
        date_selectors=".media__date span[d-time], .date, .time, .media__date, time",
        url_contains=("/read/", "/d-"),
    )

    def fetch_feed(self) -> List[ArticleStub]:
        return self._read_feeds()

    def fetch_markup(self) -> List[ArticleStub]:
        articles = self._scrape_listing()
        if articles:
            return articles
        return self._scrape_listing(INDEX_URL)
