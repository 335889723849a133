from __future__ import annotations

from typing import List

from ..models import ArticleStub
from .base import BaseProvider
from .markup import MarkupRules


class CNNIndonesiaProvider(BaseProvider):
    """CNN Indonesia: a single national feed, front page as fallback."""

    name = "CNN Indonesia"
    base_url = "https://www.cnnindonesia.com"
    feed_urls = ("https://www.cnnindonesia.com/rss",)
    max_age_hours = 24
    feed_limit = 20
    markup_limit = 15
    markup_rules = MarkupRules(
        container_selectors=(
            ".list-content .content-item",
            ".media__list .media__item",
            ".list .item",
            "article",
            ".news-item",
        ),
        link_selector="h2 a, h3 a, .media__title a, .title a",
        title_selectors=".title, .headline, h2, h3",
        date_selectors=".date, .time, .publish-date, time",
        url_contains=("cnnindonesia.com",),
    )

    def fetch_feed(self) -> List[ArticleStub]:
        return self._read_feeds()

    def fetch_markup(self) -> List[ArticleStub]:
        return self._scrape_listing()
