from __future__ import annotations

from typing import List

from ..models import ArticleStub
from .base import BaseProvider
from .markup import MarkupRules


class KompasProvider(BaseProvider):
    name = "Kompas.com"
    base_url = "https://www.kompas.com"
    feed_urls = (
        "https://rss.kompas.com/api/feed/social?apikey=bc58c81819dff4b8d5c53540a2fc7ffd83e6314a",
    )
    max_age_hours = 48
    feed_limit = 20
    markup_limit = 20
    markup_rules = MarkupRules(
        container_selectors=(
            ".article__list .article__item",
            ".headline .article__item",
            ".latest .article__item",
            ".terkini .article__item",
            "article",
            ".list-berita .item",
        ),
        link_selector='a[href*="kompas.com"]',
        title_selectors=".article__title, .title, h2, h3",
        date_selectors=".article__date, .date, .time, time",
        url_contains=("kompas.com",),
    )

    def fetch_feed(self) -> List[ArticleStub]:
        return self._read_feeds()

    def fetch_markup(self) -> List[ArticleStub]:
        return self._scrape_listing()
