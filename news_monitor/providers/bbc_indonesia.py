from __future__ import annotations

from typing import List

from ..models import ArticleStub
from .base import BaseProvider
from .markup import MarkupRules


class BBCIndonesiaProvider(BaseProvider):
    """BBC News Indonesia. Only links under ``/indonesia/`` are kept."""

    name = "BBC Indonesia"
    base_url = "https://www.bbc.com/indonesia"
    feed_urls = ("https://feeds.bbci.co.uk/indonesia/rss.xml",)
    max_age_hours = 48
    feed_limit = 20
    markup_limit = 15
    markup_rules = MarkupRules(
        container_selectors=(
            '[data-testid="topic-promos"] article',
            '[data-testid="latest-stories"] article',
            ".nw-c-promo",
            "article",
            ".media-item",
        ),
        link_selector='a[href*="/indonesia/"]',
        title_selectors="h3, h2, .promo-heading, .media-heading",
        date_selectors="time",
        url_contains=("/indonesia/",),
    )

    def fetch_feed(self) -> List[ArticleStub]:
        # The feed occasionally carries links to other BBC language services.
        return [article for article in self._read_feeds() if "/indonesia/" in article.url]

    def fetch_markup(self) -> List[ArticleStub]:
        return self._scrape_listing()
