from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from news_monitor.models import ArticleMetadata, ArticleStub
from news_monitor.providers.base import BaseProvider

WEBHOOK_URL = "https://discord.com/api/webhooks/123456789/abc-DEF_token"


class StaticProvider(BaseProvider):
    """Provider serving a fixed list of articles from its feed channel."""

    def __init__(self, name: str, articles: Optional[List[ArticleStub]] = None, markup: Optional[List[ArticleStub]] = None):
        super().__init__()
        self.name = name
        self.feed_articles = list(articles or [])
        self.markup_articles = list(markup or [])
        self.feed_calls = 0
        self.markup_calls = 0

    def fetch_feed(self) -> List[ArticleStub]:
        self.feed_calls += 1
        return list(self.feed_articles)

    def fetch_markup(self) -> List[ArticleStub]:
        self.markup_calls += 1
        return list(self.markup_articles)

    def fetch_article_metadata(self, url: str) -> ArticleMetadata:
        return ArticleMetadata(description=f"About {url}")


def make_stub(title: str, url: str, source: str = "Test Source", age_hours: float = 1.0) -> ArticleStub:
    return ArticleStub(
        title=title,
        url=url,
        published_at=datetime.now(timezone.utc) - timedelta(hours=age_hours),
        source=source,
    )
