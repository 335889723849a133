from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
import logging
from typing import List, Optional, Sequence

import requests

from ..config import DEFAULT_USER_AGENT
from ..errors import SourceFetchError
from ..models import ArticleMetadata, ArticleStub, ScrapeResult
from .markup import MarkupRules, extract_markup_articles
from .metadata import fetch_article_metadata
from .rss import fetch_feed_articles

PAGE_TIMEOUT = 15

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """A news source reachable through a feed with a listing-page fallback."""

    name: str = ""
    base_url: str = ""
    feed_urls: Sequence[str] = ()
    markup_rules: MarkupRules = MarkupRules(container_selectors=("article",))
    max_age_hours: float = 48
    feed_limit: int = 20
    markup_limit: int = 15

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, session: Optional[requests.Session] = None) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "id-ID,id;q=0.9,en;q=0.8",
                "Accept-Encoding": "gzip, deflate",
            }
        )
        self.last_scrape_time: Optional[datetime] = None

    @abstractmethod
    def fetch_feed(self) -> List[ArticleStub]:
        """Return fresh articles from the source's syndication feeds."""

    @abstractmethod
    def fetch_markup(self) -> List[ArticleStub]:
        """Return fresh articles scraped from the source's listing page."""

    def scrape_news(self) -> ScrapeResult:
        """Fetch via the feed, falling back to the listing page when it yields nothing.

        Errors never escape; they are logged and reported in ``ScrapeResult.errors``.
        """
        result = ScrapeResult()
        articles: List[ArticleStub] = []
        try:
            articles = self.fetch_feed()
        except Exception as exc:
            message = f"{self.name} feed fetch failed: {exc}"
            logger.warning(message)
            result.errors.append(message)

        if articles:
            logger.info("Scraped %d articles from %s feed", len(articles), self.name)
        else:
            logger.info("Feed yielded nothing, falling back to HTML scraping for %s", self.name)
            try:
                articles = self.fetch_markup()
                logger.info("Scraped %d articles from %s HTML", len(articles), self.name)
            except Exception as exc:
                message = f"{self.name} scraping failed: {exc}"
                logger.error(message)
                result.errors.append(message)

        result.articles = list(articles)
        result.success = bool(result.articles)
        self.last_scrape_time = datetime.now(timezone.utc)
        return result

    def fetch_article_metadata(self, url: str) -> ArticleMetadata:
        return fetch_article_metadata(self._session, url)

    def _read_feeds(self, feed_urls: Optional[Sequence[str]] = None) -> List[ArticleStub]:
        return fetch_feed_articles(
            self._session,
            feed_urls if feed_urls is not None else self.feed_urls,
            self.name,
            self.max_age_hours,
            self.feed_limit,
        )

    def _scrape_listing(self, page_url: Optional[str] = None) -> List[ArticleStub]:
        url = page_url or self.base_url
        try:
            response = self._session.get(url, timeout=PAGE_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SourceFetchError(self.name, f"listing page {url} failed: {exc}") from exc
        return extract_markup_articles(
            response.content,
            self.base_url,
            self.name,
            self.markup_rules,
            self.max_age_hours,
            self.markup_limit,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


ProviderList = List[BaseProvider]
