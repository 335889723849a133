from __future__ import annotations

from datetime import datetime, timezone
import logging
import threading
import time
from typing import Callable, Iterable, List, Optional, Set, Tuple

from .config import MonitorConfig
from .errors import StorageError
from .keywords import find_matching_keywords
from .models import ArticleMetadata, ArticleStub, CycleReport, MatchedArticle
from .notifier import DiscordNotifier
from .providers.base import BaseProvider, ProviderList
from .storage import ArticleStore

logger = logging.getLogger(__name__)

Candidate = Tuple[BaseProvider, ArticleStub, List[str]]


class NewsMonitor:
    """Runs one fetch, match, notify and persist cycle across all sources."""

    def __init__(
        self,
        config: MonitorConfig,
        providers: Iterable[BaseProvider],
        store: ArticleStore,
        notifier: DiscordNotifier,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.providers: ProviderList = list(providers)
        if not self.providers:
            raise RuntimeError("No providers configured for NewsMonitor")
        self.store = store
        self.notifier = notifier
        self._sleep = sleep
        self.last_report: Optional[CycleReport] = None

    def run_cycle(self, stop_event: Optional[threading.Event] = None) -> CycleReport:
        started = time.monotonic()
        report = CycleReport(started_at=datetime.now(timezone.utc))
        logger.info("Starting news monitoring cycle")

        candidates = self._collect(report, stop_event)
        if report.cancelled:
            logger.warning("News monitoring cycle cancelled before delivery")
        elif candidates:
            logger.info("Found %d new matching articles", len(candidates))
            limit = self.config.max_articles_per_check
            if len(candidates) > limit:
                logger.info("Limiting to %d of %d articles this cycle", limit, len(candidates))
                candidates = candidates[:limit]
            articles = [self._matched(provider, stub, keywords) for provider, stub, keywords in candidates]
            self._deliver(articles, report)
        else:
            logger.info("No new matching articles found")

        report.duration_seconds = time.monotonic() - started
        self.last_report = report
        logger.info(
            "News monitoring cycle completed in %.2fs: matched=%d sent=%d saved=%d errors=%d",
            report.duration_seconds,
            report.matched,
            report.sent,
            report.saved,
            len(report.errors),
        )
        return report

    def _collect(self, report: CycleReport, stop_event: Optional[threading.Event]) -> List[Candidate]:
        candidates: List[Candidate] = []
        seen: Set[str] = set()
        for index, provider in enumerate(self.providers):
            if index and self.config.source_delay_seconds:
                self._sleep(self.config.source_delay_seconds)
            if self._cancelled(report, stop_event):
                return []
            try:
                result = provider.scrape_news()
            except Exception as exc:
                message = f"Error scraping {provider.name}: {exc}"
                logger.exception(message)
                report.errors.append(message)
                report.articles_by_source[provider.name] = 0
                continue

            report.articles_by_source[provider.name] = len(result.articles)
            if not result.success:
                logger.warning("No articles scraped from %s: %s", provider.name, "; ".join(result.errors))
            report.errors.extend(result.errors)

            for stub in result.articles:
                keywords = find_matching_keywords(stub.title, self.config.keywords)
                if not keywords or stub.url in seen:
                    continue
                if self._already_processed(stub.url):
                    logger.debug("Skipping already processed article: %s", stub.title)
                    continue
                seen.add(stub.url)
                candidates.append((provider, stub, keywords))
                logger.info("Found matching article from %s: %s %s", stub.source, stub.title, keywords)
        if self._cancelled(report, stop_event):
            return []
        report.matched = len(candidates)
        return candidates

    @staticmethod
    def _cancelled(report: CycleReport, stop_event: Optional[threading.Event]) -> bool:
        if stop_event is not None and stop_event.is_set():
            report.cancelled = True
        return report.cancelled

    def _already_processed(self, url: str) -> bool:
        try:
            return self.store.is_processed(url)
        except StorageError as exc:
            logger.error("Could not check whether %s was processed, treating it as new: %s", url, exc)
            return False

    def _matched(self, provider: BaseProvider, stub: ArticleStub, keywords: List[str]) -> MatchedArticle:
        metadata: Optional[ArticleMetadata] = None
        if self.config.fetch_metadata:
            metadata = provider.fetch_article_metadata(stub.url)
        return MatchedArticle.from_stub(stub, keywords, metadata)

    def _deliver(self, articles: List[MatchedArticle], report: CycleReport) -> None:
        batch_size = self.config.notify_batch_size
        for start in range(0, len(articles), batch_size):
            if start and self.config.batch_delay_seconds:
                self._sleep(self.config.batch_delay_seconds)
            for article in articles[start : start + batch_size]:
                if not self.notifier.send_article(article):
                    logger.warning("Failed to send article, it will be retried next cycle: %s", article.title)
                    continue
                report.sent += 1
                try:
                    self.store.save(article)
                except StorageError as exc:
                    logger.error("Failed to save article %r to database: %s", article.title, exc)
                    report.errors.append(f"save failed for {article.url}: {exc}")
                    continue
                report.saved += 1
        logger.info("Successfully processed %d/%d articles", report.sent, len(articles))
