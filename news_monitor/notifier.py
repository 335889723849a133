"""Discord webhook delivery for matched articles."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import threading
import time
from typing import Callable, Dict, Optional

import requests

from .errors import NotificationError
from .keywords import highlight_keywords
from .models import MatchedArticle

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 10
MAX_TITLE_LENGTH = 256
MAX_DESCRIPTION_LENGTH = 4096
DEFAULT_RETRY_AFTER = 60.0

SOURCE_COLORS: Dict[str, int] = {
    "CNN Indonesia": 0xFF0000,
    "Detik.com": 0x0066CC,
    "BBC Indonesia": 0xBB1919,
    "Kompas.com": 0x0D47A1,
}
DEFAULT_COLOR = 0x1E88E5
TEST_COLOR = 0x00FF00


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def format_relative_time(published_at: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    minutes = int((now - published_at).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    return f"{days}d ago"


def build_embed(article: MatchedArticle, now: Optional[datetime] = None) -> dict:
    title = highlight_keywords(article.title, article.matched_keywords)
    embed: dict = {
        "title": truncate_text(title, MAX_TITLE_LENGTH),
        "url": article.url,
        "color": SOURCE_COLORS.get(article.source, DEFAULT_COLOR),
        "timestamp": article.published_at.isoformat(),
        "footer": {"text": article.source},
        "fields": [
            {
                "name": "🎯 Matched Keywords",
                "value": ", ".join(f"`{keyword}`" for keyword in article.matched_keywords),
                "inline": True,
            },
            {
                "name": "🕒 Published",
                "value": format_relative_time(article.published_at, now),
                "inline": True,
            },
        ],
    }
    if article.description:
        embed["description"] = truncate_text(article.description, MAX_DESCRIPTION_LENGTH)
    if article.image_url:
        embed["thumbnail"] = {"url": article.image_url}
    return embed


class DiscordNotifier:
    """Posts one embed per article to a Discord webhook.

    Sends are spaced at least ``60 / rate_limit_rpm`` seconds apart. After a 429
    the notifier refuses to send until Discord's ``retry_after`` has elapsed.
    """

    def __init__(
        self,
        webhook_url: str,
        rate_limit_rpm: int = 30,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate_limit_rpm <= 0:
            raise ValueError("rate_limit_rpm must be positive")
        self.webhook_url = webhook_url
        self.min_interval = 60.0 / rate_limit_rpm
        self._session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep
        self._last_sent: Optional[float] = None
        self._rate_limited_until = 0.0
        self._lock = threading.Lock()

    @property
    def is_rate_limited(self) -> bool:
        return self._clock() < self._rate_limited_until

    def send_article(self, article: MatchedArticle) -> bool:
        with self._lock:
            if self.is_rate_limited:
                logger.warning("Rate limited by Discord, skipping message for %s", article.url)
                return False
            self._wait_for_slot()
            try:
                self._post({"embeds": [build_embed(article)]})
            except NotificationError as exc:
                logger.error("Failed to send article %r to Discord: %s", article.title, exc)
                return False
            self._last_sent = self._clock()
        logger.debug("Sent article to Discord: %s (%s)", article.title, article.source)
        return True

    def test_connection(self) -> bool:
        message = {
            "embeds": [
                {
                    "title": "🤖 News Monitor - Test Connection",
                    "description": "Bot is online and ready to monitor news!",
                    "color": TEST_COLOR,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "footer": {"text": "System Test"},
                }
            ]
        }
        try:
            self._post(message)
        except NotificationError as exc:
            logger.error("Discord connection test failed: %s", exc)
            return False
        logger.info("Discord connection test succeeded")
        return True

    def _wait_for_slot(self) -> None:
        if self._last_sent is None:
            return
        remaining = self.min_interval - (self._clock() - self._last_sent)
        if remaining > 0:
            logger.debug("Waiting %.2fs before next Discord message", remaining)
            self._sleep(remaining)

    def _post(self, payload: dict) -> None:
        try:
            response = self._session.post(self.webhook_url, json=payload, timeout=WEBHOOK_TIMEOUT)
        except requests.RequestException as exc:
            raise NotificationError(f"network error: {exc}") from exc
        if response.status_code in (200, 204):
            return
        if response.status_code == 429:
            retry_after = self._retry_after(response)
            self._rate_limited_until = self._clock() + retry_after
            raise NotificationError(f"rate limit exceeded, retry after {retry_after:.1f}s")
        raise NotificationError(f"unexpected status {response.status_code}: {response.text[:200]}")

    @staticmethod
    def _retry_after(response: requests.Response) -> float:
        try:
            value = response.json().get("retry_after")
        except (ValueError, AttributeError):
            value = None
        try:
            return float(value) if value is not None else DEFAULT_RETRY_AFTER
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER
